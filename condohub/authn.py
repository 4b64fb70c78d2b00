from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .config import settings
from .models import User


@dataclass
class AuthIdentity:
    user_id: int
    email: str
    role: str


def _token_exp(minutes: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=max(1, int(minutes)))


def create_access_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "iss": settings.AUTH_ISSUER,
        "exp": _token_exp(settings.AUTH_ACCESS_TOKEN_MINUTES),
    }
    return jwt.encode(payload, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)


def decode_access_token(token: str) -> AuthIdentity | None:
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_SECRET_KEY,
            algorithms=[settings.AUTH_ALGORITHM],
            issuer=settings.AUTH_ISSUER,
        )
    except JWTError:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return AuthIdentity(
        user_id=user_id,
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or ""),
    )


def extract_identity_from_authorization_header(value: str | None) -> AuthIdentity | None:
    raw = (value or "").strip()
    if not raw.lower().startswith("bearer "):
        return None
    token = raw[7:].strip()
    if not token:
        return None
    return decode_access_token(token)
