import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .authn import create_access_token
from .config import settings
from .db import get_db
from .deps import get_current_user
from .models import User
from .schemas import LoginIn, LogoutOut, TokenOut, UserOut
from .services import authenticate_user

logger = structlog.get_logger("condohub.auth")

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Credenciales inválidas. Intenta nuevamente."


def _to_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        apartment=user.apartment,
        phone=user.phone,
        role=user.role,
        building_id=user.building_id,
    )


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.email, payload.password)
    if not user:
        logger.info("login_failed", email=payload.email.strip().lower())
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    logger.info("login_succeeded", user_id=user.id, role=user.role.value)
    return TokenOut(
        access_token=create_access_token(user),
        expires_in_seconds=int(settings.AUTH_ACCESS_TOKEN_MINUTES) * 60,
        user=_to_user_out(user),
    )


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return _to_user_out(user)


@router.post("/logout", response_model=LogoutOut)
def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy.
    logger.info("logout", user_id=user.id)
    return LogoutOut(ok=True)
