import os

from dotenv import load_dotenv

load_dotenv()


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "1" if default else "0").strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return bool(default)


class Settings:
    APP_NAME = os.getenv("APP_NAME", "CondoHub").strip()
    # Empty sqlite URL keeps everything in memory; fixtures are reloaded on start.
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://").strip()
    SEED_ON_STARTUP = _get_bool("SEED_ON_STARTUP", True)
    BUILDING_TIMEZONE = os.getenv("BUILDING_TIMEZONE", "America/Santiago").strip()

    DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "password123")
    AUTH_SECRET_KEY = os.getenv("AUTH_SECRET_KEY", "change-this-in-prod").strip()
    AUTH_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256").strip()
    AUTH_ACCESS_TOKEN_MINUTES = _get_int("AUTH_ACCESS_TOKEN_MINUTES", 480)
    AUTH_ISSUER = os.getenv("AUTH_ISSUER", "condohub").strip()

    RESERVATION_CANCEL_NOTICE_HOURS = _get_int("RESERVATION_CANCEL_NOTICE_HOURS", 24)
    VISIT_WINDOW_HOURS = _get_int("VISIT_WINDOW_HOURS", 24)
    SPACE_BOOKING_HORIZON_DAYS = _get_int("SPACE_BOOKING_HORIZON_DAYS", 60)
    VISITOR_BOOKING_HORIZON_DAYS = _get_int("VISITOR_BOOKING_HORIZON_DAYS", 30)

    PAYMENT_PROVIDER_MODE = os.getenv("PAYMENT_PROVIDER_MODE", "mock").strip().lower()
    PAYMENT_DEFAULT_CURRENCY = os.getenv("PAYMENT_DEFAULT_CURRENCY", "CLP").strip().upper()

    MAINTENANCE_MODE = _get_bool("MAINTENANCE_MODE", False)
    MAINTENANCE_READ_ONLY = _get_bool("MAINTENANCE_READ_ONLY", False)
    MAINTENANCE_RETRY_AFTER_SECONDS = _get_int("MAINTENANCE_RETRY_AFTER_SECONDS", 120)

    SECURITY_HEADERS_ENABLED = _get_bool("SECURITY_HEADERS_ENABLED", True)


settings = Settings()
