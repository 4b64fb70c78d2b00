from datetime import datetime
from zoneinfo import ZoneInfo

from ..config import settings


def building_now() -> datetime:
    """Current wall-clock time in the building's timezone, as a naive datetime."""
    tz = ZoneInfo(settings.BUILDING_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)
