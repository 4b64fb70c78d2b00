"""Time-window rules for space reservations and visitor registrations.

All instants are naive building-local datetimes.
"""

from datetime import date, datetime, time, timedelta

from ..statuses import ReservationStatus, VisitorStatus

CANCEL_NOTICE = timedelta(hours=24)
VISIT_WINDOW = timedelta(hours=24)


def parse_hhmm(value: str) -> time:
    hours, minutes = str(value).strip().split(":")
    return time(int(hours), int(minutes))


def reservation_start(day: date, start_time: str) -> datetime:
    return datetime.combine(day, parse_hhmm(start_time))


def visit_start(day: date, visit_time: str) -> datetime:
    return datetime.combine(day, parse_hhmm(visit_time))


def can_cancel_reservation(
    status: ReservationStatus,
    start: datetime,
    now: datetime,
    notice: timedelta = CANCEL_NOTICE,
) -> bool:
    return status == ReservationStatus.CONFIRMED and (start - now) > notice


def is_visit_active(
    status: VisitorStatus,
    start: datetime,
    now: datetime,
    window: timedelta = VISIT_WINDOW,
) -> bool:
    return status == VisitorStatus.APPROVED and start <= now <= start + window


def can_cancel_visit(status: VisitorStatus, start: datetime, now: datetime) -> bool:
    # No minimum notice here, unlike reservations.
    return status == VisitorStatus.APPROVED and start > now


def is_visit_expired(
    status: VisitorStatus,
    start: datetime,
    now: datetime,
    window: timedelta = VISIT_WINDOW,
) -> bool:
    return status == VisitorStatus.APPROVED and now > start + window
