import enum


class ExpenseStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class VisitorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class MessageStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class UserRole(str, enum.Enum):
    RESIDENT = "resident"
    ADMIN = "admin"


ALLOWED_EXPENSE_TRANSITIONS = {
    ExpenseStatus.PENDING: {ExpenseStatus.PAID, ExpenseStatus.OVERDUE},
    ExpenseStatus.OVERDUE: {ExpenseStatus.PAID},
    ExpenseStatus.PAID: set(),
}
ALLOWED_RESERVATION_TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.CANCELLED},
    ReservationStatus.CANCELLED: set(),
}
ALLOWED_VISITOR_TRANSITIONS = {
    VisitorStatus.PENDING: {VisitorStatus.APPROVED, VisitorStatus.REJECTED},
    VisitorStatus.APPROVED: {VisitorStatus.REJECTED, VisitorStatus.COMPLETED},
    VisitorStatus.REJECTED: set(),
    VisitorStatus.COMPLETED: set(),
}
ALLOWED_MESSAGE_TRANSITIONS = {
    MessageStatus.OPEN: {MessageStatus.IN_PROGRESS, MessageStatus.RESOLVED, MessageStatus.CLOSED},
    MessageStatus.IN_PROGRESS: {MessageStatus.RESOLVED, MessageStatus.CLOSED},
    MessageStatus.RESOLVED: {MessageStatus.CLOSED, MessageStatus.IN_PROGRESS},
    MessageStatus.CLOSED: set(),
}

_TRANSITIONS = {
    ExpenseStatus: ALLOWED_EXPENSE_TRANSITIONS,
    ReservationStatus: ALLOWED_RESERVATION_TRANSITIONS,
    VisitorStatus: ALLOWED_VISITOR_TRANSITIONS,
    MessageStatus: ALLOWED_MESSAGE_TRANSITIONS,
}


class InvalidTransition(ValueError):
    def __init__(self, current: enum.Enum, target: enum.Enum):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current.value} -> {target.value}")


def parse_status(enum_cls, raw):
    if isinstance(raw, enum_cls):
        return raw
    value = str(raw or "").strip().lower()
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Invalid status: {value or '<empty>'}") from None


def ensure_transition(current: enum.Enum, target: enum.Enum) -> None:
    allowed = _TRANSITIONS[type(current)].get(current, set())
    if target not in allowed:
        raise InvalidTransition(current, target)
