from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, validator

from .statuses import ExpenseStatus, MessageStatus, ReservationStatus, UserRole, VisitorStatus

_HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class LoginIn(BaseModel):
    email: str = Field(min_length=3, max_length=160)
    password: str = Field(min_length=1, max_length=200)


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    apartment: str
    phone: str
    role: UserRole
    building_id: int


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in_seconds: int
    user: UserOut


class LogoutOut(BaseModel):
    ok: bool


class DateParseIn(BaseModel):
    text: str = Field(max_length=40)
    min_date: date | None = None
    max_date: date | None = None
    disabled_days: list[int] = Field(default_factory=list)

    @validator("disabled_days")
    @classmethod
    def validate_weekdays(cls, value: list[int]) -> list[int]:
        for day in value:
            if day < 0 or day > 6:
                raise ValueError("disabled_days must be between 0 (Sunday) and 6 (Saturday)")
        return value


class DateParseOut(BaseModel):
    date: date
    key: str
    input: str
    display: str
    long: str


class CalendarCellOut(BaseModel):
    date: str
    day: int
    in_month: bool
    disabled: bool
    selectable: bool
    is_today: bool
    is_selected: bool


class MonthRefOut(BaseModel):
    year: int
    month: int


class CalendarMonthOut(BaseModel):
    year: int
    month: int
    label: str
    weekdays: list[str]
    previous: MonthRefOut
    next: MonthRefOut
    cells: list[CalendarCellOut]


class ExpenseCreate(BaseModel):
    user_id: int
    month: str = Field(min_length=3, max_length=20)
    year: int = Field(ge=1900, le=2100)
    amount: int = Field(gt=0)
    description: str = Field(min_length=2, max_length=200)
    due_date: date


class ExpenseOut(BaseModel):
    id: int
    user_id: int
    building_id: int
    month: str
    year: int
    amount: int
    amount_display: str
    description: str
    status: ExpenseStatus
    due_date: date
    paid_date: datetime | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    created_at: datetime


class PaymentIn(BaseModel):
    method: Literal["credit", "debit", "transfer"]
    card_number: str | None = Field(default=None, max_length=23)
    expiry: str | None = Field(default=None, max_length=5)
    cvv: str | None = Field(default=None, max_length=4)
    card_name: str | None = Field(default=None, max_length=120)


class OverdueOut(BaseModel):
    updated: int


class SpaceOut(BaseModel):
    id: int
    name: str
    description: str
    capacity: int
    hourly_rate: int | None = None
    available_hours: list[str]
    amenities: list[str]
    image_url: str | None = None
    is_active: bool


class SpaceDayOut(BaseModel):
    space_id: int
    date: date
    weekday: int
    available: bool
    reason: str | None = None
    reservations: int = 0


class QuoteOut(BaseModel):
    space_id: int
    start_time: str
    end_time: str
    hours: int
    total: int
    total_display: str


class ReservationCreate(BaseModel):
    space_id: int
    date: date
    start_time: str = Field(pattern=_HHMM_PATTERN)
    end_time: str = Field(pattern=_HHMM_PATTERN)
    notes: str | None = Field(default=None, max_length=500)


class ReservationOut(BaseModel):
    id: int
    user_id: int
    user_name: str | None = None
    space_id: int
    space_name: str | None = None
    date: date
    start_time: str
    end_time: str
    status: ReservationStatus
    notes: str | None = None
    created_at: datetime
    estimated_cost: int
    can_cancel: bool


class AdminReservationsOut(BaseModel):
    total: int
    confirmed: int
    revenue: int
    revenue_display: str
    reservations: list[ReservationOut]


class StatusEventOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    from_status: str | None = None
    to_status: str
    action: str
    actor: str | None = None
    note: str | None = None
    created_at: datetime


class VisitorCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    document_id: str = Field(min_length=2, max_length=20)
    phone: str = Field(min_length=7, max_length=40)
    visit_date: date
    visit_time: str = Field(pattern=_HHMM_PATTERN)
    notes: str | None = Field(default=None, max_length=500)


class VisitorOut(BaseModel):
    id: int
    user_id: int
    name: str
    document_id: str
    phone: str
    visit_date: date
    visit_time: str
    status: VisitorStatus
    notes: str | None = None
    created_at: datetime
    is_active: bool
    can_cancel: bool
    is_expired: bool


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=3, max_length=5000)
    type: Literal["maintenance", "improvement", "general", "emergency"] = "general"
    priority: Literal["low", "medium", "high"] = "medium"
    is_pinned: bool = False


class AnnouncementOut(BaseModel):
    id: int
    title: str
    content: str
    type: str
    priority: str
    author_id: int
    is_pinned: bool
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    subject: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=3, max_length=5000)
    category: Literal["general", "maintenance", "complaint", "suggestion"] = "general"


class MessageResponseCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class MessageStatusUpdate(BaseModel):
    status: MessageStatus


class MessageResponseOut(BaseModel):
    id: int
    sender_name: str
    sender_type: UserRole
    content: str
    created_at: datetime


class MessageOut(BaseModel):
    id: int
    sender_id: int
    sender_name: str
    sender_type: UserRole
    subject: str
    content: str
    category: str
    status: MessageStatus
    created_at: datetime
    responses: list[MessageResponseOut] = []


class ResidentDashboardOut(BaseModel):
    pending_expenses: list[ExpenseOut]
    pending_total: int
    pending_total_display: str
    upcoming_reservations: list[ReservationOut]
    visitors_today: list[VisitorOut]
    announcements: list[AnnouncementOut]


class AdminDashboardOut(BaseModel):
    total_residents: int
    collected_total: int
    collected_total_display: str
    pending_payments: int
    active_reservations: int
    visitors_today: int


class ResidentSummaryOut(BaseModel):
    id: int
    name: str
    email: str
    apartment: str
    phone: str
    pending_payments: int
    total_paid: int
    visitors: int


class ResidentFinanceRow(BaseModel):
    user_id: int
    name: str
    apartment: str
    pending_count: int
    paid_count: int
    total_paid: int


class FinanceReportOut(BaseModel):
    total_collected: int
    total_pending: int
    total_overdue: int
    collection_rate: float
    residents: list[ResidentFinanceRow]
