import hmac
from datetime import date, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import settings
from .core.availability import space_booking_rules, upcoming_days, visitor_rules
from .core.formatting import format_document_id, format_phone
from .core.windows import (
    can_cancel_reservation,
    can_cancel_visit,
    is_visit_active,
    is_visit_expired,
    parse_hhmm,
    reservation_start,
    visit_start,
)
from .models import (
    Announcement,
    Building,
    CommonExpense,
    CommonSpace,
    Message,
    MessageResponse,
    SpaceReservation,
    StatusEvent,
    User,
    Visitor,
)
from .payments import PaymentRequest, process_payment
from .statuses import (
    ExpenseStatus,
    MessageStatus,
    ReservationStatus,
    UserRole,
    VisitorStatus,
    ensure_transition,
)

logger = structlog.get_logger("condohub.services")

ANNOUNCEMENT_TYPES = {"maintenance", "improvement", "general", "emergency"}
ANNOUNCEMENT_PRIORITIES = {"low", "medium", "high"}
MESSAGE_CATEGORIES = {"general", "maintenance", "complaint", "suggestion"}
VISIT_WHEN_FILTERS = {"all", "today", "upcoming", "past"}

VISIT_TIME_SLOTS = [f"{hour:02d}:{minute:02d}" for hour in range(8, 23) for minute in (0, 30)]


def _cancel_notice() -> timedelta:
    return timedelta(hours=settings.RESERVATION_CANCEL_NOTICE_HOURS)


def _visit_window() -> timedelta:
    return timedelta(hours=settings.VISIT_WINDOW_HOURS)


def _contains(haystack: str | None, needle: str) -> bool:
    return needle in (haystack or "").lower()


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def add_status_event(
    db: Session,
    entity_type: str,
    entity_id: int,
    from_status: str | None,
    to_status: str,
    now: datetime,
    action: str = "status_update",
    actor: str | None = None,
    note: str | None = None,
) -> StatusEvent:
    event = StatusEvent(
        entity_type=entity_type,
        entity_id=entity_id,
        from_status=from_status,
        to_status=to_status,
        action=action,
        actor=(actor or "").strip() or None,
        note=(note or "").strip() or None,
        created_at=now,
    )
    db.add(event)
    db.flush()
    return event


def _apply_transition(db: Session, entity_type: str, obj, target, now: datetime, action: str, actor: str | None):
    current = obj.status
    ensure_transition(current, target)
    obj.status = target
    add_status_event(
        db,
        entity_type,
        obj.id,
        current.value,
        target.value,
        now,
        action=action,
        actor=actor,
    )


def list_status_events(db: Session, entity_type: str, entity_id: int) -> list[StatusEvent]:
    stmt = (
        select(StatusEvent)
        .where(StatusEvent.entity_type == entity_type, StatusEvent.entity_id == entity_id)
        .order_by(StatusEvent.created_at.asc(), StatusEvent.id.asc())
    )
    return db.execute(stmt).scalars().all()


def get_building(db: Session) -> Building | None:
    return db.execute(select(Building).order_by(Building.id.asc())).scalars().first()


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    normalized = (email or "").strip().lower()
    if not normalized:
        return None
    return db.execute(select(User).where(func.lower(User.email) == normalized)).scalar_one_or_none()


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if user is None:
        return None
    # Demo credential shared by every seeded account.
    if not hmac.compare_digest(str(password or ""), settings.DEMO_PASSWORD):
        return None
    return user


def list_residents(db: Session, q: str | None = None) -> list[User]:
    stmt = select(User).where(User.role == UserRole.RESIDENT)
    residents = db.execute(stmt.order_by(User.apartment.asc(), User.id.asc())).scalars().all()
    needle = (q or "").strip().lower()
    if not needle:
        return residents
    return [
        r
        for r in residents
        if _contains(r.name, needle) or _contains(r.apartment, needle) or _contains(r.email, needle)
    ]


def resident_stats(db: Session, user_id: int) -> dict:
    expenses = db.execute(select(CommonExpense).where(CommonExpense.user_id == user_id)).scalars().all()
    visitors_count = db.execute(
        select(func.count(Visitor.id)).where(Visitor.user_id == user_id)
    ).scalar_one()
    return {
        "pending_payments": sum(1 for e in expenses if e.status == ExpenseStatus.PENDING),
        "paid_count": sum(1 for e in expenses if e.status == ExpenseStatus.PAID),
        "total_paid": sum(e.amount for e in expenses if e.status == ExpenseStatus.PAID),
        "visitors": int(visitors_count or 0),
    }


def get_expense(db: Session, expense_id: int) -> CommonExpense | None:
    return db.get(CommonExpense, expense_id)


def list_expenses(
    db: Session,
    user_id: int | None = None,
    q: str | None = None,
    status: ExpenseStatus | None = None,
    year: int | None = None,
) -> list[CommonExpense]:
    stmt = select(CommonExpense)
    if user_id is not None:
        stmt = stmt.where(CommonExpense.user_id == user_id)
    if status is not None:
        stmt = stmt.where(CommonExpense.status == status)
    if year is not None:
        stmt = stmt.where(CommonExpense.year == int(year))
    rows = db.execute(stmt.order_by(CommonExpense.due_date.desc(), CommonExpense.id.desc())).scalars().all()

    needle = (q or "").strip().lower()
    if not needle:
        return rows
    return [e for e in rows if _contains(e.description, needle) or _contains(e.month, needle)]


def expense_years(db: Session, user_id: int | None = None) -> list[int]:
    stmt = select(CommonExpense.year).distinct()
    if user_id is not None:
        stmt = stmt.where(CommonExpense.user_id == user_id)
    return sorted((int(y) for y in db.execute(stmt).scalars().all()), reverse=True)


def create_expense(
    db: Session,
    user_id: int,
    month: str,
    year: int,
    amount: int,
    description: str,
    due_date: date,
    now: datetime,
    actor: str | None = None,
) -> CommonExpense:
    resident = get_user(db, user_id)
    if resident is None or resident.role != UserRole.RESIDENT:
        raise ValueError("Resident not found")
    if int(amount) <= 0:
        raise ValueError("amount must be > 0")

    expense = CommonExpense(
        user_id=resident.id,
        building_id=resident.building_id,
        month=month.strip(),
        year=int(year),
        amount=int(amount),
        description=description.strip(),
        status=ExpenseStatus.PENDING,
        due_date=due_date,
        created_at=now,
    )
    db.add(expense)
    db.flush()
    add_status_event(db, "expense", expense.id, None, expense.status.value, now, action="created", actor=actor)
    db.commit()
    db.refresh(expense)
    logger.info("expense_created", expense_id=expense.id, user_id=resident.id, amount=expense.amount)
    return expense


def mark_overdue_expenses(db: Session, today: date, now: datetime, actor: str | None = None) -> int:
    rows = db.execute(
        select(CommonExpense).where(
            CommonExpense.status == ExpenseStatus.PENDING,
            CommonExpense.due_date < today,
        )
    ).scalars().all()
    for expense in rows:
        _apply_transition(db, "expense", expense, ExpenseStatus.OVERDUE, now, "mark_overdue", actor)
    db.commit()
    if rows:
        logger.info("expenses_marked_overdue", count=len(rows))
    return len(rows)


def pay_expense(
    db: Session,
    expense: CommonExpense,
    payer: User,
    payment: PaymentRequest,
    now: datetime,
) -> CommonExpense:
    if not is_admin(payer) and expense.user_id != payer.id:
        raise PermissionError("Expense belongs to another resident")

    ensure_transition(expense.status, ExpenseStatus.PAID)
    receipt = process_payment(expense.amount, payment, now)

    _apply_transition(db, "expense", expense, ExpenseStatus.PAID, now, "payment", payer.email)
    expense.paid_date = receipt.processed_at
    expense.payment_method = receipt.method
    expense.payment_reference = receipt.reference
    db.commit()
    db.refresh(expense)
    logger.info("expense_paid", expense_id=expense.id, reference=receipt.reference)
    return expense


def list_spaces(db: Session, include_inactive: bool = False) -> list[CommonSpace]:
    stmt = select(CommonSpace)
    if not include_inactive:
        stmt = stmt.where(CommonSpace.is_active.is_(True))
    return db.execute(stmt.order_by(CommonSpace.id.asc())).scalars().all()


def get_space(db: Session, space_id: int) -> CommonSpace | None:
    return db.get(CommonSpace, space_id)


def space_availability(db: Session, space: CommonSpace, today: date) -> list[dict]:
    horizon = settings.SPACE_BOOKING_HORIZON_DAYS
    days = upcoming_days(today, space_booking_rules(today, horizon), start_offset=1, days=horizon)
    if not days:
        return days
    booked = dict(
        db.execute(
            select(SpaceReservation.reservation_date, func.count(SpaceReservation.id))
            .where(
                SpaceReservation.space_id == space.id,
                SpaceReservation.status != ReservationStatus.CANCELLED,
                SpaceReservation.reservation_date >= days[0]["date"],
                SpaceReservation.reservation_date <= days[-1]["date"],
            )
            .group_by(SpaceReservation.reservation_date)
        ).all()
    )
    for item in days:
        item["space_id"] = space.id
        item["reservations"] = int(booked.get(item["date"], 0))
    return days


def quote_hours(start_time: str, end_time: str) -> int:
    hours = parse_hhmm(end_time).hour - parse_hhmm(start_time).hour
    return hours if hours > 0 else 0


def quote_reservation(space: CommonSpace, start_time: str, end_time: str) -> int:
    if not space.hourly_rate:
        return 0
    return quote_hours(start_time, end_time) * int(space.hourly_rate)


def reservation_revenue(reservation: SpaceReservation) -> int:
    return quote_reservation(reservation.space, reservation.start_time, reservation.end_time)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def get_reservation(db: Session, reservation_id: int) -> SpaceReservation | None:
    return db.get(SpaceReservation, reservation_id)


def list_reservations(
    db: Session,
    user_id: int | None = None,
    q: str | None = None,
    status: ReservationStatus | None = None,
    space_id: int | None = None,
) -> list[SpaceReservation]:
    stmt = select(SpaceReservation)
    if user_id is not None:
        stmt = stmt.where(SpaceReservation.user_id == user_id)
    if status is not None:
        stmt = stmt.where(SpaceReservation.status == status)
    if space_id is not None:
        stmt = stmt.where(SpaceReservation.space_id == space_id)
    rows = db.execute(
        stmt.order_by(SpaceReservation.reservation_date.asc(), SpaceReservation.start_time.asc())
    ).scalars().all()

    needle = (q or "").strip().lower()
    if not needle:
        return rows
    return [
        r
        for r in rows
        if _contains(r.space.name if r.space else "", needle)
        or (user_id is None and _contains(r.user.name if r.user else "", needle))
        or needle in r.reservation_date.isoformat()
    ]


def _find_conflicting_reservation(
    db: Session,
    space_id: int,
    day: date,
    start: datetime,
    end: datetime,
) -> SpaceReservation | None:
    rows = db.execute(
        select(SpaceReservation).where(
            SpaceReservation.space_id == space_id,
            SpaceReservation.reservation_date == day,
            SpaceReservation.status != ReservationStatus.CANCELLED,
        )
    ).scalars().all()
    for row in rows:
        row_start = reservation_start(row.reservation_date, row.start_time)
        row_end = reservation_start(row.reservation_date, row.end_time)
        if overlaps(start, end, row_start, row_end):
            return row
    return None


def create_reservation(
    db: Session,
    user: User,
    space_id: int,
    day: date,
    start_time: str,
    end_time: str,
    now: datetime,
    notes: str | None = None,
) -> SpaceReservation:
    space = get_space(db, space_id)
    if space is None or not space.is_active:
        raise LookupError("Space not found")

    rules = space_booking_rules(now.date(), settings.SPACE_BOOKING_HORIZON_DAYS)
    reason = rules.disabled_reason(day, now.date())
    if reason is not None:
        raise ValueError(f"Date not available: {reason}")

    hours = set(space.available_hours or [])
    if start_time not in hours or end_time not in hours:
        raise ValueError("Time outside of the space's available hours")
    if quote_hours(start_time, end_time) <= 0:
        raise ValueError("end_time must be after start_time")

    start = reservation_start(day, start_time)
    end = reservation_start(day, end_time)
    conflict = _find_conflicting_reservation(db, space.id, day, start, end)
    if conflict is not None:
        raise ValueError(f"Time slot overlaps reservation #{conflict.id}")

    reservation = SpaceReservation(
        user_id=user.id,
        space_id=space.id,
        reservation_date=day,
        start_time=start_time,
        end_time=end_time,
        status=ReservationStatus.CONFIRMED,
        notes=(notes or "").strip() or None,
        created_at=now,
    )
    db.add(reservation)
    db.flush()
    add_status_event(
        db, "reservation", reservation.id, None, reservation.status.value, now, action="created", actor=user.email
    )
    db.commit()
    db.refresh(reservation)
    logger.info(
        "reservation_created",
        reservation_id=reservation.id,
        space_id=space.id,
        date=day.isoformat(),
        start_time=start_time,
        end_time=end_time,
    )
    return reservation


def reservation_can_cancel(reservation: SpaceReservation, now: datetime) -> bool:
    start = reservation_start(reservation.reservation_date, reservation.start_time)
    return can_cancel_reservation(reservation.status, start, now, _cancel_notice())


def cancel_reservation(db: Session, reservation: SpaceReservation, actor: User, now: datetime) -> SpaceReservation:
    if not is_admin(actor):
        if reservation.user_id != actor.id:
            raise PermissionError("Reservation belongs to another resident")
        if not reservation_can_cancel(reservation, now):
            raise ValueError(
                f"Reservations can only be cancelled more than {settings.RESERVATION_CANCEL_NOTICE_HOURS} hours in advance"
            )

    _apply_transition(db, "reservation", reservation, ReservationStatus.CANCELLED, now, "cancel", actor.email)
    db.commit()
    db.refresh(reservation)
    logger.info("reservation_cancelled", reservation_id=reservation.id, actor=actor.email)
    return reservation


def confirm_reservation(db: Session, reservation: SpaceReservation, actor: User, now: datetime) -> SpaceReservation:
    _apply_transition(db, "reservation", reservation, ReservationStatus.CONFIRMED, now, "confirm", actor.email)
    db.commit()
    db.refresh(reservation)
    return reservation


def get_visitor(db: Session, visitor_id: int) -> Visitor | None:
    return db.get(Visitor, visitor_id)


def visitor_start(visitor: Visitor) -> datetime:
    return visit_start(visitor.visit_date, visitor.visit_time)


def visitor_is_active(visitor: Visitor, now: datetime) -> bool:
    return is_visit_active(visitor.status, visitor_start(visitor), now, _visit_window())


def visitor_can_cancel(visitor: Visitor, now: datetime) -> bool:
    return can_cancel_visit(visitor.status, visitor_start(visitor), now)


def visitor_is_expired(visitor: Visitor, now: datetime) -> bool:
    return is_visit_expired(visitor.status, visitor_start(visitor), now, _visit_window())


def list_visitors(
    db: Session,
    today: date,
    user_id: int | None = None,
    q: str | None = None,
    status: VisitorStatus | None = None,
    when: str = "all",
) -> list[Visitor]:
    when = (when or "all").strip().lower()
    if when not in VISIT_WHEN_FILTERS:
        raise ValueError(f"Invalid date filter: {when}")

    stmt = select(Visitor)
    if user_id is not None:
        stmt = stmt.where(Visitor.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Visitor.status == status)
    if when == "today":
        stmt = stmt.where(Visitor.visit_date == today)
    elif when == "upcoming":
        stmt = stmt.where(Visitor.visit_date >= today)
    elif when == "past":
        stmt = stmt.where(Visitor.visit_date < today)
    rows = db.execute(stmt.order_by(Visitor.visit_date.desc(), Visitor.visit_time.desc())).scalars().all()

    needle = (q or "").strip().lower()
    if not needle:
        return rows
    return [
        v
        for v in rows
        if _contains(v.name, needle) or needle in (v.document_id or "") or needle in (v.phone or "")
    ]


def register_visitor(
    db: Session,
    user: User,
    name: str,
    document_id: str,
    phone: str,
    visit_date: date,
    visit_time: str,
    now: datetime,
    notes: str | None = None,
) -> Visitor:
    rules = visitor_rules(now.date(), settings.VISITOR_BOOKING_HORIZON_DAYS)
    reason = rules.disabled_reason(visit_date, now.date())
    if reason is not None:
        raise ValueError(f"Date not available: {reason}")
    if visit_time not in VISIT_TIME_SLOTS:
        raise ValueError("visit_time must be a half-hour slot between 08:00 and 22:30")

    visitor = Visitor(
        user_id=user.id,
        name=name.strip(),
        document_id=format_document_id(document_id),
        phone=format_phone(phone),
        visit_date=visit_date,
        visit_time=visit_time,
        status=VisitorStatus.APPROVED,
        notes=(notes or "").strip() or None,
        created_at=now,
    )
    db.add(visitor)
    db.flush()
    add_status_event(db, "visitor", visitor.id, None, visitor.status.value, now, action="created", actor=user.email)
    db.commit()
    db.refresh(visitor)
    logger.info("visitor_registered", visitor_id=visitor.id, user_id=user.id, visit_date=visit_date.isoformat())
    return visitor


def _ensure_visitor_owner(visitor: Visitor, actor: User) -> None:
    if not is_admin(actor) and visitor.user_id != actor.id:
        raise PermissionError("Visitor belongs to another resident")


def cancel_visitor(db: Session, visitor: Visitor, actor: User, now: datetime) -> Visitor:
    _ensure_visitor_owner(visitor, actor)
    if not visitor_can_cancel(visitor, now):
        raise ValueError("Only approved visits that have not started can be cancelled")
    _apply_transition(db, "visitor", visitor, VisitorStatus.REJECTED, now, "cancel", actor.email)
    db.commit()
    db.refresh(visitor)
    logger.info("visitor_cancelled", visitor_id=visitor.id)
    return visitor


def complete_visitor(db: Session, visitor: Visitor, actor: User, now: datetime) -> Visitor:
    _ensure_visitor_owner(visitor, actor)
    if not visitor_is_active(visitor, now):
        raise ValueError("Only active visits can be completed")
    _apply_transition(db, "visitor", visitor, VisitorStatus.COMPLETED, now, "complete", actor.email)
    db.commit()
    db.refresh(visitor)
    return visitor


def decide_visitor(db: Session, visitor: Visitor, approve: bool, actor: User, now: datetime) -> Visitor:
    if visitor.status != VisitorStatus.PENDING:
        raise ValueError("Only pending visits can be approved or rejected")
    target = VisitorStatus.APPROVED if approve else VisitorStatus.REJECTED
    _apply_transition(db, "visitor", visitor, target, now, "approve" if approve else "reject", actor.email)
    db.commit()
    db.refresh(visitor)
    return visitor


def list_announcements(db: Session, limit: int | None = None) -> list[Announcement]:
    stmt = select(Announcement).order_by(
        Announcement.is_pinned.desc(),
        Announcement.created_at.desc(),
        Announcement.id.desc(),
    )
    if limit:
        stmt = stmt.limit(int(limit))
    return db.execute(stmt).scalars().all()


def get_announcement(db: Session, announcement_id: int) -> Announcement | None:
    return db.get(Announcement, announcement_id)


def create_announcement(
    db: Session,
    author: User,
    title: str,
    content: str,
    type_: str,
    priority: str,
    now: datetime,
    is_pinned: bool = False,
) -> Announcement:
    if type_ not in ANNOUNCEMENT_TYPES:
        raise ValueError(f"Invalid announcement type: {type_}")
    if priority not in ANNOUNCEMENT_PRIORITIES:
        raise ValueError(f"Invalid announcement priority: {priority}")

    row = Announcement(
        building_id=author.building_id,
        title=title.strip(),
        content=content.strip(),
        type=type_,
        priority=priority,
        author_id=author.id,
        is_pinned=bool(is_pinned),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("announcement_created", announcement_id=row.id, type=type_, priority=priority)
    return row


def toggle_announcement_pin(db: Session, announcement: Announcement, now: datetime) -> Announcement:
    announcement.is_pinned = not announcement.is_pinned
    announcement.updated_at = now
    db.commit()
    db.refresh(announcement)
    return announcement


def delete_announcement(db: Session, announcement_id: int) -> bool:
    row = get_announcement(db, announcement_id)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


def get_message(db: Session, message_id: int) -> Message | None:
    return db.get(Message, message_id)


def list_messages(db: Session, viewer: User) -> list[Message]:
    stmt = select(Message)
    if not is_admin(viewer):
        stmt = stmt.where(Message.sender_id == viewer.id)
    return db.execute(stmt.order_by(Message.created_at.desc(), Message.id.desc())).scalars().all()


def _ensure_message_access(message: Message, viewer: User) -> None:
    if not is_admin(viewer) and message.sender_id != viewer.id:
        raise PermissionError("Message belongs to another resident")


def create_message(
    db: Session,
    sender: User,
    subject: str,
    content: str,
    category: str,
    now: datetime,
) -> Message:
    if category not in MESSAGE_CATEGORIES:
        raise ValueError(f"Invalid message category: {category}")
    row = Message(
        sender_id=sender.id,
        sender_name=sender.name,
        sender_type=sender.role,
        subject=subject.strip(),
        content=content.strip(),
        category=category,
        status=MessageStatus.OPEN,
        created_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("message_created", message_id=row.id, category=category)
    return row


def add_message_response(db: Session, message: Message, sender: User, content: str, now: datetime) -> Message:
    _ensure_message_access(message, sender)
    text = (content or "").strip()
    if not text:
        raise ValueError("Response content is required")
    if message.status == MessageStatus.CLOSED:
        raise ValueError("Message is closed")

    db.add(
        MessageResponse(
            message_id=message.id,
            sender_id=sender.id,
            sender_name=sender.name,
            sender_type=sender.role,
            content=text,
            created_at=now,
        )
    )
    db.commit()
    db.refresh(message)
    return message


def update_message_status(
    db: Session,
    message: Message,
    new_status: MessageStatus,
    actor: User,
    now: datetime,
) -> Message:
    if not is_admin(actor):
        raise PermissionError("Only administrators can change message status")
    if new_status == message.status:
        return message
    _apply_transition(db, "message", message, new_status, now, "status_update", actor.email)
    db.commit()
    db.refresh(message)
    return message


def resident_dashboard(db: Session, user: User, now: datetime) -> dict:
    pending = list_expenses(db, user_id=user.id, status=ExpenseStatus.PENDING)
    upcoming = [
        r
        for r in list_reservations(db, user_id=user.id, status=ReservationStatus.CONFIRMED)
        if reservation_start(r.reservation_date, r.start_time) > now
    ]
    visitors_today = list_visitors(
        db, now.date(), user_id=user.id, status=VisitorStatus.APPROVED, when="today"
    )
    return {
        "pending_expenses": pending,
        "pending_total": sum(e.amount for e in pending),
        "upcoming_reservations": upcoming,
        "visitors_today": visitors_today,
        "announcements": list_announcements(db, limit=3),
    }


def _sum_by_status(db: Session, status: ExpenseStatus) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(CommonExpense.amount), 0)).where(CommonExpense.status == status)
    ).scalar_one()
    return int(total or 0)


def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar_one() or 0)


def admin_dashboard(db: Session, today: date) -> dict:
    return {
        "total_residents": _count(db, select(func.count(User.id)).where(User.role == UserRole.RESIDENT)),
        "collected_total": _sum_by_status(db, ExpenseStatus.PAID),
        "pending_payments": _count(
            db, select(func.count(CommonExpense.id)).where(CommonExpense.status == ExpenseStatus.PENDING)
        ),
        "active_reservations": _count(
            db,
            select(func.count(SpaceReservation.id)).where(SpaceReservation.status == ReservationStatus.CONFIRMED),
        ),
        "visitors_today": _count(
            db,
            select(func.count(Visitor.id)).where(
                Visitor.visit_date == today,
                Visitor.status == VisitorStatus.APPROVED,
            ),
        ),
    }


def finance_report(db: Session) -> dict:
    paid = _sum_by_status(db, ExpenseStatus.PAID)
    pending = _sum_by_status(db, ExpenseStatus.PENDING)
    overdue = _sum_by_status(db, ExpenseStatus.OVERDUE)
    billed = paid + pending + overdue
    collection_rate = round((paid / billed) * 100.0, 2) if billed else 0.0

    residents = []
    for resident in list_residents(db):
        stats = resident_stats(db, resident.id)
        residents.append(
            {
                "user_id": resident.id,
                "name": resident.name,
                "apartment": resident.apartment,
                "pending_count": stats["pending_payments"],
                "paid_count": stats["paid_count"],
                "total_paid": stats["total_paid"],
            }
        )

    return {
        "total_collected": paid,
        "total_pending": pending,
        "total_overdue": overdue,
        "collection_rate": collection_rate,
        "residents": residents,
    }

