from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .config import settings
from .core.availability import DateRules, parse_disabled_weekdays
from .core.calendar_dates import (
    DateInputError,
    date_key,
    format_date_display,
    format_date_input,
    format_date_long,
    parse_date_key,
    validate_date_input,
)
from .core.calendar_grid import render_month
from .core.formatting import format_clp
from .csv_export import export_expenses_csv
from .db import get_db
from .deps import get_current_user, get_now, require_admin
from .models import Announcement, CommonExpense, CommonSpace, SpaceReservation, User, Visitor
from .payments import PaymentRequest
from .pdf_export import build_finance_report_pdf
from .schemas import (
    AdminDashboardOut,
    AdminReservationsOut,
    AnnouncementCreate,
    AnnouncementOut,
    CalendarMonthOut,
    DateParseIn,
    DateParseOut,
    ExpenseCreate,
    ExpenseOut,
    FinanceReportOut,
    OverdueOut,
    PaymentIn,
    QuoteOut,
    ReservationCreate,
    ReservationOut,
    ResidentDashboardOut,
    ResidentSummaryOut,
    SpaceDayOut,
    SpaceOut,
    StatusEventOut,
    VisitorCreate,
    VisitorOut,
)
from .services import (
    VISIT_TIME_SLOTS,
    admin_dashboard,
    cancel_reservation,
    cancel_visitor,
    complete_visitor,
    confirm_reservation,
    create_announcement,
    create_expense,
    create_reservation,
    decide_visitor,
    delete_announcement,
    expense_years,
    finance_report,
    get_announcement,
    get_building,
    get_expense,
    get_reservation,
    get_space,
    get_visitor,
    is_admin,
    list_announcements,
    list_expenses,
    list_reservations,
    list_residents,
    list_spaces,
    list_status_events,
    list_visitors,
    mark_overdue_expenses,
    pay_expense,
    quote_hours,
    quote_reservation,
    register_visitor,
    reservation_can_cancel,
    reservation_revenue,
    resident_dashboard,
    resident_stats,
    space_availability,
    toggle_announcement_pin,
    visitor_can_cancel,
    visitor_is_active,
    visitor_is_expired,
)
from .statuses import (
    ExpenseStatus,
    InvalidTransition,
    ReservationStatus,
    VisitorStatus,
    parse_status,
)

router = APIRouter(prefix="/api")
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])

_HHMM_QUERY = "^([01][0-9]|2[0-3]):[0-5][0-9]$"


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _status_or_400(enum_cls, raw: Optional[str]):
    if raw is None or not raw.strip():
        return None
    try:
        return parse_status(enum_cls, raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _date_rules(
    min_date: Optional[date],
    max_date: Optional[date],
    disabled_days: Optional[str],
) -> DateRules:
    try:
        weekdays = parse_disabled_weekdays(disabled_days)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid disabled_days: {exc}")
    return DateRules(min_date=min_date, max_date=max_date, disabled_weekdays=weekdays)


def _to_expense_out(e: CommonExpense) -> ExpenseOut:
    return ExpenseOut(
        id=e.id,
        user_id=e.user_id,
        building_id=e.building_id,
        month=e.month,
        year=e.year,
        amount=int(e.amount),
        amount_display=format_clp(e.amount),
        description=e.description,
        status=e.status,
        due_date=e.due_date,
        paid_date=e.paid_date,
        payment_method=e.payment_method,
        payment_reference=e.payment_reference,
        created_at=e.created_at,
    )


def _to_space_out(s: CommonSpace) -> SpaceOut:
    return SpaceOut(
        id=s.id,
        name=s.name,
        description=s.description or "",
        capacity=int(s.capacity or 0),
        hourly_rate=s.hourly_rate,
        available_hours=list(s.available_hours or []),
        amenities=list(s.amenities or []),
        image_url=s.image_url,
        is_active=bool(s.is_active),
    )


def _to_reservation_out(r: SpaceReservation, now: datetime) -> ReservationOut:
    return ReservationOut(
        id=r.id,
        user_id=r.user_id,
        user_name=r.user.name if r.user else None,
        space_id=r.space_id,
        space_name=r.space.name if r.space else None,
        date=r.reservation_date,
        start_time=r.start_time,
        end_time=r.end_time,
        status=r.status,
        notes=r.notes,
        created_at=r.created_at,
        estimated_cost=reservation_revenue(r),
        can_cancel=reservation_can_cancel(r, now),
    )


def _to_visitor_out(v: Visitor, now: datetime) -> VisitorOut:
    return VisitorOut(
        id=v.id,
        user_id=v.user_id,
        name=v.name,
        document_id=v.document_id,
        phone=v.phone,
        visit_date=v.visit_date,
        visit_time=v.visit_time,
        status=v.status,
        notes=v.notes,
        created_at=v.created_at,
        is_active=visitor_is_active(v, now),
        can_cancel=visitor_can_cancel(v, now),
        is_expired=visitor_is_expired(v, now),
    )


def _to_announcement_out(a: Announcement) -> AnnouncementOut:
    return AnnouncementOut(
        id=a.id,
        title=a.title,
        content=a.content,
        type=a.type,
        priority=a.priority,
        author_id=a.author_id,
        is_pinned=bool(a.is_pinned),
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


def _owned_or_403(owner_id: int, user: User, detail: str) -> None:
    if not is_admin(user) and owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.get("/calendar/month", response_model=CalendarMonthOut)
def calendar_month(
    year: int = Query(..., ge=1900, le=2100),
    month: int = Query(..., ge=1, le=12),
    min_date: Optional[date] = Query(default=None),
    max_date: Optional[date] = Query(default=None),
    disabled_days: Optional[str] = Query(default=None),
    selected: Optional[str] = Query(default=None, pattern="^[0-9]{4}-[0-9]{2}-[0-9]{2}$"),
    now: datetime = Depends(get_now),
):
    rules = _date_rules(min_date, max_date, disabled_days)
    if selected:
        try:
            selected = date_key(parse_date_key(selected))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid selected date")
    return render_month(year, month, today=now.date(), rules=rules, selected=selected)


@router.post("/calendar/parse", response_model=DateParseOut)
def calendar_parse(payload: DateParseIn, now: datetime = Depends(get_now)):
    rules = DateRules(
        min_date=payload.min_date,
        max_date=payload.max_date,
        disabled_weekdays=frozenset(payload.disabled_days),
    )
    try:
        parsed = validate_date_input(payload.text, today=now.date(), rules=rules)
    except DateInputError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": exc.code, "message": exc.message},
        )
    return DateParseOut(
        date=parsed.date,
        key=parsed.key,
        input=format_date_input(parsed.key),
        display=format_date_display(parsed.date),
        long=format_date_long(parsed.date),
    )


@router.get("/expenses", response_model=List[ExpenseOut])
def get_expenses(
    q: Optional[str] = Query(default=None, max_length=120),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    year: Optional[int] = Query(default=None, ge=1900, le=2100),
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = list_expenses(
        db,
        user_id=user_id if is_admin(user) else user.id,
        q=q,
        status=_status_or_400(ExpenseStatus, status_filter),
        year=year,
    )
    return [_to_expense_out(e) for e in rows]


@router.get("/expenses/years", response_model=List[int])
def get_expense_years(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return expense_years(db, user_id=None if is_admin(user) else user.id)


@router.post("/expenses", response_model=ExpenseOut)
def add_expense(
    payload: ExpenseCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    try:
        expense = create_expense(
            db=db,
            user_id=payload.user_id,
            month=payload.month,
            year=payload.year,
            amount=payload.amount,
            description=payload.description,
            due_date=payload.due_date,
            now=now,
            actor=admin.email,
        )
    except ValueError as exc:
        raise _http_error(exc)
    return _to_expense_out(expense)


@router.post("/expenses/mark-overdue", response_model=OverdueOut)
def mark_overdue(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    return OverdueOut(updated=mark_overdue_expenses(db, now.date(), now, actor=admin.email))


@router.post("/expenses/{expense_id}/pay", response_model=ExpenseOut)
def pay(
    expense_id: int,
    payload: PaymentIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")

    request = PaymentRequest(
        method=payload.method,
        card_number=payload.card_number,
        expiry=payload.expiry,
        cvv=payload.cvv,
        card_name=payload.card_name,
    )
    try:
        expense = pay_expense(db, expense, user, request, now)
    except (ValueError, PermissionError) as exc:
        raise _http_error(exc)
    return _to_expense_out(expense)


@router.get("/spaces", response_model=List[SpaceOut])
def get_spaces(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_to_space_out(s) for s in list_spaces(db)]


def _space_or_404(db: Session, space_id: int) -> CommonSpace:
    space = get_space(db, space_id)
    if not space or not space.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Space not found")
    return space


@router.get("/spaces/{space_id}/availability", response_model=List[SpaceDayOut])
def get_space_availability(
    space_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    space = _space_or_404(db, space_id)
    return [SpaceDayOut(**item) for item in space_availability(db, space, now.date())]


@router.get("/spaces/{space_id}/quote", response_model=QuoteOut)
def get_space_quote(
    space_id: int,
    start_time: str = Query(..., pattern=_HHMM_QUERY),
    end_time: str = Query(..., pattern=_HHMM_QUERY),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    space = _space_or_404(db, space_id)
    total = quote_reservation(space, start_time, end_time)
    return QuoteOut(
        space_id=space.id,
        start_time=start_time,
        end_time=end_time,
        hours=quote_hours(start_time, end_time),
        total=total,
        total_display=format_clp(total),
    )


@router.get("/reservations", response_model=List[ReservationOut])
def get_reservations(
    q: Optional[str] = Query(default=None, max_length=120),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    space_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    rows = list_reservations(
        db,
        user_id=None if is_admin(user) else user.id,
        q=q,
        status=_status_or_400(ReservationStatus, status_filter),
        space_id=space_id,
    )
    return [_to_reservation_out(r, now) for r in rows]


@router.post("/reservations", response_model=ReservationOut)
def add_reservation(
    payload: ReservationCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    try:
        reservation = create_reservation(
            db=db,
            user=user,
            space_id=payload.space_id,
            day=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            now=now,
            notes=payload.notes,
        )
    except (ValueError, LookupError) as exc:
        raise _http_error(exc)
    return _to_reservation_out(reservation, now)


def _reservation_or_404(db: Session, reservation_id: int) -> SpaceReservation:
    reservation = get_reservation(db, reservation_id)
    if not reservation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return reservation


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationOut)
def cancel_reservation_endpoint(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    reservation = _reservation_or_404(db, reservation_id)
    try:
        reservation = cancel_reservation(db, reservation, user, now)
    except (ValueError, PermissionError) as exc:
        raise _http_error(exc)
    return _to_reservation_out(reservation, now)


@router.post("/reservations/{reservation_id}/confirm", response_model=ReservationOut)
def confirm_reservation_endpoint(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    reservation = _reservation_or_404(db, reservation_id)
    try:
        reservation = confirm_reservation(db, reservation, admin, now)
    except ValueError as exc:
        raise _http_error(exc)
    return _to_reservation_out(reservation, now)


@router.get("/reservations/{reservation_id}/history", response_model=List[StatusEventOut])
def reservation_history(
    reservation_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    reservation = _reservation_or_404(db, reservation_id)
    _owned_or_403(reservation.user_id, user, "Reservation belongs to another resident")
    return [
        StatusEventOut(
            id=row.id,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            from_status=row.from_status,
            to_status=row.to_status,
            action=row.action,
            actor=row.actor,
            note=row.note,
            created_at=row.created_at,
        )
        for row in list_status_events(db, "reservation", reservation.id)
    ]


@router.get("/visitors", response_model=List[VisitorOut])
def get_visitors(
    q: Optional[str] = Query(default=None, max_length=120),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    when: str = Query(default="all", pattern="^(all|today|upcoming|past)$"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    rows = list_visitors(
        db,
        now.date(),
        user_id=None if is_admin(user) else user.id,
        q=q,
        status=_status_or_400(VisitorStatus, status_filter),
        when=when,
    )
    return [_to_visitor_out(v, now) for v in rows]


@router.get("/visitors/time-slots", response_model=List[str])
def get_visit_time_slots():
    return list(VISIT_TIME_SLOTS)


@router.post("/visitors", response_model=VisitorOut)
def add_visitor(
    payload: VisitorCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    try:
        visitor = register_visitor(
            db=db,
            user=user,
            name=payload.name,
            document_id=payload.document_id,
            phone=payload.phone,
            visit_date=payload.visit_date,
            visit_time=payload.visit_time,
            now=now,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise _http_error(exc)
    return _to_visitor_out(visitor, now)


def _visitor_or_404(db: Session, visitor_id: int) -> Visitor:
    visitor = get_visitor(db, visitor_id)
    if not visitor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visitor not found")
    return visitor


@router.post("/visitors/{visitor_id}/cancel", response_model=VisitorOut)
def cancel_visitor_endpoint(
    visitor_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    visitor = _visitor_or_404(db, visitor_id)
    try:
        visitor = cancel_visitor(db, visitor, user, now)
    except (ValueError, PermissionError) as exc:
        raise _http_error(exc)
    return _to_visitor_out(visitor, now)


@router.post("/visitors/{visitor_id}/complete", response_model=VisitorOut)
def complete_visitor_endpoint(
    visitor_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    visitor = _visitor_or_404(db, visitor_id)
    try:
        visitor = complete_visitor(db, visitor, user, now)
    except (ValueError, PermissionError) as exc:
        raise _http_error(exc)
    return _to_visitor_out(visitor, now)


@router.post("/visitors/{visitor_id}/approve", response_model=VisitorOut)
def approve_visitor_endpoint(
    visitor_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    visitor = _visitor_or_404(db, visitor_id)
    try:
        visitor = decide_visitor(db, visitor, True, admin, now)
    except ValueError as exc:
        raise _http_error(exc)
    return _to_visitor_out(visitor, now)


@router.post("/visitors/{visitor_id}/reject", response_model=VisitorOut)
def reject_visitor_endpoint(
    visitor_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    visitor = _visitor_or_404(db, visitor_id)
    try:
        visitor = decide_visitor(db, visitor, False, admin, now)
    except ValueError as exc:
        raise _http_error(exc)
    return _to_visitor_out(visitor, now)


@router.get("/announcements", response_model=List[AnnouncementOut])
def get_announcements(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [_to_announcement_out(a) for a in list_announcements(db, limit=limit)]


@router.post("/announcements", response_model=AnnouncementOut)
def add_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    try:
        row = create_announcement(
            db=db,
            author=admin,
            title=payload.title,
            content=payload.content,
            type_=payload.type,
            priority=payload.priority,
            now=now,
            is_pinned=payload.is_pinned,
        )
    except ValueError as exc:
        raise _http_error(exc)
    return _to_announcement_out(row)


@router.post("/announcements/{announcement_id}/pin", response_model=AnnouncementOut)
def pin_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    row = get_announcement(db, announcement_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return _to_announcement_out(toggle_announcement_pin(db, row, now))


@router.delete("/announcements/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ok = delete_announcement(db, announcement_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/dashboard", response_model=ResidentDashboardOut)
def get_dashboard(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    data = resident_dashboard(db, user, now)
    return ResidentDashboardOut(
        pending_expenses=[_to_expense_out(e) for e in data["pending_expenses"]],
        pending_total=data["pending_total"],
        pending_total_display=format_clp(data["pending_total"]),
        upcoming_reservations=[_to_reservation_out(r, now) for r in data["upcoming_reservations"]],
        visitors_today=[_to_visitor_out(v, now) for v in data["visitors_today"]],
        announcements=[_to_announcement_out(a) for a in data["announcements"]],
    )


@router.get("/export/expenses.csv")
def get_expenses_csv(
    year: Optional[int] = Query(default=None, ge=1900, le=2100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    csv_text = export_expenses_csv(db, user_id=None if is_admin(user) else user.id, year=year)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=expenses.csv"},
    )


@router.get("/export/finance.pdf")
def get_finance_pdf(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    building = get_building(db)
    building_name = building.name if building else settings.APP_NAME
    pdf_bytes = build_finance_report_pdf(building_name, format_date_display(now.date()), finance_report(db))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=finance_{now.date().isoformat()}.pdf"},
    )


@admin_router.get("/dashboard", response_model=AdminDashboardOut)
def get_admin_dashboard(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    data = admin_dashboard(db, now.date())
    return AdminDashboardOut(collected_total_display=format_clp(data["collected_total"]), **data)


@admin_router.get("/residents", response_model=List[ResidentSummaryOut])
def get_residents(
    q: Optional[str] = Query(default=None, max_length=120),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    out = []
    for resident in list_residents(db, q=q):
        stats = resident_stats(db, resident.id)
        out.append(
            ResidentSummaryOut(
                id=resident.id,
                name=resident.name,
                email=resident.email,
                apartment=resident.apartment,
                phone=resident.phone,
                pending_payments=stats["pending_payments"],
                total_paid=stats["total_paid"],
                visitors=stats["visitors"],
            )
        )
    return out


@admin_router.get("/finance", response_model=FinanceReportOut)
def get_finance(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return FinanceReportOut(**finance_report(db))


@admin_router.get("/reservations", response_model=AdminReservationsOut)
def get_admin_reservations(
    q: Optional[str] = Query(default=None, max_length=120),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    space_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(require_admin),
):
    rows = list_reservations(
        db,
        q=q,
        status=_status_or_400(ReservationStatus, status_filter),
        space_id=space_id,
    )
    confirmed = [r for r in rows if r.status == ReservationStatus.CONFIRMED]
    revenue = sum(reservation_revenue(r) for r in confirmed)
    return AdminReservationsOut(
        total=len(rows),
        confirmed=len(confirmed),
        revenue=revenue,
        revenue_display=format_clp(revenue),
        reservations=[_to_reservation_out(r, now) for r in rows],
    )
