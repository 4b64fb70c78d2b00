import csv
from io import StringIO

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import CommonExpense


def export_expenses_csv(db: Session, user_id: int | None = None, year: int | None = None) -> str:
    out = StringIO()
    w = csv.writer(out)
    w.writerow(
        [
            "id",
            "apartment",
            "resident",
            "month",
            "year",
            "amount",
            "status",
            "due_date",
            "paid_date",
            "payment_method",
            "payment_reference",
        ]
    )

    stmt = select(CommonExpense)
    if user_id is not None:
        stmt = stmt.where(CommonExpense.user_id == user_id)
    if year is not None:
        stmt = stmt.where(CommonExpense.year == int(year))
    expenses = db.execute(stmt.order_by(CommonExpense.due_date.asc(), CommonExpense.id.asc())).scalars().all()

    for e in expenses:
        w.writerow(
            [
                e.id,
                e.user.apartment,
                e.user.name,
                e.month,
                e.year,
                int(e.amount),
                e.status.value,
                e.due_date.isoformat(),
                e.paid_date.isoformat() if e.paid_date else "",
                e.payment_method or "",
                e.payment_reference or "",
            ]
        )

    return out.getvalue()
