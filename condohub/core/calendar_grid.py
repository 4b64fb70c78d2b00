from dataclasses import dataclass
from datetime import date, timedelta

from .availability import DateRules, js_weekday
from .calendar_dates import MONTH_NAMES, date_key

GRID_CELLS = 42
WEEKDAY_LABELS = ["Dom", "Lun", "Mar", "Mié", "Jue", "Vie", "Sáb"]


@dataclass(frozen=True)
class DayCell:
    date: date
    key: str
    in_month: bool


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def build_month_grid(year: int, month: int) -> list[DayCell]:
    """Six Sunday-first weeks covering ``month``, padded with neighbour days."""
    first = date(year, month, 1)
    start = first - timedelta(days=js_weekday(first))
    cells: list[DayCell] = []
    for offset in range(GRID_CELLS):
        day = start + timedelta(days=offset)
        cells.append(
            DayCell(
                date=day,
                key=date_key(day),
                in_month=(day.year, day.month) == (year, month),
            )
        )
    return cells


def render_month(
    year: int,
    month: int,
    *,
    today: date,
    rules: DateRules | None = None,
    selected: str | None = None,
) -> dict:
    rules = rules or DateRules()
    today_key = date_key(today)
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)

    cells = []
    for cell in build_month_grid(year, month):
        disabled = rules.is_disabled(cell.date, today)
        cells.append(
            {
                "date": cell.key,
                "day": cell.date.day,
                "in_month": cell.in_month,
                "disabled": disabled,
                "selectable": cell.in_month and not disabled,
                "is_today": cell.key == today_key,
                "is_selected": selected is not None and cell.key == selected,
            }
        )

    return {
        "year": year,
        "month": month,
        "label": month_label(year, month),
        "weekdays": list(WEEKDAY_LABELS),
        "previous": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month},
        "cells": cells,
    }
