"""Parsing and formatting of calendar dates typed by residents.

Dates travel through the API as ``YYYY-MM-DD`` keys; people type them as
``dd/mm/yyyy`` (or ``d/m/yy``).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime

from .availability import DateRules

MONTH_NAMES = [
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
]
DAY_NAMES_LONG = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]

MIN_YEAR = 1900
MAX_YEAR = 2100

_DATE_TEXT_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_STRIP_RE = re.compile(r"[^\d/]")

INPUT_ERROR_MESSAGES = {
    "invalid_format": "Formato inválido. Use dd/mm/yyyy",
    "past_date": "No se pueden seleccionar fechas pasadas",
    "before_min": "Fecha anterior al mínimo permitido",
    "after_max": "Fecha posterior al máximo permitido",
    "disabled_weekday": "Día de la semana no disponible",
}


class DateInputError(ValueError):
    def __init__(self, code: str):
        self.code = code
        self.message = INPUT_ERROR_MESSAGES[code]
        super().__init__(self.message)


@dataclass(frozen=True)
class ParsedDate:
    date: date
    key: str


def date_key(value: date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(key: str) -> date:
    year, month, day = (int(part) for part in str(key).strip().split("-"))
    return date(year, month, day)


def parse_date_text(text: str, today: date) -> date | None:
    """Parse free text shaped like ``dd/mm/yyyy``.

    Returns ``None`` when the text does not match, a component is out of
    range, or the components do not form a real calendar day.
    """
    cleaned = _STRIP_RE.sub("", text or "")
    match = _DATE_TEXT_RE.match(cleaned)
    if not match:
        return None

    day_raw, month_raw, year_raw = match.groups()
    day_num = int(day_raw)
    month_num = int(month_raw)
    year_num = int(year_raw)
    if len(year_raw) == 2:
        year_num += (today.year // 100) * 100

    if day_num < 1 or day_num > 31:
        return None
    if month_num < 1 or month_num > 12:
        return None
    if year_num < MIN_YEAR or year_num > MAX_YEAR:
        return None

    try:
        candidate = date(year_num, month_num, day_num)
    except ValueError:
        return None
    if (candidate.day, candidate.month, candidate.year) != (day_num, month_num, year_num):
        return None
    return candidate


def validate_date_input(text: str, *, today: date, rules: DateRules | None = None) -> ParsedDate:
    rules = rules or DateRules()
    parsed = parse_date_text(text, today)
    if parsed is None:
        raise DateInputError("invalid_format")

    reason = rules.disabled_reason(parsed, today)
    if reason is not None:
        raise DateInputError(reason)
    return ParsedDate(date=parsed, key=date_key(parsed))


def format_date_input(key: str) -> str:
    year, month, day = (int(part) for part in key.split("-"))
    return f"{day:02d}/{month:02d}/{year}"


def format_date_display(value: date) -> str:
    # es-CL short form
    return f"{value.day:02d}-{value.month:02d}-{value.year}"


def format_date_long(value: date) -> str:
    day_name = DAY_NAMES_LONG[value.weekday()]
    month_name = MONTH_NAMES[value.month - 1].lower()
    return f"{day_name}, {value.day} de {month_name} de {value.year}"
