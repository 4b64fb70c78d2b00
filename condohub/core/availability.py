from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

SUNDAY = 0
SATURDAY = 6


def as_day(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def js_weekday(value: date) -> int:
    """Weekday numbered 0=Sunday..6=Saturday."""
    return as_day(value).isoweekday() % 7


@dataclass(frozen=True)
class DateRules:
    min_date: date | None = None
    max_date: date | None = None
    disabled_weekdays: frozenset[int] = field(default_factory=frozenset)

    def disabled_reason(self, candidate: date, today: date) -> str | None:
        """First exclusion that applies to ``candidate`` or None if selectable."""
        day = as_day(candidate)
        today = as_day(today)
        min_day = as_day(self.min_date) if self.min_date is not None else today

        if day < today:
            return "past_date"
        if day < min_day:
            return "before_min"
        if self.max_date is not None and day > as_day(self.max_date):
            return "after_max"
        if js_weekday(day) in self.disabled_weekdays:
            return "disabled_weekday"
        return None

    def is_disabled(self, candidate: date, today: date) -> bool:
        return self.disabled_reason(candidate, today) is not None

    def is_selectable(self, candidate: date, today: date) -> bool:
        return self.disabled_reason(candidate, today) is None


def parse_disabled_weekdays(raw: str | None) -> frozenset[int]:
    if not raw:
        return frozenset()
    out = set()
    for part in str(raw).split(","):
        part = part.strip()
        if not part:
            continue
        value = int(part)
        if value < SUNDAY or value > SATURDAY:
            raise ValueError(f"weekday out of range: {value}")
        out.add(value)
    return frozenset(out)


def space_booking_rules(today: date, horizon_days: int) -> DateRules:
    """Common spaces open from tomorrow up to the horizon, closed on Sundays."""
    today = as_day(today)
    return DateRules(
        min_date=today + timedelta(days=1),
        max_date=today + timedelta(days=horizon_days),
        disabled_weekdays=frozenset({SUNDAY}),
    )


def visitor_rules(today: date, horizon_days: int) -> DateRules:
    today = as_day(today)
    return DateRules(min_date=today, max_date=today + timedelta(days=horizon_days))


def upcoming_days(today: date, rules: DateRules, *, start_offset: int, days: int) -> list[dict]:
    today = as_day(today)
    out: list[dict] = []
    for offset in range(start_offset, days + 1):
        day = today + timedelta(days=offset)
        reason = rules.disabled_reason(day, today)
        out.append(
            {
                "date": day,
                "weekday": js_weekday(day),
                "available": reason is None,
                "reason": reason,
            }
        )
    return out
