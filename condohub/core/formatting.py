import re

_NON_DIGIT_RE = re.compile(r"\D")
_THOUSANDS_RE = re.compile(r"\B(?=(\d{3})+(?!\d))")


def format_clp(amount: int | float) -> str:
    """Chilean pesos, no decimals, dot thousands separator: ``$85.000``."""
    value = int(round(float(amount)))
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,}".replace(",", ".")


def format_document_id(value: str) -> str:
    """RUT style ``12.345.678-9``; the last character is the check digit."""
    cleaned = _NON_DIGIT_RE.sub("", value or "")
    if len(cleaned) <= 1:
        return cleaned
    body, check = cleaned[:-1], cleaned[-1]
    return _THOUSANDS_RE.sub(".", body) + f"-{check}"


def format_phone(value: str) -> str:
    cleaned = _NON_DIGIT_RE.sub("", value or "")
    if cleaned.startswith("56"):
        number = cleaned[2:]
        if len(number) <= 1:
            return f"+56 {number}"
        if len(number) <= 5:
            return f"+56 {number[:1]} {number[1:]}"
        return f"+56 {number[:1]} {number[1:5]} {number[5:9]}"
    if len(cleaned) <= 1:
        return cleaned
    if len(cleaned) <= 5:
        return f"{cleaned[:1]} {cleaned[1:]}"
    return f"{cleaned[:1]} {cleaned[1:5]} {cleaned[5:9]}"


def format_expiry(value: str) -> str:
    digits = _NON_DIGIT_RE.sub("", value or "")
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits
