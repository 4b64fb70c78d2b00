import re
import secrets
from dataclasses import dataclass
from datetime import date, datetime

import structlog

from .config import settings
from .core.formatting import format_expiry

logger = structlog.get_logger("condohub.payments")

PAYMENT_METHODS = {"credit", "debit", "transfer"}
CARD_METHODS = {"credit", "debit"}

_CARD_NUMBER_RE = re.compile(r"^\d{13,19}$")
_EXPIRY_RE = re.compile(r"^(\d{2})/(\d{2})$")
_CVV_RE = re.compile(r"^\d{3,4}$")


class PaymentError(ValueError):
    pass


@dataclass(frozen=True)
class PaymentRequest:
    method: str
    card_number: str | None = None
    expiry: str | None = None
    cvv: str | None = None
    card_name: str | None = None


@dataclass(frozen=True)
class PaymentReceipt:
    reference: str
    method: str
    amount: int
    currency: str
    card_last4: str | None
    processed_at: datetime


def _card_expired(expiry: str, today: date) -> bool:
    match = _EXPIRY_RE.match(expiry)
    if not match:
        return True
    month = int(match.group(1))
    year = 2000 + int(match.group(2))
    if month < 1 or month > 12:
        return True
    return (year, month) < (today.year, today.month)


def validate_payment_request(request: PaymentRequest, today: date) -> str | None:
    """Returns the normalised card number for card methods, None for transfers."""
    method = (request.method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise PaymentError(f"Unsupported payment method: {method or '<empty>'}")
    if method not in CARD_METHODS:
        return None

    number = re.sub(r"\s+", "", request.card_number or "")
    if not _CARD_NUMBER_RE.match(number):
        raise PaymentError("Invalid card number")
    if _card_expired(format_expiry(request.expiry or ""), today):
        raise PaymentError("Card expired or expiry date invalid")
    if not _CVV_RE.match((request.cvv or "").strip()):
        raise PaymentError("Invalid CVV")
    if not (request.card_name or "").strip():
        raise PaymentError("Cardholder name is required")
    return number


def process_payment(amount: int, request: PaymentRequest, now: datetime) -> PaymentReceipt:
    """Charge ``amount`` through the configured provider.

    Only the in-process mock provider exists; it approves every valid request
    immediately and returns a reference the caller stores on the expense.
    """
    if settings.PAYMENT_PROVIDER_MODE != "mock":
        raise PaymentError(f"Payment provider not available: {settings.PAYMENT_PROVIDER_MODE}")
    if amount <= 0:
        raise PaymentError("Amount must be greater than zero")

    card_number = validate_payment_request(request, now.date())
    method = request.method.strip().lower()
    receipt = PaymentReceipt(
        reference=f"PAY-{secrets.token_hex(6).upper()}",
        method=method,
        amount=int(amount),
        currency=settings.PAYMENT_DEFAULT_CURRENCY,
        card_last4=card_number[-4:] if card_number else None,
        processed_at=now,
    )
    logger.info(
        "payment_processed",
        reference=receipt.reference,
        method=method,
        amount=receipt.amount,
        currency=receipt.currency,
    )
    return receipt
