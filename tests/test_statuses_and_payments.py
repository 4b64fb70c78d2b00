from datetime import date, datetime

import pytest

from condohub.config import settings
from condohub.payments import PaymentError, PaymentRequest, process_payment, validate_payment_request
from condohub.statuses import (
    ExpenseStatus,
    InvalidTransition,
    MessageStatus,
    ReservationStatus,
    VisitorStatus,
    ensure_transition,
    parse_status,
)

TODAY = date(2025, 1, 14)


def test_allowed_transitions():
    ensure_transition(ExpenseStatus.PENDING, ExpenseStatus.OVERDUE)
    ensure_transition(ExpenseStatus.OVERDUE, ExpenseStatus.PAID)
    ensure_transition(ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED)
    ensure_transition(VisitorStatus.APPROVED, VisitorStatus.COMPLETED)
    ensure_transition(MessageStatus.RESOLVED, MessageStatus.IN_PROGRESS)


@pytest.mark.parametrize(
    "current,target",
    [
        (ExpenseStatus.PAID, ExpenseStatus.PENDING),
        (ReservationStatus.CANCELLED, ReservationStatus.CONFIRMED),
        (VisitorStatus.COMPLETED, VisitorStatus.APPROVED),
        (VisitorStatus.REJECTED, VisitorStatus.APPROVED),
        (MessageStatus.CLOSED, MessageStatus.OPEN),
    ],
)
def test_forbidden_transitions(current, target):
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition(current, target)
    assert str(exc.value) == f"Invalid status transition: {current.value} -> {target.value}"


def test_parse_status():
    assert parse_status(VisitorStatus, " Approved ") == VisitorStatus.APPROVED
    assert parse_status(VisitorStatus, VisitorStatus.PENDING) == VisitorStatus.PENDING
    with pytest.raises(ValueError, match="Invalid status: maybe"):
        parse_status(VisitorStatus, "maybe")


def test_transfer_needs_no_card_details():
    assert validate_payment_request(PaymentRequest(method="transfer"), TODAY) is None


def test_card_payment_validation():
    request = PaymentRequest(
        method="debit",
        card_number="5555 5555 5555 4444",
        expiry="01/25",
        cvv="1234",
        card_name="Ana Silva",
    )
    # Expiry in the current month is still valid.
    assert validate_payment_request(request, TODAY) == "5555555555554444"

    with pytest.raises(PaymentError, match="Unsupported payment method"):
        validate_payment_request(PaymentRequest(method="cash"), TODAY)


def test_process_payment_returns_receipt():
    now = datetime(2025, 1, 14, 10, 0)
    receipt = process_payment(
        85000,
        PaymentRequest(method="credit", card_number="4111111111111111", expiry="12/27", cvv="123", card_name="Juan"),
        now,
    )
    assert receipt.reference.startswith("PAY-")
    assert receipt.card_last4 == "1111"
    assert receipt.amount == 85000
    assert receipt.currency == "CLP"
    assert receipt.processed_at == now


def test_process_payment_rejects_unknown_provider():
    previous = settings.PAYMENT_PROVIDER_MODE
    try:
        settings.PAYMENT_PROVIDER_MODE = "webpay"
        with pytest.raises(PaymentError):
            process_payment(1000, PaymentRequest(method="transfer"), datetime(2025, 1, 14))
    finally:
        settings.PAYMENT_PROVIDER_MODE = previous


def test_expiry_without_slash_is_accepted():
    request = PaymentRequest(method="credit", card_number="4111111111111111", expiry="1227", cvv="123", card_name="Juan")
    assert validate_payment_request(request, TODAY) == "4111111111111111"
