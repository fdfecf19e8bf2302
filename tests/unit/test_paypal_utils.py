"""Unit tests for PayPal order payload helpers and error normalization."""

from __future__ import annotations

import pytest

from app.domain.payments.distribution import split_payment
from app.domain.payments.paypal_utils import (
    amount_to_cents,
    build_order_request,
    cents_to_amount,
    normalize_paypal_error,
    order_to_payment_result,
    order_to_payment_status,
)
from app.domain.payments.schemas import PaymentRequest, PayPalOrder


def make_request(**overrides) -> PaymentRequest:
    values = {
        "appointment_id": "apt-42",
        "amount": 50000,
        "currency": "MXN",
        "description": "Consulta médica con Dr. Ana Ruiz",
        "return_url": "https://example.test/pago/exito",
        "cancel_url": "https://example.test/pago/cancelado",
    }
    values.update(overrides)
    return PaymentRequest(**values)


def test_cents_conversion_round_trips_common_amounts():
    assert cents_to_amount(50000) == "500.00"
    assert cents_to_amount(1999) == "19.99"
    assert cents_to_amount(5) == "0.05"
    assert amount_to_cents("19.99") == 1999
    assert amount_to_cents("500") == 50000


def test_build_order_request_shapes_capture_order():
    body = build_order_request(make_request(), "Médica Móvil")

    assert body["intent"] == "CAPTURE"
    [unit] = body["purchase_units"]
    assert unit["reference_id"] == "apt-42"
    assert unit["custom_id"] == "apt-42"
    assert unit["amount"] == {"currency_code": "MXN", "value": "500.00"}
    assert body["application_context"] == {
        "brand_name": "Médica Móvil",
        "landing_page": "NO_PREFERENCE",
        "user_action": "PAY_NOW",
        "return_url": "https://example.test/pago/exito",
        "cancel_url": "https://example.test/pago/cancelado",
    }


def test_payment_request_rejects_non_positive_amount():
    with pytest.raises(ValueError):
        make_request(amount=0)


def test_order_to_payment_result_uses_approve_link(order_body):
    result = order_to_payment_result(PayPalOrder.model_validate(order_body("ORDER-1", "CREATED")))

    assert result.success
    assert result.payment_id == "ORDER-1"
    assert result.checkout_url == "https://www.sandbox.paypal.com/checkoutnow?token=ORDER-1"
    assert result.metadata["status"] == "CREATED"


def test_order_without_approve_link_has_no_checkout_url():
    result = order_to_payment_result(PayPalOrder.model_validate({"id": "ORDER-1", "status": "COMPLETED"}))

    assert result.checkout_url is None


@pytest.mark.parametrize(
    "order_status, expected",
    [
        ("COMPLETED", "completed"),
        ("APPROVED", "pending"),
        ("CREATED", "pending"),
        ("CANCELLED", "cancelled"),
        ("FAILED", "failed"),
    ],
)
def test_order_status_mapping(order_body, clock, order_status, expected):
    status = order_to_payment_status(PayPalOrder.model_validate(order_body("ORDER-1", order_status)), clock.now)

    assert status.status == expected
    assert status.paid_at == (clock.now if expected == "completed" else None)


def test_order_status_reports_amount_and_capture(order_body, clock):
    order = PayPalOrder.model_validate(
        order_body(
            "ORDER-1",
            "COMPLETED",
            captures=[{"id": "CAP-1", "status": "COMPLETED", "amount": {"currency_code": "MXN", "value": "500.00"}}],
        )
    )

    status = order_to_payment_status(order, clock.now)

    assert status.amount == 50000
    assert status.currency == "MXN"
    assert status.metadata["capture_id"] == "CAP-1"
    assert status.metadata["capture_status"] == "COMPLETED"


@pytest.mark.parametrize(
    "issue, code, retryable",
    [
        ("INSTRUMENT_DECLINED", "PAYMENT_DECLINED", True),
        ("INSUFFICIENT_FUNDS", "INSUFFICIENT_FUNDS", True),
        ("PAYER_ACCOUNT_RESTRICTED", "ACCOUNT_RESTRICTED", False),
        ("PAYEE_ACCOUNT_RESTRICTED", "MERCHANT_ERROR", False),
    ],
)
def test_normalize_known_issues(issue, code, retryable):
    normalized = normalize_paypal_error({"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": issue}]})

    assert normalized.code == code
    assert normalized.retryable is retryable


def test_normalize_unknown_issue_uses_description():
    normalized = normalize_paypal_error(
        {"details": [{"issue": "ORDER_NOT_APPROVED", "description": "Payer has not yet approved the Order"}]}
    )

    assert normalized.code == "PAYPAL_ERROR"
    assert normalized.message == "Payer has not yet approved the Order"
    assert normalized.retryable


def test_normalize_without_details_is_unknown():
    normalized = normalize_paypal_error({"message": "INVALID_REQUEST"})

    assert normalized.code == "UNKNOWN_ERROR"
    assert normalized.message == "INVALID_REQUEST"


def test_split_payment_gives_remainder_to_platform():
    split = split_payment(50000, 0.85)

    assert split.doctor_amount == 42500
    assert split.platform_amount == 7500
    assert split.platform_percentage == 0.15


def test_split_payment_parts_always_sum_to_total():
    for amount in (1, 3, 99, 1001, 33333):
        split = split_payment(amount, 0.85)
        assert split.doctor_amount + split.platform_amount == amount


def test_split_payment_rejects_invalid_percentage():
    with pytest.raises(ValueError):
        split_payment(1000, 1.5)
