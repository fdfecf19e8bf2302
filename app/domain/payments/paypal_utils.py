"""Helpers that translate between payment domain models and PayPal Orders v2 payloads"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from .schemas import (
    NormalizedError,
    OrderCapture,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    PayPalOrder,
)

ORDER_STATUS_MAP = {
    "COMPLETED": "completed",
    "APPROVED": "pending",
    "CANCELLED": "cancelled",
    "FAILED": "failed",
}

# (code, message, retryable) keyed by PayPal issue
PAYPAL_ISSUES = {
    "INSTRUMENT_DECLINED": (
        "PAYMENT_DECLINED",
        "The payment method was declined. Please try a different one.",
        True,
    ),
    "INSUFFICIENT_FUNDS": (
        "INSUFFICIENT_FUNDS",
        "Insufficient funds. Please check your balance or use another payment method.",
        True,
    ),
    "PAYER_ACCOUNT_RESTRICTED": (
        "ACCOUNT_RESTRICTED",
        "Your PayPal account is restricted. Contact PayPal for more information.",
        False,
    ),
    "PAYEE_ACCOUNT_RESTRICTED": (
        "MERCHANT_ERROR",
        "The merchant account is misconfigured. Please contact support.",
        False,
    ),
}


def cents_to_amount(cents: int) -> str:
    """1999 -> '19.99'"""
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))


def amount_to_cents(value: str) -> int:
    return int((Decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_order_request(request: PaymentRequest, brand_name: str) -> dict[str, Any]:
    """Build the body for POST /v2/checkout/orders"""
    return {
        "intent": "CAPTURE",
        "purchase_units": [
            {
                "reference_id": request.appointment_id,
                "amount": {
                    "currency_code": request.currency,
                    "value": cents_to_amount(request.amount),
                },
                "description": request.description,
                "custom_id": request.appointment_id,
            }
        ],
        "application_context": {
            "brand_name": brand_name,
            "landing_page": "NO_PREFERENCE",
            "user_action": "PAY_NOW",
            "return_url": request.return_url,
            "cancel_url": request.cancel_url,
        },
    }


def order_to_payment_result(order: PayPalOrder) -> PaymentResult:
    approval_link = next((link for link in order.links if link.rel == "approve"), None)

    return PaymentResult(
        success=True,
        payment_id=order.id,
        checkout_url=approval_link.href if approval_link else None,
        metadata={
            "order_id": order.id,
            "status": order.status,
            "links": [link.model_dump() for link in order.links],
        },
    )


def first_capture(order: PayPalOrder) -> Optional[OrderCapture]:
    """First capture of the first purchase unit, if the order has been captured"""
    if not order.purchase_units:
        return None
    payments = order.purchase_units[0].payments
    if not payments or not payments.captures:
        return None
    return payments.captures[0]


def order_to_payment_status(order: PayPalOrder, now: datetime) -> PaymentStatus:
    purchase_unit = order.purchase_units[0] if order.purchase_units else None
    capture = first_capture(order)
    status = ORDER_STATUS_MAP.get(order.status, "pending")

    amount = 0
    currency = "MXN"
    if purchase_unit and purchase_unit.amount:
        amount = amount_to_cents(purchase_unit.amount.value)
        currency = purchase_unit.amount.currency_code

    return PaymentStatus(
        id=order.id,
        status=status,
        amount=amount,
        currency=currency,
        paid_at=now if status == "completed" else None,
        metadata={
            "order_id": order.id,
            "order_status": order.status,
            "capture_id": capture.id if capture else None,
            "capture_status": capture.status if capture else None,
        },
    )


def normalize_paypal_error(payload: dict[str, Any]) -> NormalizedError:
    """
    Map a PayPal error payload to a code, a user facing message and a retry hint.

    Only the first entry of `details` is considered, which is where PayPal puts
    the issue that rejected the request.
    """
    details = payload.get("details")
    if details:
        detail = details[0] if isinstance(details, list) else details
        issue = detail.get("issue") if isinstance(detail, dict) else None

        if issue in PAYPAL_ISSUES:
            code, message, retryable = PAYPAL_ISSUES[issue]
            return NormalizedError(code=code, message=message, retryable=retryable)

        description = detail.get("description") if isinstance(detail, dict) else None
        return NormalizedError(code="PAYPAL_ERROR", message=description or "PayPal error", retryable=True)

    return NormalizedError(
        code="UNKNOWN_ERROR",
        message=payload.get("message") or "Unknown PayPal error",
        retryable=True,
    )
