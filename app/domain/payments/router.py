"""PayPal payments router - FastAPI endpoints for checkout, capture and webhooks"""

import json
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request

from ...config import FRONTEND_URL, PAYPAL_CURRENCY
from .distribution import split_payment
from .errors import PaymentConfigurationError, WebhookSignatureError
from .paypal_service import PayPalPaymentService
from .schemas import (
    CaptureRequest,
    CaptureResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentRequest,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments/paypal", tags=["Payments"])


@lru_cache(maxsize=1)
def _shared_paypal_service() -> PayPalPaymentService:
    return PayPalPaymentService.from_config()


def get_paypal_service() -> PayPalPaymentService:
    """Dependency injection for PayPalPaymentService (one instance per process keeps the token cache warm)"""
    try:
        return _shared_paypal_service()
    except PaymentConfigurationError as e:
        logger.error(f"PayPal not configured: {e}")
        raise HTTPException(status_code=500, detail="PayPal not configured") from e


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    body: CreateOrderRequest,
    service: PayPalPaymentService = Depends(get_paypal_service),
):
    """Create a PayPal order for an appointment and return the approval URL"""
    payment_request = PaymentRequest(
        appointment_id=body.appointment_id,
        amount=body.amount,
        currency=body.currency or PAYPAL_CURRENCY,
        description=body.description,
        patient_email=body.patient_email,
        patient_name=body.patient_name,
        return_url=body.return_url or f"{FRONTEND_URL}/pago/exito",
        cancel_url=body.cancel_url or f"{FRONTEND_URL}/pago/cancelado",
        metadata={"appointment_id": body.appointment_id},
    )

    result = await service.create_payment(payment_request)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Failed to create PayPal order")

    return CreateOrderResponse(
        success=True,
        paypal_order_id=result.payment_id,
        checkout_url=result.checkout_url,
        metadata=result.metadata,
    )


@router.post("/capture", response_model=CaptureResponse)
async def capture_order(
    body: CaptureRequest,
    service: PayPalPaymentService = Depends(get_paypal_service),
):
    """Capture an approved order and report the doctor/platform split"""
    result = await service.capture_payment(body.paypal_order_id)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Failed to capture PayPal payment")

    amount = result.metadata.get("amount")
    return CaptureResponse(
        success=True,
        paypal_order_id=body.paypal_order_id,
        status=result.metadata.get("status"),
        capture_id=result.metadata.get("capture_id"),
        distribution=split_payment(amount) if amount else None,
    )


@router.get("/orders/{order_id}", response_model=PaymentStatus)
async def get_order_status(
    order_id: str,
    service: PayPalPaymentService = Depends(get_paypal_service),
):
    """Get the current payment status of a PayPal order"""
    status = await service.get_payment_status(order_id)
    if status is None:
        raise HTTPException(status_code=404, detail="PayPal order not found")
    return status


@router.post("/webhook")
async def paypal_webhook(
    request: Request,
    service: PayPalPaymentService = Depends(get_paypal_service),
):
    """Receive PayPal webhook events"""
    raw_body = await request.body()
    try:
        event = json.loads(raw_body)
    except ValueError as e:
        logger.error(f"Invalid JSON in PayPal webhook: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    try:
        outcome = await service.process_webhook(event, request.headers)
    except WebhookSignatureError as e:
        raise HTTPException(status_code=400, detail="Invalid webhook signature") from e

    return {"success": True, **outcome.model_dump()}
