"""PayPal payment service - checkout orders, captures, status checks and webhooks"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from ...config import (
    PAYPAL_BRAND_NAME,
    PAYPAL_CLIENT_ID,
    PAYPAL_CLIENT_SECRET,
    PAYPAL_MODE,
    PAYPAL_TIMEOUT_SECONDS,
    PAYPAL_WEBHOOK_ID,
)
from .errors import GatewayError, MalformedResponseError, PaymentConfigurationError, WebhookSignatureError
from .paypal_client import ClientConfig, PayPalClient, utcnow
from .paypal_utils import (
    amount_to_cents,
    build_order_request,
    first_capture,
    normalize_paypal_error,
    order_to_payment_result,
    order_to_payment_status,
)
from .schemas import PaymentRequest, PaymentResult, PaymentStatus, PayPalOrder, WebhookOutcome

logger = logging.getLogger(__name__)

ORDERS_ENDPOINT = "/v2/checkout/orders"
VERIFY_WEBHOOK_ENDPOINT = "/v1/notifications/verify-webhook-signature"

# verify-webhook-signature body field -> transmission header sent by PayPal
WEBHOOK_SIGNATURE_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}

WEBHOOK_EVENT_STATUS = {
    "CHECKOUT.ORDER.APPROVED": "pending",
    "PAYMENT.CAPTURE.COMPLETED": "completed",
    "PAYMENT.CAPTURE.DENIED": "failed",
}


def normalize_paypal_environment(env: Optional[str]) -> str:
    """Normalize PayPal mode value to sandbox/live"""
    value = (env or "sandbox").strip().lower()
    if value in {"live", "production", "prod"}:
        return "live"
    if value in {"sandbox", "test", "staging", "dev", "development"}:
        return "sandbox"
    logger.warning(f"Unknown PAYPAL_MODE '{env}', defaulting to sandbox")
    return "sandbox"


class PayPalPaymentService:
    """Service for PayPal checkout operations"""

    def __init__(
        self,
        client: PayPalClient,
        webhook_id: Optional[str] = PAYPAL_WEBHOOK_ID,
        brand_name: str = PAYPAL_BRAND_NAME,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.webhook_id = webhook_id
        self.brand_name = brand_name
        self._clock = clock

    @classmethod
    def from_config(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "PayPalPaymentService":
        """Build the service from PAYPAL_* environment settings"""
        if not PAYPAL_CLIENT_ID or not PAYPAL_CLIENT_SECRET:
            raise PaymentConfigurationError(
                "PayPal configuration is missing. Please check PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET."
            )

        config = ClientConfig(
            client_id=PAYPAL_CLIENT_ID,
            client_secret=PAYPAL_CLIENT_SECRET,
            environment=normalize_paypal_environment(PAYPAL_MODE),
        )
        logger.info(f"PayPal client initialized (env={config.environment})")
        return cls(PayPalClient(config, transport=transport, timeout=PAYPAL_TIMEOUT_SECONDS))

    @staticmethod
    def _parse_order(payload: Any) -> PayPalOrder:
        try:
            return PayPalOrder.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError("Invalid order response from PayPal", str(payload)) from e

    @staticmethod
    def _failed_result(payment_id: str, error: GatewayError) -> PaymentResult:
        normalized = normalize_paypal_error(error.details)
        return PaymentResult(
            success=False,
            payment_id=payment_id,
            error=normalized.message,
            metadata={
                "error_code": normalized.code,
                "retryable": normalized.retryable,
                "status_code": error.status_code,
                "debug_id": error.details.get("debug_id"),
            },
        )

    async def create_payment(self, request: PaymentRequest) -> PaymentResult:
        """Create a CAPTURE-intent order and return its approval (checkout) URL"""
        logger.info(
            f"Creating PayPal order for appointment {request.appointment_id} "
            f"({request.amount} {request.currency} cents)"
        )

        try:
            payload = await self.client.make_request(
                ORDERS_ENDPOINT,
                method="POST",
                json=build_order_request(request, self.brand_name),
            )
        except GatewayError as e:
            logger.error(f"❌ PayPal order creation failed for appointment {request.appointment_id}: {e}")
            return self._failed_result("", e)

        order = self._parse_order(payload)
        logger.info(f"✅ PayPal order created: {order.id} ({order.status})")
        return order_to_payment_result(order)

    async def capture_payment(self, order_id: str) -> PaymentResult:
        """Capture an order the payer has approved"""
        logger.info(f"Capturing PayPal order {order_id}")

        try:
            payload = await self.client.make_request(f"{ORDERS_ENDPOINT}/{order_id}/capture", method="POST")
        except GatewayError as e:
            logger.error(f"❌ PayPal capture failed for order {order_id}: {e}")
            return self._failed_result(order_id, e)

        order = self._parse_order(payload)
        capture = first_capture(order)
        captured_amount = None
        if capture and capture.amount:
            captured_amount = amount_to_cents(capture.amount.value)

        logger.info(f"✅ PayPal order captured: {order_id} (capture {capture.id if capture else 'n/a'})")
        return PaymentResult(
            success=True,
            payment_id=order_id,
            metadata={
                "capture_id": capture.id if capture else None,
                "capture_status": capture.status if capture else None,
                "status": order.status,
                "amount": captured_amount,
            },
        )

    async def get_payment_status(self, order_id: str) -> Optional[PaymentStatus]:
        """Look up an order; returns None when PayPal rejects the lookup"""
        try:
            payload = await self.client.make_request(f"{ORDERS_ENDPOINT}/{order_id}")
        except GatewayError as e:
            logger.error(f"PayPal status check failed for order {order_id}: {e}")
            return None

        return order_to_payment_status(self._parse_order(payload), self._clock())

    async def verify_webhook_signature(self, headers: Mapping[str, str], event: dict[str, Any]) -> bool:
        """
        Ask PayPal to verify a webhook delivery.

        PayPal signs webhooks with a certificate chain, so verification is
        delegated to /v1/notifications/verify-webhook-signature rather than
        done locally.
        """
        if not self.webhook_id:
            logger.warning("⚠️ PAYPAL_WEBHOOK_ID not configured, skipping webhook verification")
            return True

        lowered = {key.lower(): value for key, value in headers.items()}
        missing = [header for header in WEBHOOK_SIGNATURE_HEADERS.values() if not lowered.get(header)]
        if missing:
            logger.warning(f"🚫 PayPal webhook missing transmission headers: {', '.join(missing)}")
            return False

        body: dict[str, Any] = {field: lowered[header] for field, header in WEBHOOK_SIGNATURE_HEADERS.items()}
        body["webhook_id"] = self.webhook_id
        body["webhook_event"] = event

        try:
            result = await self.client.make_request(VERIFY_WEBHOOK_ENDPOINT, method="POST", json=body)
        except GatewayError as e:
            logger.error(f"❌ PayPal webhook verification request failed: {e}")
            return False

        status = result.get("verification_status") if isinstance(result, dict) else None
        if status != "SUCCESS":
            logger.warning(f"🚫 PayPal webhook signature rejected (verification_status={status})")
            return False
        return True

    async def process_webhook(self, event: dict[str, Any], headers: Mapping[str, str]) -> WebhookOutcome:
        """
        Verify a webhook and extract the order/capture it refers to.

        Raises:
            WebhookSignatureError: PayPal did not confirm the signature
        """
        event_type = event.get("event_type") or ""
        logger.info(f"PayPal webhook received: {event_type} ({event.get('resource_type')})")

        if not await self.verify_webhook_signature(headers, event):
            raise WebhookSignatureError("PayPal webhook signature verification failed")

        status = WEBHOOK_EVENT_STATUS.get(event_type)
        if status is None:
            logger.info(f"Unhandled PayPal webhook event: {event_type}")
            return WebhookOutcome(event_type=event_type, handled=False)

        resource = event.get("resource") or {}
        if not isinstance(resource, dict):
            logger.error(f"PayPal {event_type} webhook has a non-object resource: {type(resource).__name__}")
            return WebhookOutcome(event_type=event_type, handled=False)

        if event_type == "CHECKOUT.ORDER.APPROVED":
            order_id = resource.get("id")
            capture_id = None
        else:
            capture_id = resource.get("id")
            supplementary = resource.get("supplementary_data") or {}
            related_ids = supplementary.get("related_ids") if isinstance(supplementary, dict) else None
            order_id = related_ids.get("order_id") if isinstance(related_ids, dict) else None

        if not order_id:
            logger.error(f"PayPal {event_type} webhook missing order ID")
            return WebhookOutcome(event_type=event_type, handled=False, capture_id=capture_id)

        log = logger.warning if status == "failed" else logger.info
        log(f"PayPal {event_type}: order {order_id}, capture {capture_id}")
        return WebhookOutcome(
            event_type=event_type,
            handled=True,
            order_id=order_id,
            capture_id=capture_id,
            status=status,
        )
