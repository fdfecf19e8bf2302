"""Payments domain - PayPal checkout for appointment payments"""

from .errors import (
    AuthenticationError,
    GatewayError,
    MalformedResponseError,
    PaymentConfigurationError,
    PaymentGatewayError,
    WebhookSignatureError,
)
from .paypal_client import AccessToken, ClientConfig, PayPalClient, generate_request_id
from .paypal_service import PayPalPaymentService
from .router import get_paypal_service, router

__all__ = [
    "AccessToken",
    "AuthenticationError",
    "ClientConfig",
    "GatewayError",
    "MalformedResponseError",
    "PaymentConfigurationError",
    "PaymentGatewayError",
    "PayPalClient",
    "PayPalPaymentService",
    "WebhookSignatureError",
    "generate_request_id",
    "get_paypal_service",
    "router",
]
