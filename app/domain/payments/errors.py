"""Payment gateway errors raised by the PayPal client and service"""

from typing import Any, Optional


class PaymentGatewayError(Exception):
    """Base class for every error raised while talking to PayPal"""

    status_code: Optional[int] = None


class PaymentConfigurationError(PaymentGatewayError):
    """Raised when PayPal credentials are missing or invalid"""

    pass


class AuthenticationError(PaymentGatewayError):
    """Raised when the client-credentials token exchange is rejected"""

    def __init__(self, raw: str, status_code: int):
        super().__init__(f"PayPal authentication failed: {raw}")
        self.raw = raw
        self.status_code = status_code


class GatewayError(PaymentGatewayError):
    """
    Raised when an authenticated PayPal request returns a non-success status.

    `details` holds the full provider error payload (name, debug_id, details[])
    for diagnostics; `message` is the human readable part of it.
    """

    def __init__(self, message: str, status_code: int, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class WebhookSignatureError(PaymentGatewayError):
    """Raised when PayPal does not confirm a webhook's transmission signature"""

    pass


class MalformedResponseError(PaymentGatewayError):
    """Raised when a PayPal response body does not have the expected shape"""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw
