"""Payments domain schemas - Pydantic models for PayPal payloads and API bodies"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PaymentState = Literal["pending", "completed", "failed", "cancelled", "refunded"]


# ============================================================================
# PAYPAL WIRE MODELS
# ============================================================================


class TokenResponse(BaseModel):
    """Body returned by POST /v1/oauth2/token"""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str
    expires_in: int

    @field_validator("access_token")
    @classmethod
    def validate_access_token(cls, v: str) -> str:
        if not v:
            raise ValueError("access_token must not be empty")
        return v


class ErrorResponse(BaseModel):
    """Error body returned by PayPal REST endpoints"""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    debug_id: Optional[str] = None
    details: Optional[list[Any]] = None

    @field_validator("name", "message", "error", "error_description", "debug_id", mode="before")
    @classmethod
    def drop_non_text(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("details", mode="before")
    @classmethod
    def drop_non_list_details(cls, v: Any) -> Optional[list[Any]]:
        return v if isinstance(v, list) else None


class OrderAmount(BaseModel):
    currency_code: str
    value: str


class OrderLink(BaseModel):
    href: str
    rel: str
    method: Optional[str] = None


class OrderCapture(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    amount: Optional[OrderAmount] = None


class OrderPayments(BaseModel):
    captures: list[OrderCapture] = Field(default_factory=list)


class OrderPurchaseUnit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reference_id: Optional[str] = None
    amount: Optional[OrderAmount] = None
    payments: Optional[OrderPayments] = None


class PayPalOrder(BaseModel):
    """Orders v2 resource (create, get and capture responses)"""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    links: list[OrderLink] = Field(default_factory=list)
    purchase_units: list[OrderPurchaseUnit] = Field(default_factory=list)


# ============================================================================
# DOMAIN MODELS
# ============================================================================


class PaymentRequest(BaseModel):
    """A consultation payment to be collected through PayPal"""

    appointment_id: str
    amount: int  # cents
    currency: str = "MXN"
    description: str
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    return_url: str
    cancel_url: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("amount must be greater than zero")
        return v


class PaymentResult(BaseModel):
    success: bool
    payment_id: str
    provider: Literal["paypal"] = "paypal"
    checkout_url: Optional[str] = None
    error: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PaymentStatus(BaseModel):
    id: str
    status: PaymentState
    provider: Literal["paypal"] = "paypal"
    amount: int  # cents
    currency: str
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class NormalizedError(BaseModel):
    code: str
    message: str
    retryable: bool


class WebhookOutcome(BaseModel):
    event_type: str
    handled: bool
    order_id: Optional[str] = None
    capture_id: Optional[str] = None
    status: Optional[PaymentState] = None


class PaymentDistribution(BaseModel):
    total_amount: int
    doctor_amount: int
    platform_amount: int
    doctor_percentage: float
    platform_percentage: float


# ============================================================================
# API BODIES
# ============================================================================


class CreateOrderRequest(BaseModel):
    """Schema for creating a PayPal order for an appointment"""

    appointment_id: str
    amount: int
    description: str
    currency: Optional[str] = None
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None

    @field_validator("appointment_id")
    @classmethod
    def validate_appointment_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("appointment_id is required")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("amount must be greater than zero")
        return v


class CaptureRequest(BaseModel):
    paypal_order_id: str

    @field_validator("paypal_order_id")
    @classmethod
    def validate_order_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("paypal_order_id is required")
        return v


class CreateOrderResponse(BaseModel):
    success: bool
    paypal_order_id: str
    checkout_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CaptureResponse(BaseModel):
    success: bool
    paypal_order_id: str
    status: Optional[str] = None
    capture_id: Optional[str] = None
    distribution: Optional[PaymentDistribution] = None
