"""Doctor/platform revenue split for captured consultation payments"""

from ...config import DOCTOR_SHARE_PERCENTAGE
from .schemas import PaymentDistribution


def split_payment(amount: int, doctor_percentage: float = DOCTOR_SHARE_PERCENTAGE) -> PaymentDistribution:
    """
    Split a payment (in cents) between the doctor and the platform.

    The doctor share is rounded to the nearest cent and the platform gets the
    remainder, so both parts always add up to `amount`.
    """
    if not 0 <= doctor_percentage <= 1:
        raise ValueError("doctor_percentage must be between 0 and 1")
    if amount < 0:
        raise ValueError("amount must not be negative")

    doctor_amount = int(amount * doctor_percentage + 0.5)
    return PaymentDistribution(
        total_amount=amount,
        doctor_amount=doctor_amount,
        platform_amount=amount - doctor_amount,
        doctor_percentage=doctor_percentage,
        platform_percentage=round(1 - doctor_percentage, 4),
    )
