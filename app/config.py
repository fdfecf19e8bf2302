import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Frontend base URL for PayPal return/cancel redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# PayPal Configuration
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET")
# "sandbox" or "live" - default to sandbox for safety
PAYPAL_MODE = os.getenv("PAYPAL_MODE", "sandbox")
# Webhook ID from the PayPal developer dashboard, required for signature verification
PAYPAL_WEBHOOK_ID = os.getenv("PAYPAL_WEBHOOK_ID")
PAYPAL_BRAND_NAME = os.getenv("PAYPAL_BRAND_NAME", "Médica Móvil")
PAYPAL_CURRENCY = os.getenv("PAYPAL_CURRENCY", "MXN")
PAYPAL_TIMEOUT_SECONDS = float(os.getenv("PAYPAL_TIMEOUT_SECONDS", "30"))

# Share of each consultation payment that goes to the doctor; the platform keeps the rest
DOCTOR_SHARE_PERCENTAGE = float(os.getenv("DOCTOR_SHARE_PERCENTAGE", "0.85"))

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
