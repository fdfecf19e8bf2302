import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import ALLOWED_ORIGINS, PAYPAL_CLIENT_ID, PAYPAL_MODE
from .domain.payments import PaymentGatewayError
from .domain.payments import router as payments_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if not PAYPAL_CLIENT_ID:
        logger.warning("PAYPAL_CLIENT_ID not set; PayPal endpoints will fail until configured")
    else:
        logger.info(f"PayPal payments enabled (mode={PAYPAL_MODE})")
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Médica Móvil Payments API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(PaymentGatewayError)
async def payment_gateway_exception_handler(request: Request, exc: PaymentGatewayError):
    """PayPal failures that the payment service did not turn into a result"""
    logger.error(f"{request.method} {request.url.path} - PayPal error: {exc}")
    return JSONResponse(
        status_code=502,
        content={
            "detail": "Payment provider error",
            "error_type": type(exc).__name__,
            "provider_status": exc.status_code,
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(payments_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
