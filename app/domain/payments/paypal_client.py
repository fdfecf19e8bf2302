"""
PayPal REST API client
Manages the OAuth2 client-credentials token and issues authenticated requests
"""

import asyncio
import base64
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from .errors import AuthenticationError, GatewayError, MalformedResponseError
from .schemas import ErrorResponse, TokenResponse

logger = logging.getLogger(__name__)

# PayPal API URLs
PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}
PAYPAL_TOKEN_ENDPOINT = "/v1/oauth2/token"

# Tokens are treated as expired one minute early so a request never starts with a token
# that expires mid-flight
TOKEN_SAFETY_MARGIN = timedelta(seconds=60)

REQUEST_ID_ALPHABET = string.ascii_lowercase + string.digits
REQUEST_ID_SUFFIX_LENGTH = 9


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_request_id(now: Optional[datetime] = None) -> str:
    """
    Build a PayPal-Request-Id value: epoch milliseconds plus a random suffix.

    Two ids generated in the same millisecond only collide if their 9-character
    base36 suffixes match (1 in 36**9), so uniqueness is probabilistic.
    """
    millis = int((now or utcnow()).timestamp() * 1000)
    suffix = "".join(secrets.choice(REQUEST_ID_ALPHABET) for _ in range(REQUEST_ID_SUFFIX_LENGTH))
    return f"{millis}-{suffix}"


@dataclass(frozen=True)
class ClientConfig:
    """PayPal REST app credentials and the environment they belong to"""

    client_id: str
    client_secret: str
    environment: str = "sandbox"

    def __post_init__(self):
        if self.environment not in PAYPAL_BASE_URLS:
            raise ValueError(f"Unknown PayPal environment '{self.environment}' (expected sandbox or live)")

    @property
    def base_url(self) -> str:
        return PAYPAL_BASE_URLS[self.environment]

    def basic_auth_header(self) -> str:
        credentials = f"{self.client_id}:{self.client_secret}"
        return f"Basic {base64.b64encode(credentials.encode()).decode()}"


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    token_type: str
    expires_in: int
    expires_at: datetime

    @classmethod
    def from_response(cls, token: TokenResponse, now: datetime) -> "AccessToken":
        return cls(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            expires_at=now + timedelta(seconds=token.expires_in) - TOKEN_SAFETY_MARGIN,
        )

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class PayPalClient:
    """
    Thin async wrapper around the PayPal REST API.

    The access token is cached on the instance until it reaches its safety
    margin. Concurrent callers that find no valid token share a single token
    exchange. Nothing is retried here: retry and backoff policy belongs to the
    caller.

    Args:
        config: Credentials and environment
        transport: Optional httpx transport (tests pass an httpx.MockTransport)
        timeout: Per-request timeout in seconds applied by httpx
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.base_url = config.base_url
        self._transport = transport
        self._timeout = timeout
        self._clock = clock
        self._access_token: Optional[AccessToken] = None
        self._token_lock: Optional[asyncio.Lock] = None
        self._token_lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def access_token(self) -> Optional[AccessToken]:
        """Currently cached token, if any"""
        return self._access_token

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout, transport=self._transport)

    def _cached_token_value(self) -> Optional[str]:
        token = self._access_token
        if token and token.is_valid(self._clock()):
            return token.access_token
        return None

    def _refresh_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop that first waits on it, so keep one per running loop
        loop = asyncio.get_running_loop()
        if self._token_lock is None or self._token_lock_loop is not loop:
            self._token_lock = asyncio.Lock()
            self._token_lock_loop = loop
        return self._token_lock

    async def ensure_access_token(self) -> str:
        """Return a valid access token, requesting a new one only when the cached one is stale"""
        cached = self._cached_token_value()
        if cached:
            return cached

        async with self._refresh_lock():
            # Another coroutine may have refreshed while we waited
            cached = self._cached_token_value()
            if cached:
                return cached
            return await self._request_access_token()

    async def _request_access_token(self) -> str:
        logger.info(f"🔄 Requesting PayPal access token ({self.config.environment})")

        async with self._http_client() as http_client:
            response = await http_client.post(
                PAYPAL_TOKEN_ENDPOINT,
                headers={
                    "Authorization": self.config.basic_auth_header(),
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                data={"grant_type": "client_credentials"},
            )

        if not response.is_success:
            logger.error(f"❌ PayPal authentication failed ({response.status_code}): {response.text}")
            raise AuthenticationError(response.text, response.status_code)

        try:
            token_response = TokenResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"❌ Invalid token response from PayPal: {e}")
            raise MalformedResponseError("Invalid token response from PayPal", response.text) from e

        self._access_token = AccessToken.from_response(token_response, self._clock())
        logger.info(f"✅ PayPal access token acquired, valid until {self._access_token.expires_at.isoformat()}")
        return self._access_token.access_token

    async def make_request(
        self,
        endpoint: str,
        method: str = "GET",
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Send an authenticated request to `base_url + endpoint` and return the parsed JSON body.

        Caller headers are applied last and may override the defaults; header
        names compare case-insensitively, so `paypal-request-id` replaces the
        generated `PayPal-Request-Id`.

        Raises:
            AuthenticationError: token exchange failed
            GatewayError: PayPal answered with a non-success status
            MalformedResponseError: a success response was not valid JSON
        """
        access_token = await self.ensure_access_token()

        request_headers = httpx.Headers(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "PayPal-Request-Id": generate_request_id(self._clock()),
            }
        )
        if headers:
            request_headers.update(headers)

        async with self._http_client() as http_client:
            response = await http_client.request(method, endpoint, json=json, headers=request_headers)

        if not response.is_success:
            error = self._gateway_error(response)
            logger.warning(f"PayPal {method} {endpoint} failed ({error.status_code}): {error.message}")
            raise error

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"PayPal returned a non-JSON body for {method} {endpoint}", response.text
            ) from e

    @staticmethod
    def _gateway_error(response: httpx.Response) -> GatewayError:
        try:
            payload = response.json()
        except ValueError:
            payload = {"raw": response.text}
        if not isinstance(payload, dict):
            payload = {"raw": payload}

        error = ErrorResponse.model_validate(payload)
        message = error.message or error.error_description or "PayPal API error"
        return GatewayError(message, response.status_code, payload)
