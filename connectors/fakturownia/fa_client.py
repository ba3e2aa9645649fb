"""Fakturownia HTTP Client.

Low-level executor for Fakturownia REST API calls.
Handles token injection, per-attempt timeouts, retries with backoff
and content-type aware response decoding.
"""

from typing import Any, Dict, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
import asyncio
import json
import random
import time

import aiohttp

from connectors.fakturownia.fa_endpoints import (
    BODY_METHODS,
    EndpointDescriptor,
    RequestIntent,
)
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import (
    record_request_failed,
    record_request_retry,
    record_request_started,
    record_request_succeeded,
)

logger = get_logger(__name__)

DEFAULT_HOST = "fakturownia.pl"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3


def _json_default(value: Any) -> Any:
    """JSON form of dates and decimals in request bodies."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class FakturowniaApiError(Exception):
    """Base exception for Fakturownia API errors."""
    def __init__(
        self,
        message: str,
        method: str = "",
        path: str = "",
        status_code: int = 0,
        response_body: str = "",
    ):
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code
        self.response_body = response_body


class FakturowniaHTTPError(FakturowniaApiError):
    """Non-retryable HTTP status (4xx other than 429)."""
    pass


class FakturowniaRetryExhaustedError(FakturowniaApiError):
    """Rate limiting or server errors persisted through every attempt."""
    def __init__(self, message: str, method: str, path: str, status_code: int,
                 response_body: str, attempts: int):
        super().__init__(message, method, path, status_code, response_body)
        self.attempts = attempts


class FakturowniaTimeoutError(FakturowniaApiError):
    """Every attempt ran past the configured timeout."""
    def __init__(self, message: str, method: str, path: str,
                 timeout_seconds: float, attempts: int):
        super().__init__(message, method, path)
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts


class FakturowniaTransportError(FakturowniaApiError):
    """Connection, DNS, encoding or decoding fault. Never retried."""
    pass


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0  # seconds
    max_delay: Optional[float] = None  # seconds, before jitter; None means uncapped
    exponential_base: float = 2.0
    max_jitter: float = 0.5  # seconds

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    def is_retryable_status(self, status: int) -> bool:
        """429 and every 5xx are transient."""
        return status == 429 or status >= 500

    def get_delay(self, attempt: int) -> float:
        """Delay before attempt (1-based retry index) with jitter.

        attempt 1 waits ~base_delay, attempt 2 ~2x, attempt 3 ~4x.
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay + random.random() * self.max_jitter


@dataclass
class FakturowniaApiConfig:
    """Configuration for the Fakturownia API client.

    Attributes:
        api_token: API token from the Fakturownia account settings
        domain: Account subdomain, "mycompany" -> mycompany.fakturownia.pl
        timeout_seconds: Wall-clock bound for one attempt
        retry_config: Retry/backoff policy
    """
    api_token: str
    domain: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    host: str = DEFAULT_HOST

    def __post_init__(self):
        if not self.api_token:
            raise ValueError("api_token is required")
        if not self.domain:
            raise ValueError("domain is required")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}.{self.host}"


class AttemptOutcome(str, Enum):
    """Outcome of a single network exchange."""
    SUCCESS = "SUCCESS"
    RETRYABLE = "RETRYABLE"
    FATAL = "FATAL"


@dataclass
class AttemptRecord:
    """One in-flight attempt of a logical call. Never persisted."""
    index: int
    deadline: float
    outcome: Optional[AttemptOutcome] = None
    value: Any = None
    error: Optional[FakturowniaApiError] = None


class FakturowniaClient:
    """HTTP client for the Fakturownia API.

    Provides:
    - api_token injection (query for GET/DELETE, JSON body otherwise)
    - Per-attempt timeout
    - Retries with exponential backoff and jitter on 429 / 5xx / timeouts
    - JSON or plain-text decoding based on the response Content-Type

    Usage:
        async with FakturowniaClient(api_config) as client:
            invoices = await client.execute(get_endpoint("list_invoices"))
            invoice = await client.execute(get_endpoint("get_invoice"), id=42)
    """

    def __init__(
        self,
        api_config: FakturowniaApiConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize API client.

        Args:
            api_config: API configuration
            session: Externally owned session (not closed by disconnect())
        """
        self.api_config = api_config
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self.api_config.base_url

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def disconnect(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "FakturowniaClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def execute(
        self,
        descriptor: EndpointDescriptor,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        **path_params: Any,
    ) -> Any:
        """Perform the operation described by an endpoint descriptor.

        Args:
            descriptor: Endpoint table entry
            body: Payload fields, wrapped under the descriptor's body key
            query: Caller query parameters
            **path_params: Ids substituted into the path template

        Returns:
            Parsed JSON, or the raw text for non-JSON responses
        """
        intent = descriptor.bind(payload=body, query=query, **path_params)
        label = f"{descriptor.method} {descriptor.path_template}"
        return await self._run(intent, label)

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Perform a request against an already resolved path."""
        intent = RequestIntent(
            method=method.upper(),
            path=path,
            body=dict(body) if body is not None else None,
            query={k: str(v) for k, v in (query or {}).items() if v is not None},
        )
        return await self._run(intent, f"{intent.method} {path}")

    # -------------------------------------------------------------------------
    # Request pipeline
    # -------------------------------------------------------------------------

    def _build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _prepare(self, intent: RequestIntent) -> Tuple[Dict[str, str], Dict[str, str], Optional[bytes]]:
        """Build query params, headers and wire body for one attempt.

        The token is read from config on every call.

        Raises:
            TypeError: Body holds a value with no JSON form
        """
        token = self.api_config.api_token
        params = {k: v for k, v in intent.query.items() if k != "api_token"}
        headers = {"Accept": "application/json"}
        data = None

        has_body = intent.body is not None and intent.method in BODY_METHODS
        if has_body:
            headers["Content-Type"] = "application/json"
            data = json.dumps(
                {**intent.body, "api_token": token},
                default=_json_default,
            ).encode("utf-8")
        else:
            params["api_token"] = token

        return params, headers, data

    async def _run(self, intent: RequestIntent, label: str) -> Any:
        """Retry loop for one logical call.

        Raises:
            FakturowniaHTTPError: Non-retryable status
            FakturowniaRetryExhaustedError: 429/5xx on every attempt
            FakturowniaTimeoutError: Timeout on the last attempt
            FakturowniaTransportError: Transport, encode or decode fault
        """
        if self._session is None:
            raise FakturowniaApiError(
                "Not connected. Call connect() first.", intent.method, intent.path
            )

        retry_config = self.api_config.retry_config
        max_attempts = retry_config.max_retries + 1
        started = time.monotonic()
        record: Optional[AttemptRecord] = None

        record_request_started(label)

        try:
            with with_correlation(method=intent.method, path=intent.path):
                for attempt in range(max_attempts):
                    if attempt > 0:
                        delay = retry_config.get_delay(attempt)
                        logger.warning(
                            f"Retrying in {delay:.2f}s (attempt {attempt + 1}/{max_attempts})",
                            extra_fields={"delay_s": round(delay, 3)},
                        )
                        await asyncio.sleep(delay)

                    with with_correlation(attempt=attempt + 1):
                        record = await self._attempt(intent, attempt, max_attempts)

                        if record.outcome is AttemptOutcome.SUCCESS:
                            elapsed_ms = (time.monotonic() - started) * 1000
                            record_request_succeeded(label, elapsed_ms)
                            logger.debug(
                                "Request completed",
                                extra_fields={"duration_ms": round(elapsed_ms, 1)},
                            )
                            return record.value

                        if record.outcome is AttemptOutcome.FATAL or attempt + 1 == max_attempts:
                            break

                        record_request_retry(
                            label,
                            timed_out=isinstance(record.error, FakturowniaTimeoutError),
                        )
                        logger.warning(f"Attempt failed: {record.error}")
        except BaseException as e:
            # Cancellation or an unclassified fault still settles the request
            record_request_failed(label, type(e).__name__, (time.monotonic() - started) * 1000)
            raise

        elapsed_ms = (time.monotonic() - started) * 1000
        record_request_failed(label, type(record.error).__name__, elapsed_ms)
        logger.error(
            f"Request failed: {record.error}",
            extra_fields={"method": intent.method, "path": intent.path},
        )
        raise record.error

    async def _attempt(self, intent: RequestIntent, index: int, max_attempts: int) -> AttemptRecord:
        """Perform one network exchange and classify its outcome."""
        timeout_seconds = self.api_config.timeout_seconds
        loop = asyncio.get_running_loop()
        record = AttemptRecord(index=index, deadline=loop.time() + timeout_seconds)

        try:
            params, headers, data = self._prepare(intent)
        except (TypeError, ValueError) as e:
            record.outcome = AttemptOutcome.FATAL
            record.error = self._transport_error(intent, e)
            return record
        url = self._build_url(intent.path)

        try:
            # Timer armed for this attempt only; the scope disarms it on exit
            async with asyncio.timeout(timeout_seconds):
                async with self._session.request(
                    intent.method,
                    url,
                    params=params,
                    headers=headers,
                    data=data,
                ) as response:
                    status = response.status
                    content_type = response.headers.get("Content-Type", "")
                    response_text = await response.text()
        except TimeoutError:
            record.outcome = AttemptOutcome.RETRYABLE
            record.error = FakturowniaTimeoutError(
                f"Fakturownia API request timed out after {timeout_seconds:g}s: "
                f"{intent.method} {intent.path}",
                intent.method,
                intent.path,
                timeout_seconds=timeout_seconds,
                attempts=index + 1,
            )
            return record
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            record.outcome = AttemptOutcome.FATAL
            record.error = self._transport_error(intent, e)
            return record

        if 200 <= status < 300:
            try:
                record.value = self._decode(content_type, response_text)
            except ValueError as e:
                record.outcome = AttemptOutcome.FATAL
                record.error = self._transport_error(intent, e)
                return record
            record.outcome = AttemptOutcome.SUCCESS
            return record

        if self.api_config.retry_config.is_retryable_status(status):
            record.outcome = AttemptOutcome.RETRYABLE
            message = f"Fakturownia API error {status}: {response_text}"
            if index + 1 >= max_attempts:
                message += f" (gave up after {index + 1} attempts)"
            record.error = FakturowniaRetryExhaustedError(
                message,
                intent.method,
                intent.path,
                status_code=status,
                response_body=response_text,
                attempts=index + 1,
            )
            return record

        record.outcome = AttemptOutcome.FATAL
        record.error = FakturowniaHTTPError(
            f"Fakturownia API error {status}: {response_text}",
            intent.method,
            intent.path,
            status_code=status,
            response_body=response_text,
        )
        return record

    @staticmethod
    def _decode(content_type: str, response_text: str) -> Any:
        """Parse JSON responses; return anything else as raw text."""
        if "application/json" in content_type.lower():
            if not response_text.strip():
                return None
            return json.loads(response_text)
        return response_text

    @staticmethod
    def _transport_error(intent: RequestIntent, error: Exception) -> FakturowniaTransportError:
        transport_error = FakturowniaTransportError(
            f"Fakturownia API request failed ({type(error).__name__}: {error}): "
            f"{intent.method} {intent.path}",
            intent.method,
            intent.path,
        )
        transport_error.__cause__ = error
        return transport_error
