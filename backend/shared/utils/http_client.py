"""
Async HTTP client for the Riot API and Data Dragon.
Bounded retries with a fixed delay, typed outcome classification and metrics.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from shared.config import ConfigError, sanitize_token
from shared.utils.logging import get_logger
from shared.utils.metrics import REMOTE_LATENCY, REMOTE_REQUESTS

logger = get_logger(__name__)

AUTH_HEADER = "X-Riot-Token"
BODY_EXCERPT_CHARS = 200


class FetchErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH_REJECTED = "auth_rejected"

    @property
    def retryable(self) -> bool:
        return self in (
            FetchErrorKind.RATE_LIMITED,
            FetchErrorKind.SERVER_ERROR,
            FetchErrorKind.NETWORK,
            FetchErrorKind.TIMEOUT,
        )


class AbsentReason(str, Enum):
    NOT_FOUND = "not_found"
    AUTH_REJECTED = "auth_rejected"


class FetchError(Exception):
    """Terminal remote failure. The kind is fixed where the response is classified."""

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        status_code: Optional[int] = None,
        body_excerpt: str = "",
        attempts: int = 1,
    ) -> None:
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.body_excerpt = body_excerpt[:BODY_EXCERPT_CHARS]
        self.attempts = attempts
        detail = f" {status_code}" if status_code is not None else ""
        suffix = f": {self.body_excerpt}" if self.body_excerpt else ""
        super().__init__(f"Remote {kind.value}{detail} after {attempts} attempt(s) for {url}{suffix}")


@dataclass(frozen=True)
class FetchResult:
    """Successful or absent outcome of a fetch. `absent` is set when the resource is unavailable."""
    url: str
    status_code: int
    attempts: int
    body: Any = None
    absent: Optional[AbsentReason] = None

    @property
    def is_absent(self) -> bool:
        return self.absent is not None


class AttemptState(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RetryTracker:
    """
    Retry budget as a small state machine.

    ATTEMPTING -> SUCCEEDED                   (terminal success or absent)
    ATTEMPTING -> WAITING -> ATTEMPTING       (retryable failure, budget left)
    ATTEMPTING -> FAILED(kind)                (non-retryable or budget exhausted)
    """

    def __init__(self, max_retries: int) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_attempts = max_retries + 1
        self.attempt = 1
        self.state = AttemptState.ATTEMPTING
        self.failure: Optional[FetchErrorKind] = None

    def _require(self, state: AttemptState) -> None:
        if self.state != state:
            raise RuntimeError(f"invalid transition from {self.state.value} (expected {state.value})")

    def succeed(self) -> None:
        self._require(AttemptState.ATTEMPTING)
        self.state = AttemptState.SUCCEEDED

    def fail(self, kind: FetchErrorKind) -> AttemptState:
        self._require(AttemptState.ATTEMPTING)
        if kind.retryable and self.attempt < self.max_attempts:
            self.state = AttemptState.WAITING
        else:
            self.state = AttemptState.FAILED
            self.failure = kind
        return self.state

    def resume(self) -> None:
        self._require(AttemptState.WAITING)
        self.attempt += 1
        self.state = AttemptState.ATTEMPTING


def _classify_status(status_code: int) -> FetchErrorKind:
    if status_code == 429:
        return FetchErrorKind.RATE_LIMITED
    if status_code >= 500:
        return FetchErrorKind.SERVER_ERROR
    return FetchErrorKind.BAD_REQUEST


class ResilientFetchClient:
    """
    Async HTTP client tailored for the Riot API.
    Handles per-attempt timeouts, fixed-delay retries and records metrics per attempt.
    """

    def __init__(
        self,
        auth_token: Optional[str] = None,
        *,
        name: str = "riot",
        timeout_s: float = 10.0,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if auth_token is not None:
            auth_token = sanitize_token(auth_token)
            if not auth_token:
                raise ConfigError(f"{name}: auth token is blank")
        self._name = name
        self._auth_token = auth_token
        self._timeout = timeout_s
        self._max_retries = max_retries
        self._retry_delay = retry_delay_s
        self._sleep = sleep
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return self._name

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        headers = {AUTH_HEADER: self._auth_token} if self._auth_token else {}
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(self._timeout, connect=min(self._timeout, 5.0)),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ResilientFetchClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        schema: Optional[TypeAdapter[Any]] = None,
        retry_delay_s: Optional[float] = None,
    ) -> FetchResult:
        """
        GET an absolute URL and classify the outcome.

        Args:
            url: Absolute request URL.
            headers: Request-specific headers merged over the auth header.
            schema: Optional pydantic TypeAdapter the JSON body must satisfy.
            retry_delay_s: Overrides the configured inter-attempt delay.

        Returns:
            FetchResult with a parsed body, or with `absent` set on 404/401/403.

        Raises:
            FetchError: On any terminal failure, after the retry budget where applicable.
        """
        if not self._client:
            raise RuntimeError("ResilientFetchClient not started. Call start() first.")

        delay = self._retry_delay if retry_delay_s is None else retry_delay_s
        tracker = RetryTracker(self._max_retries)
        status_code: Optional[int] = None
        excerpt = ""

        while True:
            kind: Optional[FetchErrorKind] = None
            start_time = time.perf_counter()
            try:
                resp = await self._client.get(url, headers=headers)
            except httpx.TimeoutException as exc:
                kind, status_code, excerpt = FetchErrorKind.TIMEOUT, None, str(exc)
            except httpx.TransportError as exc:
                kind, status_code, excerpt = FetchErrorKind.NETWORK, None, str(exc)
            else:
                status_code = resp.status_code
                if resp.is_success:
                    tracker.succeed()
                    self._record(start_time, "success")
                    return FetchResult(
                        url=url,
                        status_code=status_code,
                        attempts=tracker.attempt,
                        body=self._parse_body(url, resp, schema, tracker.attempt),
                    )
                if status_code == 404:
                    tracker.succeed()
                    self._record(start_time, "not_found")
                    return FetchResult(
                        url=url, status_code=status_code, attempts=tracker.attempt,
                        absent=AbsentReason.NOT_FOUND,
                    )
                if status_code in (401, 403):
                    tracker.succeed()
                    self._record(start_time, "auth_rejected")
                    logger.warning(
                        "remote_auth_rejected",
                        client=self._name,
                        url=url,
                        status=status_code,
                    )
                    return FetchResult(
                        url=url, status_code=status_code, attempts=tracker.attempt,
                        absent=AbsentReason.AUTH_REJECTED,
                    )
                kind = _classify_status(status_code)
                excerpt = resp.text[:BODY_EXCERPT_CHARS]

            self._record(start_time, kind.value)
            if tracker.fail(kind) == AttemptState.FAILED:
                logger.error(
                    "remote_request_failed",
                    client=self._name,
                    url=url,
                    kind=kind.value,
                    status=status_code,
                    attempts=tracker.attempt,
                )
                raise FetchError(kind, url, status_code, excerpt, tracker.attempt)

            logger.warning(
                "remote_rate_limited" if kind == FetchErrorKind.RATE_LIMITED else "remote_retry",
                client=self._name,
                url=url,
                kind=kind.value,
                status=status_code,
                attempt=tracker.attempt,
                max_attempts=tracker.max_attempts,
                delay_s=delay,
            )
            await self._sleep(delay)
            tracker.resume()

    def _parse_body(
        self,
        url: str,
        resp: httpx.Response,
        schema: Optional[TypeAdapter[Any]],
        attempts: int,
    ) -> Any:
        try:
            payload = resp.json()
            return schema.validate_python(payload) if schema is not None else payload
        except (ValueError, ValidationError) as exc:
            logger.error("remote_malformed_payload", client=self._name, url=url, error=str(exc)[:200])
            raise FetchError(
                FetchErrorKind.BAD_REQUEST,
                url,
                resp.status_code,
                f"malformed payload: {exc}",
                attempts,
            ) from exc

    def _record(self, start_time: float, outcome: str) -> None:
        REMOTE_LATENCY.labels(client=self._name).observe(time.perf_counter() - start_time)
        REMOTE_REQUESTS.labels(client=self._name, outcome=outcome).inc()
