"""HTTP client with fixed-delay retries, timeouts, and host-aware rate limiting."""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any, Callable
from urllib.parse import urlparse

import requests
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from malta_addresses.common.constants import USER_AGENT
from malta_addresses.common.errors import StageError

NOT_FOUND_STATUS = 404
REDACTED_PARAMS = {"key"}
SECRET_QUERY_PATTERN = re.compile(r"""\b(key)=[^&\s'"]+""")


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 10
    delay_seconds: float = 30.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetriesExhaustedError(StageError):
    error_code = "RETRIES_EXHAUSTED"


class FetchStatus(Enum):
    FOUND = "found"
    EMPTY = "empty"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchOutcome:
    status: FetchStatus
    payload: Any = None
    cause: BaseException | None = None

    @classmethod
    def found(cls, payload: Any) -> "FetchOutcome":
        return cls(FetchStatus.FOUND, payload=payload)

    @classmethod
    def empty(cls) -> "FetchOutcome":
        return cls(FetchStatus.EMPTY, payload=[])

    @classmethod
    def transient(cls, cause: BaseException) -> "FetchOutcome":
        return cls(FetchStatus.TRANSIENT, cause=cause)

    @classmethod
    def fatal(cls, cause: BaseException | None) -> "FetchOutcome":
        return cls(FetchStatus.FATAL, cause=cause)


class TokenBucket:
    def __init__(self, rate_per_sec: float, capacity: float | None = None) -> None:
        self.rate_per_sec = rate_per_sec
        self.capacity = capacity if capacity is not None else rate_per_sec
        self.tokens = self.capacity
        self.updated_at = time.monotonic()
        self.lock = threading.Lock()

    def acquire(self, tokens: float = 1.0) -> None:
        while True:
            with self.lock:
                now = time.monotonic()
                elapsed = now - self.updated_at
                self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_sec)
                self.updated_at = now
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                deficit = tokens - self.tokens
                wait_for = max(deficit / self.rate_per_sec, 0.01)
            time.sleep(wait_for)


class HostRateLimiter:
    """Per-host token buckets. Hosts without a positive rate are not limited."""

    def __init__(
        self,
        default_rate_per_sec: float | None = None,
        host_rates: dict[str, float] | None = None,
    ) -> None:
        self.default_rate_per_sec = default_rate_per_sec
        self.host_rates = dict(host_rates or {})
        self.buckets: dict[str, TokenBucket] = {}
        self.lock = threading.Lock()

    def acquire(self, host: str, tokens: float = 1.0) -> None:
        rate = self.host_rates.get(host, self.default_rate_per_sec)
        if not rate or rate <= 0:
            return
        with self.lock:
            bucket = self.buckets.get(host)
            if bucket is None:
                # Capacity below one token would never satisfy a single request.
                bucket = TokenBucket(rate_per_sec=rate, capacity=max(rate, 1.0))
                self.buckets[host] = bucket
        bucket.acquire(tokens=tokens)


def host_of(url: str) -> str:
    return urlparse(url).netloc


def redact_secrets(text: str) -> str:
    return SECRET_QUERY_PATTERN.sub(r"\1=***", text)


def describe_params(params: dict[str, Any] | None) -> str:
    if not params:
        return "{}"
    shown = {k: ("***" if k in REDACTED_PARAMS else v) for k, v in params.items()}
    return json.dumps(shown, ensure_ascii=False, default=str)


class HttpClient:
    """GET-only JSON client.

    ``fetch`` turns a 404 into an empty list, retries every other failure with
    a fixed delay and raises ``RetriesExhaustedError`` once the attempt budget
    is spent.
    """

    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        rate_limiter: HostRateLimiter | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.rate_limiter = rate_limiter or HostRateLimiter()
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    def _attempt(self, url: str, params: dict[str, Any] | None) -> FetchOutcome:
        self.rate_limiter.acquire(host_of(url))
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=self._headers(),
                timeout=(self.timeout.connect, self.timeout.read),
            )
        except requests.RequestException as exc:
            # requests embeds the full URL, query string included, in its messages.
            return FetchOutcome.transient(HttpRequestError(redact_secrets(f"{type(exc).__name__}: {exc}")))

        status = response.status_code
        if status == NOT_FOUND_STATUS:
            return FetchOutcome.empty()
        if status >= 400:
            return FetchOutcome.transient(HttpRequestError(f"HTTP status: {status}"))

        try:
            payload = response.json()
        except ValueError as exc:
            return FetchOutcome.transient(HttpRequestError(redact_secrets(f"Invalid JSON payload from {url}: {exc}")))
        return FetchOutcome.found(payload)

    def _log_failed_attempt(self, url: str, params: dict[str, Any] | None) -> Callable[[RetryCallState], None]:
        def _after(retry_state: RetryCallState) -> None:
            outcome: FetchOutcome = retry_state.outcome.result()
            self.logger.error(
                "[%s/%s] Failed to fetch data from %s with params: %s: %s",
                retry_state.attempt_number,
                self.retry.max_attempts,
                url,
                describe_params(params),
                redact_secrets(str(outcome.cause)),
                extra={
                    "event": "FETCH_RETRY",
                    "status": "error",
                    "attempt": retry_state.attempt_number,
                    "error_code": getattr(outcome.cause, "error_code", type(outcome.cause).__name__),
                },
            )

        return _after

    def _log_before_sleep(self, retry_state: RetryCallState) -> None:
        self.logger.warning(
            "Retrying in %ss",
            f"{self.retry.delay_seconds:g}",
            extra={"event": "FETCH_WAIT", "attempt": retry_state.attempt_number},
        )

    def fetch_outcome(self, url: str, params: dict[str, Any] | None = None) -> FetchOutcome:
        """Run the attempt loop and return FOUND, EMPTY or FATAL."""
        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_fixed(self.retry.delay_seconds),
            retry=retry_if_result(lambda outcome: outcome.status is FetchStatus.TRANSIENT),
            after=self._log_failed_attempt(url, params),
            before_sleep=self._log_before_sleep,
            retry_error_callback=lambda state: FetchOutcome.fatal(state.outcome.result().cause),
            sleep=self.sleep,
        )
        return retrying(self._attempt, url, params)

    def fetch(self, url: str, params: dict[str, Any] | None = None) -> Any:
        outcome = self.fetch_outcome(url, params)
        if outcome.status is FetchStatus.FOUND:
            return outcome.payload
        if outcome.status is FetchStatus.EMPTY:
            self.logger.warning(
                "Failed to fetch data from %s with params: %s: not found",
                url,
                describe_params(params),
                extra={"event": "FETCH_NOT_FOUND", "status": "empty"},
            )
            return []
        raise RetriesExhaustedError(
            f"Maximum retries reached for {url} after {self.retry.max_attempts} attempts"
        ) from outcome.cause
