"""Service for executing HTTP calls with automatic retries.

Implements exponential backoff with jitter for transient statuses (429 and
the configured 5xx set), honours the server's Retry-After on 429, and runs
a single token-refresh cycle when a 401 arrives while a refresh token is held.
Transport failures are never retried here.
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional

import httpx

from formacli.domain.errors import NetworkError
from formacli.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    RateLimited,
    RetryScheduled,
    TokenRefreshAttempted,
)
from formacli.domain.models.common import RetryPolicy

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
EventListener = Callable[[DomainEvent], None]


def log_event(event: DomainEvent) -> None:
    """Default event listener."""
    logger.debug(f"EVENT: {event}")


class ApiRetryService:
    """Runs one logical request through the retry policy."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
        rand: Callable[[], float] = random.random,
        event_listener: EventListener = log_event,
    ):
        """Initializes the ApiRetryService.

        Args:
            policy: Retry bounds and retryable statuses.
            sleep: Awaitable sleep used for every backoff wait.
            rand: Source of jitter in [0, 1).
            event_listener: Receives the domain events emitted for each call.
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rand = rand
        self._emit = event_listener
        logger.debug(
            f"ApiRetryService initialized: max_retries={self.policy.max_retries}, "
            f"base_delay={self.policy.base_delay}s, max_delay={self.policy.max_delay}s, "
            f"statuses={sorted(self.policy.retry_statuses)}"
        )

    def compute_backoff(self, attempt: int) -> float:
        """Exponential delay for a zero-based attempt, capped, plus jitter."""
        delay = min(self.policy.base_delay * (2 ** attempt), self.policy.max_delay)
        return delay + self._rand() * self.policy.jitter

    @staticmethod
    def retry_after_seconds(response: httpx.Response) -> Optional[float]:
        """Parses the Retry-After header (delta-seconds or HTTP-date)."""
        value = response.headers.get("Retry-After")
        if not value:
            return None
        value = value.strip()
        try:
            return max(0.0, float(value))
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

    async def execute_with_retry(
        self,
        send: Callable[[], Awaitable[httpx.Response]],
        method: str = "GET",
        endpoint: str = "",
        refresh_credentials: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> httpx.Response:
        """Sends a request until it succeeds or the policy gives up.

        Args:
            send: Issues the HTTP call; builds fresh headers on every invocation.
            method: HTTP method, for logs and events.
            endpoint: Endpoint path, for logs and events.
            refresh_credentials: Called once on a 401; returns True when new
                credentials were stored and the request should be resent.

        Returns:
            The final response. Non-2xx responses are returned, not raised,
            so the caller can decode the error body.

        Raises:
            NetworkError: The transport failed; not retried.
        """
        attempt = 0
        refreshed = False
        sends = 0

        while True:
            sends += 1
            self._emit(ApiCallInitiated(method=method, endpoint=endpoint, attempt_number=sends))
            start_time = time.perf_counter()
            try:
                response = await send()
            except NetworkError as e:
                logger.error(f"{method} {endpoint} failed at transport level: {e}")
                self._emit(ApiCallFailed(method=method, endpoint=endpoint, error_type=type(e).__name__, error_message=str(e)))
                raise
            latency_ms = (time.perf_counter() - start_time) * 1000
            status = response.status_code

            if status == 401 and refresh_credentials is not None and not refreshed:
                refreshed = True
                logger.info(f"{method} {endpoint} returned 401, attempting token refresh")
                ok = await refresh_credentials()
                self._emit(TokenRefreshAttempted(endpoint=endpoint, succeeded=ok))
                if ok:
                    await response.aclose()
                    continue
                logger.warning(f"Token refresh failed; surfacing 401 for {method} {endpoint}")

            if self.policy.is_retryable(status) and attempt < self.policy.max_retries:
                if status == 429:
                    retry_after = self.retry_after_seconds(response)
                    delay = retry_after if retry_after is not None else self.compute_backoff(attempt)
                    logger.warning(f"Rate limited on {method} {endpoint}, waiting {delay:.2f}s before retry")
                    self._emit(RateLimited(endpoint=endpoint, wait_time_seconds=delay, retry_after_header=retry_after))
                else:
                    delay = self.compute_backoff(attempt)
                    logger.warning(
                        f"{method} {endpoint} returned {status} on attempt {attempt + 1}/{self.policy.max_retries + 1}, "
                        f"retrying in {delay:.2f}s"
                    )
                self._emit(RetryScheduled(endpoint=endpoint, status=status, attempt_number=attempt + 1, delay_seconds=delay))
                await response.aclose()
                await self._sleep(delay)
                attempt += 1
                continue

            if response.is_success:
                self._emit(ApiCallSucceeded(method=method, endpoint=endpoint, status=status, latency_ms=latency_ms))
            else:
                if self.policy.is_retryable(status):
                    logger.error(f"Max retries ({self.policy.max_retries}) reached for {method} {endpoint}. Last status: {status}")
                self._emit(ApiCallFailed(method=method, endpoint=endpoint, error_type="HttpError", error_message=f"HTTP {status}", status=status))
            return response
