"""Service for executing API calls with automatic retries.

Implements exponential backoff with jitter for transient errors like rate
limits (429) or temporary server issues (5xx), honoring Retry-After hints.
Non-idempotent writes are never retried unless the caller supplied an
idempotency key.
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from cmscli.domain.events.api_events import DomainEvent, RetryScheduled, RetrySkipped
from cmscli.domain.interfaces.diagnostics import DiagnosticsSink, NullDiagnostics
from cmscli.domain.models.errors import CliError
from cmscli.domain.models.request import (
    ApiResponse,
    AttemptOutcome,
    ExecutionResult,
    RawResponse,
    RequestDescriptor,
    RetryPolicy,
)
from cmscli.infrastructure.resilience.error_classifier import (
    classify_exception,
    from_http_status,
    parse_body,
    timeout_error,
    with_metadata,
)
from cmscli.infrastructure.resilience.retry_policy import (
    compute_retry_delay,
    parse_retry_after,
    resolve_retry_policy,
    sanitize_url_for_log,
)

logger = logging.getLogger(__name__)

Sender = Callable[[RequestDescriptor], Awaitable[RawResponse]]


class RequestExecutor:
    """Wraps one logical request with timeout, retry policy and backoff."""

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """Initializes the RequestExecutor.

        Args:
            diagnostics: Sink for verbose retry lines. Defaults to a no-op sink.
            sleep: Coroutine used for backoff waits, in seconds.
            rng: Source of jitter in [0, 1).
            now: Clock used to resolve HTTP-date Retry-After values.
        """
        self.diagnostics = diagnostics or NullDiagnostics()
        self._sleep = sleep
        self._rng = rng
        self._now = now

    async def execute(self, descriptor: RequestDescriptor, sender: Sender) -> ExecutionResult:
        """Runs the request until it succeeds, fails for good, or the budget is spent.

        Args:
            descriptor: The immutable request.
            sender: Coroutine performing one physical attempt.

        Returns:
            An ExecutionResult holding either the response or the final,
            non-retryable (or exhausted) error with retry diagnostics.
        """
        policy = resolve_retry_policy(descriptor.method, descriptor.headers)
        max_attempts = descriptor.retry + 1 if policy.allowed else 1
        safe_url = sanitize_url_for_log(descriptor.url)

        attempt = 1
        while True:
            retry_after_ms: Optional[int] = None
            start_time = time.perf_counter()
            outcome = await self._attempt(descriptor, sender)
            latency_ms = (time.perf_counter() - start_time) * 1000

            if isinstance(outcome, ApiResponse):
                logger.debug(
                    f"{descriptor.method} {safe_url} succeeded on attempt {attempt}/{max_attempts} "
                    f"in {latency_ms:.0f}ms (request id: {outcome.request_id})"
                )
                return ExecutionResult(response=outcome)

            error = outcome
            if isinstance(error.details, dict):
                retry_after_ms = error.details.get("retryAfterMs")

            if error.retryable and attempt < max_attempts:
                delay_ms = compute_retry_delay(attempt, retry_after_ms, descriptor.retry_max_delay_ms, self._rng)
                logger.warning(
                    f"Retryable {error.code.value} calling {descriptor.method} {safe_url} on attempt "
                    f"{attempt}/{max_attempts}. Waiting {delay_ms}ms..."
                )
                self._dispatch(descriptor, RetryScheduled(error.code.value, attempt, max_attempts, delay_ms))
                await self._sleep(delay_ms / 1000)
                attempt += 1
                continue

            if error.retryable and not policy.allowed and descriptor.retry > 0:
                logger.info(f"Retry skipped for non-idempotent {descriptor.method} {safe_url}")
                self._dispatch(descriptor, RetrySkipped(descriptor.method, safe_url))

            logger.debug(f"{descriptor.method} {safe_url} failed definitively: {error.code.value} {error.message}")
            return ExecutionResult(error=self._with_retry_diagnostics(error, attempt, max_attempts, policy))

    async def _attempt(self, descriptor: RequestDescriptor, sender: Sender) -> AttemptOutcome:
        """One physical attempt, converted to a success or a classified error. Never raises."""
        try:
            response = await asyncio.wait_for(sender(descriptor), timeout=descriptor.timeout_ms / 1000)
        except asyncio.TimeoutError:
            return timeout_error(descriptor.timeout_ms)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return classify_exception(e)

        request_id = response.header("x-request-id")
        if response.ok:
            data = parse_body(response.text)
            return ApiResponse(data=data if data is not None else {}, request_id=request_id, status=response.status)

        retry_after_ms = parse_retry_after(response.header("retry-after"), self._now)
        details = with_metadata(
            parse_body(response.text),
            {"status": response.status, "requestId": request_id, "retryAfterMs": retry_after_ms},
        )
        return from_http_status(response.status, f"API request failed with status {response.status}", details)

    def _dispatch(self, descriptor: RequestDescriptor, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if descriptor.verbose:
            self.diagnostics.emit(event.describe())

    @staticmethod
    def _with_retry_diagnostics(error: CliError, attempt: int, max_attempts: int, policy: RetryPolicy) -> CliError:
        retry = {
            "attempts": attempt,
            "retriesUsed": max(0, attempt - 1),
            "maxAttempts": max_attempts,
            "policy": policy.to_dict(),
        }
        return error.with_details(with_metadata(error.details, {"retry": retry}))
