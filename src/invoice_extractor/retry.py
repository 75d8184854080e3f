"""Bounded exponential backoff for async operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from invoice_extractor import constants
from invoice_extractor.telemetry import TelemetryContext, TelemetryContextProtocol

log = logging.getLogger(__name__)

type SleepFunc = Callable[[float], Awaitable[object]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay after the ``attempt``-th failure (1-based), without jitter."""
    return base_delay * (2 ** (attempt - 1))


async def with_retry[T](
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = constants.MAX_RETRIES,
    base_delay: float = constants.RETRY_BASE_DELAY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: SleepFunc = asyncio.sleep,
    logger: logging.Logger | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> T:
    """Run ``operation`` until it succeeds or the attempt budget runs out.

    After the n-th failed attempt the policy sleeps ``base_delay * 2**(n-1)``
    seconds. The last failure is re-raised unchanged so callers can classify
    it. Exceptions outside ``retry_on`` propagate immediately.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts including the first one.
        base_delay: Seconds to wait after the first failure.
        retry_on: Exception types considered transient.
        sleep: Awaitable sleep, injectable for tests.
        logger: Destination for retry warnings.
        telemetry: Context receiving a ``retry.attempt`` counter per retry.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if base_delay < 0:
        raise ValueError("base_delay must be >= 0")

    active_log = logger or log
    tele = telemetry or TelemetryContext()

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt == max_attempts:
                active_log.error(
                    "Operation failed after %d attempts: %s", max_attempts, e
                )
                raise
            delay = backoff_delay(attempt, base_delay)
            active_log.warning(
                "Attempt %d failed, retrying in %.0fms: %s", attempt, delay * 1000, e
            )
            tele.count("retry.attempt", attempt=attempt, delay=delay)
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Retry loop exited without a result")
