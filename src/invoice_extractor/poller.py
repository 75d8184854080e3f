"""Poll a service-side task until it reaches a terminal state.

State machine per handle::

    SUBMITTED -> IN_PROGRESS* -> DONE | DUPLICATE     (success)
                              -> FAILED               (TaskFailedError)
                              -> budget exhausted     (PollTimeoutError)

A ``TransportError`` during one poll is transient and retried with the same
fixed interval inside the same attempt budget. A FAILED status is
authoritative and is never retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from invoice_extractor import constants
from invoice_extractor.core.types import TaskHandle, TaskSnapshot, TaskStatus
from invoice_extractor.exceptions import (
    PollTimeoutError,
    TaskFailedError,
    TransportError,
)
from invoice_extractor.telemetry import TelemetryContext, TelemetryContextProtocol

if TYPE_CHECKING:
    from invoice_extractor.retry import SleepFunc
    from invoice_extractor.transport import ExtractionTransport

log = logging.getLogger(__name__)


class TaskPoller:
    """Sequentially polls one task at a time.

    Holds no per-task state, so a single instance may serve concurrent
    extractions; each ``poll_until_terminal`` call keeps its own counters.
    """

    def __init__(
        self,
        transport: ExtractionTransport,
        *,
        interval: float = constants.POLL_INTERVAL,
        max_attempts: int = constants.MAX_POLL_ATTEMPTS,
        sleep: SleepFunc = asyncio.sleep,
        logger: logging.Logger | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self._transport = transport
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._log = logger or log
        self._telemetry = telemetry or TelemetryContext()

    async def poll_until_terminal(self, handle: TaskHandle) -> TaskSnapshot:
        """Return the first successful terminal snapshot for ``handle``.

        Raises:
            TaskFailedError: The service reported FAILED.
            PollTimeoutError: ``max_attempts`` polls saw no terminal state.
            TransportError: The final allowed poll failed in transport.
        """
        self._log.info("Polling task status: %s", handle)

        with self._telemetry("extraction.poll", handle=handle) as tele:
            for attempt in range(1, self.max_attempts + 1):
                last_attempt = attempt == self.max_attempts
                try:
                    snapshot = await self._transport.get_task_status(handle)
                except TransportError as e:
                    if last_attempt:
                        raise
                    self._log.warning(
                        "Poll attempt %d for task %s failed, retrying: %s",
                        attempt,
                        handle,
                        e,
                    )
                    tele.count("poll.transport_error", attempt=attempt)
                    await self._sleep(self.interval)
                    continue

                if snapshot.status.is_success:
                    self._log.info(
                        "Task %s completed (%s) after %d status checks",
                        handle,
                        snapshot.status.value,
                        attempt,
                    )
                    tele.gauge("poll.attempts", attempt)
                    return snapshot

                if snapshot.status is TaskStatus.FAILED:
                    self._log.error(
                        "Task %s failed: %s", handle, snapshot.message or "no message"
                    )
                    raise TaskFailedError(handle, snapshot.message)

                if not last_attempt:
                    self._log.debug(
                        "Task %s still processing (%s), waiting %.1fs",
                        handle,
                        snapshot.raw_status or snapshot.status.value,
                        self.interval,
                    )
                    await self._sleep(self.interval)

        raise PollTimeoutError(handle, self.max_attempts)
