"""Injected telemetry for extraction runs.

Every component takes an optional telemetry context. Unless telemetry is
switched on and at least one reporter is supplied, ``TelemetryContext``
returns a shared context that ignores everything.

Scopes nest per asyncio task: a poll scope opened inside a run scope is
reported as ``extraction.run.extraction.poll``.
"""

from collections import defaultdict, deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from functools import partial
import logging
import os
import time
from typing import Any, Literal, Protocol, runtime_checkable

log = logging.getLogger(__name__)

TELEMETRY_ENV_VARS = ("INVOICE_EXTRACTOR_TELEMETRY", "DEBUG")

# Each asyncio task sees its own copy, so concurrent runs do not interleave
_active_scopes: ContextVar[tuple[str, ...]] = ContextVar(
    "invoice_extractor_scopes", default=()
)


def telemetry_enabled() -> bool:
    """True when any of ``TELEMETRY_ENV_VARS`` is set to ``"1"``."""
    return any(os.getenv(var) == "1" for var in TELEMETRY_ENV_VARS)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Sink for scope timings and point metrics."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


class _SilentTelemetry:
    __slots__ = ()

    def __call__(self, name: str, **metadata: Any) -> "_SilentTelemetry":  # noqa: ARG002
        return self

    def __enter__(self) -> "_SilentTelemetry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        pass


class _ReportingTelemetry:
    """Fans scope timings and metrics out to reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(self, name: str, **metadata: Any):
        return self._scope(name, metadata)

    @contextmanager
    def _scope(
        self, name: str, metadata: dict[str, Any]
    ) -> Iterator["_ReportingTelemetry"]:
        if not isinstance(name, str) or not name:
            raise ValueError("Scope name must be a non-empty string")

        outer = _active_scopes.get()
        token = _active_scopes.set((*outer, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _active_scopes.reset(token)
            self._emit("timing", (*outer, name), elapsed, outer, metadata)

    def _emit(
        self,
        kind: Literal["timing", "metric"],
        path: tuple[str, ...],
        value: Any,
        parent: tuple[str, ...],
        metadata: dict[str, Any],
    ) -> None:
        scope = ".".join(path)
        context = {
            "depth": len(parent),
            "parent_scope": ".".join(parent) or None,
            **metadata,
        }
        for reporter in self.reporters:
            record = (
                reporter.record_timing if kind == "timing" else reporter.record_metric
            )
            try:
                record(scope, value, **context)
            except Exception:
                log.exception(
                    "Telemetry reporter %s dropped %s for %s",
                    type(reporter).__name__,
                    kind,
                    scope,
                )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under ``name`` inside the current scope."""
        parent = _active_scopes.get()
        self._emit("metric", (*parent, name), value, parent, metadata)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        self.metric(name, value, metric_type="gauge", **metadata)


_SILENT = _SilentTelemetry()

type TelemetryContextProtocol = _ReportingTelemetry | _SilentTelemetry


def TelemetryContext(  # noqa: N802
    *reporters: TelemetryReporter, enabled: bool | None = None
) -> TelemetryContextProtocol:
    """Build the telemetry context handed to extraction components.

    Args:
        *reporters: Sinks receiving timings and metrics.
        enabled: Force telemetry on or off; defaults to ``telemetry_enabled()``.

    Returns:
        A reporting context, or the shared silent one when telemetry is off
        or there is nowhere to report to.
    """
    if reporters and (telemetry_enabled() if enabled is None else enabled):
        return _ReportingTelemetry(*reporters)
    return _SILENT


class SimpleReporter:
    """Keeps the most recent entries per scope in memory.

    ``timings`` and ``metrics`` map a scope path to ``(value, metadata)``
    pairs, newest last.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        new_bucket = partial(deque, maxlen=max_entries_per_scope)
        self.timings: defaultdict[str, deque[tuple[float, dict[str, Any]]]] = (
            defaultdict(new_bucket)
        )
        self.metrics: defaultdict[str, deque[tuple[Any, dict[str, Any]]]] = (
            defaultdict(new_bucket)
        )

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics[scope].append((value, metadata))

    def get_report(self) -> str:
        """Render a plain-text summary of everything collected."""
        lines = ["Extraction telemetry"]
        for scope in sorted(self.timings):
            durations = [d for d, _ in self.timings[scope]]
            lines.append(
                f"  time   {scope}: {len(durations)} x, "
                f"mean {sum(durations) / len(durations) * 1000:.1f}ms"
            )
        for scope in sorted(self.metrics):
            numbers = [v for v, _ in self.metrics[scope] if isinstance(v, int | float)]
            lines.append(
                f"  metric {scope}: {len(self.metrics[scope])} x, sum {sum(numbers):g}"
            )
        return "\n".join(lines)
