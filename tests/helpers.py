"""Shared fakes for exercising the extraction workflow without a network."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from invoice_extractor import constants
from invoice_extractor.config import FrozenConfig
from invoice_extractor.core.types import TaskSnapshot

type SubmitOutcome = Sequence[str] | BaseException
type StatusOutcome = Mapping[str, Any] | TaskSnapshot | BaseException


def make_config(**overrides: Any) -> FrozenConfig:
    """A fully-populated config with zero delays unless overridden."""
    values: dict[str, Any] = {
        "api_key": "test-key",
        "api_url": "https://koncile.test",
        "templates": dict(constants.DEFAULT_TEMPLATES),
        "retry_base_delay": 0.0,
        "poll_interval": 0.0,
    }
    values.update(overrides)
    return FrozenConfig(**values)


def status(
    value: str,
    *,
    general: Mapping[str, Any] | None = None,
    lines: Mapping[str, Any] | None = None,
    message: str | None = None,
) -> dict[str, Any]:
    """Build a task-results body the way the service shapes it."""
    body: dict[str, Any] = {"status": value}
    if message is not None:
        body["status_message"] = message
    if general is not None:
        body["General_fields"] = dict(general)
    if lines is not None:
        body["Line_fields"] = dict(lines)
    return body


class ScriptedTransport:
    """Transport that replays scripted outcomes and records every call.

    Each outcome list is consumed in order; once exhausted, the last outcome
    repeats. Exceptions in a script are raised instead of returned.
    """

    def __init__(
        self,
        *,
        submissions: Sequence[SubmitOutcome] = (("task-1",),),
        statuses: Sequence[StatusOutcome] = (),
        probe_result: bool | BaseException = True,
    ):
        self._submissions = list(submissions)
        self._statuses = list(statuses)
        self._probe_result = probe_result
        self.submit_calls: list[tuple[bytes, str, str | None]] = []
        self.status_calls: list[str] = []
        self.probe_calls = 0

    @property
    def network_calls(self) -> int:
        return len(self.submit_calls) + len(self.status_calls) + self.probe_calls

    @staticmethod
    def _next[T](script: list[T]) -> T:
        if not script:
            raise AssertionError("ScriptedTransport ran out of scripted outcomes")
        return script.pop(0) if len(script) > 1 else script[0]

    async def submit_document(
        self, content: bytes, file_name: str, template_id: str | None = None
    ) -> tuple[str, ...]:
        self.submit_calls.append((content, file_name, template_id))
        outcome = self._next(self._submissions)
        if isinstance(outcome, BaseException):
            raise outcome
        return tuple(outcome)

    async def get_task_status(self, handle: str) -> TaskSnapshot:
        self.status_calls.append(handle)
        outcome = self._next(self._statuses)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, TaskSnapshot):
            return outcome
        return TaskSnapshot.from_response(handle, outcome)

    async def probe(self) -> bool:
        self.probe_calls += 1
        if isinstance(self._probe_result, BaseException):
            raise self._probe_result
        return self._probe_result


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
