"""Core data types that cross the extraction boundary.

The request, task and result types here are immutable. Task state is owned by
the external service; the orchestrator only observes it through
``TaskSnapshot`` values produced by a transport.
"""

from __future__ import annotations

import dataclasses
import enum
from types import MappingProxyType
import typing

T = typing.TypeVar("T")

type TemplateId = str
type TaskHandle = str

# --- Validation helpers ---


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None."""
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Categories and task status ---


class InvoiceCategory(str, enum.Enum):
    """Utility invoice categories with a pre-registered template."""

    ELECTRICITY = "electricity"
    GAS = "gas"
    WATER = "water"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


class TaskStatus(str, enum.Enum):
    """Processing state of a service-side task."""

    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    DUPLICATE = "DUPLICATE"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, raw: object) -> TaskStatus:
        """Classify a wire status value.

        The service reports ``"IN PROGRESS"`` with a space; case, spaces and
        hyphens are normalized. Anything unrecognized is non-terminal.
        """
        text = str(raw or "").strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls(text)
        except ValueError:
            return cls.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self is not TaskStatus.IN_PROGRESS

    @property
    def is_success(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.DUPLICATE)


@dataclasses.dataclass(frozen=True, slots=True)
class TaskSnapshot:
    """One observation of a task's status."""

    handle: TaskHandle
    status: TaskStatus
    raw_status: str = ""
    message: str | None = None
    payload: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _freeze_mapping(self.payload) or {})

    @classmethod
    def from_response(
        cls, handle: TaskHandle, body: typing.Mapping[str, typing.Any]
    ) -> TaskSnapshot:
        raw_status = str(body.get("status") or "")
        message = body.get("status_message")
        return cls(
            handle=handle,
            status=TaskStatus.parse(raw_status),
            raw_status=raw_status,
            message=str(message) if message is not None else None,
            payload=body,
        )


# --- Request ---


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionRequest:
    """A document submitted for extraction."""

    content: bytes
    file_name: str
    category: InvoiceCategory | str

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.content, bytes | bytearray | memoryview),
            message="must be bytes-like",
            field_name="content",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.file_name, str),
            message="must be str",
            field_name="file_name",
            exc=TypeError,
        )
        object.__setattr__(self, "content", bytes(self.content))


# --- Extracted fields and the public result envelope ---


@dataclasses.dataclass(frozen=True, slots=True)
class BoundingBox:
    """Rectangle locating a field on the scanned page."""

    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> dict[str, float]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractedField:
    """A normalized field value with its recognition confidence."""

    value: str
    confidence: float
    position: BoundingBox | None = None

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.value, str),
            message="must be str",
            field_name="value",
            exc=TypeError,
        )
        _require(
            condition=0.0 <= self.confidence <= 1.0,
            message=f"must be within [0, 1], got {self.confidence!r}",
            field_name="confidence",
        )

    def to_dict(self) -> dict[str, typing.Any]:
        data: dict[str, typing.Any] = {
            "value": self.value,
            "confidence": self.confidence,
        }
        if self.position is not None:
            data["position"] = self.position.to_dict()
        return data


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionMetadata:
    """Aggregate statistics over the extracted fields."""

    confidence: float
    fields_extracted: int


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Outcome of one extraction call.

    This is the only object returned across the public boundary. Failures are
    represented with ``success=False`` and a human-readable ``error``.
    """

    success: bool
    processing_time_ms: int
    data: typing.Mapping[str, ExtractedField] | None = None
    error: str | None = None
    metadata: ExtractionMetadata | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _freeze_mapping(self.data))
        if self.success:
            _require(
                condition=self.data is not None and self.error is None,
                message="successful results carry data and no error",
                field_name="success",
            )
        else:
            _require(
                condition=bool(self.error),
                message="failed results carry an error message",
                field_name="error",
            )

    @classmethod
    def failure(cls, error: str, processing_time_ms: int) -> ExtractionResult:
        return cls(success=False, error=error, processing_time_ms=processing_time_ms)

    def to_dict(self) -> dict[str, typing.Any]:
        """Return a JSON-ready envelope."""
        envelope: dict[str, typing.Any] = {
            "success": self.success,
            "processing_time_ms": self.processing_time_ms,
        }
        if self.data is not None:
            envelope["data"] = {k: v.to_dict() for k, v in self.data.items()}
        if self.error is not None:
            envelope["error"] = self.error
        if self.metadata is not None:
            envelope["metadata"] = dataclasses.asdict(self.metadata)
        return envelope


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectionReport:
    """Result of a connectivity probe against the extraction service."""

    connected: bool
    api_key_configured: bool
    api_url: str
    response_time_ms: int
    error: str | None = None
