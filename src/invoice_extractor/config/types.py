"""Core configuration data types.

Configuration follows a resolve-once, freeze-then-flow pattern: values are
merged and validated once at startup, then handed around as an immutable
``FrozenConfig``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Literal, NamedTuple

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER = (
    "api_key",
    "api_url",
    "templates",
    "upload_timeout",
    "request_timeout",
    "probe_timeout",
    "max_retries",
    "retry_base_delay",
    "poll_interval",
    "max_poll_attempts",
    "fallback_confidence",
)


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    Carries an ``origin`` map recording where each value came from.
    """

    api_key: str | None
    api_url: str
    templates: Mapping[str, str]
    upload_timeout: float
    request_timeout: float
    probe_timeout: float
    max_retries: int
    retry_base_delay: float
    poll_interval: float
    max_poll_attempts: int
    fallback_confidence: float

    origin: SourceMap

    def __repr__(self) -> str:
        """Repr with redacted API key for safe debugging."""
        shown = ", ".join(
            f"{name}={_display(name, getattr(self, name))!r}" for name in FIELD_ORDER
        )
        return f"ResolvedConfig({shown}, origin={dict(self.origin)!r})"

    __str__ = __repr__

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used at runtime."""
        return FrozenConfig(**{name: getattr(self, name) for name in FIELD_ORDER})

    def audit(self) -> str:
        """Human-readable report of each field's origin, API key redacted."""
        lines = []
        for name in FIELD_ORDER:
            origin = self.origin.get(name, "default")
            value = getattr(self, name)
            if name == "api_key":
                display = "None" if value is None else "<redacted>"
            elif origin == "env":
                display = f"KONCILE_{name.upper()}={_display(name, value)}"
            else:
                display = str(_display(name, value))
            lines.append(f"{name}: {origin}:{display}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable, process-wide configuration.

    Shared read-only between concurrent extractions.
    """

    api_key: str | None
    api_url: str
    templates: Mapping[str, str] = field(default_factory=dict)
    upload_timeout: float = 300.0
    request_timeout: float = 120.0
    probe_timeout: float = 10.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    poll_interval: float = 2.0
    max_poll_attempts: int = 30
    fallback_confidence: float = 0.9

    def __post_init__(self) -> None:
        if not isinstance(self.templates, MappingProxyType):
            object.__setattr__(self, "templates", MappingProxyType(dict(self.templates)))

    def __repr__(self) -> str:
        """Representation with redacted API key for safe debugging."""
        shown = ", ".join(
            f"{f.name}={_display(f.name, getattr(self, f.name))!r}"
            for f in fields(self)
        )
        return f"FrozenConfig({shown})"

    __str__ = __repr__


def _display(name: str, value: object) -> object:
    if name == "api_key":
        return "[REDACTED]" if value else None
    if isinstance(value, Mapping):
        return dict(value)
    return value
