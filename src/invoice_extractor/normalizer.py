"""Normalize the service's per-field payloads into ``ExtractedField`` values.

Raw fields arrive in several shapes: composite objects whose value and
confidence live under one of a few alias keys, or bare primitives. The alias
lookups are expressed as ordered rule tables rather than ad-hoc checks.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
import math
from typing import Any, NamedTuple

from invoice_extractor import constants
from invoice_extractor.core.types import BoundingBox, ExtractedField

log = logging.getLogger(__name__)


class AliasRule(NamedTuple):
    """Keys tried in order; the first present, non-None one wins."""

    name: str
    keys: tuple[str, ...]

    def pick(self, raw: Mapping[str, Any]) -> Any | None:
        for key in self.keys:
            value = raw.get(key)
            if value is not None:
                return value
        return None


VALUE_RULE = AliasRule("value", ("value", "text", "content"))
CONFIDENCE_RULE = AliasRule("confidence", ("confidence_score", "confidence"))
POSITION_RULE = AliasRule("position", ("position",))

_BOX_KEYS = ("x", "y", "width", "height")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _confidence(raw: Any, fallback: float) -> float:
    if raw is None or isinstance(raw, bool):
        return fallback
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        log.debug("Ignoring non-numeric confidence %r", raw)
        return fallback
    if math.isnan(value):
        return fallback
    return min(max(value, 0.0), 1.0)


def _position(raw: Any) -> BoundingBox | None:
    if isinstance(raw, BoundingBox):
        return raw
    if not isinstance(raw, Mapping) or not all(k in raw for k in _BOX_KEYS):
        return None
    try:
        return BoundingBox(*(float(raw[k]) for k in _BOX_KEYS))
    except (TypeError, ValueError, OverflowError):
        log.debug("Ignoring malformed position %r", raw)
        return None


def normalize_field(
    raw: Any, fallback_confidence: float = constants.DEFAULT_CONFIDENCE
) -> ExtractedField:
    """Normalize a single raw field payload."""
    if isinstance(raw, ExtractedField):
        raw = {
            "value": raw.value,
            "confidence": raw.confidence,
            "position": raw.position,
        }
    if isinstance(raw, Mapping):
        return ExtractedField(
            value=_stringify(VALUE_RULE.pick(raw)),
            confidence=_confidence(CONFIDENCE_RULE.pick(raw), fallback_confidence),
            position=_position(POSITION_RULE.pick(raw)),
        )
    return ExtractedField(value=_stringify(raw), confidence=fallback_confidence)


def normalize_fields(
    raw_fields: Mapping[str, Any] | Iterable[tuple[str, Any]],
    fallback_confidence: float = constants.DEFAULT_CONFIDENCE,
) -> dict[str, ExtractedField]:
    """Normalize every entry of ``raw_fields``.

    Field names are kept verbatim. When given an iterable of pairs that
    repeats a name, the last occurrence wins.

    Args:
        raw_fields: Field name to raw payload, or ``(name, payload)`` pairs.
        fallback_confidence: Confidence used when the payload has none.

    Returns:
        Field name to ``ExtractedField``; normalizing the result again is a
        no-op.
    """
    items = raw_fields.items() if isinstance(raw_fields, Mapping) else raw_fields
    normalized = {
        str(name): normalize_field(raw, fallback_confidence) for name, raw in items
    }
    log.info("Transformed %d fields from extraction response", len(normalized))
    return normalized


def summarize_confidence(
    fields: Mapping[str, ExtractedField],
    fallback_confidence: float = constants.DEFAULT_CONFIDENCE,
) -> float:
    """Average confidence rounded to two decimals, or the fallback if empty."""
    if not fields:
        return fallback_confidence
    scores = [f.confidence for f in fields.values()]
    return round(sum(scores) / len(scores), 2)
