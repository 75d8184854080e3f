"""Configuration management for the invoice extractor.

Key components:
- ExtractorSettings: Pydantic schema read from ``KONCILE_*`` variables
- ResolvedConfig: Post-resolution configuration with origin metadata
- FrozenConfig: Immutable configuration shared by all extractions
"""

from .api import check_environment, load_frozen_config, resolve_config
from .schema import ExtractorSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [
    "ConfigOrigin",
    "ExtractorSettings",
    "FrozenConfig",
    "ResolvedConfig",
    "SourceMap",
    "check_environment",
    "load_frozen_config",
    "resolve_config",
]
