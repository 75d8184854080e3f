"""Public API for the configuration system."""

import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError

from invoice_extractor.exceptions import ConfigurationError

from .schema import ExtractorSettings
from .types import FIELD_ORDER, ConfigOrigin, FrozenConfig, ResolvedConfig

ENV_PREFIX = "KONCILE_"


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    use_env_file: str | Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment (.env file included) > Defaults.

    Args:
        programmatic: Dictionary of programmatic overrides (highest precedence).
            Only known configuration fields are used.
        use_env_file: Optional path to a .env file read alongside the
            process environment. Process variables win over file entries.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ConfigurationError: If a value fails validation or the .env file
            does not exist.

    Example:
        config = resolve_config({"api_key": "k", "poll_interval": 0.5})
        frozen = config.to_frozen()
    """
    overrides = {
        key: value
        for key, value in (programmatic or {}).items()
        if key in ExtractorSettings.model_fields
    }

    env_file_values: dict[str, Any] = {}
    if use_env_file is not None:
        env_path = Path(use_env_file)
        if not env_path.exists():
            raise ConfigurationError(f"Environment file not found: {env_path}")
        env_file_values = {
            k.upper(): v for k, v in dotenv_values(env_path).items() if v is not None
        }

    try:
        settings = ExtractorSettings(_env_file=use_env_file, **overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    origin: dict[str, ConfigOrigin] = {}
    for name in FIELD_ORDER:
        env_name = f"{ENV_PREFIX}{name.upper()}"
        if name in overrides:
            origin[name] = "programmatic"
        elif env_name in _upper_environ() or env_name in env_file_values:
            origin[name] = "env"
        else:
            origin[name] = "default"

    values = settings.to_dict()
    return ResolvedConfig(**{name: values[name] for name in FIELD_ORDER}, origin=origin)


def load_frozen_config(
    programmatic: dict[str, Any] | None = None,
    *,
    use_env_file: str | Path | None = None,
) -> FrozenConfig:
    """Shortcut for ``resolve_config(...).to_frozen()``."""
    return resolve_config(programmatic, use_env_file=use_env_file).to_frozen()


def check_environment() -> dict[str, str]:
    """Return the ``KONCILE_*`` environment variables with secrets redacted."""
    summary = {}
    for key, value in sorted(os.environ.items()):
        if key.upper().startswith(ENV_PREFIX):
            summary[key] = "<redacted>" if "API_KEY" in key.upper() else value
    return summary


def _upper_environ() -> set[str]:
    return {key.upper() for key in os.environ}
