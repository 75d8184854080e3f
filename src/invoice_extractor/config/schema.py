"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from the environment and programmatic overrides into the correct types
with proper defaults.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from invoice_extractor import constants


class ExtractorSettings(BaseSettings):
    """Pydantic settings schema for the extraction service.

    Integrates with environment variables using the ``KONCILE_`` prefix.
    ``KONCILE_TEMPLATES`` is read as a JSON object mapping categories to
    template identifiers.
    """

    model_config = SettingsConfigDict(
        env_prefix="KONCILE_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Service ---

    api_key: str | None = Field(
        default=None,
        description="Bearer token for the extraction service",
    )

    api_url: str = Field(
        default=constants.DEFAULT_API_URL,
        description="Base address of the extraction service",
        min_length=1,
    )

    templates: dict[str, str] = Field(
        default_factory=lambda: dict(constants.DEFAULT_TEMPLATES),
        description="Invoice category to template identifier",
    )

    # --- Timeouts ---

    upload_timeout: float = Field(default=constants.UPLOAD_TIMEOUT, gt=0)
    request_timeout: float = Field(default=constants.REQUEST_TIMEOUT, gt=0)
    probe_timeout: float = Field(default=constants.PROBE_TIMEOUT, gt=0)

    # --- Retry and polling ---

    max_retries: int = Field(default=constants.MAX_RETRIES, ge=1)
    retry_base_delay: float = Field(default=constants.RETRY_BASE_DELAY, ge=0)
    poll_interval: float = Field(default=constants.POLL_INTERVAL, ge=0)
    max_poll_attempts: int = Field(default=constants.MAX_POLL_ATTEMPTS, ge=1)

    # --- Normalization ---

    fallback_confidence: float = Field(
        default=constants.DEFAULT_CONFIDENCE, ge=0.0, le=1.0
    )

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash, so drop the trailing one."""
        return v.rstrip("/")

    @field_validator("templates")
    @classmethod
    def normalize_templates(cls, v: dict[str, str]) -> dict[str, str]:
        """Lower-case category keys and reject empty template identifiers."""
        normalized: dict[str, str] = {}
        for category, template_id in v.items():
            template_id = str(template_id).strip()
            if not template_id:
                raise ValueError(f"Template for category {category!r} is empty")
            normalized[category.strip().lower()] = template_id
        return normalized

    def to_dict(self) -> dict[str, Any]:
        """Plain field values, used to build the resolved config and its origins."""
        return self.model_dump()
