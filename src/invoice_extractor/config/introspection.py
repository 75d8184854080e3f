"""Configuration introspection utilities for debugging and validation.

Usage:
    python -m invoice_extractor.config
    python -m invoice_extractor.config --check
    python -m invoice_extractor.config --json
"""

import argparse
import json
import sys
from typing import Any

from invoice_extractor.exceptions import ConfigurationError

from .api import resolve_config
from .types import ResolvedConfig

# ruff: noqa: T201


def check_config_validation(
    *, programmatic_overrides: dict[str, Any] | None = None
) -> bool:
    """Return True when the configuration resolves and an API key is set."""
    try:
        resolved = resolve_config(programmatic=programmatic_overrides)
    except ConfigurationError:
        return False
    return bool(resolved.api_key)


def get_config_info(
    *, programmatic_overrides: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Get structured configuration information for programmatic use."""
    try:
        resolved = resolve_config(programmatic=programmatic_overrides)
    except ConfigurationError as e:
        return {
            "status": "invalid",
            "error": str(e),
            "config": None,
            "sources": {},
            "warnings": [],
        }

    return {
        "status": "valid",
        "config": {
            "api_url": resolved.api_url,
            "templates": dict(resolved.templates),
            "upload_timeout": resolved.upload_timeout,
            "request_timeout": resolved.request_timeout,
            "probe_timeout": resolved.probe_timeout,
            "max_retries": resolved.max_retries,
            "retry_base_delay": resolved.retry_base_delay,
            "poll_interval": resolved.poll_interval,
            "max_poll_attempts": resolved.max_poll_attempts,
            "fallback_confidence": resolved.fallback_confidence,
            "has_api_key": resolved.api_key is not None,
        },
        "sources": dict(resolved.origin),
        "warnings": get_config_warnings(resolved),
    }


def get_config_warnings(resolved: ResolvedConfig) -> list[str]:
    """Non-fatal issues worth surfacing to an operator."""
    warnings = []
    if not resolved.api_key:
        warnings.append("No API key configured - set KONCILE_API_KEY")
    if not resolved.api_url.startswith("https://"):
        warnings.append("Extraction service URL is not HTTPS")
    budget = resolved.poll_interval * resolved.max_poll_attempts
    if budget < 10:
        warnings.append(
            f"Poll budget is only {budget:.1f}s - long documents may time out"
        )
    return warnings


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for configuration introspection."""
    parser = argparse.ArgumentParser(
        description="Inspect invoice-extractor configuration",
        prog="python -m invoice_extractor.config",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Just check if configuration is usable (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    if args.check:
        return 0 if check_config_validation() else 1

    if args.json:
        print(json.dumps(get_config_info(), indent=2))
        return 0

    try:
        resolved = resolve_config()
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1

    print("=== Effective Configuration ===")
    print(resolved.audit())
    warnings = get_config_warnings(resolved)
    if warnings:
        print("\n=== Warnings ===")
        for warning in warnings:
            print(f"  - {warning}")
    return 0
