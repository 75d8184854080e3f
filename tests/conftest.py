"""
Global test configuration.
"""

from contextlib import suppress
import logging
import os

import pytest

from tests.helpers import RecordingSleep, ScriptedTransport, make_config


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_koncile_env(request, monkeypatch):
    """Ensure a clean KONCILE_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.upper().startswith("KONCILE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("INVOICE_EXTRACTOR_TELEMETRY", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def quiet_logger():
    """A logger that records nothing, injected where diagnostics are noise."""
    logger = logging.getLogger("tests.quiet")
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


@pytest.fixture
def transport_factory():
    """Build a ScriptedTransport; see tests.helpers for the script format."""
    return ScriptedTransport
