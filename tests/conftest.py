"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from servercozy.core.config.loader import CONFIG_ENV_VAR
from servercozy.core.observability.logging_config import LOG_LEVEL_ENV_VAR


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the developer's own config and log level out of every test."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging() replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
