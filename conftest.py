"""Pytest fixtures shared by all reveal_engine tests."""

import pytest

from reveal_engine.config import RevealConfig
from reveal_engine.text.protocol import STRUCTURAL_BLOCK_TYPES
from reveal_engine.timers import ManualTimers

_ENV_VARS = (
    "REVEAL_MIN_RATE",
    "REVEAL_MAX_RATE",
    "REVEAL_TARGET_SECONDS",
    "REVEAL_FIXED_RATE",
    "REVEAL_WHITESPACE_DELAY_MS",
    "REVEAL_INITIAL_DELAY_MS",
    "REVEAL_BLOCK_TYPES",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep developer REVEAL_* settings out of tests and disable tracing."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("REVEAL_TRACE_LOG", "")


@pytest.fixture
def config():
    """10 tokens/s: 100 ms after a word, 50 ms after whitespace, 200 ms to start."""
    return RevealConfig(
        min_rate=10.0,
        max_rate=10.0,
        target_seconds=20.0,
        fixed_rate=10.0,
        whitespace_delay_ms=50.0,
        initial_delay_ms=200.0,
        block_types=STRUCTURAL_BLOCK_TYPES,
    )


@pytest.fixture
def timers():
    return ManualTimers()
