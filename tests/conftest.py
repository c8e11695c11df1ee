"""Pytest configuration and shared fixtures."""

import os
import random

# Headless pygame for every test
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import numpy as np
import pytest

from mempoolradio.audio.engine import AudioConfig, AudioEngine
from mempoolradio.audio.output import OfflineContext
from mempoolradio.types import Transaction

# Lower sample rate keeps synthesis tests fast
TEST_SR = 22050


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def np_rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def make_tx():
    """
    Factory for transactions.

    Usage:
        tx = make_tx(value=250_000_000, fee_rate=5)
    """
    counter = iter(range(1_000_000))

    def _make(value: int = 50_000, fee_rate: float = 10.0, **kwargs) -> Transaction:
        return Transaction(id=kwargs.pop("id", f"tx{next(counter)}"), value=value, fee_rate=fee_rate, **kwargs)

    return _make


@pytest.fixture
def offline_engine(sample_rate) -> AudioEngine:
    """Seeded audio engine mixing into an OfflineContext (not started)."""
    return AudioEngine(
        AudioConfig(sample_rate=sample_rate),
        seed=7,
        context_factory=OfflineContext,
    )


@pytest.fixture
def started_engine(offline_engine) -> AudioEngine:
    offline_engine.start()
    return offline_engine
