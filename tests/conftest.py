"""Shared pytest fixtures for the CoinLens test suite.

Series are built from fixed inputs or a seeded random walk so every test
is reproducible.  Nothing here touches the network.
"""

import numpy as np
import pytest

from coinlens.analysis.models import CurrentSnapshot, PricePoint

DAY_MS = 86_400_000
START_MS = 1_700_000_000_000


def build_series(prices, highs=None, lows=None, volumes=None, start_ms=START_MS):
    """PricePoints one day apart from parallel price/high/low/volume lists."""
    n = len(prices)
    highs = highs if highs is not None else [None] * n
    lows = lows if lows is not None else [None] * n
    volumes = volumes if volumes is not None else [0.0] * n
    return [
        PricePoint(
            timestamp=start_ms + i * DAY_MS,
            price=float(prices[i]),
            high=None if highs[i] is None else float(highs[i]),
            low=None if lows[i] is None else float(lows[i]),
            volume=float(volumes[i]),
        )
        for i in range(n)
    ]


# ---------------------------------------------------------------------------
# 1. Scenario series
# ---------------------------------------------------------------------------

@pytest.fixture
def flat_series():
    """30 daily closes at exactly $100 with constant volume."""
    return build_series([100.0] * 30, volumes=[1_000.0] * 30)


@pytest.fixture
def rising_series():
    """20 closes rising monotonically from $100 to $150."""
    return build_series(np.linspace(100.0, 150.0, 20), volumes=[1_000.0] * 20)


@pytest.fixture
def random_series():
    """60-bar seeded random walk with highs/lows around each close."""
    np.random.seed(42)
    n = 60
    close = 30_000.0 * np.exp(np.cumsum(np.random.normal(0.001, 0.03, n)))
    high = close * (1 + np.abs(np.random.normal(0.01, 0.005, n)))
    low = close * (1 - np.abs(np.random.normal(0.01, 0.005, n)))
    volume = np.random.uniform(1e9, 5e9, n)
    return build_series(close, high, low, volume)


# ---------------------------------------------------------------------------
# 2. Snapshots
# ---------------------------------------------------------------------------

@pytest.fixture
def flat_snapshot():
    return CurrentSnapshot(price=100.0, change_24h=0.0, market_cap=1e9, volume_24h=1_000.0)


@pytest.fixture
def rising_snapshot():
    return CurrentSnapshot(price=150.0, change_24h=5.0, market_cap=1e9, volume_24h=1_000.0)
