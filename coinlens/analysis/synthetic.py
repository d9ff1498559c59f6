"""Fallback price-history synthesizer.

When no usable history exists for a coin, a plausible daily path is walked
backwards from the current price so the scorer always has input.  Every
point is flagged ``synthetic=True``; indicators computed on it are
approximate and should be presented as low confidence.
"""

from __future__ import annotations

import time
from typing import List, Optional

import numpy as np

from coinlens.analysis.models import CurrentSnapshot, PricePoint
from coinlens.utils.logger import setup_logger

logger = setup_logger("synthetic")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DAY_MS = 24 * 60 * 60 * 1000
_MIN_DAILY_VOL = 0.02       # floor on per-step volatility
_MAX_TREND = 0.03           # cap on per-step drift
_PRICE_FLOOR = 0.1          # synthesized prices stay within [0.1x, 3.0x] current
_PRICE_CAP = 3.0
_RANGE_PCT = 0.03           # high/low spread around each close


def synthesize_history(
    current: CurrentSnapshot,
    days: int,
    seed: Optional[int] = None,
    now_ms: Optional[int] = None,
) -> List[PricePoint]:
    """Generate ``days + 1`` daily points ending exactly at the current price.

    Walking back from today, each step removes a drift in the direction of
    the 24h change and adds uniform noise scaled by the 24h move.  The path
    is clamped to ``[0.1, 3.0] x current.price``.

    Args:
        current: Snapshot supplying price, 24h change and 24h volume.
        days: Number of days of history before today.
        seed: Seed for ``numpy.random.default_rng``; ``None`` is random.
        now_ms: Timestamp of the last point (defaults to now).

    Returns:
        Chronological PricePoints, all flagged synthetic.

    Raises:
        ValueError: if ``days`` is negative or the price is not positive.
    """
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")
    if not current.price > 0:
        raise ValueError(f"current price must be positive, got {current.price!r}")

    rng = np.random.default_rng(seed)
    now_ms = int(time.time() * 1000) if now_ms is None else int(now_ms)

    change = current.change_24h / 100
    direction = float(np.sign(change))
    trend_strength = min(abs(change), _MAX_TREND)
    daily_vol = max(abs(change), _MIN_DAILY_VOL)
    floor, cap = current.price * _PRICE_FLOOR, current.price * _PRICE_CAP

    n = days + 1
    prices = np.empty(n, dtype=float)
    prices[-1] = current.price
    price = current.price
    for i in range(n - 2, -1, -1):
        trend_component = direction * trend_strength * rng.uniform(0, 0.5)
        random_component = (rng.random() - 0.5) * daily_vol * 2
        price = min(max(price * (1 - trend_component + random_component), floor), cap)
        prices[i] = price

    highs = prices * (1 + rng.uniform(0, _RANGE_PCT, n))
    lows = prices * (1 - rng.uniform(0, _RANGE_PCT, n))
    volumes = current.volume_24h * (0.5 + rng.random(n))

    logger.debug(
        "Synthesized %d points (change %.2f%%, vol %.3f)", n, current.change_24h, daily_vol,
    )
    return [
        PricePoint(
            timestamp=now_ms - (n - 1 - i) * DAY_MS,
            price=float(prices[i]),
            high=float(highs[i]),
            low=float(lows[i]),
            volume=float(volumes[i]),
            synthetic=True,
        )
        for i in range(n)
    ]
