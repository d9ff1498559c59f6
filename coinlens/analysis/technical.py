"""Indicator façade: one call from a price series to a complete IndicatorSet.

``compute_indicators`` is the entry point the scoring strategies consume.
It validates the series once at the boundary and then hands plain numpy
arrays to the indicator and pattern functions, so malformed input fails
fast here and short input degrades quietly further down.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from coinlens.analysis import indicators as ta
from coinlens.analysis.models import (
    CurrentSnapshot,
    IndicatorSet,
    PatternMatch,
    PriceAction,
    PricePoint,
    Recommendation,
    SupportResistanceLevel,
    series_arrays,
    validate_series,
)
from coinlens.analysis.patterns import (
    analyze_market_structure,
    analyze_volume,
    classify_trend,
    cluster_levels,
    detect_patterns,
    detect_support_resistance,
    find_patterns,
)
from coinlens.analysis.scoring import get_scorer
from coinlens.utils.logger import setup_logger

logger = setup_logger("technical")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_VOLUME_MA_PERIOD = 20
_LEVEL_PERIOD = 20
_PRICE_ACTION_WINDOW = 365  # daily bars in the "52-week" range


def _price_action(prices: np.ndarray) -> PriceAction:
    window = prices[-_PRICE_ACTION_WINDOW:]
    high, low = float(window.max()), float(window.min())
    last = float(prices[-1])
    return PriceAction(
        high_52w=high,
        low_52w=low,
        distance_from_high=(high - last) / high * 100,
        distance_from_low=(last - low) / low * 100,
    )


def compute_indicators(series: Sequence[PricePoint], current: CurrentSnapshot) -> IndicatorSet:
    """Compute every indicator for one coin.

    An empty series is read as a single bar at the snapshot price, so all
    averages equal the current price and oscillators sit at their neutral
    defaults.  Short series degrade per indicator; nothing here raises
    except ``ValueError`` for malformed input (bad series or a
    non-positive snapshot price).

    Args:
        series: Chronological price history (not modified).
        current: Latest market snapshot.

    Returns:
        A frozen IndicatorSet.
    """
    validate_series(series)
    if not current.price > 0:
        raise ValueError(f"snapshot price must be positive, got {current.price!r}")
    n_input = len(series)
    if not series:
        logger.debug("Empty series, anchoring indicators on snapshot price %s", current.price)
        series = [PricePoint(timestamp=0, price=current.price, volume=current.volume_24h)]

    arrays = series_arrays(series)
    prices, highs = arrays["prices"], arrays["highs"]
    lows, volumes = arrays["lows"], arrays["volumes"]

    volume_ma = ta.sma(volumes, _VOLUME_MA_PERIOD)
    price_action = _price_action(prices)
    volume_ratio = float(volumes[-1]) / volume_ma if volume_ma > 0 else 1.0

    return IndicatorSet(
        current_price=current.price,
        price_change_24h=current.change_24h,
        volume_24h=current.volume_24h,
        sma7=ta.sma(prices, 7),
        sma14=ta.sma(prices, 14),
        sma21=ta.sma(prices, 21),
        sma30=ta.sma(prices, 30),
        sma50=ta.sma(prices, 50),
        ema12=ta.ema(prices, 12),
        ema26=ta.ema(prices, 26),
        rsi=ta.rsi(prices, 14),
        rsi_fast=ta.rsi(prices, 7),
        stochastic=ta.stochastic(highs, lows, prices, 14),
        williams_r=ta.williams_r(highs, lows, prices, 14),
        macd=ta.macd(prices),
        adx=ta.adx(highs, lows, prices, 14),
        bollinger=ta.bollinger(prices, 20, 2),
        atr=ta.atr(highs, lows, prices, 14),
        volatility=ta.volatility(prices, 14),
        volume_ma=volume_ma,
        volume_ratio=volume_ratio,
        support=ta.percentile_support(lows, _LEVEL_PERIOD),
        resistance=ta.percentile_resistance(highs, _LEVEL_PERIOD),
        trend=classify_trend(prices),
        trend_strength=ta.trend_strength(prices),
        market_structure=analyze_market_structure(highs, lows),
        patterns=find_patterns(prices, highs, lows),
        sr_levels=cluster_levels(prices),
        volume_analysis=analyze_volume(volumes, prices),
        fibonacci=ta.fibonacci_levels(price_action.high_52w, price_action.low_52w),
        price_action=price_action,
        data_points=n_input,
        synthetic=any(p.synthetic for p in series),
    )


# =====================================================================
# Object wrapper
# =====================================================================
class TechnicalAnalyzer:
    """Compute indicators and score them under a named strategy."""

    def __init__(self, strategy: str = "advanced", weights: Optional[Dict[str, float]] = None):
        self.scorer = get_scorer(strategy, weights)

    @property
    def strategy(self) -> str:
        return self.scorer.name

    def compute(self, series: Sequence[PricePoint], current: CurrentSnapshot) -> IndicatorSet:
        return compute_indicators(series, current)

    def recommend(self, indicators: IndicatorSet, current: CurrentSnapshot) -> Recommendation:
        return self.scorer.score(indicators, current)

    def patterns(self, series: Sequence[PricePoint]) -> List[PatternMatch]:
        return detect_patterns(series)

    def levels(
        self,
        series: Sequence[PricePoint],
        min_touches: int = 3,
        tolerance: float = 0.02,
    ) -> List[SupportResistanceLevel]:
        return detect_support_resistance(series, min_touches, tolerance)

    def analyze(self, series: Sequence[PricePoint], current: CurrentSnapshot) -> Dict[str, object]:
        """Indicators plus recommendation as plain data."""
        ind = self.compute(series, current)
        rec = self.recommend(ind, current)
        return {"indicators": ind.to_dict(), "recommendation": rec.to_dict()}
