"""Composite scoring: turn an IndicatorSet into a Recommendation.

Two independent strategies share the ``BaseScorer`` interface:

* ``SimpleScorer`` ("simple") adds or subtracts a few points per rule and
  maps the signed total (roughly -10..+10) onto an action.
* ``AdvancedScorer`` ("advanced") scores eight categories on a 0-100 scale
  (50 = neutral), blends them with fixed weights and derives stop-loss and
  take-profit levels from ATR and support/resistance.

They compute genuinely different formulas; neither is a refinement of the
other.  Both are deterministic and keep no state between calls.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from coinlens.analysis.models import (
    ActionType,
    ConfidenceLevel,
    CurrentSnapshot,
    IndicatorSet,
    KeyLevels,
    Recommendation,
    Signal,
)
from coinlens.analysis.signals import build_detailed_analysis
from coinlens.utils.logger import setup_logger

logger = setup_logger("scoring")

# ---------------------------------------------------------------------------
# Default category weights -- sum to 1.0
# ---------------------------------------------------------------------------
_BASE_WEIGHTS: Dict[str, float] = {
    "trend": 0.25,
    "momentum": 0.20,
    "moving_averages": 0.15,
    "macd": 0.10,
    "bollinger": 0.08,
    "volume": 0.07,
    "patterns": 0.10,
    "market_structure": 0.05,
}

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_NEUTRAL_SCORE: float = 50.0
_WEIGHT_TOLERANCE = 1e-9
_MAX_SIGNALS = 8
_MAX_WARNINGS = 4
_TREND_BASE: Dict[str, float] = {
    "STRONG_BULLISH": 90.0,
    "BULLISH": 75.0,
    "SIDEWAYS": 50.0,
    "BEARISH": 25.0,
    "STRONG_BEARISH": 10.0,
    "UNKNOWN": 50.0,
}
# STRONG_* trends score one point beyond BULLISH/BEARISH so a clean run on
# a short series (price above both MAs despite RSI 100) still reaches +3.
_SIMPLE_TREND_POINTS: Dict[str, int] = {
    "STRONG_BULLISH": 3,
    "BULLISH": 2,
    "BEARISH": -2,
    "STRONG_BEARISH": -3,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """Check that category weights cover every category and sum to 1.

    Raises:
        ValueError: on unknown/missing categories, negative weights, or a
            sum off 1.0 by more than 1e-9.
    """
    unknown = set(weights) - set(_BASE_WEIGHTS)
    missing = set(_BASE_WEIGHTS) - set(weights)
    if unknown or missing:
        raise ValueError(
            f"weights must cover exactly {sorted(_BASE_WEIGHTS)}; "
            f"unknown={sorted(unknown)} missing={sorted(missing)}"
        )
    if any(w < 0 for w in weights.values()):
        raise ValueError("weights must be non-negative")
    total = sum(weights.values())
    if abs(total - 1.0) > _WEIGHT_TOLERANCE:
        raise ValueError(f"weights must sum to 1.0, got {total!r}")
    return {k: float(weights[k]) for k in _BASE_WEIGHTS}


# =====================================================================
# Strategy interface
# =====================================================================
class BaseScorer(ABC):
    """Interface every scoring strategy implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name recorded on each Recommendation."""
        ...

    @abstractmethod
    def score(self, indicators: IndicatorSet, current: CurrentSnapshot) -> Recommendation:
        ...


# =====================================================================
# Variant A -- simple signed score
# =====================================================================
class SimpleScorer(BaseScorer):
    """Signed point tally over moving averages, RSI, trend and 24h change."""

    name = "simple"

    def score(self, indicators: IndicatorSet, current: CurrentSnapshot) -> Recommendation:
        price = current.price
        points: Dict[str, int] = {}
        signals: List[Signal] = []

        def add(factor: str, delta: int, reason: str) -> None:
            points[factor] = points.get(factor, 0) + delta
            if delta:
                kind = "BUY" if delta > 0 else "SELL"
                signals.append(Signal(kind, factor, min(abs(delta) / 3, 1.0), reason))

        for label, ma in (("sma7", indicators.sma7), ("sma14", indicators.sma14)):
            if price > ma:
                add(f"price_vs_{label}", 1, f"Price above {label.upper()}")
            elif price < ma:
                add(f"price_vs_{label}", -1, f"Price below {label.upper()}")
            else:
                add(f"price_vs_{label}", 0, "")

        if indicators.rsi < 30:
            add("rsi", 2, f"RSI oversold ({indicators.rsi:.0f})")
        elif indicators.rsi > 70:
            add("rsi", -2, f"RSI overbought ({indicators.rsi:.0f})")
        else:
            add("rsi", 0, "")

        trend_points = _SIMPLE_TREND_POINTS.get(indicators.trend, 0)
        add("trend", trend_points, f"{indicators.trend.replace('_', ' ').capitalize()} trend")

        if current.change_24h > 5:
            add("change_24h", -1, f"Up {current.change_24h:.1f}% in 24h - possible overextension")
        elif current.change_24h < -5:
            add("change_24h", 1, f"Down {abs(current.change_24h):.1f}% in 24h - possible opportunity")
        else:
            add("change_24h", 0, "")

        total = sum(points.values())
        action, confidence = self._action(total)
        breakdown = dict(points)
        breakdown["total"] = total
        return Recommendation(
            strategy=self.name,
            action=action,
            confidence=confidence,
            score=total,
            signals=signals,
            warnings=[],
            breakdown=breakdown,
            synthetic=indicators.synthetic,
        )

    @staticmethod
    def _action(total: int) -> Tuple[ActionType, ConfidenceLevel]:
        if total >= 3:
            return "STRONG_BUY", "HIGH"
        if total >= 1:
            return "BUY", "MEDIUM"
        if total <= -3:
            return "STRONG_SELL", "HIGH"
        if total <= -1:
            return "SELL", "MEDIUM"
        return "HOLD", "LOW"


# =====================================================================
# Variant B -- weighted 0-100 composite
# =====================================================================
@dataclass
class CategoryScore:
    """One category's 0-100 score and the reasons that moved it."""

    score: float = _NEUTRAL_SCORE
    signals: List[Signal] = field(default_factory=list)
    warnings: List[Signal] = field(default_factory=list)
    source: str = ""

    def adjust(self, delta: float, reason: str, warning: bool = False) -> None:
        self.score += delta
        self.note(delta, reason, warning)

    def note(self, delta: float, reason: str, warning: bool = False) -> None:
        if delta > 0:
            kind = "BUY"
        elif delta < 0:
            kind = "SELL"
        else:
            kind = "HOLD"
        sig = Signal(kind, self.source, min(abs(delta) / 20, 1.0), reason)
        (self.warnings if warning else self.signals).append(sig)

    def clamped(self) -> "CategoryScore":
        self.score = _clamp(self.score)
        return self


def score_trend(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="trend")
    base = _TREND_BASE.get(ind.trend, _NEUTRAL_SCORE)
    cat.score = base
    delta = base - _NEUTRAL_SCORE
    if ind.trend == "STRONG_BULLISH":
        cat.note(delta, "Strong bullish trend confirmed")
    elif ind.trend == "BULLISH":
        cat.note(delta, "Bullish trend detected")
    elif ind.trend == "STRONG_BEARISH":
        cat.note(delta, "Strong bearish trend confirmed")
        cat.note(delta, "Strong downtrend in progress", warning=True)
    elif ind.trend == "BEARISH":
        cat.note(delta, "Bearish trend detected")
        cat.note(delta, "Downtrend in progress", warning=True)
    elif ind.trend == "SIDEWAYS":
        cat.note(0, "Sideways trend - consolidation phase")
    else:
        cat.note(0, "Trend unknown - insufficient history")

    if ind.trend_strength > 70:
        step = 10 if cat.score > _NEUTRAL_SCORE else -10
        cat.adjust(step, f"High trend strength ({ind.trend_strength:.0f}%)")
    return cat.clamped()


def score_momentum(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="momentum")
    if ind.rsi < 30:
        cat.adjust(20, f"RSI oversold ({ind.rsi:.0f})")
    elif ind.rsi > 70:
        cat.adjust(-15, f"RSI overbought ({ind.rsi:.0f})", warning=True)
    elif 45 <= ind.rsi <= 55:
        cat.adjust(5, "RSI in neutral zone")

    if ind.rsi_fast < 25:
        cat.adjust(15, "Short-term oversold condition")
    elif ind.rsi_fast > 75:
        cat.adjust(-10, "Short-term overbought condition", warning=True)

    st = ind.stochastic
    if st is not None:
        if st.k < 20 and st.d < 20:
            cat.adjust(15, "Stochastic oversold")
        elif st.k > 80 and st.d > 80:
            cat.adjust(-10, "Stochastic overbought", warning=True)

    wr = ind.williams_r
    if wr is not None:
        if wr < -80:
            cat.adjust(10, "Williams %R oversold")
        elif wr > -20:
            cat.adjust(-8, "Williams %R overbought", warning=True)
    return cat.clamped()


def score_moving_averages(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="moving_averages")
    price = ind.current_price
    mas = [ind.sma7, ind.sma14, ind.sma21, ind.sma30]
    above = sum(1 for ma in mas if price > ma)
    below = sum(1 for ma in mas if price < ma)
    cat.score += above * 5 - below * 3

    if above == len(mas):
        cat.adjust(10, "Price above all major moving averages")
    elif below == len(mas):
        cat.adjust(-15, "Price below all major moving averages")

    if ind.sma7 > ind.sma14 > ind.sma21 > ind.sma30:
        cat.adjust(15, "Bullish MA alignment")
    elif ind.sma7 < ind.sma14 < ind.sma21 < ind.sma30:
        cat.adjust(-15, "Bearish MA alignment")

    if ind.ema12 > ind.sma14:
        cat.adjust(5, "Short-term momentum positive")
    return cat.clamped()


def score_macd(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="macd")
    m = ind.macd
    if m is None:
        return cat
    if m.bullish:
        cat.adjust(20, "MACD bullish crossover")
    elif m.bearish:
        cat.adjust(-20, "MACD bearish crossover")

    if m.histogram > 0:
        cat.adjust(10, "MACD histogram positive")
    elif m.histogram < 0:
        cat.score -= 10
    return cat.clamped()


def score_bollinger(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="bollinger")
    bb = ind.bollinger
    if bb is None:
        return cat
    if bb.position < 0.2:
        cat.adjust(15, "Price near lower Bollinger Band")
    elif bb.position > 0.8:
        cat.adjust(-10, "Price near upper Bollinger Band")

    if bb.bandwidth < 10:
        cat.adjust(5, "Bollinger Bands contracting - breakout pending")
    return cat.clamped()


def score_volume(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="volume")
    if ind.volume_ratio > 1.5:
        cat.adjust(15, "High volume confirmation")
    elif ind.volume_ratio < 0.5:
        cat.adjust(-10, "Low volume - weak signal")
    return cat.clamped()


def score_patterns(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="patterns")
    for pattern in ind.patterns:
        delta = pattern.confidence * 100 * 0.3
        if pattern.direction == "bullish":
            cat.adjust(delta, f"Bullish pattern: {pattern.pattern_name}")
        elif pattern.direction == "bearish":
            cat.adjust(-delta, f"Bearish pattern: {pattern.pattern_name}", warning=True)
    return cat.clamped()


def score_market_structure(ind: IndicatorSet) -> CategoryScore:
    cat = CategoryScore(source="market_structure")
    ms = ind.market_structure
    if ms.structure == "UPTREND":
        cat.adjust(ms.confidence * 0.3, "Market structure: Uptrend")
    elif ms.structure == "DOWNTREND":
        cat.adjust(-ms.confidence * 0.3, "Market structure: Downtrend")
    return cat.clamped()


_CATEGORY_SCORERS = {
    "trend": score_trend,
    "momentum": score_momentum,
    "moving_averages": score_moving_averages,
    "macd": score_macd,
    "bollinger": score_bollinger,
    "volume": score_volume,
    "patterns": score_patterns,
    "market_structure": score_market_structure,
}


def action_from_score(
    score: float,
    n_signals: int,
    n_warnings: int,
) -> Tuple[ActionType, ConfidenceLevel]:
    """Map a 0-100 composite onto an action and confidence.

    Confidence drops one level (HIGH to MEDIUM, anything else to LOW) when
    warnings outnumber signals.
    """
    if score >= 75:
        action, confidence = "STRONG_BUY", "HIGH"
    elif score >= 60:
        action, confidence = "BUY", "HIGH" if score >= 70 else "MEDIUM"
    elif score >= 40:
        action, confidence = "HOLD", "MEDIUM"
    elif score >= 25:
        action, confidence = "SELL", "HIGH" if score <= 30 else "MEDIUM"
    else:
        action, confidence = "STRONG_SELL", "HIGH"

    if n_warnings > n_signals:
        confidence = "MEDIUM" if confidence == "HIGH" else "LOW"
    return action, confidence


def derive_key_levels(ind: IndicatorSet, action: str) -> KeyLevels:
    """ATR stop-loss and a take-profit bounded by support or resistance."""
    price = ind.current_price
    stop_loss = price - 2 * ind.atr
    if "BUY" in action:
        take_profit = max(ind.resistance, price + 3 * ind.atr)
    elif "SELL" in action:
        take_profit = min(ind.support, price - 3 * ind.atr)
    else:
        take_profit = price
    return KeyLevels(
        support=ind.support,
        resistance=ind.resistance,
        stop_loss=stop_loss,
        take_profit=take_profit,
    )


class AdvancedScorer(BaseScorer):
    """Weighted blend of eight category scores."""

    name = "advanced"

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        self.weights = validate_weights(weights) if weights is not None else dict(_BASE_WEIGHTS)

    def category_scores(self, indicators: IndicatorSet) -> Dict[str, CategoryScore]:
        return {name: scorer(indicators) for name, scorer in _CATEGORY_SCORERS.items()}

    def score(self, indicators: IndicatorSet, current: CurrentSnapshot) -> Recommendation:
        categories = self.category_scores(indicators)

        signals: List[Signal] = []
        warnings: List[Signal] = []
        weighted = 0.0
        weight_sum = 0.0
        for name, cat in categories.items():
            w = self.weights[name]
            weighted += cat.score * w
            weight_sum += w
            signals.extend(cat.signals)
            warnings.extend(cat.warnings)

        final = _clamp(weighted / weight_sum) if weight_sum > 0 else _NEUTRAL_SCORE
        action, confidence = action_from_score(final, len(signals), len(warnings))
        key_levels = derive_key_levels(indicators, action)

        logger.debug(
            "Advanced score %.2f -> %s/%s (%d signals, %d warnings)",
            final, action, confidence, len(signals), len(warnings),
        )
        return Recommendation(
            strategy=self.name,
            action=action,
            confidence=confidence,
            score=_round_half_up(final),
            signals=signals[:_MAX_SIGNALS],
            warnings=warnings[:_MAX_WARNINGS],
            breakdown={name: _round_half_up(cat.score) for name, cat in categories.items()},
            key_levels=key_levels,
            analysis=build_detailed_analysis(indicators, key_levels),
            synthetic=indicators.synthetic,
        )


# =====================================================================
# Public helpers
# =====================================================================
STRATEGIES = ("simple", "advanced")


def get_scorer(name: str, weights: Optional[Mapping[str, float]] = None) -> BaseScorer:
    """Return the scoring strategy registered under ``name``."""
    if name == "simple":
        return SimpleScorer()
    if name == "advanced":
        return AdvancedScorer(weights)
    raise ValueError(f"Unknown scoring strategy {name!r}; expected one of {STRATEGIES}")


def score_simple(indicators: IndicatorSet, current: CurrentSnapshot) -> Recommendation:
    """Variant A: signed integer score, roughly -10..+10."""
    return SimpleScorer().score(indicators, current)


def score_advanced(
    indicators: IndicatorSet,
    current: CurrentSnapshot,
    weights: Optional[Mapping[str, float]] = None,
) -> Recommendation:
    """Variant B: weighted 0-100 composite with breakdown and key levels."""
    return AdvancedScorer(weights).score(indicators, current)
