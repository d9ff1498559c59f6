"""Trend classification, market structure and chart-pattern recognition.

The recognisers are deliberately simple geometric heuristics over the
trailing bars of a series.  Each returns ``None`` (or an empty list) when
the input is too short to say anything, never a partial guess.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from coinlens.analysis.indicators import regression_slope
from coinlens.analysis.models import (
    MarketStructure,
    PatternMatch,
    PricePoint,
    SupportResistanceLevel,
    TrendType,
    VolumeAnalysis,
    series_arrays,
    validate_series,
)
from coinlens.utils.logger import setup_logger

logger = setup_logger("patterns")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_MIN_TREND_POINTS = 10
_STRUCTURE_WINDOW = 10
_PATTERN_WINDOW = 20            # trailing bars scanned for double top/bottom
_MIN_PATTERN_POINTS = 20        # detect_patterns needs at least this many bars
_DOUBLE_TOL = 0.02              # 2 % band around the extreme
_DOUBLE_MIN_GAP = 5             # extremes must be more than this many bars apart
_DOUBLE_CONFIDENCE = 0.70
_SHOULDER_TOL = 0.05            # shoulders must agree within 5 %
_HS_MAX_WINDOW = 20
_TRIANGLE_WINDOW = 10
_TRIANGLE_MIN_POINTS = 4
_TRIANGLE_TOUCH_TOL = 0.02
_SYMMETRICAL_CONFIDENCE = 0.7
_VOLUME_MIN_POINTS = 20
_VOLUME_RECENT = 5
_VOLUME_SPIKE_MULT = 1.5


# =====================================================================
# Trend / structure
# =====================================================================
def _trailing_mean(values: np.ndarray, period: int) -> float:
    return float(np.mean(values[-min(period, len(values)):]))


def classify_trend(prices: Sequence[float]) -> TrendType:
    """Classify the trend from price against its 7/14/30-bar averages.

    Averages longer than the series span the whole series, so a short but
    steadily rising history still reads as a trend.
    """
    arr = np.asarray(prices, dtype=float)
    if len(arr) < _MIN_TREND_POINTS:
        return "UNKNOWN"
    price = float(arr[-1])
    sma7 = _trailing_mean(arr, 7)
    sma14 = _trailing_mean(arr, 14)
    sma30 = _trailing_mean(arr, 30)

    if price > sma7 > sma14 > sma30:
        return "STRONG_BULLISH"
    if price < sma7 < sma14 < sma30:
        return "STRONG_BEARISH"
    if price > sma14 > sma30:
        return "BULLISH"
    if price < sma14 < sma30:
        return "BEARISH"
    return "SIDEWAYS"


def analyze_market_structure(highs: Sequence[float], lows: Sequence[float]) -> MarketStructure:
    """Count higher/lower highs and lows over the trailing 10 bars."""
    h = np.asarray(highs, dtype=float)
    l = np.asarray(lows, dtype=float)
    if len(h) < _STRUCTURE_WINDOW:
        return MarketStructure(structure="UNKNOWN", confidence=0)

    dh = np.diff(h[-_STRUCTURE_WINDOW:])
    dl = np.diff(l[-_STRUCTURE_WINDOW:])
    higher_highs, lower_highs = int((dh > 0).sum()), int((dh < 0).sum())
    higher_lows, lower_lows = int((dl > 0).sum()), int((dl < 0).sum())

    if higher_highs >= 2 and higher_lows >= 2:
        return MarketStructure("UPTREND", min((higher_highs + higher_lows) * 10, 100))
    if lower_highs >= 2 and lower_lows >= 2:
        return MarketStructure("DOWNTREND", min((lower_highs + lower_lows) * 10, 100))
    return MarketStructure("CONSOLIDATION", 50)


# =====================================================================
# Chart patterns
# =====================================================================
def detect_double_top(highs: Sequence[float], window: int = _PATTERN_WINDOW) -> Optional[PatternMatch]:
    h = np.asarray(highs, dtype=float)[-window:]
    if len(h) < _MIN_TREND_POINTS or np.ptp(h) == 0:
        return None
    peak = float(h.max())
    idx = np.flatnonzero(h >= peak * (1 - _DOUBLE_TOL))
    if len(idx) >= 2 and idx[-1] - idx[0] > _DOUBLE_MIN_GAP:
        return PatternMatch("double_top", _DOUBLE_CONFIDENCE, "bearish", {"level": peak})
    return None


def detect_double_bottom(lows: Sequence[float], window: int = _PATTERN_WINDOW) -> Optional[PatternMatch]:
    l = np.asarray(lows, dtype=float)[-window:]
    if len(l) < _MIN_TREND_POINTS or np.ptp(l) == 0:
        return None
    trough = float(l.min())
    idx = np.flatnonzero(l <= trough * (1 + _DOUBLE_TOL))
    if len(idx) >= 2 and idx[-1] - idx[0] > _DOUBLE_MIN_GAP:
        return PatternMatch("double_bottom", _DOUBLE_CONFIDENCE, "bullish", {"level": trough})
    return None


def detect_head_and_shoulders(
    prices: Sequence[float],
    window: Optional[int] = None,
) -> List[PatternMatch]:
    """Slide three equal windows (left shoulder, head, right shoulder).

    A match needs the head above both shoulders and shoulders within 5 %
    of each other.  Confidence is the mean of symmetry and prominence.
    """
    arr = np.asarray(prices, dtype=float)
    if window is None:
        window = min(_HS_MAX_WINDOW, len(arr) // 3)
    if window < 2 or len(arr) < window * 3:
        return []

    matches: List[PatternMatch] = []
    for i in range(window, len(arr) - 2 * window + 1):
        left = float(arr[i - window:i].max())
        head = float(arr[i:i + window].max())
        right = float(arr[i + window:i + 2 * window].max())
        if head > left and head > right and abs(left - right) / left < _SHOULDER_TOL:
            shoulder = max(left, right)
            symmetry = 1 - abs(left - right) / shoulder
            prominence = (head - shoulder) / head
            matches.append(PatternMatch(
                "head_and_shoulders",
                (symmetry + prominence) / 2,
                "bearish",
                {"left_shoulder": left, "head": head, "right_shoulder": right, "position": float(i)},
            ))
    return matches


def detect_triangles(highs: Sequence[float], lows: Sequence[float]) -> List[PatternMatch]:
    """Ascending, descending and symmetrical triangles over the trailing 10 bars."""
    h = np.asarray(highs, dtype=float)[-_TRIANGLE_WINDOW:]
    l = np.asarray(lows, dtype=float)[-_TRIANGLE_WINDOW:]
    if len(h) < _TRIANGLE_MIN_POINTS or len(l) < _TRIANGLE_MIN_POINTS:
        return []

    high_slope = regression_slope(h)
    low_slope = regression_slope(l)
    found: List[PatternMatch] = []

    resistance = float(h.max())
    res_touches = int((np.abs(h - resistance) / resistance < _TRIANGLE_TOUCH_TOL).sum())
    if res_touches >= 2 and low_slope > 0:
        found.append(PatternMatch(
            "ascending_triangle", min(res_touches / 5, 1.0), "bullish", {"resistance": resistance},
        ))

    support = float(l.min())
    sup_touches = int((np.abs(l - support) / support < _TRIANGLE_TOUCH_TOL).sum())
    if sup_touches >= 2 and high_slope < 0:
        found.append(PatternMatch(
            "descending_triangle", min(sup_touches / 5, 1.0), "bearish", {"support": support},
        ))

    if high_slope < 0 and low_slope > 0:
        found.append(PatternMatch("symmetrical_triangle", _SYMMETRICAL_CONFIDENCE, "neutral"))
    return found


# =====================================================================
# Volume
# =====================================================================
def analyze_volume(volumes: Sequence[float], prices: Sequence[float]) -> Optional[VolumeAnalysis]:
    """Compare the last 5 bars of volume against the whole window.

    Any nonzero last-bar price move during a spike counts as confirmation,
    whichever way price went.
    """
    v = np.asarray(volumes, dtype=float)
    p = np.asarray(prices, dtype=float)
    if len(v) != len(p) or len(v) < _VOLUME_MIN_POINTS:
        return None
    avg = float(v.mean())
    recent = float(v[-_VOLUME_RECENT:].mean())
    spike = recent > avg * _VOLUME_SPIKE_MULT
    change = (p[-1] - p[-2]) / p[-2]
    return VolumeAnalysis(
        avg_volume=avg,
        recent_volume=recent,
        volume_spike=bool(spike),
        volume_ratio=recent / avg if avg > 0 else 1.0,
        price_volume_confirmation=bool(spike and change != 0),
    )


# =====================================================================
# Support / resistance clustering
# =====================================================================
def cluster_levels(
    prices: Sequence[float],
    min_touches: int = 3,
    tolerance: float = 0.02,
) -> List[SupportResistanceLevel]:
    """First-fit clustering of prices into levels.

    Each price joins the first existing level within ``tolerance`` of that
    level's anchor price, otherwise it opens a new level.  Levels with at
    least ``min_touches`` members are classified against the last price.
    """
    if len(prices) == 0:
        return []
    bins: Dict[float, int] = {}
    for price in prices:
        price = float(price)
        for anchor in bins:
            if abs(price - anchor) / anchor <= tolerance:
                bins[anchor] += 1
                break
        else:
            bins[price] = 1

    current = float(prices[-1])
    levels = [
        SupportResistanceLevel(
            price=anchor,
            kind="resistance" if anchor > current else "support",
            touches=count,
            strength=min(count / 10, 1.0),
        )
        for anchor, count in bins.items()
        if count >= min_touches
    ]
    return sorted(levels, key=lambda lv: lv.strength, reverse=True)


def detect_support_resistance(
    series: Sequence[PricePoint],
    min_touches: int = 3,
    tolerance: float = 0.02,
) -> List[SupportResistanceLevel]:
    """Support and resistance levels from clustered closing prices."""
    validate_series(series)
    return cluster_levels([p.price for p in series], min_touches, tolerance)


def detect_patterns(series: Sequence[PricePoint]) -> List[PatternMatch]:
    """Run every chart-pattern recogniser; empty for fewer than 20 points."""
    validate_series(series)
    if len(series) < _MIN_PATTERN_POINTS:
        return []
    arrays = series_arrays(series)
    return find_patterns(arrays["prices"], arrays["highs"], arrays["lows"])


def find_patterns(prices: np.ndarray, highs: np.ndarray, lows: np.ndarray) -> List[PatternMatch]:
    if len(prices) < _MIN_PATTERN_POINTS:
        return []
    patterns: List[PatternMatch] = []
    for match in (detect_double_top(highs), detect_double_bottom(lows)):
        if match is not None:
            patterns.append(match)

    hs = detect_head_and_shoulders(highs)
    if hs:
        patterns.append(max(hs, key=lambda m: m.confidence))

    patterns.extend(detect_triangles(highs, lows))
    if patterns:
        logger.debug("Patterns: %s", ", ".join(p.pattern_name for p in patterns))
    return patterns
