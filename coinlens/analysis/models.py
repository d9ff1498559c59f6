"""Value objects shared by the indicator, pattern and scoring modules.

Everything here is created inside a single scoring call and handed back to
the caller; nothing is cached or mutated afterwards.  Each record exposes
``to_dict()`` so the CLI and any HTTP layer can serialise it as plain JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

import numpy as np
import pandas as pd

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------
SignalKind = Literal["BUY", "SELL", "HOLD"]
ActionType = Literal["STRONG_BUY", "BUY", "HOLD", "SELL", "STRONG_SELL"]
ConfidenceLevel = Literal["HIGH", "MEDIUM", "LOW"]
TrendType = Literal[
    "STRONG_BULLISH", "BULLISH", "SIDEWAYS", "BEARISH", "STRONG_BEARISH", "UNKNOWN",
]
StructureType = Literal["UPTREND", "DOWNTREND", "CONSOLIDATION", "UNKNOWN"]
PatternDirection = Literal["bullish", "bearish", "neutral"]
LevelKind = Literal["support", "resistance"]


def _r(value: Optional[float], ndigits: int = 6) -> Optional[float]:
    return None if value is None else round(float(value), ndigits)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PricePoint:
    timestamp: int          # ms since epoch
    price: float
    high: Optional[float] = None
    low: Optional[float] = None
    volume: float = 0.0
    synthetic: bool = False

    @property
    def high_or_price(self) -> float:
        return self.price if self.high is None else self.high

    @property
    def low_or_price(self) -> float:
        return self.price if self.low is None else self.low

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "price": self.price,
            "high": self.high_or_price,
            "low": self.low_or_price,
            "volume": self.volume,
            "synthetic": self.synthetic,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        return cls(
            timestamp=int(data["timestamp"]),
            price=float(data["price"]),
            high=None if data.get("high") is None else float(data["high"]),
            low=None if data.get("low") is None else float(data["low"]),
            volume=float(data.get("volume") or 0.0),
            synthetic=bool(data.get("synthetic", False)),
        )


@dataclass(frozen=True)
class CurrentSnapshot:
    price: float
    change_24h: float       # percent
    market_cap: float = 0.0
    volume_24h: float = 0.0

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "change_24h": round(self.change_24h, 4),
            "market_cap": self.market_cap,
            "volume_24h": self.volume_24h,
        }


def validate_series(series: Sequence[PricePoint]) -> None:
    """Fail fast on malformed input.

    Raises:
        ValueError: if any price is not strictly positive or timestamps
            go backwards.  An empty series is valid.
    """
    if not series:
        return
    frame = pd.DataFrame(
        {"timestamp": [p.timestamp for p in series], "price": [p.price for p in series]}
    )
    bad = frame.index[~(frame["price"] > 0)]
    if len(bad):
        i = int(bad[0])
        raise ValueError(
            f"price must be positive, got {series[i].price!r} at index {i}"
        )
    if not frame["timestamp"].is_monotonic_increasing:
        diffs = frame["timestamp"].diff()
        i = int(diffs.index[diffs < 0][0])
        raise ValueError(
            f"timestamps must be non-decreasing, index {i} "
            f"({series[i].timestamp}) precedes index {i - 1} ({series[i - 1].timestamp})"
        )


def series_arrays(series: Sequence[PricePoint]) -> Dict[str, np.ndarray]:
    """Split a PricePoint sequence into float arrays (high/low default to price)."""
    return {
        "prices": np.array([p.price for p in series], dtype=float),
        "highs": np.array([p.high_or_price for p in series], dtype=float),
        "lows": np.array([p.low_or_price for p in series], dtype=float),
        "volumes": np.array([p.volume or 0.0 for p in series], dtype=float),
    }


# ---------------------------------------------------------------------------
# Indicator records
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class MACDResult:
    macd: float
    signal: float
    histogram: float

    @property
    def bullish(self) -> bool:
        return self.macd > self.signal and self.histogram > 0

    @property
    def bearish(self) -> bool:
        return self.macd < self.signal and self.histogram < 0

    def to_dict(self) -> dict:
        return {
            "macd": _r(self.macd),
            "signal": _r(self.signal),
            "histogram": _r(self.histogram),
            "bullish": self.bullish,
            "bearish": self.bearish,
        }


@dataclass(frozen=True)
class BollingerResult:
    upper: float
    middle: float
    lower: float
    bandwidth: float        # percent of middle
    position: float         # 0 at lower band, 1 at upper band; may exceed on breakout

    def to_dict(self) -> dict:
        return {
            "upper": _r(self.upper),
            "middle": _r(self.middle),
            "lower": _r(self.lower),
            "bandwidth": _r(self.bandwidth, 4),
            "position": _r(self.position, 4),
        }


@dataclass(frozen=True)
class StochasticResult:
    k: float
    d: float

    def to_dict(self) -> dict:
        return {"k": _r(self.k, 4), "d": _r(self.d, 4)}


@dataclass(frozen=True)
class MarketStructure:
    structure: StructureType
    confidence: float       # 0-100

    def to_dict(self) -> dict:
        return {"structure": self.structure, "confidence": self.confidence}


@dataclass(frozen=True)
class VolumeAnalysis:
    avg_volume: float
    recent_volume: float
    volume_spike: bool
    volume_ratio: float
    price_volume_confirmation: bool

    def to_dict(self) -> dict:
        return {
            "avg_volume": _r(self.avg_volume, 2),
            "recent_volume": _r(self.recent_volume, 2),
            "volume_spike": self.volume_spike,
            "volume_ratio": _r(self.volume_ratio, 4),
            "price_volume_confirmation": self.price_volume_confirmation,
        }


@dataclass(frozen=True)
class FibonacciLevel:
    level: float
    price: float
    label: str

    def to_dict(self) -> dict:
        return {"level": self.level, "price": _r(self.price), "label": self.label}


@dataclass(frozen=True)
class SupportResistanceLevel:
    price: float
    kind: LevelKind
    touches: int
    strength: float         # 0-1

    def to_dict(self) -> dict:
        return {
            "price": _r(self.price),
            "kind": self.kind,
            "touches": self.touches,
            "strength": round(self.strength, 3),
        }


@dataclass(frozen=True)
class PatternMatch:
    pattern_name: str
    confidence: float       # 0-1
    direction: PatternDirection
    details: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "pattern_name": self.pattern_name,
            "confidence": round(self.confidence, 3),
            "direction": self.direction,
            "details": {k: _r(v) for k, v in self.details.items()},
        }


@dataclass(frozen=True)
class PriceAction:
    high_52w: float
    low_52w: float
    distance_from_high: float   # percent below the window high
    distance_from_low: float    # percent above the window low

    def to_dict(self) -> dict:
        return {
            "high_52w": _r(self.high_52w),
            "low_52w": _r(self.low_52w),
            "distance_from_high": _r(self.distance_from_high, 4),
            "distance_from_low": _r(self.distance_from_low, 4),
        }


@dataclass(frozen=True)
class IndicatorSet:
    """Every indicator for one coin at one moment."""

    current_price: float
    price_change_24h: float
    volume_24h: float

    sma7: float
    sma14: float
    sma21: float
    sma30: float
    sma50: float
    ema12: float
    ema26: float

    rsi: float
    rsi_fast: float
    stochastic: Optional[StochasticResult]
    williams_r: Optional[float]

    macd: Optional[MACDResult]
    adx: float

    bollinger: Optional[BollingerResult]
    atr: float
    volatility: float

    volume_ma: float
    volume_ratio: float

    support: float
    resistance: float

    trend: TrendType
    trend_strength: float
    market_structure: MarketStructure
    patterns: List[PatternMatch] = field(default_factory=list)

    sr_levels: List[SupportResistanceLevel] = field(default_factory=list)
    volume_analysis: Optional[VolumeAnalysis] = None
    fibonacci: List[FibonacciLevel] = field(default_factory=list)
    price_action: Optional[PriceAction] = None

    data_points: int = 0
    synthetic: bool = False

    def to_dict(self) -> dict:
        return {
            "current_price": self.current_price,
            "price_change_24h": self.price_change_24h,
            "volume_24h": self.volume_24h,
            "sma7": _r(self.sma7),
            "sma14": _r(self.sma14),
            "sma21": _r(self.sma21),
            "sma30": _r(self.sma30),
            "sma50": _r(self.sma50),
            "ema12": _r(self.ema12),
            "ema26": _r(self.ema26),
            "rsi": _r(self.rsi, 2),
            "rsi_fast": _r(self.rsi_fast, 2),
            "stochastic": self.stochastic.to_dict() if self.stochastic else None,
            "williams_r": _r(self.williams_r, 4),
            "macd": self.macd.to_dict() if self.macd else None,
            "adx": _r(self.adx, 2),
            "bollinger": self.bollinger.to_dict() if self.bollinger else None,
            "atr": _r(self.atr),
            "volatility": _r(self.volatility, 2),
            "volume_ma": _r(self.volume_ma, 2),
            "volume_ratio": _r(self.volume_ratio, 4),
            "support": _r(self.support),
            "resistance": _r(self.resistance),
            "trend": self.trend,
            "trend_strength": _r(self.trend_strength, 2),
            "market_structure": self.market_structure.to_dict(),
            "patterns": [p.to_dict() for p in self.patterns],
            "sr_levels": [lv.to_dict() for lv in self.sr_levels],
            "volume_analysis": self.volume_analysis.to_dict() if self.volume_analysis else None,
            "fibonacci": [f.to_dict() for f in self.fibonacci],
            "price_action": self.price_action.to_dict() if self.price_action else None,
            "data_points": self.data_points,
            "synthetic": self.synthetic,
        }


# ---------------------------------------------------------------------------
# Scoring output
# ---------------------------------------------------------------------------
@dataclass
class Signal:
    kind: SignalKind
    source: str
    strength: float         # 0-1
    reason: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "source": self.source,
            "strength": round(self.strength, 3),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class KeyLevels:
    support: float
    resistance: float
    stop_loss: float
    take_profit: float

    def to_dict(self) -> dict:
        return {
            "support": _r(self.support),
            "resistance": _r(self.resistance),
            "stop_loss": _r(self.stop_loss),
            "take_profit": _r(self.take_profit),
        }


@dataclass
class Recommendation:
    strategy: str
    action: ActionType
    confidence: ConfidenceLevel
    score: int
    signals: List[Signal] = field(default_factory=list)
    warnings: List[Signal] = field(default_factory=list)
    breakdown: Dict[str, int] = field(default_factory=dict)
    key_levels: Optional[KeyLevels] = None
    analysis: Optional[Dict[str, Any]] = None
    synthetic: bool = False

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "action": self.action,
            "confidence": self.confidence,
            "score": self.score,
            "signals": [s.to_dict() for s in self.signals],
            "warnings": [w.to_dict() for w in self.warnings],
            "breakdown": dict(self.breakdown),
            "key_levels": self.key_levels.to_dict() if self.key_levels else None,
            "analysis": self.analysis,
            "synthetic": self.synthetic,
        }
