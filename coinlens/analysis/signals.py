"""Discrete trading signals and the narrative report attached to a recommendation."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from coinlens.analysis.models import IndicatorSet, KeyLevels, Signal

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_BOLLINGER_TOUCH_STRENGTH = 0.7
_STOCHASTIC_STRENGTH = 0.6
_VOLUME_BOOST = 1.2
_HIGH_VOLATILITY = 50.0
_MEDIUM_VOLATILITY = 25.0


def generate_trading_signals(ind: IndicatorSet) -> List[Signal]:
    """Buy/sell triggers from MACD, Bollinger touches, stochastic and triangles.

    When volume confirms the last move, the most recent signal is boosted.
    """
    signals: List[Signal] = []

    if ind.macd is not None:
        strength = min(abs(ind.macd.histogram) * 10, 1.0)
        if ind.macd.bullish:
            signals.append(Signal("BUY", "MACD", strength, "MACD line crossed above signal line"))
        elif ind.macd.bearish:
            signals.append(Signal("SELL", "MACD", strength, "MACD line crossed below signal line"))

    bb = ind.bollinger
    if bb is not None and bb.upper > bb.lower:
        if ind.current_price <= bb.lower:
            signals.append(Signal(
                "BUY", "Bollinger Bands", _BOLLINGER_TOUCH_STRENGTH,
                "Price touched lower Bollinger Band (oversold)",
            ))
        elif ind.current_price >= bb.upper:
            signals.append(Signal(
                "SELL", "Bollinger Bands", _BOLLINGER_TOUCH_STRENGTH,
                "Price touched upper Bollinger Band (overbought)",
            ))

    st = ind.stochastic
    if st is not None:
        if st.k < 20 and st.d < 20:
            signals.append(Signal("BUY", "Stochastic", _STOCHASTIC_STRENGTH, "Stochastic in oversold territory"))
        elif st.k > 80 and st.d > 80:
            signals.append(Signal("SELL", "Stochastic", _STOCHASTIC_STRENGTH, "Stochastic in overbought territory"))

    for pattern in ind.patterns:
        if not pattern.pattern_name.endswith("_triangle"):
            continue
        label = pattern.pattern_name.replace("_", " ")
        if pattern.direction == "bullish":
            signals.append(Signal(
                "BUY", "Pattern Recognition", pattern.confidence,
                f"{label} pattern detected - bullish breakout expected",
            ))
        elif pattern.direction == "bearish":
            signals.append(Signal(
                "SELL", "Pattern Recognition", pattern.confidence,
                f"{label} pattern detected - bearish breakout expected",
            ))

    if signals and ind.volume_analysis is not None and ind.volume_analysis.price_volume_confirmation:
        last = signals[-1]
        last.strength = min(last.strength * _VOLUME_BOOST, 1.0)
        last.reason += " (confirmed by volume)"

    return signals


def _rsi_label(value: float) -> str:
    if value < 30:
        return "Oversold"
    if value > 70:
        return "Overbought"
    return "Neutral"


def _volatility_label(value: float) -> str:
    if value > _HIGH_VOLATILITY:
        return "High"
    if value > _MEDIUM_VOLATILITY:
        return "Medium"
    return "Low"


def technical_summary(ind: IndicatorSet) -> List[str]:
    lines = [
        f"Trend: {ind.trend} (Strength: {ind.trend_strength:.0f}%)",
        f"RSI: {ind.rsi:.0f} ({_rsi_label(ind.rsi)})",
        f"Volatility: {ind.volatility:.0f}% ({_volatility_label(ind.volatility)})",
    ]
    if ind.patterns:
        lines.append("Patterns: " + ", ".join(p.pattern_name for p in ind.patterns))
    return lines


def risk_assessment(ind: IndicatorSet) -> Dict[str, Any]:
    level = "MEDIUM"
    factors: List[str] = []
    if ind.volatility > _HIGH_VOLATILITY:
        level = "HIGH"
        factors.append("High volatility")
    if ind.rsi > 80 or ind.rsi < 20:
        factors.append("Extreme RSI levels")
    if ind.volume_ratio < 0.5:
        factors.append("Low volume confirmation")
    if ind.synthetic:
        factors.append("Indicators computed on synthetic history")
    if not factors:
        level = "LOW"
    return {"level": level, "factors": factors}


def timeframe_view(ind: IndicatorSet) -> Dict[str, str]:
    if ind.rsi_fast < 30:
        short_term = "BULLISH"
    elif ind.rsi_fast > 70:
        short_term = "BEARISH"
    else:
        short_term = "NEUTRAL"
    return {
        "short_term": short_term,
        "medium_term": ind.trend,
        "long_term": ind.market_structure.structure,
    }


def build_detailed_analysis(ind: IndicatorSet, key_levels: Optional[KeyLevels] = None) -> Dict[str, Any]:
    """Plain-data report: summary lines, risk, timeframe view, levels and triggers."""
    return {
        "technical_summary": technical_summary(ind),
        "risk_assessment": risk_assessment(ind),
        "timeframe": timeframe_view(ind),
        "key_levels": key_levels.to_dict() if key_levels else None,
        "trading_signals": [s.to_dict() for s in generate_trading_signals(ind)],
    }
