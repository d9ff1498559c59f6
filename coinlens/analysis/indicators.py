"""Series statistics: moving averages, oscillators, volatility and regression.

Every function here is pure and deterministic.  Short inputs never raise;
each indicator degrades to a documented default (last value, a neutral
reading, or ``None`` for composite indicators that need a full window).
TA-Lib (C-based) supplies the windowed primitives, numpy the rest.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
import talib

from coinlens.analysis.models import (
    BollingerResult,
    FibonacciLevel,
    MACDResult,
    StochasticResult,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_NEUTRAL_RSI = 50.0
_NEUTRAL_ADX = 25.0
_TRADING_DAYS = 252         # annualisation factor for volatility
_PERCENTILE = 0.25          # support/resistance percentile position
_TREND_WINDOW = 20          # bars used for regression trend strength
_FIBONACCI_RATIOS = [0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0]

ArrayLike = Sequence[float]


def _arr(values: ArrayLike) -> np.ndarray:
    return np.ascontiguousarray(values, dtype=np.float64)


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------
def sma(values: ArrayLike, period: int) -> float:
    """Mean of the last ``period`` values; last value (or 0) when shorter."""
    arr = _arr(values)
    if len(arr) == 0:
        return 0.0
    if len(arr) < period:
        return float(arr[-1])
    return float(np.mean(arr[-period:]))


def sma_series(values: ArrayLike, period: int) -> np.ndarray:
    """Sliding-window SMA over the whole history (length N - period + 1)."""
    arr = _arr(values)
    if len(arr) < period:
        return np.array([], dtype=np.float64)
    if period < 2:
        return arr.copy()
    return talib.SMA(arr, timeperiod=period)[period - 1:]


def ema_series(values: ArrayLike, period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first ``period`` values.

    The returned series starts at index ``period - 1`` of the input.
    """
    arr = _arr(values)
    if len(arr) < period:
        return np.array([], dtype=np.float64)
    if period < 2:
        return arr.copy()
    return talib.EMA(arr, timeperiod=period)[period - 1:]


def ema(values: ArrayLike, period: int) -> float:
    """Most recent EMA value; last value (or 0) when shorter than ``period``."""
    arr = _arr(values)
    if len(arr) == 0:
        return 0.0
    if len(arr) < period:
        return float(arr[-1])
    return float(ema_series(arr, period)[-1])


# ---------------------------------------------------------------------------
# Momentum
# ---------------------------------------------------------------------------
def rsi(values: ArrayLike, period: int = 14) -> float:
    """Relative strength over the trailing ``period`` deltas.

    Uses a plain average of gains and losses in the window rather than
    Wilder's running smoothing.  Returns 50 with fewer than ``period + 1``
    values or when nothing moved, 100 when there were no losses.
    """
    arr = _arr(values)
    if len(arr) < period + 1:
        return _NEUTRAL_RSI
    deltas = np.diff(arr[-(period + 1):])
    avg_gain = float(deltas[deltas > 0].sum()) / period
    avg_loss = float(-deltas[deltas < 0].sum()) / period
    if avg_loss == 0:
        return _NEUTRAL_RSI if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    values: ArrayLike,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Optional[MACDResult]:
    """MACD line, signal line and histogram at the last bar.

    The MACD line is the elementwise difference of the fast and slow EMA
    series where both exist; the signal line is the EMA of that line.
    Returns ``None`` with fewer than ``slow`` values.
    """
    arr = _arr(values)
    if len(arr) < slow:
        return None
    fast_line = ema_series(arr, fast)
    slow_line = ema_series(arr, slow)
    macd_line = fast_line[-len(slow_line):] - slow_line
    signal_value = ema(macd_line, signal)
    macd_value = float(macd_line[-1])
    return MACDResult(
        macd=macd_value,
        signal=signal_value,
        histogram=macd_value - signal_value,
    )


def stochastic(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14,
    d_period: int = 3,
) -> Optional[StochasticResult]:
    """%K over the trailing window and %D as the mean of recent %K values.

    Returns ``None`` when the window is too short or flat (highest high
    equals lowest low), which callers read as "no signal".
    """
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    if len(c) < period or period < 2:
        return None
    highest = talib.MAX(h, timeperiod=period)[period - 1:]
    lowest = talib.MIN(l, timeperiod=period)[period - 1:]
    span = highest - lowest
    if span[-1] <= 0:
        return None
    with np.errstate(divide="ignore", invalid="ignore"):
        k_series = np.where(span > 0, (c[period - 1:] - lowest) / span * 100.0, np.nan)
    k = float(k_series[-1])
    tail = k_series[-d_period:]
    tail = tail[~np.isnan(tail)]
    d = float(np.mean(tail)) if len(k_series) >= d_period and len(tail) else k
    return StochasticResult(k=k, d=d)


def williams_r(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14,
) -> Optional[float]:
    """Williams %R in [-100, 0]; ``None`` when too short or flat."""
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    if len(c) < period:
        return None
    highest = float(np.max(h[-period:]))
    lowest = float(np.min(l[-period:]))
    if highest == lowest:
        return None
    return (highest - float(c[-1])) / (highest - lowest) * -100.0


# ---------------------------------------------------------------------------
# Trend strength / volatility
# ---------------------------------------------------------------------------
def true_range(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """True range for bars 1..N-1 (the first bar has no previous close)."""
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    if len(c) < 2:
        return np.array([], dtype=np.float64)
    return talib.TRANGE(h, l, c)[1:]


def atr(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> float:
    """SMA of the true range over the trailing ``period`` bars; 0 if N < 2."""
    tr = true_range(highs, lows, closes)
    if len(tr) == 0:
        return 0.0
    return sma(tr, period)


def adx(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> float:
    """Directional index from averaged true range and directional movement.

    Returns 25 with fewer than ``period + 1`` bars and 0 when the window
    has no range or no directional movement.
    """
    h, l = _arr(highs), _arr(lows)
    if len(h) < period + 1:
        return _NEUTRAL_ADX
    tr = true_range(highs, lows, closes)
    up_move = np.diff(h)
    down_move = -np.diff(l)
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    avg_tr = sma(tr, period)
    if avg_tr <= 0:
        return 0.0
    plus_di = sma(plus_dm, period) / avg_tr * 100.0
    minus_di = sma(minus_dm, period) / avg_tr * 100.0
    if plus_di + minus_di == 0:
        return 0.0
    return abs(plus_di - minus_di) / (plus_di + minus_di) * 100.0


def volatility(values: ArrayLike, period: int = 14) -> float:
    """Annualised stddev of simple returns over the trailing window, in percent."""
    arr = _arr(values)
    if len(arr) < period or len(arr) < 2:
        return 0.0
    returns = np.diff(arr) / arr[:-1]
    recent = returns[-period:]
    return float(np.std(recent) * math.sqrt(_TRADING_DAYS) * 100.0)


def bollinger(values: ArrayLike, period: int = 20, num_std: float = 2.0) -> Optional[BollingerResult]:
    """Bands at ``num_std`` population standard deviations around the SMA.

    ``position`` is 0.5 when the bands collapse onto the middle line.
    Returns ``None`` with fewer than ``period`` values.
    """
    arr = _arr(values)
    if len(arr) < period or period < 2:
        return None
    upper, middle, lower = talib.BBANDS(
        arr, timeperiod=period, nbdevup=num_std, nbdevdn=num_std, matype=0,
    )
    up, mid, lo = float(upper[-1]), float(middle[-1]), float(lower[-1])
    width = up - lo
    position = (float(arr[-1]) - lo) / width if width > 0 else 0.5
    bandwidth = width / mid * 100.0 if mid else 0.0
    return BollingerResult(upper=up, middle=mid, lower=lo, bandwidth=bandwidth, position=position)


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------
def percentile_support(lows: ArrayLike, period: int = 20) -> float:
    """Low at the 25th-percentile position of the trailing window."""
    arr = _arr(lows)
    if len(arr) == 0:
        return 0.0
    if len(arr) < period:
        return float(np.min(arr))
    window = np.sort(arr[-period:])
    return float(window[int(math.floor(len(window) * _PERCENTILE))])


def percentile_resistance(highs: ArrayLike, period: int = 20) -> float:
    """High at the 25th-percentile position counted from the top."""
    arr = _arr(highs)
    if len(arr) == 0:
        return 0.0
    if len(arr) < period:
        return float(np.max(arr))
    window = np.sort(arr[-period:])[::-1]
    return float(window[int(math.floor(len(window) * _PERCENTILE))])


def fibonacci_levels(high: float, low: float) -> List[FibonacciLevel]:
    """Retracement ladder from ``high`` (0 %) down to ``low`` (100 %)."""
    diff = high - low
    return [
        FibonacciLevel(level=ratio, price=high - diff * ratio, label=f"{ratio * 100:.1f}%")
        for ratio in _FIBONACCI_RATIOS
    ]


# ---------------------------------------------------------------------------
# Regression
# ---------------------------------------------------------------------------
def linear_regression(values: ArrayLike) -> Tuple[float, float, float]:
    """OLS fit of value against index: ``(slope, intercept, r_squared)``.

    R² is 0 for a flat series (no variance to explain).
    """
    y = _arr(values)
    n = len(y)
    if n == 0:
        return 0.0, 0.0, 0.0
    if n == 1:
        return 0.0, float(y[0]), 0.0
    x = np.arange(n, dtype=np.float64)
    slope, intercept = np.polyfit(x, y, 1)
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0:
        return 0.0, float(y[0]), 0.0
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    return float(slope), float(intercept), 1.0 - ss_res / ss_tot


def trend_strength(values: ArrayLike) -> float:
    """R² of the trailing 20-point regression scaled to [0, 100]; 50 if shorter."""
    arr = _arr(values)
    if len(arr) < _TREND_WINDOW:
        return 50.0
    _, _, r_squared = linear_regression(arr[-_TREND_WINDOW:])
    return float(min(max(r_squared * 100.0, 0.0), 100.0))


def regression_slope(values: ArrayLike) -> float:
    """Slope of a straight-line fit through all values (0 for fewer than 2)."""
    arr = _arr(values)
    if len(arr) < 2:
        return 0.0
    return float(talib.LINEARREG_SLOPE(arr, timeperiod=len(arr))[-1])
