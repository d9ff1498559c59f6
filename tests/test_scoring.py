"""Tests for coinlens.analysis.scoring -- simple and weighted composite strategies."""

from dataclasses import replace

import pytest

from coinlens.analysis.models import (
    BollingerResult,
    CurrentSnapshot,
    IndicatorSet,
    MACDResult,
    MarketStructure,
    PatternMatch,
    StochasticResult,
)
from coinlens.analysis.scoring import (
    _BASE_WEIGHTS,
    AdvancedScorer,
    SimpleScorer,
    action_from_score,
    derive_key_levels,
    get_scorer,
    score_advanced,
    score_simple,
    validate_weights,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_indicators(**overrides) -> IndicatorSet:
    """Indicator set where every category scores exactly 50."""
    base = IndicatorSet(
        current_price=100.0,
        price_change_24h=0.0,
        volume_24h=1_000.0,
        sma7=100.0, sma14=100.0, sma21=100.0, sma30=100.0, sma50=100.0,
        ema12=100.0, ema26=100.0,
        rsi=60.0, rsi_fast=60.0,
        stochastic=None, williams_r=None,
        macd=None, adx=25.0,
        bollinger=None, atr=2.0, volatility=20.0,
        volume_ma=1_000.0, volume_ratio=1.0,
        support=95.0, resistance=105.0,
        trend="SIDEWAYS", trend_strength=0.0,
        market_structure=MarketStructure("CONSOLIDATION", 50),
        data_points=50,
    )
    return replace(base, **overrides)


def _make_snapshot(price=100.0, change=0.0):
    return CurrentSnapshot(price=price, change_24h=change, volume_24h=1_000.0)


def _bullish_indicators() -> IndicatorSet:
    return _make_indicators(
        current_price=110.0,
        trend="STRONG_BULLISH", trend_strength=80.0,
        rsi=20.0, rsi_fast=20.0,
        stochastic=StochasticResult(10.0, 10.0), williams_r=-90.0,
        sma7=105.0, sma14=104.0, sma21=103.0, sma30=102.0, ema12=106.0,
        macd=MACDResult(2.0, 1.0, 1.0),
        bollinger=BollingerResult(120.0, 112.0, 104.0, 5.0, 0.1),
        volume_ratio=2.0,
        patterns=[PatternMatch("double_bottom", 0.7, "bullish")],
        market_structure=MarketStructure("UPTREND", 100),
        support=100.0, resistance=120.0,
    )


def _bearish_indicators() -> IndicatorSet:
    return _make_indicators(
        current_price=90.0,
        trend="STRONG_BEARISH", trend_strength=80.0,
        rsi=80.0, rsi_fast=80.0,
        stochastic=StochasticResult(90.0, 90.0), williams_r=-10.0,
        sma7=95.0, sma14=96.0, sma21=97.0, sma30=98.0, ema12=94.0,
        macd=MACDResult(-2.0, -1.0, -1.0),
        bollinger=BollingerResult(100.0, 95.0, 89.0, 20.0, 0.9),
        volume_ratio=0.3,
        patterns=[PatternMatch("double_top", 0.7, "bearish")],
        market_structure=MarketStructure("DOWNTREND", 100),
        support=85.0, resistance=99.0,
    )


# ---------------------------------------------------------------------------
# Variant A
# ---------------------------------------------------------------------------

class TestSimpleScorer:

    def test_neutral_is_hold(self):
        rec = score_simple(_make_indicators(), _make_snapshot())
        assert rec.score == 0
        assert rec.action == "HOLD"
        assert rec.confidence == "LOW"
        assert rec.breakdown["total"] == 0
        assert rec.strategy == "simple"

    def test_all_bullish_rules(self):
        ind = _make_indicators(sma7=95.0, sma14=96.0, rsi=25.0, trend="BULLISH")
        rec = score_simple(ind, _make_snapshot(change=-6.0))
        # +1 +1 (MAs) +2 (RSI) +2 (trend) +1 (dip)
        assert rec.score == 7
        assert rec.action == "STRONG_BUY"
        assert rec.confidence == "HIGH"
        assert rec.breakdown["change_24h"] == 1

    def test_all_bearish_rules(self):
        ind = _make_indicators(sma7=105.0, sma14=106.0, rsi=75.0, trend="STRONG_BEARISH")
        rec = score_simple(ind, _make_snapshot(change=6.0))
        assert rec.score == -8
        assert rec.action == "STRONG_SELL"
        assert rec.breakdown["trend"] == -3

    def test_single_point_is_buy(self):
        rec = score_simple(_make_indicators(sma7=99.0), _make_snapshot())
        assert rec.score == 1
        assert (rec.action, rec.confidence) == ("BUY", "MEDIUM")

    def test_minus_two_is_sell(self):
        rec = score_simple(_make_indicators(sma7=101.0, sma14=101.0), _make_snapshot())
        assert (rec.action, rec.confidence) == ("SELL", "MEDIUM")

    def test_price_equal_to_average_scores_nothing(self):
        rec = score_simple(_make_indicators(sma7=100.0, sma14=100.0), _make_snapshot())
        assert rec.breakdown["price_vs_sma7"] == 0
        assert rec.breakdown["price_vs_sma14"] == 0

    def test_five_percent_is_not_overextended(self):
        rec = score_simple(_make_indicators(), _make_snapshot(change=5.0))
        assert rec.breakdown["change_24h"] == 0

    def test_signals_explain_every_point(self):
        ind = _make_indicators(sma7=95.0, rsi=75.0)
        rec = score_simple(ind, _make_snapshot())
        kinds = sorted(s.kind for s in rec.signals)
        assert kinds == ["BUY", "SELL"]
        assert rec.warnings == []


# ---------------------------------------------------------------------------
# Variant B
# ---------------------------------------------------------------------------

class TestWeights:

    def test_default_weights_sum_to_one(self):
        assert abs(sum(_BASE_WEIGHTS.values()) - 1.0) <= 1e-9

    def test_rejects_bad_sum(self):
        weights = dict(_BASE_WEIGHTS, trend=0.30)
        with pytest.raises(ValueError, match="sum to 1.0"):
            validate_weights(weights)

    def test_rejects_missing_category(self):
        weights = dict(_BASE_WEIGHTS)
        weights.pop("volume")
        with pytest.raises(ValueError, match="missing"):
            AdvancedScorer(weights)

    def test_custom_weights_change_result(self):
        weights = {k: 0.0 for k in _BASE_WEIGHTS}
        weights["volume"] = 1.0
        ind = _make_indicators(volume_ratio=2.0)
        rec = score_advanced(ind, _make_snapshot(), weights=weights)
        assert rec.score == 65


class TestAdvancedScorer:

    def test_neutral_is_fifty(self):
        rec = score_advanced(_make_indicators(), _make_snapshot())
        assert rec.score == 50
        assert rec.action == "HOLD"
        assert rec.confidence == "MEDIUM"
        assert set(rec.breakdown.values()) == {50}
        assert set(rec.breakdown) == set(_BASE_WEIGHTS)

    def test_bullish_extreme(self):
        rec = score_advanced(_bullish_indicators(), _make_snapshot(price=110.0))
        assert rec.breakdown == {
            "trend": 100,
            "momentum": 100,
            "moving_averages": 100,
            "macd": 80,
            "bollinger": 70,
            "volume": 65,
            "patterns": 71,
            "market_structure": 80,
        }
        assert rec.score == 89
        assert rec.action == "STRONG_BUY"
        assert rec.confidence == "HIGH"

    def test_bearish_extreme(self):
        rec = score_advanced(_bearish_indicators(), _make_snapshot(price=90.0))
        assert rec.breakdown["trend"] == 0
        assert rec.breakdown["momentum"] == 7
        assert rec.breakdown["moving_averages"] == 8
        assert rec.breakdown["patterns"] == 29
        assert 0 <= rec.score <= 25
        assert rec.action == "STRONG_SELL"
        assert rec.confidence == "HIGH"

    def test_signal_and_warning_caps(self):
        rec = score_advanced(_bullish_indicators(), _make_snapshot(price=110.0))
        assert len(rec.signals) == 8
        rec = score_advanced(_bearish_indicators(), _make_snapshot(price=90.0))
        assert len(rec.warnings) == 4

    def test_warnings_downgrade_confidence(self):
        ind = _make_indicators(rsi=75.0, rsi_fast=80.0, stochastic=StochasticResult(85.0, 85.0))
        rec = score_advanced(ind, _make_snapshot())
        assert rec.action == "HOLD"
        assert rec.confidence == "LOW"

    def test_missing_composites_score_neutral(self):
        rec = score_advanced(_make_indicators(macd=None, bollinger=None), _make_snapshot())
        assert rec.breakdown["macd"] == 50
        assert rec.breakdown["bollinger"] == 50

    def test_unknown_trend_is_neutral(self):
        rec = score_advanced(_make_indicators(trend="UNKNOWN"), _make_snapshot())
        assert rec.breakdown["trend"] == 50

    def test_sideways_with_strong_fit_loses_ten(self):
        rec = score_advanced(_make_indicators(trend_strength=90.0), _make_snapshot())
        assert rec.breakdown["trend"] == 40

    def test_neutral_pattern_does_not_move_score(self):
        ind = _make_indicators(patterns=[PatternMatch("symmetrical_triangle", 0.7, "neutral")])
        assert score_advanced(ind, _make_snapshot()).breakdown["patterns"] == 50

    def test_flat_histogram_adds_nothing(self):
        ind = _make_indicators(macd=MACDResult(0.0, 0.0, 0.0))
        assert score_advanced(ind, _make_snapshot()).breakdown["macd"] == 50

    def test_bollinger_squeeze(self):
        ind = _make_indicators(bollinger=BollingerResult(101.0, 100.0, 99.0, 2.0, 0.5))
        assert score_advanced(ind, _make_snapshot()).breakdown["bollinger"] == 55

    def test_score_always_in_range(self):
        for ind in (_make_indicators(), _bullish_indicators(), _bearish_indicators()):
            rec = score_advanced(ind, _make_snapshot(price=ind.current_price))
            assert 0 <= rec.score <= 100
            assert all(0 <= v <= 100 for v in rec.breakdown.values())

    def test_deterministic(self):
        ind = _bullish_indicators()
        first = score_advanced(ind, _make_snapshot(price=110.0)).to_dict()
        second = score_advanced(ind, _make_snapshot(price=110.0)).to_dict()
        assert first == second

    def test_analysis_report_attached(self):
        rec = score_advanced(_bullish_indicators(), _make_snapshot(price=110.0))
        assert rec.analysis["timeframe"]["medium_term"] == "STRONG_BULLISH"
        assert rec.analysis["key_levels"]["stop_loss"] == pytest.approx(106.0)
        assert rec.analysis["trading_signals"][0]["source"] == "MACD"


# ---------------------------------------------------------------------------
# Action thresholds and derived levels
# ---------------------------------------------------------------------------

class TestActionThresholds:

    @pytest.mark.parametrize("score, expected", [
        (100, ("STRONG_BUY", "HIGH")),
        (75, ("STRONG_BUY", "HIGH")),
        (72, ("BUY", "HIGH")),
        (65, ("BUY", "MEDIUM")),
        (50, ("HOLD", "MEDIUM")),
        (40, ("HOLD", "MEDIUM")),
        (35, ("SELL", "MEDIUM")),
        (30, ("SELL", "HIGH")),
        (24.9, ("STRONG_SELL", "HIGH")),
        (0, ("STRONG_SELL", "HIGH")),
    ])
    def test_mapping(self, score, expected):
        assert action_from_score(score, n_signals=1, n_warnings=0) == expected

    def test_downgrade_high_to_medium(self):
        assert action_from_score(80, n_signals=1, n_warnings=2) == ("STRONG_BUY", "MEDIUM")

    def test_downgrade_medium_to_low(self):
        assert action_from_score(50, n_signals=0, n_warnings=1) == ("HOLD", "LOW")

    def test_tie_does_not_downgrade(self):
        assert action_from_score(80, n_signals=2, n_warnings=2) == ("STRONG_BUY", "HIGH")


class TestKeyLevels:

    def test_buy_targets_resistance_or_atr(self):
        ind = _make_indicators(atr=2.0, resistance=120.0)
        levels = derive_key_levels(ind, "BUY")
        assert levels.stop_loss == pytest.approx(96.0)
        assert levels.take_profit == pytest.approx(120.0)

    def test_buy_uses_atr_when_resistance_is_close(self):
        levels = derive_key_levels(_make_indicators(atr=5.0, resistance=101.0), "STRONG_BUY")
        assert levels.take_profit == pytest.approx(115.0)

    def test_sell_targets_lower_of_support_and_atr(self):
        levels = derive_key_levels(_make_indicators(atr=2.0, support=97.0), "SELL")
        assert levels.take_profit == pytest.approx(94.0)

    def test_hold_targets_current_price(self):
        assert derive_key_levels(_make_indicators(), "HOLD").take_profit == 100.0

    def test_advanced_recommendation_carries_levels(self):
        rec = score_advanced(_bearish_indicators(), _make_snapshot(price=90.0))
        assert rec.key_levels.take_profit == pytest.approx(84.0)
        assert rec.key_levels.stop_loss == pytest.approx(86.0)


# ---------------------------------------------------------------------------
# Strategy registry
# ---------------------------------------------------------------------------

class TestStrategies:

    def test_get_scorer(self):
        assert isinstance(get_scorer("simple"), SimpleScorer)
        assert isinstance(get_scorer("advanced"), AdvancedScorer)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown scoring strategy"):
            get_scorer("magic")

    def test_variants_disagree_on_same_input(self):
        ind = _make_indicators(sma7=95.0, sma14=96.0, rsi=25.0, trend="BULLISH")
        snap = _make_snapshot(change=-6.0)
        simple = score_simple(ind, snap)
        advanced = score_advanced(ind, snap)
        assert simple.strategy != advanced.strategy
        assert simple.score != advanced.score
