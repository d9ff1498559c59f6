"""Tests for coinlens.pipeline.engine -- per-coin analysis and batch fan-out."""

from unittest.mock import MagicMock

import numpy as np

from conftest import build_series
from coinlens.analysis.models import CurrentSnapshot
from coinlens.data_sources.history import (
    HistoryResolver,
    HistorySource,
    ResolvedHistory,
    SyntheticHistorySource,
)
from coinlens.pipeline.engine import AnalysisEngine, basic_recommendation, format_coin_name


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _SeriesSource(HistorySource):
    """Serve a fixed random walk per coin."""

    name = "fixture"

    def fetch(self, coin_id, days, current):
        rng = np.random.default_rng(len(coin_id))
        close = current.price * np.exp(np.cumsum(rng.normal(0, 0.02, days)))
        close = close / close[-1] * current.price
        return build_series(close, volumes=[1e6] * days)


def _make_engine(strategy="advanced", source=None, max_workers=4):
    resolver = HistoryResolver([source or _SeriesSource()], min_points=20)
    return AnalysisEngine(resolver=resolver, strategy=strategy, history_days=40, max_workers=max_workers)


def _make_snapshots():
    return {
        "bitcoin": CurrentSnapshot(price=64_000.0, change_24h=1.2, volume_24h=3e10),
        "ethereum": CurrentSnapshot(price=3_100.0, change_24h=-2.0, volume_24h=1e10),
        "chainlink": CurrentSnapshot(price=14.5, change_24h=6.0, volume_24h=4e8),
    }


# ---------------------------------------------------------------------------
# Single coin
# ---------------------------------------------------------------------------

class TestAnalyze:

    def test_scores_coin(self):
        result = _make_engine().analyze("bitcoin", _make_snapshots()["bitcoin"])
        assert result.error is None
        assert result.source == "fixture"
        assert result.indicators.data_points == 40
        assert 0 <= result.recommendation.score <= 100
        assert result.name == "Bitcoin"

    def test_missing_snapshot_is_basic_hold(self):
        result = _make_engine().analyze("solana", None)
        assert result.error == "no current data"
        assert result.recommendation.action == "HOLD"
        assert result.recommendation.confidence == "LOW"
        assert result.recommendation.score == 50

    def test_no_history_is_basic_hold(self):
        resolver = MagicMock()
        resolver.resolve.return_value = ResolvedHistory(points=[], source="none")
        engine = AnalysisEngine(resolver=resolver)
        result = engine.analyze("bitcoin", _make_snapshots()["bitcoin"])
        assert result.error == "no history"
        assert result.recommendation.signals[0].reason == "Insufficient data for analysis"

    def test_resolver_exception_is_contained(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = RuntimeError("boom")
        engine = AnalysisEngine(resolver=resolver, strategy="simple")
        result = engine.analyze("bitcoin", _make_snapshots()["bitcoin"])
        assert result.error == "boom"
        assert result.recommendation.score == 0
        assert result.recommendation.strategy == "simple"

    def test_short_history_window_uses_synthetic(self):
        resolver = HistoryResolver([SyntheticHistorySource(seed=1)], min_points=20)
        engine = AnalysisEngine(resolver=resolver, history_days=10)
        result = engine.analyze("bitcoin", CurrentSnapshot(price=100.0, change_24h=1.0))
        assert result.error is None
        assert result.source == "synthetic"
        assert result.recommendation.synthetic
        assert result.indicators.data_points == 20

    def test_simple_strategy(self):
        engine = _make_engine(strategy="simple")
        assert engine.strategy == "simple"
        result = engine.analyze("ethereum", _make_snapshots()["ethereum"])
        assert result.recommendation.strategy == "simple"
        assert "total" in result.recommendation.breakdown

    def test_to_dict(self):
        data = _make_engine().analyze("chainlink", _make_snapshots()["chainlink"]).to_dict()
        assert data["coin_id"] == "chainlink"
        assert data["name"] == "Chainlink"
        assert data["recommendation"]["strategy"] == "advanced"
        assert data["indicators"]["data_points"] == 40


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

class TestAnalyzeMany:

    def test_preserves_order_and_dedupes(self):
        engine = _make_engine()
        coins = ["ethereum", "bitcoin", "ghostcoin", "ethereum", "chainlink"]
        results = engine.analyze_many(coins, _make_snapshots())
        assert [r.coin_id for r in results] == ["ethereum", "bitcoin", "ghostcoin", "chainlink"]
        assert results[2].error == "no current data"
        assert set(engine.last_timing) == {"ethereum", "bitcoin", "ghostcoin", "chainlink"}

    def test_matches_sequential(self):
        snapshots = _make_snapshots()
        parallel = _make_engine(max_workers=4).analyze_many(list(snapshots), snapshots)
        sequential = [_make_engine().analyze(c, snapshots[c]) for c in snapshots]
        assert [r.to_dict() for r in parallel] == [r.to_dict() for r in sequential]

    def test_summary_rows(self):
        engine = _make_engine()
        snapshots = _make_snapshots()
        rows = engine.summary(engine.analyze_many(["bitcoin", "dogecoin"], snapshots))
        assert rows[0]["coin"] == "Bitcoin"
        assert rows[0]["price"] == 64_000.0
        assert rows[1]["coin"] == "Dogecoin"
        assert rows[1]["price"] is None
        assert rows[1]["action"] == "HOLD"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:

    def test_format_coin_name(self):
        assert format_coin_name("bitcoin") == "Bitcoin"
        assert format_coin_name("shiba-inu") == "Shiba-inu"

    def test_basic_recommendation(self):
        rec = basic_recommendation("advanced")
        assert rec.score == 50
        assert rec.analysis["risk_assessment"]["level"] == "HIGH"
        assert basic_recommendation("simple").score == 0
