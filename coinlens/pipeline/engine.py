"""AnalysisEngine: resolve history, compute indicators and score each coin.

Coins are independent, so ``analyze_many`` fans them out over a thread
pool and only collects results.  A coin that fails for any reason is
logged and reported with a neutral HOLD rather than aborting the batch.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from coinlens.analysis.models import CurrentSnapshot, IndicatorSet, Recommendation, Signal
from coinlens.analysis.scoring import get_scorer
from coinlens.analysis.technical import compute_indicators
from coinlens.config import SETTINGS
from coinlens.data_sources.history import HistoryResolver, default_resolver
from coinlens.utils.logger import setup_logger

logger = setup_logger("pipeline")

_COIN_NAMES = {
    "bitcoin": "Bitcoin",
    "ethereum": "Ethereum",
    "chainlink": "Chainlink",
    "litecoin": "Litecoin",
    "solana": "Solana",
    "cardano": "Cardano",
    "polkadot": "Polkadot",
    "dogecoin": "Dogecoin",
}


def format_coin_name(coin_id: str) -> str:
    return _COIN_NAMES.get(coin_id, coin_id[:1].upper() + coin_id[1:])


@dataclass
class CoinAnalysis:
    coin_id: str
    current: Optional[CurrentSnapshot]
    recommendation: Recommendation
    indicators: Optional[IndicatorSet] = None
    source: str = "none"
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return format_coin_name(self.coin_id)

    def to_dict(self) -> dict:
        return {
            "coin_id": self.coin_id,
            "name": self.name,
            "current": self.current.to_dict() if self.current else None,
            "source": self.source,
            "indicators": self.indicators.to_dict() if self.indicators else None,
            "recommendation": self.recommendation.to_dict(),
            "error": self.error,
        }


def basic_recommendation(strategy: str) -> Recommendation:
    """Neutral result used when a coin cannot be analysed."""
    return Recommendation(
        strategy=strategy,
        action="HOLD",
        confidence="LOW",
        score=50 if strategy == "advanced" else 0,
        signals=[Signal("HOLD", "data", 0.0, "Insufficient data for analysis")],
        warnings=[],
        breakdown={},
        analysis={
            "technical_summary": ["No data available"],
            "risk_assessment": {"level": "HIGH", "factors": ["No data"]},
            "timeframe": {"short_term": "UNKNOWN", "medium_term": "UNKNOWN", "long_term": "UNKNOWN"},
            "key_levels": {"support": 0, "resistance": 0, "stop_loss": 0, "take_profit": 0},
            "trading_signals": [],
        },
    )


class AnalysisEngine:
    """Score a watchlist under one strategy.

    Attributes:
        resolver: Priority chain supplying each coin's history.
        strategy: ``"advanced"`` or ``"simple"``.
        history_days: Days of history requested per coin.
        max_workers: Thread-pool size for ``analyze_many``.
        last_timing: Seconds per coin from the most recent batch.
    """

    def __init__(
        self,
        resolver: Optional[HistoryResolver] = None,
        strategy: str = "advanced",
        weights: Optional[Mapping[str, float]] = None,
        history_days: int = 50,
        max_workers: int = 4,
    ) -> None:
        self.resolver = resolver or default_resolver()
        self.scorer = get_scorer(strategy, weights)
        self.history_days = history_days
        self.max_workers = max_workers
        self.last_timing: Dict[str, float] = {}

    @classmethod
    def from_settings(
        cls,
        strategy: Optional[str] = None,
        resolver: Optional[HistoryResolver] = None,
    ) -> "AnalysisEngine":
        cfg = SETTINGS.get("analysis", {})
        strategy = strategy or cfg.get("strategy", "advanced")
        return cls(
            resolver=resolver or default_resolver(min_points=cfg.get("min_history_points", 20)),
            strategy=strategy,
            weights=cfg.get("weights") if strategy == "advanced" else None,
            history_days=cfg.get("history_days", 50),
            max_workers=cfg.get("max_workers", 4),
        )

    @property
    def strategy(self) -> str:
        return self.scorer.name

    def analyze(self, coin_id: str, current: Optional[CurrentSnapshot]) -> CoinAnalysis:
        if current is None or current.price <= 0:
            logger.warning("%s: no current data available", coin_id)
            return CoinAnalysis(coin_id, current, basic_recommendation(self.strategy),
                                error="no current data")
        try:
            history = self.resolver.resolve(coin_id, self.history_days, current)
            if not history.points:
                return CoinAnalysis(coin_id, current, basic_recommendation(self.strategy),
                                    source=history.source, error="no history")
            indicators = compute_indicators(history.points, current)
            recommendation = self.scorer.score(indicators, current)
        except Exception as e:
            logger.error("%s: analysis failed: %s", coin_id, e)
            return CoinAnalysis(coin_id, current, basic_recommendation(self.strategy), error=str(e))

        logger.info(
            "%s: %s (%s) score=%s source=%s",
            coin_id, recommendation.action, recommendation.confidence,
            recommendation.score, history.source,
        )
        return CoinAnalysis(coin_id, current, recommendation, indicators, source=history.source)

    def analyze_many(
        self,
        coin_ids: Sequence[str],
        snapshots: Mapping[str, CurrentSnapshot],
    ) -> List[CoinAnalysis]:
        """Analyse coins in parallel; results keep the order of ``coin_ids``."""
        results: Dict[str, CoinAnalysis] = {}
        timing: Dict[str, float] = {}

        def _run(coin_id: str) -> tuple[str, CoinAnalysis, float]:
            t0 = time.perf_counter()
            result = self.analyze(coin_id, snapshots.get(coin_id))
            return coin_id, result, time.perf_counter() - t0

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(_run, coin_id) for coin_id in dict.fromkeys(coin_ids)]
            for fut in as_completed(futures):
                coin_id, result, elapsed = fut.result()
                results[coin_id] = result
                timing[coin_id] = round(elapsed, 4)

        self.last_timing = timing
        logger.info("Analysed %d coins with %s strategy", len(results), self.strategy)
        return [results[c] for c in dict.fromkeys(coin_ids)]

    def summary(self, analyses: Sequence[CoinAnalysis]) -> List[Dict[str, Any]]:
        """One row per coin for tabular display."""
        return [
            {
                "coin": a.name,
                "price": a.current.price if a.current else None,
                "change_24h": a.current.change_24h if a.current else None,
                "action": a.recommendation.action,
                "confidence": a.recommendation.confidence,
                "score": a.recommendation.score,
                "source": a.source,
                "synthetic": a.recommendation.synthetic,
            }
            for a in analyses
        ]
