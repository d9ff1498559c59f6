"""History sources and the priority chain that resolves one series per coin.

The analysis core never decides where its input comes from.  A
``HistoryResolver`` walks an ordered list of ``HistorySource`` objects and
returns the first series long enough to score; the synthetic source sits
last and always succeeds, so every coin gets scored.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from coinlens.analysis.models import CurrentSnapshot, PricePoint
from coinlens.analysis.synthetic import synthesize_history
from coinlens.data_sources.coingecko import CoinGeckoClient
from coinlens.utils.logger import setup_logger

logger = setup_logger("history")


class HistorySource(ABC):
    """Interface every history provider implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def fetch(self, coin_id: str, days: int, current: Optional[CurrentSnapshot]) -> List[PricePoint]:
        """Return chronological points, or an empty list if unavailable."""
        ...


class CoinGeckoHistorySource(HistorySource):
    name = "coingecko"

    def __init__(self, client: Optional[CoinGeckoClient] = None):
        self.client = client or CoinGeckoClient()

    def fetch(self, coin_id: str, days: int, current: Optional[CurrentSnapshot]) -> List[PricePoint]:
        return self.client.get_history(coin_id, days)


class SyntheticHistorySource(HistorySource):
    """Random walk anchored on the current snapshot."""

    name = "synthetic"

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed

    def fetch(self, coin_id: str, days: int, current: Optional[CurrentSnapshot]) -> List[PricePoint]:
        if current is None:
            return []
        return synthesize_history(current, days, seed=self.seed)


@dataclass(frozen=True)
class ResolvedHistory:
    points: List[PricePoint]
    source: str

    @property
    def synthetic(self) -> bool:
        return any(p.synthetic for p in self.points)


class HistoryResolver:
    """Try sources in order until one returns at least ``min_points`` points.

    Every source is asked for at least ``min_points - 1`` days so a
    synthetic fallback (which returns ``days + 1`` points) always clears
    the floor.
    """

    def __init__(self, sources: Sequence[HistorySource], min_points: int = 20):
        if not sources:
            raise ValueError("HistoryResolver needs at least one source")
        self.sources = list(sources)
        self.min_points = min_points

    def resolve(
        self,
        coin_id: str,
        days: int,
        current: Optional[CurrentSnapshot] = None,
    ) -> ResolvedHistory:
        fetch_days = max(days, self.min_points - 1)
        for source in self.sources:
            try:
                points = source.fetch(coin_id, fetch_days, current)
            except Exception as e:
                logger.warning("%s: source %s failed: %s", coin_id, source.name, e)
                continue
            if len(points) >= self.min_points:
                logger.info("%s: %d points from %s", coin_id, len(points), source.name)
                return ResolvedHistory(points=points, source=source.name)
            logger.info(
                "%s: %s returned %d points (< %d), trying next source",
                coin_id, source.name, len(points), self.min_points,
            )
        logger.warning("%s: no source produced enough history", coin_id)
        return ResolvedHistory(points=[], source="none")


def default_resolver(
    client: Optional[CoinGeckoClient] = None,
    min_points: int = 20,
    seed: Optional[int] = None,
) -> HistoryResolver:
    """CoinGecko first, synthetic fallback second."""
    return HistoryResolver(
        [CoinGeckoHistorySource(client), SyntheticHistorySource(seed)],
        min_points=min_points,
    )
