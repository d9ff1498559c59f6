"""CoinGecko REST client - current snapshots and daily price history.

Responses are cached on disk (TTL per category from settings) and calls go
through a shared rate limiter.  Network or payload errors are logged and
turned into empty results; callers fall back to other history sources.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import requests

from coinlens.analysis.models import CurrentSnapshot, PricePoint
from coinlens.config import Keys, SETTINGS
from coinlens.utils.cache import DataCache
from coinlens.utils.logger import setup_logger
from coinlens.utils.rate_limiter import RateLimiter

logger = setup_logger("coingecko")

_CFG = SETTINGS.get("coingecko", {})
DEFAULT_BASE_URL = _CFG.get("base_url", "https://api.coingecko.com/api/v3")
_HIGH_LOW_SPREAD = 0.02     # market_chart has closes only; approximate the range


class CoinGeckoClient:
    """Thin wrapper over the public CoinGecko API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        currency: str = _CFG.get("currency", "usd"),
        timeout: float = _CFG.get("timeout_seconds", 15),
        api_key: str = Keys.COINGECKO,
        rate_limiter: Optional[RateLimiter] = None,
        snapshot_cache: Optional[DataCache] = None,
        history_cache: Optional[DataCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        self.api_key = api_key
        self.rate_limiter = rate_limiter or RateLimiter(_CFG.get("calls_per_minute", 30))
        self.snapshot_cache = snapshot_cache or DataCache("snapshots")
        self.history_cache = history_cache or DataCache("history")
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict) -> Optional[dict]:
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else {}
        self.rate_limiter.wait()
        try:
            resp = self.session.get(
                f"{self.base_url}{path}", params=params, headers=headers, timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("CoinGecko request %s failed: %s", path, e)
            return None

    # ------------------------------------------------------------------
    # Current snapshots
    # ------------------------------------------------------------------
    def get_snapshots(self, coin_ids: Iterable[str]) -> Dict[str, CurrentSnapshot]:
        """Batch price lookup; coins with no or zero price are left out."""
        ids = sorted(set(coin_ids))
        if not ids:
            return {}
        cur = self.currency
        key = f"simple_price:{cur}:{','.join(ids)}"
        data = self.snapshot_cache.get(key)
        if data is None:
            data = self._get("/simple/price", {
                "ids": ",".join(ids),
                "vs_currencies": cur,
                "include_24hr_change": "true",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
            })
            if not data:
                return {}
            self.snapshot_cache.set(key, data)

        snapshots: Dict[str, CurrentSnapshot] = {}
        for coin_id in ids:
            row = data.get(coin_id) or {}
            price = row.get(cur)
            if not price or price <= 0:
                logger.warning("%s: no current price available", coin_id)
                continue
            snapshots[coin_id] = CurrentSnapshot(
                price=float(price),
                change_24h=float(row.get(f"{cur}_24h_change") or 0.0),
                market_cap=float(row.get(f"{cur}_market_cap") or 0.0),
                volume_24h=float(row.get(f"{cur}_24h_vol") or 0.0),
            )
        return snapshots

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def get_history(self, coin_id: str, days: int = 50) -> List[PricePoint]:
        """Daily closes with volume matched by timestamp."""
        key = f"market_chart:{coin_id}:{self.currency}:{days}"
        data = self.history_cache.get(key)
        if data is None:
            data = self._get(f"/coins/{coin_id}/market_chart", {
                "vs_currency": self.currency,
                "days": days,
                "interval": "daily",
            })
            if not data or not data.get("prices"):
                return []
            self.history_cache.set(key, data)
        return parse_market_chart(data)


def parse_market_chart(data: dict) -> List[PricePoint]:
    """Convert a ``market_chart`` payload into PricePoints.

    Non-positive prices are dropped and points are sorted by timestamp.
    """
    volumes = {int(ts): float(v or 0.0) for ts, v in data.get("total_volumes", [])}
    points = []
    for ts, price in data.get("prices", []):
        if price is None or price <= 0:
            continue
        ts = int(ts)
        points.append(PricePoint(
            timestamp=ts,
            price=float(price),
            high=float(price) * (1 + _HIGH_LOW_SPREAD),
            low=float(price) * (1 - _HIGH_LOW_SPREAD),
            volume=volumes.get(ts, 0.0),
        ))
    points.sort(key=lambda p: p.timestamp)
    return points
