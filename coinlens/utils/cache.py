"""File-based JSON cache for API responses."""

import hashlib
import json
import time
from pathlib import Path
from typing import Any

from coinlens.config import Paths, SETTINGS


class DataCache:
    """One directory of JSON files per category, expired by file age."""

    def __init__(
        self,
        category: str = "general",
        cache_dir: Path | None = None,
        ttl_hours: float | None = None,
    ):
        self.cache_dir = (cache_dir or Paths.DATA_CACHE) / category
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        if ttl_hours is None:
            ttl_hours = SETTINGS.get("cache", {}).get("ttl_hours", {}).get(category, 24)
        self.ttl_seconds = float(ttl_hours) * 3600

    def _key_path(self, key: str) -> Path:
        hashed = hashlib.md5(key.encode()).hexdigest()
        return self.cache_dir / f"{hashed}.json"

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or None if missing or expired."""
        path = self._key_path(key)
        if not path.exists():
            return None
        if time.time() - path.stat().st_mtime > self.ttl_seconds:
            path.unlink(missing_ok=True)
            return None
        with open(path) as f:
            return json.load(f)

    def set(self, key: str, data: Any) -> None:
        path = self._key_path(key)
        with open(path, "w") as f:
            json.dump(data, f)
