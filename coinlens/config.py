"""Central configuration loader for CoinLens.

Only the data-source and pipeline layers read from here; the analysis
core takes every parameter explicitly.
"""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Project root is the parent of the coinlens/ package
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def load_settings(path: Path | None = None) -> dict:
    """Load settings from configs/settings.yaml (or ``path``)."""
    settings_path = path or Path(
        os.getenv("COINLENS_SETTINGS", PROJECT_ROOT / "configs" / "settings.yaml")
    )
    with open(settings_path) as f:
        return yaml.safe_load(f) or {}


SETTINGS = load_settings()


# --- API Keys ---
class Keys:
    COINGECKO = os.getenv("COINGECKO_API_KEY", "")


# --- Paths ---
class Paths:
    ROOT = PROJECT_ROOT
    DATA_CACHE = PROJECT_ROOT / "data" / "cache"
