#!/usr/bin/env python3
"""CoinLens: technical indicators and buy/sell scoring for a crypto watchlist.

Usage:
    python main.py recommend bitcoin ethereum             # live, advanced strategy
    python main.py recommend solana --strategy simple     # simple signed score
    python main.py watchlist                              # coins from settings.yaml
    python main.py analyze history.json --price 64000 --change 2.5
    python main.py synthesize --price 100 --change -3 --days 30 --seed 7
"""

import argparse
import json
import sys
from pathlib import Path

import pandas as pd

from coinlens.analysis import (
    CurrentSnapshot,
    PricePoint,
    TechnicalAnalyzer,
    synthesize_history,
)
from coinlens.analysis.scoring import STRATEGIES
from coinlens.config import SETTINGS
from coinlens.data_sources.coingecko import CoinGeckoClient, parse_market_chart
from coinlens.data_sources.history import default_resolver
from coinlens.pipeline.engine import AnalysisEngine
from coinlens.utils.logger import setup_logger

setup_logger("coinlens", SETTINGS.get("app", {}).get("log_level", "INFO"))
logger = setup_logger("main")


def _print_analyses(engine: AnalysisEngine, analyses, as_json: bool) -> None:
    if as_json:
        print(json.dumps([a.to_dict() for a in analyses], indent=2, default=str))
        return
    print(pd.DataFrame(engine.summary(analyses)).to_string(index=False))
    for a in analyses:
        rec = a.recommendation
        print(f"\n{'=' * 60}")
        print(f"  {a.name}: {rec.action} ({rec.confidence}) score={rec.score}")
        if rec.synthetic:
            print("  (computed on synthetic history - low confidence)")
        print(f"{'=' * 60}")
        for s in rec.signals[:3]:
            print(f"  + {s.reason}")
        for w in rec.warnings[:2]:
            print(f"  ! {w.reason}")
        if rec.key_levels:
            kl = rec.key_levels
            print(f"  stop-loss {kl.stop_loss:,.4f} | take-profit {kl.take_profit:,.4f}")


def _run_live(coin_ids, strategy: str, as_json: bool) -> None:
    client = CoinGeckoClient()
    snapshots = client.get_snapshots(coin_ids)
    if not snapshots:
        print("No price data returned for: " + ", ".join(coin_ids))
        sys.exit(1)
    cfg = SETTINGS.get("analysis", {})
    engine = AnalysisEngine.from_settings(
        strategy=strategy,
        resolver=default_resolver(client, min_points=cfg.get("min_history_points", 20)),
    )
    _print_analyses(engine, engine.analyze_many(coin_ids, snapshots), as_json)


def _load_series(path: Path) -> list:
    """Read a JSON list of price points or a CoinGecko market_chart payload."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict) and "prices" in data:
        return parse_market_chart(data)
    return [PricePoint.from_dict(row) for row in data]


# ============================================================
# COMMANDS
# ============================================================

def cmd_recommend(args):
    """Score the given coins from live CoinGecko data."""
    _run_live(args.coins, args.strategy, args.json)


def cmd_watchlist(args):
    """Score the configured watchlist."""
    coins = SETTINGS.get("watchlist", [])
    if not coins:
        print("No watchlist configured in configs/settings.yaml")
        sys.exit(1)
    _run_live(coins, args.strategy, args.json)


def cmd_analyze(args):
    """Score a saved price history offline."""
    try:
        series = _load_series(Path(args.file))
    except (OSError, ValueError, KeyError) as e:
        print(f"Cannot read {args.file}: {e}")
        sys.exit(1)
    current = CurrentSnapshot(
        price=args.price if args.price is not None else (series[-1].price if series else 0.0),
        change_24h=args.change,
        volume_24h=args.volume,
    )
    analyzer = TechnicalAnalyzer(args.strategy)
    try:
        result = analyzer.analyze(series, current)
    except ValueError as e:
        print(f"Invalid price history: {e}")
        sys.exit(1)
    result["levels"] = [lv.to_dict() for lv in analyzer.levels(series)]
    print(json.dumps(result, indent=2, default=str))


def cmd_synthesize(args):
    """Print a synthetic history anchored on a price snapshot."""
    current = CurrentSnapshot(price=args.price, change_24h=args.change, volume_24h=args.volume)
    points = synthesize_history(current, args.days, seed=args.seed)
    print(json.dumps([p.to_dict() for p in points], indent=2))


def main():
    parser = argparse.ArgumentParser(
        description="CoinLens: crypto technical analysis and scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", help="Commands")

    # recommend
    p = sub.add_parser("recommend", help="Score coins from live data")
    p.add_argument("coins", nargs="+", help="CoinGecko coin ids")
    p.add_argument("--strategy", default=None, choices=STRATEGIES)
    p.add_argument("--json", action="store_true", help="Print full JSON")
    p.set_defaults(func=cmd_recommend)

    # watchlist
    p = sub.add_parser("watchlist", help="Score the configured watchlist")
    p.add_argument("--strategy", default=None, choices=STRATEGIES)
    p.add_argument("--json", action="store_true", help="Print full JSON")
    p.set_defaults(func=cmd_watchlist)

    # analyze
    p = sub.add_parser("analyze", help="Score a price history JSON file")
    p.add_argument("file")
    p.add_argument("--price", type=float, default=None, help="Current price (default: last point)")
    p.add_argument("--change", type=float, default=0.0, help="24h change in percent")
    p.add_argument("--volume", type=float, default=0.0, help="24h volume")
    p.add_argument("--strategy", default="advanced", choices=STRATEGIES)
    p.set_defaults(func=cmd_analyze)

    # synthesize
    p = sub.add_parser("synthesize", help="Generate a synthetic price history")
    p.add_argument("--price", type=float, required=True)
    p.add_argument("--change", type=float, default=0.0)
    p.add_argument("--volume", type=float, default=0.0)
    p.add_argument("--days", type=int, default=50)
    p.add_argument("--seed", type=int, default=None)
    p.set_defaults(func=cmd_synthesize)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    args.func(args)


if __name__ == "__main__":
    main()
