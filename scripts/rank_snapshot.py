# scripts/rank_snapshot.py
"""
Rank a saved odds snapshot and print the positive-EV lines.

Usage:
    python scripts/rank_snapshot.py snapshot.json
    python scripts/rank_snapshot.py snapshot.json --method power --min-ev 5
    python scripts/rank_snapshot.py snapshot.json --profile football --json
    python scripts/rank_snapshot.py snapshot.json --bankroll 1000

The snapshot is a JSON list of quote records, or an object with a
``quotes`` list.  Engine settings come from ``EV_*`` environment variables
(a ``.env`` file in the working directory is honoured) and are overridden
by the flags below.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace

from dotenv import load_dotenv

load_dotenv()

from evfinder.core.devig import DevigMethod, InvalidDevigMethodError
from evfinder.core.engine_config import EngineConfig
from evfinder.core.kelly import kelly_stake
from evfinder.core.odds_math import decimal_to_american
from evfinder.services.pipeline import run_pipeline
from evfinder.services.ranking import consolidate_by_bet, summarize

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_snapshot(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("quotes", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of quotes or {{'quotes': [...]}}")
    return data


def build_config(args: argparse.Namespace) -> EngineConfig:
    config = EngineConfig.from_env()
    if args.profile == "football":
        football = EngineConfig.football()
        config = replace(
            config,
            sharp_books=football.sharp_books,
            playable_books=football.playable_books,
            max_offered_odds=config.max_offered_odds or football.max_offered_odds,
        )
    if args.method:
        config = config.with_method(args.method)
    if args.min_ev is not None:
        config = replace(config, min_ev_percent=args.min_ev)
    return config


def print_table(result, config: EngineConfig, bankroll: float = 0.0) -> None:
    bets = consolidate_by_bet(result.opportunities)
    if not bets:
        print("No +EV lines found.")
        return

    stake_header = f"{'Stake':>8}  " if bankroll > 0 else ""
    print(f"{'EV%':>6}  {'Odds':>6}  {'US':>5}  {'Fair':>6}  {stake_header}{'Book':<14} {'Bet'}")
    print("-" * 78)
    for bet in bets:
        best = bet.best
        others = ", ".join(o.bookmaker for o in bet.books[1:])
        stake = ""
        if bankroll > 0:
            amount = kelly_stake(
                best.fair_probability,
                best.offered_odds,
                bankroll,
                fractional_divisor=config.kelly_divisor,
                max_fraction=config.kelly_cap,
            )
            stake = f"{amount:>8.2f}  "
        print(
            f"{best.ev_percent:>6.2f}  {best.offered_odds:>6.2f}  "
            f"{decimal_to_american(best.offered_odds):>+5d}  {best.fair_odds:>6.2f}  {stake}"
            f"{best.bookmaker:<14} {bet.subject} {bet.market_label} "
            f"{bet.side.value} {bet.line:g}"
            + (f"  (also: {others})" if others else "")
        )

    stats = summarize(result.opportunities)
    print("-" * 78)
    print(
        f"{stats['count']} lines across {len(bets)} bets, "
        f"avg EV {stats['avg_ev_percent']:.2f}%, grades {stats['grade_distribution']}"
    )
    if result.suspicious:
        print(f"{len(result.suspicious)} line(s) withheld as implausible, see log.")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Rank +EV lines in an odds snapshot.")
    parser.add_argument("snapshot", help="Path to a JSON snapshot of quote records")
    parser.add_argument(
        "--method",
        choices=[m.value for m in DevigMethod],
        help="De-vig method (default: EV_DEVIG_METHOD or multiplicative)",
    )
    parser.add_argument("--min-ev", type=float, default=None, help="Minimum EV%% to show")
    parser.add_argument(
        "--profile",
        choices=["default", "football"],
        default="default",
        help="Sharp/playable bookmaker preset",
    )
    parser.add_argument(
        "--bankroll",
        type=float,
        default=0.0,
        help="Show a fractional-Kelly stake column for this bankroll",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        snapshot = load_snapshot(args.snapshot)
    except (InvalidDevigMethodError, ValueError, OSError) as e:
        logger.error("Cannot rank snapshot: %s", e)
        return 1

    logger.info("Ranking %d records with %r", len(snapshot), config)
    result = run_pipeline(snapshot, config)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_table(result, config, args.bankroll)
    return 0


if __name__ == "__main__":
    sys.exit(main())
