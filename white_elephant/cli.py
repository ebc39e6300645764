"""Command line interface for the white elephant simulator."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import pathlib

from dotenv import load_dotenv

from .runner import GameRunner, SimulationConfig


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate a white elephant game")
    parser.add_argument(
        "--config",
        default=os.environ.get("WHITE_ELEPHANT_CONFIG"),
        help="Path to simulation config (YAML or JSON); defaults to $WHITE_ELEPHANT_CONFIG",
    )
    parser.add_argument(
        "--output",
        default="artifacts/latest_game",
        help="Directory to store the event log, result and metrics",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the seed used for the turn order and random participants",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Python logging level (e.g. INFO, WARNING). Use INFO to see rejected decisions.",
    )
    return parser.parse_args()


def main() -> None:
    load_dotenv()
    args = parse_args()
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    if not args.config:
        raise SystemExit("--config is required (or set WHITE_ELEPHANT_CONFIG)")
    config = SimulationConfig.from_file(args.config)
    if args.seed is not None:
        config = dataclasses.replace(config, seed=args.seed)

    output_dir = pathlib.Path(args.output)
    result = GameRunner(config, output_dir).run()

    if result.stop_info:
        print("=== Game Stopped Early ===")
        print(json.dumps(result.stop_info, indent=2, sort_keys=True))

    print("=== White Elephant Summary ===")
    for row in sorted(result.players, key=lambda r: (r["slot"] is None, r["slot"] or 0)):
        prize = row["asset_ref"] or "-"
        print(f"slot {row['slot']}: {row['player_id']} ({row['participant']}) -> {prize}")
    metrics = result.metrics
    actions = metrics["actions"]
    print(
        f"Claims {actions['claim']}, steals {actions['steal']}, skips {actions['skip']}, "
        f"catch-ups {actions['catch_up']}, forfeits {actions['forfeit']}"
    )
    print(f"Longest steal chain: {metrics['longest_steal_chain']}")
    print(f"Penalties: {result.penalties}")
    print(f"Artifacts written to: {output_dir.resolve()}")


if __name__ == "__main__":
    main()
