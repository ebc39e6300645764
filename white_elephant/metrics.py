"""
Metrics aggregation over game event streams.
"""

from __future__ import annotations

import pathlib
from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, Mapping, Optional

from .logging_utils import read_events

ACTION_TYPES = ("claim", "steal", "catch_up", "skip", "forfeit", "final_swap", "keep", "final_swap_lapsed")


def summarize_events(events: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    counts: Counter = Counter()
    steals_by_player: Dict[str, int] = defaultdict(int)
    robbed_by_slot: Dict[int, int] = defaultdict(int)
    prize_moves: Dict[int, int] = defaultdict(int)
    penalties: Dict[str, int] = defaultdict(int)
    holdings: Dict[int, int] = {}
    longest_chain = 0
    chain = 0
    previous_slot: Optional[int] = None
    previous_was_steal = False
    resolution_steps: Optional[int] = None

    for event in events:
        kind = event["type"]
        payload = event.get("payload", {})
        if kind == "penalty":
            penalties[payload.get("player_id", "?")] += 1
            continue
        if kind == "resolution":
            resolution_steps = payload.get("steps")
            continue
        if kind not in ACTION_TYPES:
            continue
        counts[kind] += 1
        slot = payload["slot"]
        target = payload.get("target")

        if kind in ("claim", "catch_up"):
            holdings[slot] = slot
        elif kind == "steal":
            steals_by_player[payload.get("player_id") or str(payload.get("player"))] += 1
            robbed_by_slot[target] += 1
            taken = holdings[target]
            prize_moves[taken] += 1
            holdings[slot], holdings[target] = taken, slot
        elif kind == "final_swap":
            robbed_by_slot[target] += 1
            prize_moves[holdings[slot]] += 1
            prize_moves[holdings[target]] += 1
            holdings[slot], holdings[target] = holdings[target], holdings[slot]

        if kind in ("claim", "catch_up", "steal"):
            if kind == "steal" and previous_was_steal and target == previous_slot:
                chain += 1
            elif kind == "steal":
                chain = 1
            else:
                chain = 0
            longest_chain = max(longest_chain, chain)
            previous_slot = slot
            previous_was_steal = kind == "steal"

    turns = counts["claim"] + counts["steal"]
    return {
        "actions": {name: counts[name] for name in ACTION_TYPES},
        "turns_taken": turns,
        "steal_rate": counts["steal"] / turns if turns else 0.0,
        "steals_by_player": dict(sorted(steals_by_player.items())),
        "times_robbed": {str(slot): n for slot, n in sorted(robbed_by_slot.items())},
        "prize_moves": {str(prize): n for prize, n in sorted(prize_moves.items())},
        "longest_steal_chain": longest_chain,
        "penalties": dict(sorted(penalties.items())),
        "resolution_steps": resolution_steps,
    }


def summarize_log(path: pathlib.Path) -> Dict[str, Any]:
    return summarize_events(read_events(path))
