"""
Random baseline participant.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from ..schemas import TurnDecision, TurnRequest


@dataclass
class RandomParticipant:
    name: str = "Random"
    seed: Optional[int] = None
    steal_probability: float = 0.5
    idle_probability: float = 0.0

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def reset(self, player_id: str, game_info: dict) -> None:
        # Without an explicit seed every player gets its own stream derived
        # from the game seed, so a run replays exactly.
        if self.seed is None:
            self._rng = random.Random(f"{game_info.get('seed', 0)}:{player_id}")

    def act(self, request: TurnRequest) -> TurnDecision:
        if self._rng.random() < self.idle_probability:
            return TurnDecision(action="idle")
        if request.kind == "catch_up":
            return TurnDecision(action="claim")
        wants_steal = bool(request.stealable) and self._rng.random() < self.steal_probability
        if request.kind == "final_swap":
            if wants_steal:
                return TurnDecision(action="steal", target=self._rng.choice(list(request.stealable)))
            return TurnDecision(action="keep")
        if wants_steal:
            return TurnDecision(action="steal", target=self._rng.choice(list(request.stealable)))
        return TurnDecision(action="claim")
