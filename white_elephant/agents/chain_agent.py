"""
Participant that steals from the slot right before its own.

A table full of these produces the longest possible steal chain: every slot
robs its predecessor, so resolving slot ``i`` walks back through all earlier
slots.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..schemas import TurnDecision, TurnRequest


@dataclass
class ChainThief:
    name: str = "Chain"

    def reset(self, player_id: str, game_info: dict) -> None:
        del player_id, game_info

    def act(self, request: TurnRequest) -> TurnDecision:
        if request.kind == "final_swap":
            return TurnDecision(action="keep")
        if request.kind == "turn":
            target = request.slot - 1
            if target in request.stealable:
                return TurnDecision(action="steal", target=target)
        return TurnDecision(action="claim")
