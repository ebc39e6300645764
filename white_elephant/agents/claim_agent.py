"""
Participant that always opens a fresh prize and never swaps.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..schemas import TurnDecision, TurnRequest


@dataclass
class ClaimParticipant:
    name: str = "Claim"

    def reset(self, player_id: str, game_info: dict) -> None:
        del player_id, game_info

    def act(self, request: TurnRequest) -> TurnDecision:
        if request.kind == "final_swap":
            return TurnDecision(action="keep")
        return TurnDecision(action="claim")
