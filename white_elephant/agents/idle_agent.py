"""
Participant that never acts and lets every turn time out.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..schemas import TurnDecision, TurnRequest


@dataclass
class IdleParticipant:
    name: str = "Idle"

    def reset(self, player_id: str, game_info: dict) -> None:
        del player_id, game_info

    def act(self, request: TurnRequest) -> TurnDecision:
        del request
        return TurnDecision(action="idle")
