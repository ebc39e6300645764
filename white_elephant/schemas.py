"""
Structured dataclasses exchanged between the engine, the runner and the API.

The HTTP service speaks JSON; inside the package we keep to plain dataclasses
so engine state stays deterministic and cheap to copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Sequence, Tuple

ActionLiteral = Literal[
    "claim",
    "steal",
    "catch_up",
    "final_swap",
    "keep",
    "skip",
    "forfeit",
    "final_swap_lapsed",
]
DecisionLiteral = Literal["claim", "steal", "keep", "idle"]
TurnKind = Literal["turn", "catch_up", "final_swap"]


@dataclass(slots=True)
class PlayerTicket:
    player_id: str
    number: int


@dataclass(slots=True)
class PrizeDeposit:
    depositor: str
    asset_ref: str


@dataclass(slots=True)
class ActionRecord:
    seq: int
    action: ActionLiteral
    slot: int
    player: int
    target: Optional[int]
    at: float


@dataclass(slots=True)
class TurnRequest:
    game_id: str
    kind: TurnKind
    slot: int
    player_number: int
    player_id: str
    holdings: Dict[int, int]
    stealable: Sequence[int]
    players_skipped: int
    deadline: float


@dataclass(slots=True)
class TurnDecision:
    action: DecisionLiteral
    target: Optional[int] = None
    metadata: Optional[Dict[str, str]] = None


@dataclass(slots=True)
class ResolutionRecord:
    """
    Final holding of one slot.

    The trailing record of a full resolution has ``slot=None`` and lists the
    prize slots nobody ended up holding in ``leftover``.
    """

    slot: Optional[int]
    player: Optional[int]
    prize_slot: Optional[int]
    leftover: Tuple[int, ...] = ()

    @property
    def is_leftover(self) -> bool:
        return self.slot is None


def records_to_dicts(records: Sequence[ResolutionRecord]) -> List[Dict[str, object]]:
    return [
        {
            "slot": record.slot,
            "player": record.player,
            "prize_slot": record.prize_slot,
            "leftover": list(record.leftover),
        }
        for record in records
    ]
