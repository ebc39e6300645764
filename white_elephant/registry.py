"""
Registry of whitelisted prize depositors and ticket holders.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from .errors import DuplicateTicket
from .schemas import PlayerTicket


class Registry:
    """
    Ticket numbers are 1-indexed, dense and handed out in purchase order.
    An identity can hold at most one ticket.
    """

    def __init__(self) -> None:
        self._depositors: Set[str] = set()
        self._players: List[str] = []
        self._numbers: Dict[str, int] = {}

    def whitelist(self, ids: Iterable[str]) -> None:
        self._depositors.update(ids)

    def is_depositor(self, player_id: str) -> bool:
        return player_id in self._depositors

    def ensure_can_register(self, player_id: str) -> None:
        if player_id in self._numbers:
            raise DuplicateTicket()

    def register_ticket(self, player_id: str) -> PlayerTicket:
        self.ensure_can_register(player_id)
        self._players.append(player_id)
        number = len(self._players)
        self._numbers[player_id] = number
        return PlayerTicket(player_id=player_id, number=number)

    def player_of(self, number: int) -> Optional[str]:
        if 1 <= number <= len(self._players):
            return self._players[number - 1]
        return None

    def number_of(self, player_id: str) -> Optional[int]:
        return self._numbers.get(player_id)

    @property
    def player_count(self) -> int:
        return len(self._players)

    def tickets(self) -> List[PlayerTicket]:
        return [
            PlayerTicket(player_id=player_id, number=index)
            for index, player_id in enumerate(self._players, start=1)
        ]
