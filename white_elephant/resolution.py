"""
Final prize resolution from the recorded swap history.

Every slot that acted took something on its own turn: a claim takes the slot's
own prize, a steal takes whatever the target held at that moment. Afterwards a
slot only changes hands when it is robbed, and a robber always hands over the
prize it just opened. So a slot's final prize is its last robber's prize, or,
if nobody took from it, its own acquisition.

What a target held when it was robbed is again either its previous robber's
prize or the target's own acquisition, which makes acquisitions a chain: in the
worst case player ``i`` steals from ``i - 1`` for every ``i`` and the chain runs
the whole order. Acquisitions are memoized as the chain is walked, so resolving
every slot visits each slot a bounded number of times.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set, Tuple

from .schemas import ActionRecord, ResolutionRecord
from .turn_order import EMPTY_SLOT


class ResolutionEngine:
    def __init__(self, history: Sequence[ActionRecord]) -> None:
        self._claimed: Set[int] = set()
        # slot -> (target, target's previous robber at the time of the steal)
        self._stole_from: Dict[int, Tuple[int, Optional[int]]] = {}
        self._last_robber: Dict[int, int] = {}
        self._final_swap: Optional[Tuple[int, int]] = None
        self._acquired: Dict[int, int] = {}
        self.steps = 0
        for record in history:
            if record.action in ("claim", "catch_up"):
                self._claimed.add(record.slot)
            elif record.action == "steal":
                assert record.target is not None
                target = record.target
                self._stole_from[record.slot] = (target, self._last_robber.get(target))
                self._last_robber[target] = record.slot
            elif record.action == "final_swap":
                assert record.target is not None
                self._final_swap = (record.slot, record.target)

    def acted(self, slot: int) -> bool:
        return slot in self._claimed or slot in self._stole_from

    def acquisition(self, slot: int) -> int:
        """Prize the slot took on its own turn."""
        path: List[int] = []
        node = slot
        while node not in self._acquired:
            self.steps += 1
            if node in self._claimed:
                self._acquired[node] = node
                break
            if node not in self._stole_from:
                raise ValueError(f"slot {node} never acted")
            target, previous_robber = self._stole_from[node]
            if previous_robber is not None:
                self._acquired[node] = previous_robber
                break
            path.append(node)
            node = target
        value = self._acquired[node]
        for visited in path:
            self._acquired[visited] = value
        return value

    def final_prizes(self, order: Sequence[int]) -> Dict[int, int]:
        prizes: Dict[int, int] = {}
        for slot, number in enumerate(order):
            if number == EMPTY_SLOT or not self.acted(slot):
                continue
            robber = self._last_robber.get(slot)
            prizes[slot] = robber if robber is not None else self.acquisition(slot)
        if self._final_swap is not None:
            first, target = self._final_swap
            prizes[first], prizes[target] = prizes[target], prizes[first]
        return prizes

    def resolve(
        self,
        order: Sequence[int],
        start_index: int = 0,
        end_index: Optional[int] = None,
        prize_count: Optional[int] = None,
    ) -> List[ResolutionRecord]:
        if end_index is None:
            end_index = len(order)
        if not 0 <= start_index <= end_index <= len(order):
            raise ValueError(f"invalid resolution range [{start_index}, {end_index})")
        prizes = self.final_prizes(order)
        records: List[ResolutionRecord] = []
        for slot in range(start_index, end_index):
            number = order[slot]
            records.append(
                ResolutionRecord(
                    slot=slot,
                    player=number if number != EMPTY_SLOT else None,
                    prize_slot=prizes.get(slot),
                )
            )
        if end_index == len(order):
            if prize_count is None:
                prize_count = sum(1 for number in order if number != EMPTY_SLOT)
            held = set(prizes.values())
            leftover = tuple(prize for prize in range(prize_count) if prize not in held)
            records.append(ResolutionRecord(slot=None, player=None, prize_slot=None, leftover=leftover))
        return records
