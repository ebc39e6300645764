"""
Turn engine for the gift-exchange game: claim, steal, skip catch-up, final swap.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from .errors import (
    DuplicateSteal,
    FinalSwapUnavailable,
    NotYourTurn,
    PrizeMismatch,
    SkipDebtOutstanding,
    TargetNotClaimed,
)
from .logging_utils import EventLog
from .registry import Registry
from .schemas import ActionLiteral, ActionRecord, TurnKind
from .turn_order import EMPTY_SLOT

DEFAULT_TURN_TIMEOUT = 10800


class GamePhase(enum.Enum):
    REGISTRATION = enum.auto()
    AWAITING_START = enum.auto()
    INITIALIZING = enum.auto()
    ACTIVE = enum.auto()
    RESOLVED = enum.auto()


class FinalSwapState(enum.Enum):
    NOT_OPEN = enum.auto()
    PENDING = enum.auto()
    DONE = enum.auto()
    DECLINED = enum.auto()
    LAPSED = enum.auto()
    UNAVAILABLE = enum.auto()


@dataclass(slots=True)
class EngineConfig:
    turn_timeout: float = DEFAULT_TURN_TIMEOUT
    final_swap: bool = False
    forfeit_skip_debt: bool = False


@dataclass(slots=True)
class StealGuard:
    last_thief: Optional[int] = None
    last_victim: Optional[int] = None


@dataclass(slots=True)
class GameState:
    order: List[int]
    last_action: float
    curr_player: int = 0
    skip_queue: Deque[int] = field(default_factory=deque)
    swaps: Dict[int, int] = field(default_factory=dict)
    guards: Dict[int, StealGuard] = field(default_factory=dict)
    forfeited: List[int] = field(default_factory=list)
    final_swap: FinalSwapState = FinalSwapState.NOT_OPEN
    history: List[ActionRecord] = field(default_factory=list)

    @property
    def players_skipped(self) -> int:
        return len(self.skip_queue)

    @property
    def exhausted(self) -> bool:
        return self.curr_player >= len(self.order)


class TurnEngine:
    """
    Sequential state machine over the finalized turn order.

    ``swaps`` maps each claimed slot to the prize slot it currently holds. A
    steal hands the target's prize to the stealer and the stealer's freshly
    opened prize to the target, so the table stays a bijection over claimed
    slots. Missed turns are detected lazily: every action first replays the
    timeouts that elapsed since ``last_action``.
    """

    def __init__(
        self,
        state: GameState,
        registry: Registry,
        config: EngineConfig,
        logger: EventLog,
    ) -> None:
        self.state = state
        self.registry = registry
        self.config = config
        self.logger = logger
        self.first_slot: Optional[int] = next(
            (slot for slot, number in enumerate(state.order) if number != EMPTY_SLOT),
            None,
        )
        self._skip_empty_slots()

    @classmethod
    def start(
        cls,
        order: List[int],
        registry: Registry,
        config: EngineConfig,
        logger: EventLog,
        now: float,
    ) -> "TurnEngine":
        return cls(GameState(order=list(order), last_action=now), registry, config, logger)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def claim(self, caller: str, now: float) -> ActionRecord:
        self.sync(now)
        self._require_no_debt()
        slot = self._require_turn(caller)
        self.state.swaps[slot] = slot
        record = self._record("claim", slot, None, now)
        self._advance_after_action(now)
        return record

    def catch_up_skip(
        self,
        caller: str,
        now: float,
        missed_index_hint: Optional[int] = None,
    ) -> ActionRecord:
        self.sync(now)
        state = self.state
        # With no debt outstanding nobody owns a skipped slot.
        if not state.skip_queue or not self._owns(caller, state.skip_queue[0]):
            raise NotYourTurn()
        slot = state.skip_queue[0]
        if missed_index_hint is not None and missed_index_hint != slot:
            raise NotYourTurn()
        state.skip_queue.popleft()
        state.swaps[slot] = slot
        record = self._record("catch_up", slot, None, now)
        state.last_action = now
        return record

    def steal(
        self,
        caller: str,
        target: int,
        now: float,
        prize_hint: Optional[int] = None,
    ) -> ActionRecord:
        self.sync(now)
        self._require_no_debt()
        slot = self._require_turn(caller)
        self._check_target(slot, target, prize_hint)
        self._swap(slot, target, fresh=True)
        record = self._record("steal", slot, target, now)
        self._advance_after_action(now)
        return record

    def final_swap(self, caller: str, target: int, now: float) -> ActionRecord:
        self.sync(now)
        slot = self._require_final_swap_owner(caller)
        self._check_target(slot, target, None)
        self._swap(slot, target, fresh=False)
        self.state.final_swap = FinalSwapState.DONE
        record = self._record("final_swap", slot, target, now)
        self.state.last_action = now
        return record

    def keep(self, caller: str, now: float) -> ActionRecord:
        self.sync(now)
        slot = self._require_final_swap_owner(caller)
        self.state.final_swap = FinalSwapState.DECLINED
        record = self._record("keep", slot, None, now)
        self.state.last_action = now
        return record

    # ------------------------------------------------------------------
    # Timeouts
    # ------------------------------------------------------------------

    def sync(self, now: float) -> None:
        """Apply every turn timeout that elapsed before ``now``."""
        state = self.state
        timeout = self.config.turn_timeout
        self._open_final_swap()
        while now - state.last_action > timeout:
            deadline = state.last_action + timeout
            if not state.exhausted:
                slot = state.curr_player
                state.skip_queue.append(slot)
                self._record("skip", slot, None, deadline)
                state.curr_player += 1
                self._skip_empty_slots()
            elif state.skip_queue and self.config.forfeit_skip_debt:
                slot = state.skip_queue.popleft()
                state.forfeited.append(slot)
                self._record("forfeit", slot, None, deadline)
            elif state.final_swap is FinalSwapState.PENDING:
                first = self.first_slot
                assert first is not None
                state.final_swap = FinalSwapState.LAPSED
                self._record("final_swap_lapsed", first, None, deadline)
            else:
                break
            state.last_action = deadline
            self._open_final_swap()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_turn(self) -> int:
        return self.state.curr_player

    @property
    def players_skipped(self) -> int:
        return self.state.players_skipped

    def swap_entry(self, slot: int) -> Optional[int]:
        return self.state.swaps.get(slot)

    def stealable_targets(self, slot: int) -> List[int]:
        return sorted(
            target
            for target in self.state.swaps
            if target != slot and not self._steal_blocked(slot, target)
        )

    def pending_slot(self, now: float) -> Optional[Tuple[TurnKind, int]]:
        self.sync(now)
        state = self.state
        if state.skip_queue:
            return "catch_up", state.skip_queue[0]
        if not state.exhausted:
            return "turn", state.curr_player
        if state.final_swap is FinalSwapState.PENDING and self.first_slot is not None:
            return "final_swap", self.first_slot
        return None

    def deadline(self) -> float:
        return self.state.last_action + self.config.turn_timeout

    def is_finished(self, now: float) -> bool:
        return self.pending_slot(now) is None

    def to_dict(self) -> Dict[str, Any]:
        state = self.state
        return {
            "order": list(state.order),
            "curr_player": state.curr_player,
            "players_skipped": state.players_skipped,
            "skip_queue": list(state.skip_queue),
            "last_action": state.last_action,
            "swaps": dict(state.swaps),
            "forfeited": list(state.forfeited),
            "final_swap": state.final_swap.name.lower(),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _owns(self, caller: str, slot: int) -> bool:
        number = self.registry.number_of(caller)
        return number is not None and self.state.order[slot] == number

    def _require_no_debt(self) -> None:
        if self.state.skip_queue:
            raise SkipDebtOutstanding()

    def _require_turn(self, caller: str) -> int:
        state = self.state
        if state.exhausted or not self._owns(caller, state.curr_player):
            raise NotYourTurn()
        return state.curr_player

    def _require_final_swap_owner(self, caller: str) -> int:
        if self.state.final_swap is not FinalSwapState.PENDING or self.first_slot is None:
            raise FinalSwapUnavailable()
        if not self._owns(caller, self.first_slot):
            raise NotYourTurn()
        return self.first_slot

    def _check_target(self, slot: int, target: int, prize_hint: Optional[int]) -> None:
        swaps = self.state.swaps
        if target == slot or target not in swaps:
            raise TargetNotClaimed()
        if prize_hint is not None and swaps[target] != prize_hint:
            raise PrizeMismatch()
        if self._steal_blocked(slot, target):
            raise DuplicateSteal()

    def _steal_blocked(self, slot: int, target: int) -> bool:
        own = self.state.guards.get(slot)
        theirs = self.state.guards.get(target)
        if own is not None and own.last_thief == target:
            return True
        return theirs is not None and theirs.last_thief == slot

    def _swap(self, slot: int, target: int, *, fresh: bool) -> None:
        swaps = self.state.swaps
        # A stealer acting on its own turn opens its fresh prize first.
        held = slot if fresh else swaps[slot]
        swaps[slot] = swaps[target]
        swaps[target] = held
        guards = self.state.guards
        guards.setdefault(target, StealGuard()).last_thief = slot
        guards.setdefault(slot, StealGuard()).last_victim = target

    def _advance_after_action(self, now: float) -> None:
        self.state.last_action = now
        self.state.curr_player += 1
        self._skip_empty_slots()

    def _skip_empty_slots(self) -> None:
        state = self.state
        while not state.exhausted and state.order[state.curr_player] == EMPTY_SLOT:
            state.curr_player += 1

    def _open_final_swap(self) -> None:
        state = self.state
        if state.final_swap is not FinalSwapState.NOT_OPEN:
            return
        if not state.exhausted or state.skip_queue:
            return
        first = self.first_slot
        if self.config.final_swap and first is not None and first in state.swaps and len(state.swaps) > 1:
            state.final_swap = FinalSwapState.PENDING
        else:
            state.final_swap = FinalSwapState.UNAVAILABLE

    def _record(
        self,
        action: ActionLiteral,
        slot: int,
        target: Optional[int],
        at: float,
    ) -> ActionRecord:
        state = self.state
        player = state.order[slot]
        record = ActionRecord(
            seq=len(state.history) + 1,
            action=action,
            slot=slot,
            player=player,
            target=target,
            at=at,
        )
        state.history.append(record)
        self.logger.log(
            action,
            {
                "seq": record.seq,
                "slot": slot,
                "player": player,
                "player_id": self.registry.player_of(player),
                "target": target,
                "at": at,
                "players_skipped": state.players_skipped,
            },
        )
        return record
