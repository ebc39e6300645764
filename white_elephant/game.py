"""
Game facade: phase gating, the prize ledger and one lock over the whole game.

Registry, turn-order builder, turn engine and resolution are wired together
here. Every public method runs under a single re-entrant lock so the swap
table, turn cursor and clock are never observed half-updated.
"""

from __future__ import annotations

import logging
import pathlib
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from .clock import SystemClock
from .config_loader import load_config
from .engine import DEFAULT_TURN_TIMEOUT, EngineConfig, GamePhase, TurnEngine
from .errors import (
    DependencyUnavailable,
    DepositsClosed,
    GameError,
    GameFull,
    GameNotActive,
    GameNotResolved,
    IncorrectPayment,
    NotAPlayer,
    NotOwner,
    NotWhitelisted,
    OrderAlreadyFinalized,
    PrizeAlreadyReleased,
    TicketSaleClosed,
    TurnsRemaining,
    UnknownDeposit,
)
from .logging_utils import EventLog
from .registry import Registry
from .resolution import ResolutionEngine
from .schemas import ActionRecord, PlayerTicket, PrizeDeposit, ResolutionRecord, TurnRequest
from .treasury import TreasuryGateway
from .turn_order import DEFAULT_ORDER_CAPACITY, EntropySource, OrderRequest, TurnOrderBuilder

_logger = logging.getLogger(__name__)

_PLAY_PHASES = (GamePhase.ACTIVE, GamePhase.RESOLVED)


@dataclass
class GameConfig:
    owner: str
    ticket_price: int
    start_time: float
    sale_close: Optional[float] = None
    turn_timeout: float = DEFAULT_TURN_TIMEOUT
    order_capacity: Optional[int] = None
    max_players: int = DEFAULT_ORDER_CAPACITY
    final_swap: bool = False
    forfeit_skip_debt: bool = False
    tickets_require_whitelist: bool = False
    depositors: List[str] = field(default_factory=list)
    game_id: str = "white-elephant"

    @property
    def ticket_sale_close(self) -> float:
        return self.start_time if self.sale_close is None else self.sale_close

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameConfig":
        config = cls(
            owner=data["owner"],
            ticket_price=int(data["ticket_price"]),
            start_time=float(data["start_time"]),
            sale_close=data.get("sale_close"),
            turn_timeout=float(data.get("turn_timeout", DEFAULT_TURN_TIMEOUT)),
            order_capacity=data.get("order_capacity"),
            max_players=int(data.get("max_players", DEFAULT_ORDER_CAPACITY)),
            final_swap=bool(data.get("final_swap", False)),
            forfeit_skip_debt=bool(data.get("forfeit_skip_debt", False)),
            tickets_require_whitelist=bool(data.get("tickets_require_whitelist", False)),
            depositors=list(data.get("depositors", [])),
            game_id=data.get("game_id", "white-elephant"),
        )
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "GameConfig":
        return cls.from_dict(load_config(path))

    def validate(self) -> None:
        if self.ticket_price < 0:
            raise ValueError("ticket_price must be non-negative")
        if self.turn_timeout <= 0:
            raise ValueError("turn_timeout must be positive")
        if self.max_players < 1:
            raise ValueError("max_players must be at least 1")
        if self.order_capacity is not None and self.max_players > self.order_capacity:
            raise ValueError("max_players cannot exceed order_capacity")
        if self.ticket_sale_close > self.start_time:
            raise ValueError("sale_close must not be after start_time")


class Game:
    def __init__(
        self,
        config: GameConfig,
        treasury: TreasuryGateway,
        entropy: EntropySource,
        logger: EventLog,
        clock=None,
    ) -> None:
        config.validate()
        self.config = config
        self.treasury = treasury
        self.logger = logger
        self.clock = clock or SystemClock()
        self.registry = Registry()
        self.registry.whitelist([config.owner, *config.depositors])
        self.order_builder = TurnOrderBuilder(
            entropy,
            config.start_time,
            logger,
            capacity=config.order_capacity,
        )
        self.engine: Optional[TurnEngine] = None
        self._phase = GamePhase.REGISTRATION
        self._prizes: List[PrizeDeposit] = []
        self._resolution: Optional[List[ResolutionRecord]] = None
        self._released: Set[str] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Setup: depositors, prizes, tickets
    # ------------------------------------------------------------------

    def add_depositors(self, caller: str, ids: Sequence[str]) -> None:
        with self._lock:
            self._require_owner(caller)
            self.registry.whitelist(ids)
            self.logger.log("depositors", {"added": list(ids)})

    def deposit_prize(self, depositor: str, asset_ref: str) -> int:
        with self._lock:
            if not self.registry.is_depositor(depositor):
                raise NotWhitelisted()
            if self._current_phase() in _PLAY_PHASES:
                raise DepositsClosed()
            self._call_treasury("deposit", self.treasury.record_prize_deposit, depositor, asset_ref)
            self._prizes.append(PrizeDeposit(depositor=depositor, asset_ref=asset_ref))
            prize_slot = len(self._prizes) - 1
            self.logger.log(
                "deposit",
                {"depositor": depositor, "asset_ref": asset_ref, "prize_slot": prize_slot},
            )
            return prize_slot

    def reclaim_deposit(self, caller: str, asset_ref: str) -> None:
        with self._lock:
            self._require_owner(caller)
            if self._current_phase() in _PLAY_PHASES:
                raise DepositsClosed()
            index = next(
                (
                    i
                    for i, prize in enumerate(self._prizes)
                    if prize.asset_ref == asset_ref and prize.depositor == caller
                ),
                None,
            )
            if index is None:
                raise UnknownDeposit()
            self._call_treasury("reclaim", self.treasury.release_asset, asset_ref, caller)
            del self._prizes[index]
            self.logger.log("reclaim", {"asset_ref": asset_ref, "to": caller})

    def buy_ticket(self, player_id: str, payment: int) -> PlayerTicket:
        with self._lock:
            if self._current_phase() is not GamePhase.REGISTRATION:
                raise TicketSaleClosed()
            if self.config.tickets_require_whitelist and not self.registry.is_depositor(player_id):
                raise NotWhitelisted()
            self.registry.ensure_can_register(player_id)
            if self.registry.player_count >= self.config.max_players:
                raise GameFull()
            if payment != self.config.ticket_price:
                raise IncorrectPayment()
            self._call_treasury("payment", self.treasury.collect_payment, player_id, payment)
            ticket = self.registry.register_ticket(player_id)
            self.logger.log("ticket", {"player_id": player_id, "number": ticket.number})
            return ticket

    # ------------------------------------------------------------------
    # Turn order
    # ------------------------------------------------------------------

    def request_order(self, seed: int) -> OrderRequest:
        with self._lock:
            now = self._now()
            self.order_builder.ensure_started(now)
            if self._current_phase() in _PLAY_PHASES:
                raise OrderAlreadyFinalized()
            request = self.order_builder.request_order(seed, self.registry.player_count, now)
            self._phase = GamePhase.INITIALIZING
            _logger.info("turn order requested (token=%s, players=%d)", request.token, request.player_count)
            return request

    def finalize_order(self, token: str, values: Sequence[int]) -> List[int]:
        with self._lock:
            now = self._now()
            self.order_builder.ensure_started(now)
            if self._current_phase() in _PLAY_PHASES:
                raise OrderAlreadyFinalized()
            order = self.order_builder.finalize_order(token, values, now)
            engine_config = EngineConfig(
                turn_timeout=self.config.turn_timeout,
                final_swap=self.config.final_swap,
                forfeit_skip_debt=self.config.forfeit_skip_debt,
            )
            self.engine = TurnEngine.start(order, self.registry, engine_config, self.logger, now)
            self._phase = GamePhase.ACTIVE
            _logger.info("game %s active with %d players", self.config.game_id, self.registry.player_count)
            return order

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def claim(self, caller: str) -> ActionRecord:
        with self._lock:
            return self._active_engine().claim(caller, self._now())

    def catch_up_skip(self, caller: str, missed_index: Optional[int] = None) -> ActionRecord:
        with self._lock:
            return self._active_engine().catch_up_skip(caller, self._now(), missed_index)

    def steal(self, caller: str, target: int, prize_hint: Optional[int] = None) -> ActionRecord:
        with self._lock:
            return self._active_engine().steal(caller, target, self._now(), prize_hint)

    def final_swap(self, caller: str, target: int) -> ActionRecord:
        with self._lock:
            return self._active_engine().final_swap(caller, target, self._now())

    def keep(self, caller: str) -> ActionRecord:
        with self._lock:
            return self._active_engine().keep(caller, self._now())

    def pending_turn(self) -> Optional[TurnRequest]:
        with self._lock:
            if self._phase is not GamePhase.ACTIVE or self.engine is None:
                return None
            engine = self.engine
            pending = engine.pending_slot(self._now())
            if pending is None:
                return None
            kind, slot = pending
            number = engine.state.order[slot]
            player_id = self.registry.player_of(number)
            assert player_id is not None
            return TurnRequest(
                game_id=self.config.game_id,
                kind=kind,
                slot=slot,
                player_number=number,
                player_id=player_id,
                holdings=dict(engine.state.swaps),
                stealable=[] if kind == "catch_up" else engine.stealable_targets(slot),
                players_skipped=engine.players_skipped,
                deadline=engine.deadline(),
            )

    def ready_for_resolution(self) -> bool:
        with self._lock:
            if self._phase is GamePhase.RESOLVED:
                return True
            return self._phase is GamePhase.ACTIVE and self.engine is not None and self.engine.is_finished(self._now())

    # ------------------------------------------------------------------
    # Resolution and releases
    # ------------------------------------------------------------------

    def resolve(self, start_index: int = 0, end_index: Optional[int] = None) -> List[ResolutionRecord]:
        with self._lock:
            if self._resolution is None:
                engine = self._active_engine()
                if not engine.is_finished(self._now()):
                    raise TurnsRemaining()
                resolver = ResolutionEngine(engine.state.history)
                self._resolution = resolver.resolve(engine.state.order, prize_count=len(self._prizes))
                self._phase = GamePhase.RESOLVED
                self.logger.log(
                    "resolution",
                    {
                        "assignments": {
                            record.slot: record.prize_slot
                            for record in self._resolution
                            if not record.is_leftover
                        },
                        "leftover": list(self._resolution[-1].leftover),
                        "steps": resolver.steps,
                    },
                )
                _logger.info("game %s resolved in %d chain steps", self.config.game_id, resolver.steps)
            return self._slice_resolution(start_index, end_index)

    def resolution(self, start_index: int = 0, end_index: Optional[int] = None) -> List[ResolutionRecord]:
        """Read the cached resolution without computing it."""
        with self._lock:
            if self._resolution is None:
                raise GameNotResolved()
            return self._slice_resolution(start_index, end_index)

    def _slice_resolution(self, start_index: int, end_index: Optional[int]) -> List[ResolutionRecord]:
        assert self.engine is not None and self._resolution is not None
        order_length = len(self.engine.state.order)
        if end_index is None:
            end_index = order_length
        if not 0 <= start_index <= end_index <= order_length:
            raise ValueError(f"invalid resolution range [{start_index}, {end_index})")
        records = self._resolution[start_index:end_index]
        if end_index == order_length:
            records.append(self._resolution[-1])
        return records

    def prize_asset(self, prize_slot: Optional[int]) -> Optional[str]:
        if prize_slot is None or prize_slot >= len(self._prizes):
            return None
        return self._prizes[prize_slot].asset_ref

    def release_prize(self, caller: str) -> Optional[str]:
        with self._lock:
            if self._phase is not GamePhase.RESOLVED or self._resolution is None or self.engine is None:
                raise GameNotResolved()
            number = self.registry.number_of(caller)
            if number is None:
                raise NotAPlayer()
            slot = self.engine.state.order.index(number)
            asset_ref = self.prize_asset(self._resolution[slot].prize_slot)
            if asset_ref is None:
                return None
            if asset_ref in self._released:
                raise PrizeAlreadyReleased()
            self._call_treasury("release", self.treasury.release_asset, asset_ref, caller)
            self._released.add(asset_ref)
            self.logger.log("release", {"asset_ref": asset_ref, "to": caller, "slot": slot})
            return asset_ref

    def release_funds(self, caller: str, to: str, amount: int) -> None:
        with self._lock:
            self._require_owner(caller)
            if self._phase is not GamePhase.RESOLVED:
                raise GameNotResolved()
            self._call_treasury("funds", self.treasury.release_funds, to, amount)
            self.logger.log("funds", {"to": to, "amount": amount})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def ticket_price(self) -> int:
        return self.config.ticket_price

    @property
    def start_time(self) -> float:
        return self.config.start_time

    def phase(self) -> GamePhase:
        with self._lock:
            return self._current_phase()

    def is_depositor(self, player_id: str) -> bool:
        with self._lock:
            return self.registry.is_depositor(player_id)

    def player(self, number: int) -> Optional[PlayerTicket]:
        with self._lock:
            player_id = self.registry.player_of(number)
            if player_id is None:
                return None
            return PlayerTicket(player_id=player_id, number=number)

    def current_turn(self) -> Optional[int]:
        with self._lock:
            if self.engine is None:
                return None
            self.engine.sync(self._now())
            return self.engine.current_turn

    def last_action(self) -> Optional[float]:
        with self._lock:
            if self.engine is None:
                return None
            self.engine.sync(self._now())
            return self.engine.state.last_action

    def players_skipped(self) -> int:
        with self._lock:
            if self.engine is None:
                return 0
            self.engine.sync(self._now())
            return self.engine.players_skipped

    def swap_entry(self, slot: int) -> Optional[int]:
        with self._lock:
            if self.engine is None:
                return None
            return self.engine.swap_entry(slot)

    def turn_order(self) -> List[int]:
        with self._lock:
            return list(self.engine.state.order) if self.engine is not None else []

    def prizes(self) -> List[PrizeDeposit]:
        with self._lock:
            return list(self._prizes)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            if self.engine is not None:
                self.engine.sync(self._now())
            return {
                "game_id": self.config.game_id,
                "phase": self._current_phase().name.lower(),
                "now": self._now(),
                "ticket_price": self.config.ticket_price,
                "start_time": self.config.start_time,
                "players": [
                    {"player_id": ticket.player_id, "number": ticket.number}
                    for ticket in self.registry.tickets()
                ],
                "prizes": [
                    {"depositor": prize.depositor, "asset_ref": prize.asset_ref}
                    for prize in self._prizes
                ],
                "engine": self.engine.to_dict() if self.engine is not None else None,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> float:
        return self.clock.now()

    def _current_phase(self) -> GamePhase:
        if self._phase is GamePhase.REGISTRATION and self._now() >= self.config.ticket_sale_close:
            return GamePhase.AWAITING_START
        return self._phase

    def _require_owner(self, caller: str) -> None:
        if caller != self.config.owner:
            raise NotOwner()

    def _active_engine(self) -> TurnEngine:
        if self._phase is not GamePhase.ACTIVE or self.engine is None:
            raise GameNotActive()
        return self.engine

    def _call_treasury(self, operation: str, call: Callable[..., None], *args: Any) -> None:
        try:
            call(*args)
        except GameError:
            raise
        except Exception as exc:
            _logger.error("treasury %s failed: %s", operation, exc)
            raise DependencyUnavailable(f"treasury {operation} failed: {exc}") from exc
