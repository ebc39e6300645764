"""
Simulation coordinator: loads configs, plays a full game, persists artefacts.
"""

from __future__ import annotations

import json
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .baseline_registry import make_participant
from .clock import ManualClock
from .config_loader import load_config
from .errors import GameError
from .game import Game, GameConfig
from .logging_utils import EventLog, NDJSONLogger
from .metrics import summarize_log
from .schemas import ResolutionRecord, TurnDecision, TurnRequest
from .treasury import InMemoryTreasury
from .turn_order import SeededEntropySource

logger = logging.getLogger(__name__)

_GAME_DEFAULTS: Dict[str, Any] = {
    "owner": "owner",
    "ticket_price": 1,
    "start_time": 3600.0,
}


@dataclass
class SimulationConfig:
    game: GameConfig
    participants: List[str]
    prizes: List[str] = field(default_factory=list)
    seed: int = 0
    think_time: float = 60.0
    max_ticks: int = 100_000
    stall_limit: int = 25

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        game = GameConfig.from_dict({**_GAME_DEFAULTS, **data.get("game", {})})
        participants = list(data["participants"])
        prizes = list(data.get("prizes") or [f"prize-{i}" for i in range(len(participants))])
        config = cls(
            game=game,
            participants=participants,
            prizes=prizes,
            seed=int(data.get("seed", 0)),
            think_time=float(data.get("think_time", 60.0)),
            max_ticks=int(data.get("max_ticks", 100_000)),
            stall_limit=int(data.get("stall_limit", 25)),
        )
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "SimulationConfig":
        return cls.from_dict(load_config(path))

    def validate(self) -> None:
        self.game.validate()
        if not self.participants:
            raise ValueError("simulation requires at least one participant")
        if len(self.participants) > self.game.max_players:
            raise ValueError("more participants than max_players")
        if self.game.ticket_sale_close <= 0:
            raise ValueError("simulation needs a ticket sale window: sale_close must be positive")
        if not 0 <= self.think_time < self.game.turn_timeout:
            raise ValueError("think_time must be below turn_timeout")
        if self.max_ticks < 1 or self.stall_limit < 1:
            raise ValueError("max_ticks and stall_limit must be positive")


@dataclass
class SimulationResult:
    resolution: List[ResolutionRecord]
    players: List[Dict[str, Any]]
    events_path: pathlib.Path
    result_path: pathlib.Path
    metrics_path: pathlib.Path
    metrics: Dict[str, Any]
    penalties: int = 0
    stop_info: Optional[Dict[str, Any]] = None


class GameRunner:
    """
    Plays one game end to end on a manual clock.

    Participants are polled for the pending turn; an ``idle`` decision moves the
    clock past the turn deadline so the engine's timeout handling takes over.
    """

    def __init__(
        self,
        config: SimulationConfig,
        output_dir: str | pathlib.Path,
        progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self.config = config
        self.output_dir = pathlib.Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.progress_callback = progress_callback
        self._penalties = 0

    def run(self) -> SimulationResult:
        self._penalties = 0
        config = self.config
        events_path = self.output_dir / "events.ndjson"
        clock = ManualClock()
        treasury = InMemoryTreasury()
        entropy = SeededEntropySource()
        participants = {
            f"player-{index + 1}": make_participant(spec)
            for index, spec in enumerate(config.participants)
        }
        logger.info("starting game %s with %d participants", config.game.game_id, len(participants))

        with NDJSONLogger(events_path) as events:
            game = Game(config.game, treasury, entropy, events, clock)
            for asset_ref in config.prizes:
                game.deposit_prize(config.game.owner, asset_ref)
            for player_id, participant in participants.items():
                game.buy_ticket(player_id, config.game.ticket_price)
                participant.reset(
                    player_id,
                    {
                        "game_id": config.game.game_id,
                        "seed": config.seed,
                        "players": len(participants),
                        "turn_timeout": config.game.turn_timeout,
                        "final_swap": config.game.final_swap,
                    },
                )

            clock.set(config.game.start_time)
            request = game.request_order(config.seed)
            order = game.finalize_order(request.token, entropy.fulfil(request.token))
            self._emit_progress({"type": "order", "order": order})

            stop_info = self._play(game, clock, events, participants)
            resolution: List[ResolutionRecord] = []
            if stop_info is None:
                resolution = game.resolve()
                for player_id in participants:
                    game.release_prize(player_id)
                game.release_funds(config.game.owner, config.game.owner, treasury.balance)
            else:
                logger.warning("game %s stopped early: %s", config.game.game_id, stop_info["type"])

        players = self._player_rows(game, participants, resolution)
        metrics = summarize_log(events_path)
        metrics_path = self.output_dir / "metrics.json"
        metrics_path.write_text(json.dumps(metrics, indent=2, sort_keys=True), encoding="utf-8")
        result_path = self.output_dir / "result.json"
        leftover = list(resolution[-1].leftover) if resolution else []
        result_path.write_text(
            json.dumps(
                {
                    "game_id": config.game.game_id,
                    "seed": config.seed,
                    "order": game.turn_order(),
                    "players": players,
                    "leftover": [game.prize_asset(prize) for prize in leftover],
                    "penalties": self._penalties,
                    "stop_info": stop_info,
                },
                indent=2,
                sort_keys=True,
            ),
            encoding="utf-8",
        )
        return SimulationResult(
            resolution=resolution,
            players=players,
            events_path=events_path,
            result_path=result_path,
            metrics_path=metrics_path,
            metrics=metrics,
            penalties=self._penalties,
            stop_info=stop_info,
        )

    def _play(
        self,
        game: Game,
        clock: ManualClock,
        events: EventLog,
        participants: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        ticks = 0
        idle_streak = 0
        while True:
            request = game.pending_turn()
            if request is None:
                return None
            ticks += 1
            if ticks > self.config.max_ticks:
                return self._stop("max_ticks", request, ticks)
            decision = participants[request.player_id].act(request)
            if not isinstance(decision, TurnDecision):
                raise TypeError(f"{request.player_id} returned invalid decision {decision!r}")

            if decision.action == "idle":
                clock.set(request.deadline + 1)
                after = game.pending_turn()
                progressed = after is None or (after.kind, after.slot, after.players_skipped) != (
                    request.kind,
                    request.slot,
                    request.players_skipped,
                )
                idle_streak = 0 if progressed else idle_streak + 1
                if idle_streak >= self.config.stall_limit:
                    return self._stop("stalled", request, ticks)
                continue

            idle_streak = 0
            clock.advance(self.config.think_time)
            try:
                self._apply(game, request, decision)
            except (GameError, ValueError) as exc:
                self._penalties += 1
                fallback = self._fallback(request)
                events.log(
                    "penalty",
                    {
                        "player_id": request.player_id,
                        "slot": request.slot,
                        "kind": "rejected",
                        "attempted": decision.action,
                        "error": getattr(exc, "code", type(exc).__name__),
                        "message": str(exc),
                        "fallback": fallback.action,
                    },
                )
                logger.info("%s: %s rejected (%s), falling back to %s", request.player_id, decision.action, exc, fallback.action)
                self._apply(game, request, fallback)
            self._emit_progress(
                {"type": "action", "player_id": request.player_id, "kind": request.kind, "slot": request.slot}
            )

    def _apply(self, game: Game, request: TurnRequest, decision: TurnDecision) -> None:
        action = decision.action
        if action == "steal" and decision.target is None:
            raise ValueError("steal requires a target")
        if request.kind == "turn":
            if action == "claim":
                game.claim(request.player_id)
                return
            if action == "steal":
                game.steal(request.player_id, decision.target)
                return
        elif request.kind == "catch_up":
            if action == "claim":
                game.catch_up_skip(request.player_id, request.slot)
                return
        elif request.kind == "final_swap":
            if action == "steal":
                game.final_swap(request.player_id, decision.target)
                return
            if action == "keep":
                game.keep(request.player_id)
                return
        raise ValueError(f"{action} is not valid for a {request.kind} turn")

    @staticmethod
    def _fallback(request: TurnRequest) -> TurnDecision:
        if request.kind == "final_swap":
            return TurnDecision(action="keep")
        return TurnDecision(action="claim")

    def _stop(self, reason: str, request: TurnRequest, ticks: int) -> Dict[str, Any]:
        return {
            "type": reason,
            "kind": request.kind,
            "slot": request.slot,
            "player_id": request.player_id,
            "players_skipped": request.players_skipped,
            "ticks": ticks,
        }

    @staticmethod
    def _player_rows(
        game: Game,
        participants: Dict[str, Any],
        resolution: List[ResolutionRecord],
    ) -> List[Dict[str, Any]]:
        order = game.turn_order()
        by_slot = {record.slot: record for record in resolution if not record.is_leftover}
        rows = []
        for player_id, participant in participants.items():
            number = game.registry.number_of(player_id)
            slot = order.index(number) if number in order else None
            record = by_slot.get(slot)
            prize_slot = record.prize_slot if record is not None else None
            rows.append(
                {
                    "player_id": player_id,
                    "participant": getattr(participant, "name", type(participant).__name__),
                    "number": number,
                    "slot": slot,
                    "prize_slot": prize_slot,
                    "asset_ref": game.prize_asset(prize_slot),
                }
            )
        return rows

    def _emit_progress(self, payload: Dict[str, Any]) -> None:
        if self.progress_callback is not None:
            self.progress_callback(payload)
