"""Constants, setup helpers and test participants shared by the suites."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from white_elephant.clock import ManualClock
from white_elephant.game import Game
from white_elephant.schemas import TurnDecision, TurnRequest

START = 1_000.0
TIMEOUT = 100.0


def start_game(game: Game, clock: ManualClock, players: int, prizes: int | None = None) -> List[int]:
    """Deposit prizes, sell ``players`` tickets, and finalize the order."""
    for index in range(players if prizes is None else prizes):
        game.deposit_prize("owner", f"asset-{index}")
    for number in range(1, players + 1):
        game.buy_ticket(f"p{number}", game.ticket_price)
    clock.set(game.start_time)
    request = game.request_order(seed=42)
    values = game.order_builder.entropy.fulfil(request.token)
    return game.finalize_order(request.token, values)


def player_at(game: Game, slot: int) -> str:
    ticket = game.player(game.turn_order()[slot])
    assert ticket is not None
    return ticket.player_id


@dataclass
class SelfThief:
    """Always tries to steal from its own slot, which the game rejects."""

    name: str = "SelfThief"

    def reset(self, player_id: str, game_info: dict) -> None:
        del player_id, game_info

    def act(self, request: TurnRequest) -> TurnDecision:
        return TurnDecision(action="steal", target=request.slot)
