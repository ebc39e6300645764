"""
HTTP service for a single white elephant game.

Usage:
    white-elephant-server --config configs/sample_game.yaml --host 0.0.0.0 --port 8001

Every request goes through the shared ``Game``, which serialises access with its
own lock, so handlers call it directly.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

import uvicorn
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..errors import DependencyUnavailable, GameError
from ..game import Game, GameConfig
from ..logging_utils import MemoryEventLog
from ..schemas import ResolutionRecord, records_to_dicts
from ..treasury import InMemoryTreasury
from ..turn_order import SeededEntropySource
from .models import (
    CallerBody,
    CatchUpBody,
    DepositBody,
    DepositorsBody,
    FinalSwapBody,
    FundsBody,
    OrderFinalizeBody,
    OrderRequestBody,
    StealBody,
    TicketBody,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

STATUS_BY_CATEGORY: Dict[str, int] = {
    "AccessDenied": 403,
    "PhaseViolation": 409,
    "TurnViolation": 409,
    "StealViolation": 409,
    "StateViolation": 409,
    "DependencyUnavailable": 503,
}


async def _game_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, GameError)
    status = STATUS_BY_CATEGORY.get(exc.category, 409)
    if status == 503:
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        {"error": exc.code, "kind": exc.category, "message": str(exc)},
        status_code=status,
    )


async def _validation_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ValidationError)
    return JSONResponse(
        {
            "error": "ValidationError",
            "kind": "InvalidRequest",
            "message": str(exc),
            "details": exc.errors(include_url=False, include_context=False),
        },
        status_code=422,
    )


async def _value_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": type(exc).__name__, "kind": "InvalidRequest", "message": str(exc)},
        status_code=422,
    )


async def _body(request: Request, model: Type[ModelT]) -> ModelT:
    # Malformed JSON surfaces as ValueError and maps to 422 as well.
    return model.model_validate(await request.json())


def _game(request: Request) -> Game:
    return request.app.state.game


def _action(record) -> JSONResponse:
    return JSONResponse(dataclasses.asdict(record))


def _fulfil(entropy: Any, token: str) -> Sequence[int]:
    fulfil = getattr(entropy, "fulfil", None)
    if fulfil is None:
        raise DependencyUnavailable("entropy values must be supplied")
    return fulfil(token)


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------


async def get_state(request: Request) -> JSONResponse:
    return JSONResponse(_game(request).snapshot())


async def get_turn(request: Request) -> JSONResponse:
    pending = _game(request).pending_turn()
    if pending is None:
        return JSONResponse({"pending": None})
    return JSONResponse({"pending": dataclasses.asdict(pending)})


async def get_player(request: Request) -> JSONResponse:
    number = int(request.path_params["number"])
    ticket = _game(request).player(number)
    if ticket is None:
        return JSONResponse(
            {"error": "UnknownPlayer", "kind": "NotFound", "message": f"no ticket {number}"},
            status_code=404,
        )
    return JSONResponse(dataclasses.asdict(ticket))


async def get_slot(request: Request) -> JSONResponse:
    game = _game(request)
    slot = int(request.path_params["slot"])
    order = game.turn_order()
    if not 0 <= slot < len(order):
        return JSONResponse(
            {"error": "UnknownSlot", "kind": "NotFound", "message": f"no slot {slot}"},
            status_code=404,
        )
    return JSONResponse({"slot": slot, "player": order[slot], "prize_slot": game.swap_entry(slot)})


def _resolution_range(request: Request) -> Tuple[int, Optional[int]]:
    start = int(request.query_params.get("start", 0))
    end_param: Optional[str] = request.query_params.get("end")
    return start, int(end_param) if end_param is not None else None


def _resolution_response(game: Game, records: List[ResolutionRecord]) -> JSONResponse:
    rows = records_to_dicts(records)
    for row in rows:
        row["asset_ref"] = game.prize_asset(row["prize_slot"])
    return JSONResponse({"records": rows})


async def post_resolve(request: Request) -> JSONResponse:
    game = _game(request)
    return _resolution_response(game, game.resolve(*_resolution_range(request)))


async def get_resolution(request: Request) -> JSONResponse:
    game = _game(request)
    return _resolution_response(game, game.resolution(*_resolution_range(request)))


async def get_events(request: Request) -> JSONResponse:
    events = request.app.state.events
    return JSONResponse({"events": list(getattr(events, "records", []))})


# ----------------------------------------------------------------------
# Setup
# ----------------------------------------------------------------------


async def post_depositors(request: Request) -> JSONResponse:
    body = await _body(request, DepositorsBody)
    _game(request).add_depositors(body.caller, body.ids)
    return JSONResponse({"added": body.ids})


async def post_deposit(request: Request) -> JSONResponse:
    body = await _body(request, DepositBody)
    prize_slot = _game(request).deposit_prize(body.depositor, body.asset_ref)
    return JSONResponse({"prize_slot": prize_slot, "asset_ref": body.asset_ref}, status_code=201)


async def post_ticket(request: Request) -> JSONResponse:
    body = await _body(request, TicketBody)
    ticket = _game(request).buy_ticket(body.player_id, body.payment)
    return JSONResponse(dataclasses.asdict(ticket), status_code=201)


async def post_order_request(request: Request) -> JSONResponse:
    body = await _body(request, OrderRequestBody)
    order_request = _game(request).request_order(body.seed)
    return JSONResponse(dataclasses.asdict(order_request), status_code=202)


async def post_order_finalize(request: Request) -> JSONResponse:
    body = await _body(request, OrderFinalizeBody)
    game = _game(request)
    values = body.values
    if values is None:
        values = list(_fulfil(game.order_builder.entropy, body.token))
    order = game.finalize_order(body.token, values)
    return JSONResponse({"order": order})


# ----------------------------------------------------------------------
# Turns
# ----------------------------------------------------------------------


async def post_claim(request: Request) -> JSONResponse:
    body = await _body(request, CallerBody)
    return _action(_game(request).claim(body.caller))


async def post_catch_up(request: Request) -> JSONResponse:
    body = await _body(request, CatchUpBody)
    return _action(_game(request).catch_up_skip(body.caller, body.missed_index))


async def post_steal(request: Request) -> JSONResponse:
    body = await _body(request, StealBody)
    return _action(_game(request).steal(body.caller, body.target, body.prize))


async def post_final_swap(request: Request) -> JSONResponse:
    body = await _body(request, FinalSwapBody)
    return _action(_game(request).final_swap(body.caller, body.target))


async def post_keep(request: Request) -> JSONResponse:
    body = await _body(request, CallerBody)
    return _action(_game(request).keep(body.caller))


# ----------------------------------------------------------------------
# Releases
# ----------------------------------------------------------------------


async def post_release_prize(request: Request) -> JSONResponse:
    body = await _body(request, CallerBody)
    asset_ref = _game(request).release_prize(body.caller)
    return JSONResponse({"asset_ref": asset_ref})


async def post_release_funds(request: Request) -> JSONResponse:
    body = await _body(request, FundsBody)
    _game(request).release_funds(body.caller, body.to, body.amount)
    return JSONResponse({"to": body.to, "amount": body.amount})


def create_app(game: Game, events: Optional[Any] = None) -> Starlette:
    routes = [
        Route("/state", get_state, methods=["GET"]),
        Route("/turn", get_turn, methods=["GET"]),
        Route("/players/{number:int}", get_player, methods=["GET"]),
        Route("/slots/{slot:int}", get_slot, methods=["GET"]),
        Route("/resolution", get_resolution, methods=["GET"]),
        Route("/events", get_events, methods=["GET"]),
        Route("/depositors", post_depositors, methods=["POST"]),
        Route("/deposits", post_deposit, methods=["POST"]),
        Route("/tickets", post_ticket, methods=["POST"]),
        Route("/order/request", post_order_request, methods=["POST"]),
        Route("/order/finalize", post_order_finalize, methods=["POST"]),
        Route("/turns/claim", post_claim, methods=["POST"]),
        Route("/turns/catch-up", post_catch_up, methods=["POST"]),
        Route("/turns/steal", post_steal, methods=["POST"]),
        Route("/turns/final-swap", post_final_swap, methods=["POST"]),
        Route("/turns/keep", post_keep, methods=["POST"]),
        Route("/resolve", post_resolve, methods=["POST"]),
        Route("/prizes/release", post_release_prize, methods=["POST"]),
        Route("/funds/release", post_release_funds, methods=["POST"]),
    ]
    app = Starlette(
        routes=routes,
        exception_handlers={
            GameError: _game_error,
            ValidationError: _validation_error,
            ValueError: _value_error,
        },
    )
    app.state.game = game
    app.state.events = events if events is not None else game.logger
    return app


def build_game(config: GameConfig) -> Game:
    return Game(config, InMemoryTreasury(), SeededEntropySource(), MemoryEventLog())


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a white elephant game over HTTP")
    parser.add_argument(
        "--config",
        default=os.environ.get("WHITE_ELEPHANT_CONFIG"),
        help="Path to game config (YAML or JSON); defaults to $WHITE_ELEPHANT_CONFIG",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("WHITE_ELEPHANT_HOST", "127.0.0.1"),
        help="Host to bind the server",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("WHITE_ELEPHANT_PORT", "8001")),
        help="Port to bind the server",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    return parser.parse_args()


def main() -> None:
    load_dotenv()
    args = parse_args()
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    if not args.config:
        raise SystemExit("--config is required (or set WHITE_ELEPHANT_CONFIG)")
    game = build_game(GameConfig.from_file(args.config))
    print(f"Starting white elephant game {game.config.game_id} at http://{args.host}:{args.port}/")
    uvicorn.run(create_app(game), host=args.host, port=args.port, log_level=str(args.log_level).lower())


if __name__ == "__main__":
    main()
