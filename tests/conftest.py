"""Shared pytest fixtures for the white elephant tests."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest

from white_elephant.clock import ManualClock
from white_elephant.engine import EngineConfig, TurnEngine
from white_elephant.game import Game, GameConfig
from white_elephant.logging_utils import MemoryEventLog
from white_elephant.registry import Registry
from white_elephant.treasury import InMemoryTreasury
from white_elephant.turn_order import SeededEntropySource

from tests.helpers import START, TIMEOUT


@pytest.fixture
def events() -> MemoryEventLog:
    return MemoryEventLog()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(current=0.0)


@pytest.fixture
def make_engine(events: MemoryEventLog) -> Callable[..., TurnEngine]:
    """Engine over players ``p1..pN`` where slot ``i`` belongs to ticket ``order[i]``."""

    def _make(order: Sequence[int], **config) -> TurnEngine:
        registry = Registry()
        for number in range(1, max([n for n in order if n] or [0]) + 1):
            registry.register_ticket(f"p{number}")
        engine_config = EngineConfig(turn_timeout=config.pop("turn_timeout", TIMEOUT), **config)
        return TurnEngine.start(list(order), registry, engine_config, events, START)

    return _make


@pytest.fixture
def game_config() -> GameConfig:
    return GameConfig(
        owner="owner",
        ticket_price=10,
        start_time=START,
        turn_timeout=TIMEOUT,
        depositors=["sponsor"],
        game_id="test-game",
    )


@pytest.fixture
def treasury() -> InMemoryTreasury:
    return InMemoryTreasury()


@pytest.fixture
def make_game(
    game_config: GameConfig,
    treasury: InMemoryTreasury,
    events: MemoryEventLog,
    clock: ManualClock,
) -> Callable[..., Game]:
    def _make(**overrides) -> Game:
        config = game_config
        for key, value in overrides.items():
            setattr(config, key, value)
        return Game(config, treasury, SeededEntropySource(), events, clock)

    return _make

