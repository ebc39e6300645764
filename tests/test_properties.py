"""Property tests over random claim/steal/idle interleavings."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from white_elephant.engine import EngineConfig, TurnEngine
from white_elephant.errors import DuplicateTicket
from white_elephant.logging_utils import MemoryEventLog
from white_elephant.registry import Registry
from white_elephant.resolution import ResolutionEngine
from white_elephant.turn_order import build_permutation, validate_order

from tests.helpers import START, TIMEOUT


def _engine(players: int, order_values, final_swap: bool) -> TurnEngine:
    registry = Registry()
    for number in range(1, players + 1):
        registry.register_ticket(f"p{number}")
    order = build_permutation(players, order_values)
    config = EngineConfig(turn_timeout=TIMEOUT, final_swap=final_swap)
    return TurnEngine.start(order, registry, config, MemoryEventLog(), START)


def _assert_bijection(engine: TurnEngine) -> None:
    swaps = engine.state.swaps
    values = list(swaps.values())
    assert sorted(values) == sorted(swaps)
    assert len(set(values)) == len(values)


def _play_randomly(engine: TurnEngine, data) -> float:
    now = START
    while True:
        pending = engine.pending_slot(now)
        if pending is None:
            return now
        kind, slot = pending
        player = f"p{engine.state.order[slot]}"
        targets = engine.stealable_targets(slot)
        if kind == "catch_up":
            engine.catch_up_skip(player, now)
        elif kind == "turn":
            move = data.draw(st.sampled_from(["claim", "steal", "idle"]))
            if move == "idle":
                now += TIMEOUT + 1
                continue
            if move == "steal" and targets:
                engine.steal(player, data.draw(st.sampled_from(targets)), now)
                _assert_bijection(engine)
            else:
                engine.claim(player, now)
        elif targets and data.draw(st.booleans()):
            engine.final_swap(player, data.draw(st.sampled_from(targets)), now)
            _assert_bijection(engine)
        else:
            engine.keep(player, now)
        now += 1


@settings(max_examples=150, deadline=None)
@given(
    players=st.integers(min_value=1, max_value=12),
    seed_values=st.lists(st.integers(min_value=0, max_value=2**64), min_size=11, max_size=11),
    final_swap=st.booleans(),
    data=st.data(),
)
def test_swap_table_stays_a_bijection_and_matches_resolution(players, seed_values, final_swap, data):
    engine = _engine(players, seed_values, final_swap)
    now = _play_randomly(engine, data)

    swaps = engine.state.swaps
    assert sorted(swaps) == list(range(players))
    assert sorted(swaps.values()) == list(range(players))
    assert engine.is_finished(now)

    resolver = ResolutionEngine(engine.state.history)
    assert resolver.final_prizes(engine.state.order) == swaps
    assert resolver.steps <= 2 * players
    records = resolver.resolve(engine.state.order)
    assert records[-1].leftover == ()


@settings(max_examples=100, deadline=None)
@given(
    players=st.integers(min_value=0, max_value=40),
    values=st.lists(st.integers(min_value=0, max_value=2**256 - 1), min_size=40, max_size=40),
)
def test_turn_order_is_a_permutation(players, values):
    order = build_permutation(players, values)
    assert sorted(order) == list(range(1, players + 1))
    validate_order(order, players)


@given(ids=st.lists(st.text(min_size=1, max_size=8), max_size=30))
def test_ticket_numbers_are_dense(ids):
    registry = Registry()
    issued = []
    for player_id in ids:
        try:
            issued.append(registry.register_ticket(player_id))
        except DuplicateTicket:
            assert registry.number_of(player_id) is not None
    assert [ticket.number for ticket in issued] == list(range(1, len(set(ids)) + 1))
    for ticket in issued:
        assert registry.player_of(ticket.number) == ticket.player_id
