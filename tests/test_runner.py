from __future__ import annotations

import json

from white_elephant.logging_utils import read_events
from white_elephant.runner import GameRunner, SimulationConfig


def _config(participants, **game):
    return SimulationConfig.from_dict(
        {
            "seed": 11,
            "game": {"owner": "owner", "ticket_price": 5, "start_time": 3600, "turn_timeout": 600, **game},
            "participants": participants,
        }
    )


def test_claim_only_game_keeps_every_prize_in_place(tmp_path):
    result = GameRunner(_config(["claim"] * 4), tmp_path).run()
    assert result.stop_info is None
    assert result.penalties == 0
    for row in result.players:
        assert row["prize_slot"] == row["slot"]
        assert row["asset_ref"] == f"prize-{row['slot']}"

    written = json.loads(result.result_path.read_text(encoding="utf-8"))
    assert written["leftover"] == []
    assert sorted(written["order"]) == [1, 2, 3, 4]
    assert result.metrics_path.exists()
    types = [event["type"] for event in read_events(result.events_path)]
    assert types.count("ticket") == 4
    assert types.count("release") == 4
    assert "funds" in types


def test_chain_of_thieves_builds_the_longest_chain(tmp_path):
    result = GameRunner(_config(["chain"] * 20), tmp_path).run()
    assert result.stop_info is None
    metrics = result.metrics
    assert metrics["actions"]["steal"] == 19
    assert metrics["longest_steal_chain"] == 19
    assert metrics["resolution_steps"] <= 40
    by_slot = {row["slot"]: row["prize_slot"] for row in result.players}
    assert by_slot[19] == 0
    assert all(by_slot[slot] == slot + 1 for slot in range(19))


def test_idle_player_stalls_the_game_without_forfeiture(tmp_path):
    result = GameRunner(_config(["claim", "idle", "claim"]), tmp_path).run()
    assert result.stop_info is not None
    assert result.stop_info["type"] == "stalled"
    assert result.stop_info["kind"] == "catch_up"
    assert result.resolution == []
    written = json.loads(result.result_path.read_text(encoding="utf-8"))
    assert written["stop_info"]["type"] == "stalled"


def test_idle_player_forfeits_with_forfeiture(tmp_path):
    result = GameRunner(_config(["claim", "idle", "claim"], forfeit_skip_debt=True), tmp_path).run()
    assert result.stop_info is None
    rows = {row["participant"]: row for row in result.players}
    assert rows["Idle"]["prize_slot"] is None
    assert rows["Idle"]["asset_ref"] is None
    written = json.loads(result.result_path.read_text(encoding="utf-8"))
    assert len(written["leftover"]) == 1
    assert result.metrics["actions"]["forfeit"] == 1


def test_rejected_decisions_fall_back_to_a_claim(tmp_path):
    result = GameRunner(_config(["tests.helpers:SelfThief"] * 3), tmp_path).run()
    assert result.stop_info is None
    assert result.penalties == 3
    penalties = [e for e in read_events(result.events_path) if e["type"] == "penalty"]
    assert {p["payload"]["error"] for p in penalties} == {"TargetNotClaimed"}
    assert {p["payload"]["fallback"] for p in penalties} == {"claim"}


def test_random_participants_replay_deterministically(tmp_path):
    participants = ["random"] * 6
    first = GameRunner(_config(participants, final_swap=True), tmp_path / "a").run()
    second = GameRunner(_config(participants, final_swap=True), tmp_path / "b").run()
    assert first.players == second.players
    assert first.metrics == second.metrics


def test_progress_callback_sees_every_action(tmp_path):
    seen = []
    GameRunner(_config(["claim"] * 3), tmp_path, progress_callback=seen.append).run()
    assert [event["type"] for event in seen] == ["order", "action", "action", "action"]
