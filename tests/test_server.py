from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from white_elephant.api.server import create_app
from white_elephant.game import Game
from white_elephant.turn_order import SeededEntropySource

from tests.helpers import START


@pytest.fixture
def game(game_config, treasury, events, clock) -> Game:
    return Game(game_config, treasury, SeededEntropySource(), events, clock)


@pytest.fixture
def client(game) -> TestClient:
    return TestClient(create_app(game))


def _start(client: TestClient, clock, players: int = 2) -> list:
    for index in range(players):
        assert client.post("/deposits", json={"depositor": "owner", "asset_ref": f"asset-{index}"}).status_code == 201
        assert client.post("/tickets", json={"player_id": f"p{index + 1}", "payment": 10}).status_code == 201
    clock.set(START)
    request = client.post("/order/request", json={"seed": 5})
    assert request.status_code == 202
    finalize = client.post("/order/finalize", json={"token": request.json()["token"]})
    assert finalize.status_code == 200
    return finalize.json()["order"]


def test_game_plays_over_http(client, clock):
    order = _start(client, clock)
    turn = client.get("/turn").json()["pending"]
    assert turn["slot"] == 0
    assert turn["player_id"] == f"p{order[0]}"

    response = client.post("/turns/claim", json={"caller": f"p{order[1]}"})
    assert response.status_code == 409
    assert response.json() == {"error": "NotYourTurn", "kind": "TurnViolation", "message": "not your turn"}

    assert client.post("/turns/claim", json={"caller": f"p{order[0]}"}).json()["action"] == "claim"
    steal = client.post("/turns/steal", json={"caller": f"p{order[1]}", "target": 0, "prize": 0})
    assert steal.status_code == 200
    assert steal.json()["target"] == 0
    assert client.get("/turn").json() == {"pending": None}
    assert client.get("/slots/0").json() == {"slot": 0, "player": order[0], "prize_slot": 1}

    early = client.get("/resolution")
    assert early.status_code == 409
    assert early.json()["message"] == "game has not been resolved"
    assert client.get("/state").json()["phase"] == "active"

    resolution = client.post("/resolve").json()["records"]
    assert [(r["slot"], r["prize_slot"], r["asset_ref"]) for r in resolution] == [
        (0, 1, "asset-1"),
        (1, 0, "asset-0"),
        (None, None, None),
    ]
    assert client.get("/resolution").json()["records"] == resolution
    assert client.get("/resolution", params={"start": 1, "end": 2}).json()["records"][0]["slot"] == 1

    released = client.post("/prizes/release", json={"caller": f"p{order[1]}"})
    assert released.json() == {"asset_ref": "asset-0"}
    funds = client.post("/funds/release", json={"caller": "owner", "to": "owner", "amount": 20})
    assert funds.status_code == 200
    assert client.get("/state").json()["phase"] == "resolved"
    assert any(event["type"] == "release" for event in client.get("/events").json()["events"])


def test_access_denied_maps_to_403(client):
    response = client.post("/deposits", json={"depositor": "stranger", "asset_ref": "x"})
    assert response.status_code == 403
    assert response.json()["message"] == "you are not allowed to deposit"
    assert response.json()["kind"] == "AccessDenied"


def test_phase_errors_map_to_409(client):
    response = client.post("/order/request", json={"seed": 1})
    assert response.status_code == 409
    assert response.json()["error"] == "GameNotStarted"
    assert response.json()["message"] == "game has not started yet"


def test_duplicate_ticket_over_http(client):
    assert client.post("/tickets", json={"player_id": "p1", "payment": 10}).status_code == 201
    response = client.post("/tickets", json={"player_id": "p1", "payment": 10})
    assert response.status_code == 409
    assert response.json()["message"] == "cant buy more"


def test_invalid_bodies_map_to_422(client):
    assert client.post("/tickets", json={"player_id": "p1"}).status_code == 422
    assert client.post("/turns/steal", json={"caller": "p1", "target": -1}).status_code == 422
    broken = client.post("/tickets", content=b"{not json", headers={"content-type": "application/json"})
    assert broken.status_code == 422


def test_unknown_entropy_token_without_values_is_503(client, clock):
    client.post("/tickets", json={"player_id": "p1", "payment": 10})
    clock.set(START)
    client.post("/order/request", json={"seed": 1})
    response = client.post("/order/finalize", json={"token": "entropy-999"})
    assert response.status_code == 503
    assert response.json()["kind"] == "DependencyUnavailable"


def test_unknown_entropy_token_with_values_is_409(client, clock):
    client.post("/tickets", json={"player_id": "p1", "payment": 10})
    client.post("/tickets", json={"player_id": "p2", "payment": 10})
    clock.set(START)
    client.post("/order/request", json={"seed": 1})
    response = client.post("/order/finalize", json={"token": "entropy-999", "values": [3]})
    assert response.status_code == 409
    assert response.json()["message"] == "unknown entropy request"


def test_player_and_slot_lookups(client, clock):
    assert client.get("/players/1").status_code == 404
    client.post("/tickets", json={"player_id": "p1", "payment": 10})
    assert client.get("/players/1").json() == {"player_id": "p1", "number": 1}
    assert client.get("/slots/0").status_code == 404


def test_resolve_before_the_last_turn_is_409(client, clock):
    order = _start(client, clock)
    client.post("/turns/claim", json={"caller": f"p{order[0]}"})
    response = client.post("/resolve")
    assert response.status_code == 409
    assert response.json()["message"] == "turns remaining"
    assert client.get("/resolution").json()["error"] == "GameNotResolved"
    assert client.get("/state").json()["phase"] == "active"
