"""Tests for the FastAPI RewindXO interface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from rewindxo import ui
from rewindxo.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = 0.0


def _new_game(mode: str) -> dict:
    response = client.post("/api/game", json={"mode": mode})
    assert response.status_code == 200
    return response.json()


def test_create_game_defaults_to_cpu_mode():
    response = client.post("/api/game", json={})
    assert response.status_code == 200
    payload = response.json()
    assert payload["mode"] == "pvc"
    assert payload["cells"] == [""] * 9
    assert payload["moves"] == ["Game start"]
    assert payload["currentPlayer"] == "X"
    assert payload["status"] == "Your turn (X)"
    assert payload["aiPending"] is False


def test_player_move_triggers_cpu_reply():
    game_id = _new_game("pvc")["id"]

    move_response = client.post(f"/api/game/{game_id}/move", json={"index": 0})
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["cells"][0] == "X"
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True
    assert state["inputLocked"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["aiPending"] is False
    assert final_state["cursor"] == 2
    assert final_state["cells"][4] == "O"
    assert final_state["currentPlayer"] == "X"


def test_pvp_mode_never_schedules_cpu():
    game_id = _new_game("pvp")["id"]
    state = client.post(f"/api/game/{game_id}/move", json={"index": 4}).json()
    assert state["aiPending"] is False
    assert state["status"] == "Next player: O"

    state = client.post(f"/api/game/{game_id}/move", json={"index": 0}).json()
    assert state["cells"][0] == "O"
    assert state["cursor"] == 2


def test_occupied_cell_rejected():
    game_id = _new_game("pvp")["id"]
    first_move = client.post(f"/api/game/{game_id}/move", json={"index": 0})
    assert first_move.status_code == 200

    duplicate_move = client.post(f"/api/game/{game_id}/move", json={"index": 0})
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]
    assert len(client.get(f"/api/game/{game_id}").json()["moves"]) == 2


def test_finished_game_rejects_moves():
    game_id = _new_game("pvp")["id"]
    for index in (0, 3, 1, 4, 2):
        client.post(f"/api/game/{game_id}/move", json={"index": index})
    state = client.get(f"/api/game/{game_id}").json()
    assert state["winner"] == "X"
    assert state["winningLine"] == [0, 1, 2]
    assert state["status"] == "Winner: X!"

    response = client.post(f"/api/game/{game_id}/move", json={"index": 8})
    assert response.status_code == 400


def test_jump_and_branch():
    game_id = _new_game("pvp")["id"]
    for index in (0, 1, 2):
        client.post(f"/api/game/{game_id}/move", json={"index": index})

    jumped = client.post(f"/api/game/{game_id}/jump", json={"move": 1})
    assert jumped.status_code == 200
    state = jumped.json()
    assert state["cursor"] == 1
    assert len(state["moves"]) == 4
    assert state["cells"] == ["X"] + [""] * 8

    state = client.post(f"/api/game/{game_id}/move", json={"index": 8}).json()
    assert len(state["moves"]) == 3
    assert state["cells"][8] == "O"


def test_jump_out_of_range_rejected():
    game_id = _new_game("pvp")["id"]
    response = client.post(f"/api/game/{game_id}/jump", json={"move": 3})
    assert response.status_code == 400


def test_jump_to_cpu_turn_replays_cpu():
    game_id = _new_game("pvc")["id"]
    client.post(f"/api/game/{game_id}/move", json={"index": 0})
    client.post(f"/api/game/{game_id}/move", json={"index": 8})

    state = client.post(f"/api/game/{game_id}/jump", json={"move": 1}).json()
    assert state["aiPending"] is True

    state = client.get(f"/api/game/{game_id}").json()
    assert state["cursor"] == 2
    assert state["aiPending"] is False


def test_stale_cpu_turn_is_dropped():
    game_id = _new_game("pvc")["id"]
    session = ui.SESSIONS[game_id]
    with session.lock:
        session.history.play(0)
        stale_generation = session.history.generation
        session.history.jump_to(0)

    ui._run_ai_turn(game_id, stale_generation)

    state = client.get(f"/api/game/{game_id}").json()
    assert state["cursor"] == 0
    assert state["cells"] == [""] * 9
    assert len(state["moves"]) == 2


def test_cpu_turn_dropped_after_reset_with_mode_switch():
    game_id = _new_game("pvc")["id"]
    session = ui.SESSIONS[game_id]
    with session.lock:
        session.history.play(0)
        session.ai_pending = True
        stale_generation = session.history.generation

    response = client.post(f"/api/game/{game_id}/reset", json={"mode": "pvp"})
    assert response.status_code == 200
    assert response.json()["aiPending"] is False

    ui._run_ai_turn(game_id, stale_generation)

    state = client.get(f"/api/game/{game_id}").json()
    assert state["mode"] == "pvp"
    assert state["cells"] == [""] * 9
    assert state["moves"] == ["Game start"]
    assert state["aiPending"] is False


def test_cpu_turn_dropped_after_plain_reset():
    game_id = _new_game("pvc")["id"]
    session = ui.SESSIONS[game_id]
    with session.lock:
        session.history.play(0)
        session.ai_pending = True
        stale_generation = session.history.generation

    client.post(f"/api/game/{game_id}/reset", json={})
    ui._run_ai_turn(game_id, stale_generation)

    state = client.get(f"/api/game/{game_id}").json()
    assert state["mode"] == "pvc"
    assert state["cells"] == [""] * 9
    assert state["cursor"] == 0


def test_reset_switches_mode():
    game_id = _new_game("pvc")["id"]
    client.post(f"/api/game/{game_id}/move", json={"index": 4})

    response = client.post(f"/api/game/{game_id}/reset", json={"mode": "pvp"})
    assert response.status_code == 200
    state = response.json()
    assert state["mode"] == "pvp"
    assert state["moves"] == ["Game start"]
    assert state["aiPending"] is False


def test_rejects_out_of_range_index():
    game_id = _new_game("pvp")["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"index": 9})
    assert response.status_code == 422


def test_rejects_unknown_mode():
    response = client.post("/api/game", json={"mode": "online"})
    assert response.status_code == 422


def test_missing_game_returns_404():
    missing = client.get("/api/game/INVALID")
    assert missing.status_code == 404


def test_index_serves_page():
    response = client.get("/")
    assert response.status_code == 200
    assert "RewindXO" in response.text
