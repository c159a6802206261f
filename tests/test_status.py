"""
Test Status Endpoint
====================
Read-only JSON views served by the Flask app.
"""

from datetime import datetime, timezone

import pytest

from bkautoscaler.engine import CooldownState, Decision, DemandSnapshot
from bkautoscaler.status import StatusBoard, create_app

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def board():
    return StatusBoard(history=2)


@pytest.fixture
def client(board):
    app = create_app(board)
    app.config["TESTING"] = True
    return app.test_client()


class TestStatusEndpoint:

    def test_healthz(self, client):
        resp = client.get("/healthz")

        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}

    def test_status_before_first_tick(self, client):
        assert client.get("/api/status").get_json() == {"last_tick": None, "last_error": None}

    def test_status_after_tick(self, board, client):
        decision = Decision(10, CooldownState.cooling(NOW), "Beginning cool down period")
        board.record_tick(NOW, DemandSnapshot(0, 0), 10, decision)

        tick = client.get("/api/status").get_json()["last_tick"]
        assert tick["phase"] == "cooling"
        assert tick["scale_down_anchor"] == NOW.isoformat()
        assert tick["reason"] == "Beginning cool down period"

    def test_error_cleared_by_next_tick(self, board, client):
        board.record_error(NOW, RuntimeError("Buildkite request failed"))
        assert client.get("/api/status").get_json()["last_error"]["error"] == "Buildkite request failed"

        board.record_tick(NOW, DemandSnapshot(1, 0), 1, Decision(1, CooldownState()))
        assert client.get("/api/status").get_json()["last_error"] is None

    def test_decision_history_is_bounded(self, board, client):
        board.record_scale(NOW, 1, 5, "up")
        board.record_scale(NOW, 5, 9, "up")
        board.record_scale(NOW, 9, 1, "down")

        decisions = client.get("/api/decisions").get_json()
        assert [d["new_replicas"] for d in decisions] == [9, 1]
        assert decisions[-1]["action"] == "down"
