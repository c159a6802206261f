import threading
from collections import deque

from flask import Flask, jsonify

from .clock import to_iso

DECISION_HISTORY = 50


class StatusBoard:
    """Last tick summary and recent scaling changes, shared with the status app."""

    def __init__(self, history=DECISION_HISTORY):
        self._lock = threading.Lock()
        self._last_tick = None
        self._last_error = None
        self._decisions = deque(maxlen=history)

    def record_tick(self, now, demand, current, decision):
        with self._lock:
            self._last_tick = {
                "timestamp": to_iso(now),
                "running": demand.running,
                "scheduled": demand.scheduled,
                "current_replicas": current,
                "target_replicas": decision.target_replicas,
                "phase": decision.next_state.phase.value,
                "scale_down_anchor": to_iso(decision.next_state.scale_down_anchor),
                "reason": decision.reason,
            }
            self._last_error = None

    def record_scale(self, now, old, new, reason):
        with self._lock:
            self._decisions.append({
                "timestamp": to_iso(now),
                "action": "up" if new > old else "down",
                "old_replicas": old,
                "new_replicas": new,
                "reason": reason,
            })

    def record_error(self, now, error):
        with self._lock:
            self._last_error = {"timestamp": to_iso(now), "error": str(error)}

    def snapshot(self):
        with self._lock:
            return {"last_tick": self._last_tick, "last_error": self._last_error}

    def decisions(self):
        with self._lock:
            return list(self._decisions)


def create_app(board):
    app = Flask(__name__)

    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    @app.route("/api/status")
    def api_status():
        return jsonify(board.snapshot())

    @app.route("/api/decisions")
    def api_decisions():
        return jsonify(board.decisions())

    return app


def start_status_server(board, port, host="0.0.0.0"):
    app = create_app(board)
    thread = threading.Thread(
        target=app.run,
        kwargs={"host": host, "port": port, "use_reloader": False},
        daemon=True,
    )
    thread.start()
    print(f"Status endpoint listening on {host}:{port}", flush=True)
    return thread
