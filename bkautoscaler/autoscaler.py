import os, sys, signal, threading

from kubernetes.client.rest import ApiException

from .buildkite_monitor import BuildkiteMonitor, DemandSourceError
from .clock import next_boundary, now_utc_dt, now_utc_iso
from .config import ConfigError, Settings
from .deployment_scaler import DeploymentScaler, init_apps_client
from .engine import INITIAL_STATE, evaluate
from .status import StatusBoard, start_status_server

TRANSIENT_ERRORS = (DemandSourceError, ApiException)


def run_tick(monitor, scaler, state, config, board=None, now=None):
    """One evaluation. Returns the state to carry into the next tick.

    Transient failures leave ``state`` untouched so a stale read can never
    advance or reset the cooldown clock.
    """
    now = now or now_utc_dt()
    try:
        demand = monitor.get_demand()
        current = scaler.get_current_replicas()
        print(f"Current status: {demand.running} running, {demand.scheduled} scheduled, "
              f"{current} current replicas", flush=True)

        decision = evaluate(demand, current, state, config, now)
        print("Decision:", decision.reason, flush=True)

        if decision.target_replicas != current:
            scaler.set_replicas(decision.target_replicas)
            action = "up" if decision.target_replicas > current else "down"
            print(f"Scaled {action}: {current} → {decision.target_replicas}", flush=True)
            print(f"Time: {now_utc_iso()}", flush=True)
            if board:
                board.record_scale(now, current, decision.target_replicas, decision.reason)

        if board:
            board.record_tick(now, demand, current, decision)
        return decision.next_state

    except TRANSIENT_ERRORS as e:
        print("Tick skipped:", e, file=sys.stderr, flush=True)
        if board:
            board.record_error(now, e)
        return state


def run(monitor, scaler, settings, stop_event, board=None):
    """Evaluate on every poll-interval boundary until ``stop_event`` is set."""
    state = INITIAL_STATE
    next_tick = next_boundary(now_utc_dt(), settings.poll_interval)
    print(f"Autoscaling {scaler.pool} every {settings.poll_interval}s "
          f"(replicas {settings.scaling.min_replicas}-{settings.scaling.max_replicas})", flush=True)

    while True:
        stop_event.wait(max(0.0, (next_tick - now_utc_dt()).total_seconds()))
        if stop_event.is_set():
            break

        state = run_tick(monitor, scaler, state, settings.scaling, board)

        # Skip boundaries that passed while the tick was running
        next_tick = next_boundary(max(now_utc_dt(), next_tick), settings.poll_interval)

    return state


def install_signal_handlers(stop_event):
    def _stop(signum, _frame):
        print(f"Received signal {signum}, stopping after current tick", flush=True)
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def line_buffered_stdio():
    sys.stdout = os.fdopen(sys.stdout.fileno(), "w", buffering=1)
    sys.stderr = os.fdopen(sys.stderr.fileno(), "w", buffering=1)


def main():
    line_buffered_stdio()
    print("Starting buildkite autoscaling", flush=True)

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print("Invalid configuration:", e, file=sys.stderr, flush=True)
        return 1

    monitor = BuildkiteMonitor(
        settings.api_token,
        organization=settings.organization,
        api_url=settings.api_url,
        timeout=settings.request_timeout,
    )
    scaler = DeploymentScaler(settings.deployment_name, settings.namespace, init_apps_client())

    board = StatusBoard()
    if settings.status_port:
        start_status_server(board, settings.status_port)

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    run(monitor, scaler, settings, stop_event, board)
    print("Autoscaler stopped", flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
