"""Replica decisions for the build-agent pool.

Scale-up is immediate: any unmet demand raises the pool to match it. Scale-down
is stepped and rate limited: the first idle tick only starts the cooldown clock,
and each expired cooldown window removes ``scale_down_step`` replicas and
restarts the clock.

``evaluate`` keeps no state of its own. The caller threads the returned
``CooldownState`` into the next call and decides whether to apply the target.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .config import ScalingConfig


class Phase(Enum):
    UNKNOWN = "unknown"
    CORRECT = "correct"
    COOLING = "cooling"


@dataclass(frozen=True)
class DemandSnapshot:
    running: int = 0
    scheduled: int = 0

    def __post_init__(self):
        if self.running < 0 or self.scheduled < 0:
            raise ValueError("build counts cannot be negative")

    @property
    def needed(self) -> int:
        return self.running + self.scheduled


@dataclass(frozen=True)
class CooldownState:
    phase: Phase = Phase.UNKNOWN
    scale_down_anchor: Optional[datetime] = None

    def __post_init__(self):
        if (self.phase is Phase.COOLING) != (self.scale_down_anchor is not None):
            raise ValueError("scale_down_anchor must be set exactly when cooling")

    @classmethod
    def cooling(cls, anchor: datetime) -> "CooldownState":
        return cls(Phase.COOLING, anchor)


INITIAL_STATE = CooldownState()
CORRECT_STATE = CooldownState(Phase.CORRECT)


@dataclass(frozen=True)
class Decision:
    target_replicas: int
    next_state: CooldownState
    reason: str = ""


def clamp(value: int, config: ScalingConfig) -> int:
    return max(config.min_replicas, min(config.max_replicas, value))


def evaluate(
    demand: DemandSnapshot,
    current_replicas: int,
    state: CooldownState,
    config: ScalingConfig,
    now: datetime,
) -> Decision:
    needed = demand.needed
    target = current_replicas

    if needed > 0:
        next_state = CORRECT_STATE
        if current_replicas < config.max_replicas and needed > current_replicas:
            target = needed
            reason = f"Scaling up to the needed replica count ({needed})"
        elif needed > current_replicas:
            reason = f"Demand {needed} exceeds the replica ceiling, holding"
        else:
            reason = "Enough replicas for current demand"

    elif state.phase is not Phase.COOLING:
        next_state = CooldownState.cooling(now)
        reason = "Beginning cool down period to scale down replicas"

    else:
        # Whole seconds; a partial second never expires the window
        elapsed = int((now - state.scale_down_anchor).total_seconds())
        if elapsed > config.cooldown_seconds:
            target = current_replicas - config.scale_down_step
            next_state = CooldownState.cooling(now)
            reason = (
                f"No builds for {elapsed}s (cooldown {config.cooldown_seconds}s), "
                f"scaling down by {config.scale_down_step}"
            )
        else:
            next_state = state
            reason = f"Now {elapsed} seconds out of {config.cooldown_seconds} into cool down period"

    return Decision(clamp(target, config), next_state, reason)
