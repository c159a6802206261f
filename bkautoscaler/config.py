import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

# Safety limits
MIN_REPLICAS = 1
MAX_REPLICAS = 50
SCALE_DOWN_STEP = 20     # Replicas removed per expired cooldown window
COOLDOWN_SECONDS = 300   # Idle time before each scale-down step

# Control loop
POLL_INTERVAL_SECONDS = 60
REQUEST_TIMEOUT_SECONDS = 30
STATUS_PORT = 8080       # 0 disables the status endpoint

# Buildkite
BUILDKITE_API_URL = "https://api.buildkite.com/v2"

# Kubernetes
NAMESPACE = "buildkite"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ScalingConfig:
    min_replicas: int = MIN_REPLICAS
    max_replicas: int = MAX_REPLICAS
    scale_down_step: int = SCALE_DOWN_STEP
    cooldown_seconds: int = COOLDOWN_SECONDS

    def __post_init__(self):
        if self.min_replicas < 1:
            raise ConfigError("MIN_REPLICAS must be positive")
        if self.max_replicas < self.min_replicas:
            raise ConfigError("MAX_REPLICAS must be >= MIN_REPLICAS")
        if self.scale_down_step < 1:
            raise ConfigError("SCALE_DOWN_STEP must be positive")
        if self.cooldown_seconds < 0:
            raise ConfigError("COOLDOWN_SECONDS cannot be negative")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup."""
    api_token: str
    deployment_name: str
    namespace: str = NAMESPACE
    organization: Optional[str] = None
    api_url: str = BUILDKITE_API_URL
    poll_interval: int = POLL_INTERVAL_SECONDS
    request_timeout: int = REQUEST_TIMEOUT_SECONDS
    status_port: int = STATUS_PORT
    scaling: ScalingConfig = field(default_factory=ScalingConfig)

    def __post_init__(self):
        if not self.api_token:
            raise ConfigError("BUILDKITE_API_TOKEN is required")
        if not self.deployment_name:
            raise ConfigError("TARGET_DEPLOYMENT_NAME is required")
        if not self.namespace:
            raise ConfigError("TARGET_NAMESPACE cannot be empty")
        if self.poll_interval < 1:
            raise ConfigError("POLL_INTERVAL_SECONDS must be positive")
        if self.request_timeout < 1:
            raise ConfigError("REQUEST_TIMEOUT_SECONDS must be positive")
        if not 0 <= self.status_port <= 65535:
            raise ConfigError("STATUS_PORT must be between 0 and 65535")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        scaling = ScalingConfig(
            min_replicas=_int_env(env, "MIN_REPLICAS", MIN_REPLICAS),
            max_replicas=_int_env(env, "MAX_REPLICAS", MAX_REPLICAS),
            scale_down_step=_int_env(env, "SCALE_DOWN_STEP", SCALE_DOWN_STEP),
            cooldown_seconds=_int_env(env, "COOLDOWN_SECONDS", COOLDOWN_SECONDS),
        )
        return cls(
            api_token=env.get("BUILDKITE_API_TOKEN", ""),
            deployment_name=env.get("TARGET_DEPLOYMENT_NAME", ""),
            namespace=env.get("TARGET_NAMESPACE") or NAMESPACE,
            organization=env.get("BUILDKITE_ORGANIZATION") or None,
            api_url=(env.get("BUILDKITE_API_URL") or BUILDKITE_API_URL).rstrip("/"),
            poll_interval=_int_env(env, "POLL_INTERVAL_SECONDS", POLL_INTERVAL_SECONDS),
            request_timeout=_int_env(env, "REQUEST_TIMEOUT_SECONDS", REQUEST_TIMEOUT_SECONDS),
            status_port=_int_env(env, "STATUS_PORT", STATUS_PORT),
            scaling=scaling,
        )


def _int_env(env, name, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
