"""
Configuration - Environment-driven settings.

Environment variables:
    ROSETTE_ENV                     deployment name (default: development)
    ROSETTE_GRACE_PERIOD_SECONDS    reconnection window (default: 30)
    ROSETTE_MOVE_TIMEOUT_SECONDS    "opponent slow" notice delay (default: 60)
    ROSETTE_AI_THINKING_DELAY       greedy participant delay (default: 0.5)
    ROSETTE_ALLOWED_ORIGINS         comma separated CORS origins (default: *)
    ROSETTE_LOG_LEVEL               structlog level (default: INFO)
    ROSETTE_LOG_JSON                render logs as JSON (default: false)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Server settings. Build from the environment with Settings.from_env()."""
    env: str = "development"
    grace_period: float = 30.0
    move_timeout: float = 60.0
    ai_thinking_delay: float = 0.5
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        origins = os.getenv("ROSETTE_ALLOWED_ORIGINS", "*")
        return cls(
            env=os.getenv("ROSETTE_ENV", "development"),
            grace_period=_float("ROSETTE_GRACE_PERIOD_SECONDS", 30.0),
            move_timeout=_float("ROSETTE_MOVE_TIMEOUT_SECONDS", 60.0),
            ai_thinking_delay=_float("ROSETTE_AI_THINKING_DELAY", 0.5),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("ROSETTE_LOG_LEVEL", "INFO").upper(),
            log_json=_bool("ROSETTE_LOG_JSON", False),
        )
