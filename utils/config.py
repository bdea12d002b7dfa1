"""
Runtime configuration for the Deadlock Detection Simulator.

Defaults come from DEADLOCK_SIM_* environment variables; the command line
overrides them.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from models.simulation import PERIODIC, DETECTION_STRATEGIES

ENV_PREFIX = "DEADLOCK_SIM_"


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


@dataclass(frozen=True)
class SimulatorConfig:
    """
    Attributes:
        host: Interface the web API binds to
        port: TCP port of the web API
        default_strategy: Strategy used when a create request omits one
        verbose: Enable debug logging
        log_file: Optional log file path
        event_log_limit: Activity events kept per simulation
    """
    host: str = "127.0.0.1"
    port: int = 5000
    default_strategy: str = PERIODIC
    verbose: bool = False
    log_file: Optional[str] = None
    event_log_limit: int = 100

    def __post_init__(self):
        if self.default_strategy not in DETECTION_STRATEGIES:
            raise ValueError(f"Unknown detection strategy: {self.default_strategy}")
        if self.event_log_limit <= 0:
            raise ValueError("event_log_limit must be positive")

    @classmethod
    def from_env(cls) -> "SimulatorConfig":
        """Build a configuration from environment variables."""
        return cls(
            host=_env("HOST", cls.host),
            port=int(_env("PORT", str(cls.port))),
            default_strategy=_env("STRATEGY", cls.default_strategy),
            verbose=_env("VERBOSE", "0").lower() in ("1", "true", "yes"),
            log_file=_env("LOG_FILE", "") or None,
            event_log_limit=int(_env("EVENT_LOG_LIMIT", str(cls.event_log_limit))),
        )

    def override(self, **changes) -> "SimulatorConfig":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
