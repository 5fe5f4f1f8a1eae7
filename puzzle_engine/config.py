"""Engine settings and logging setup.

Delays are in seconds and only shape pacing; correctness never depends
on them.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

_DEFAULT_OPPONENT_DELAY = 0.25
_DEFAULT_SOLUTION_INTERVAL = 0.4
_DEFAULT_SOLUTION_START_DELAY = 0.3


def _env_seconds(name: str, default: float) -> float:
    """Read a non-negative float from the environment, falling back on bad input."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value < 0:
        return default
    return value


@dataclass(frozen=True)
class EngineSettings:
    opponent_delay: float = _DEFAULT_OPPONENT_DELAY
    solution_interval: float = _DEFAULT_SOLUTION_INTERVAL
    solution_start_delay: float = _DEFAULT_SOLUTION_START_DELAY

    @classmethod
    def from_env(cls) -> EngineSettings:
        """Build settings from PUZZLE_ENGINE_* environment variables."""
        return cls(
            opponent_delay=_env_seconds(
                "PUZZLE_ENGINE_OPPONENT_DELAY", _DEFAULT_OPPONENT_DELAY
            ),
            solution_interval=_env_seconds(
                "PUZZLE_ENGINE_SOLUTION_INTERVAL", _DEFAULT_SOLUTION_INTERVAL
            ),
            solution_start_delay=_env_seconds(
                "PUZZLE_ENGINE_SOLUTION_START_DELAY", _DEFAULT_SOLUTION_START_DELAY
            ),
        )


def configure_logging(level: str | None = None) -> None:
    """Send engine logs to stderr at PUZZLE_ENGINE_LOG_LEVEL (default WARNING)."""
    name = (level or os.environ.get("PUZZLE_ENGINE_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
