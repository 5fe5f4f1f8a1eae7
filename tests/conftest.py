"""Shared test fixtures for the puzzle engine.

Fixtures:
    scheduler          - ManualScheduler drained explicitly by tests.
    clock              - Fake monotonic clock advanced by hand.
    events / attempts  - Lists collecting engine events and attempt records.
    controller         - PuzzleController wired to the above.
    enable_validation  - Sets PUZZLE_ENGINE_VALIDATE=1 for schema validation.
"""

from __future__ import annotations

import os

import pytest

from puzzle_engine.config import EngineSettings
from puzzle_engine.controller import PuzzleController
from puzzle_engine.scheduling import ManualScheduler


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def events() -> list:
    return []


@pytest.fixture()
def attempts() -> list:
    return []


@pytest.fixture()
def controller(scheduler, clock, events, attempts) -> PuzzleController:
    ctrl = PuzzleController(
        scheduler,
        settings=EngineSettings(),
        clock=clock,
        attempt_sink=attempts.append,
    )
    ctrl.subscribe(events.append)
    return ctrl


# ---------------------------------------------------------------------------
# Schema validation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def enable_validation():
    """Set PUZZLE_ENGINE_VALIDATE=1 for the test session.

    Restores the original env var value after the test.
    """
    original = os.environ.get("PUZZLE_ENGINE_VALIDATE")
    os.environ["PUZZLE_ENGINE_VALIDATE"] = "1"
    yield
    if original is None:
        os.environ.pop("PUZZLE_ENGINE_VALIDATE", None)
    else:
        os.environ["PUZZLE_ENGINE_VALIDATE"] = original
