"""Typed engine events for UI observers.

All events are frozen so a subscriber can keep them around or serialize
them with dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from puzzle_engine.models import AttemptRecord, HintDescriptor


@dataclass(frozen=True)
class PositionChanged:
    fen: str
    cursor: int
    last_move: str | None


@dataclass(frozen=True)
class HintShown:
    hint: HintDescriptor


@dataclass(frozen=True)
class MistakeMade:
    count: int
    attempted_move: str


@dataclass(frozen=True)
class PuzzleCompleted:
    puzzle_id: str
    is_solved: bool


@dataclass(frozen=True)
class PuzzleFailed:
    """Malformed puzzle data surfaced by a deferred step."""

    puzzle_id: str
    error: str


@dataclass(frozen=True)
class AttemptRecorded:
    record: AttemptRecord


EngineEvent = Union[
    PositionChanged, HintShown, MistakeMade, PuzzleCompleted, PuzzleFailed, AttemptRecorded
]
Subscriber = Callable[[EngineEvent], None]
