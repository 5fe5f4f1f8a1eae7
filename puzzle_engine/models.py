"""Shared data models for the puzzle engine.

Puzzle and AttemptRecord are the contract with the puzzle-fetch and
telemetry collaborators. PuzzleState is the shared contract between the
MCP server and the TUI. Session state itself lives in session.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import chess


@dataclass(frozen=True)
class Puzzle:
    """A tactical puzzle as delivered by the puzzle source.

    ``fen`` is the position before the setup move; ``moves`` holds the raw
    space-separated UCI tokens, setup move first.
    """

    id: str
    fen: str
    moves: str
    rating: int = 0
    themes: tuple[str, ...] = field(default_factory=tuple)
    url: str | None = None


@dataclass(frozen=True)
class ScriptMove:
    """One half-move of a puzzle script."""

    from_square: chess.Square
    to_square: chess.Square
    promotion: chess.PieceType | None = None

    def to_move(self) -> chess.Move:
        return chess.Move(self.from_square, self.to_square, promotion=self.promotion)

    def uci(self) -> str:
        return self.to_move().uci()


class Phase(str, Enum):
    """Single authoritative state of a puzzle session."""

    AWAITING_PLAYER_MOVE = "awaiting_player_move"
    SCHEDULING_OPPONENT_REPLY = "scheduling_opponent_reply"
    PLAYING_BACK_SOLUTION = "playing_back_solution"
    COMPLETE = "complete"


class HintKind(str, Enum):
    MOVE = "move"
    PIECE = "piece"


@dataclass(frozen=True)
class HintDescriptor:
    """Squares to highlight for a hint. ``to_square`` is None for piece hints."""

    kind: HintKind
    from_square: chess.Square
    to_square: chess.Square | None = None

    def squares(self) -> list[chess.Square]:
        if self.to_square is None:
            return [self.from_square]
        return [self.from_square, self.to_square]

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "from": chess.square_name(self.from_square),
            "to": chess.square_name(self.to_square) if self.to_square is not None else None,
        }


@dataclass
class PuzzleState:
    """Snapshot of a session for display and tool responses."""

    session_id: str
    puzzle_id: str
    fen: str
    board_display: str
    phase: str
    cursor: int
    script_length: int
    mate_in_x: int
    mating_side: str
    side_to_move: str | None
    mistakes: int
    moves_tried: int
    elapsed_time_ms: int
    is_complete: bool
    is_solved: bool
    solution_viewed: bool = False
    rating: int = 0
    themes: list[str] = field(default_factory=list)
    last_move: str | None = None
    hint: dict | None = None
    legal_moves: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class AttemptRecord:
    """Final outcome of one puzzle attempt, handed to telemetry once."""

    puzzle_id: str
    success: bool
    moves_tried: int
    time_ms: int
    mistakes: int

    def as_dict(self) -> dict:
        """Return the attempt in the telemetry payload shape."""
        return {
            "puzzleId": self.puzzle_id,
            "success": self.success,
            "movesTried": self.moves_tried,
            "timeMs": self.time_ms,
            "mistakes": self.mistakes,
        }
