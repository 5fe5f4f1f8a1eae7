"""Exception hierarchy for the puzzle engine.

Malformed puzzle data and rejected moves are recoverable from the caller's
point of view. EngineInvariantError marks a defect in the engine itself.
"""

from __future__ import annotations


class PuzzleEngineError(Exception):
    """Base class for all puzzle engine errors."""


class MalformedPuzzleError(PuzzleEngineError):
    """Puzzle data cannot be played: bad FEN, bad token, or an illegal script move."""

    def __init__(self, message: str, puzzle_id: str | None = None) -> None:
        if puzzle_id:
            message = f"Puzzle {puzzle_id}: {message}"
        super().__init__(message)
        self.puzzle_id = puzzle_id


class IllegalMoveError(PuzzleEngineError):
    """A move was rejected by the rules adapter."""

    def __init__(self, move: str, fen: str) -> None:
        super().__init__(f"Illegal move {move} in position {fen}")
        self.move = move
        self.fen = fen


class EngineInvariantError(PuzzleEngineError):
    """Internal state contradicts a check the engine already made."""
