"""Session state for one puzzle attempt, and its initializer."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable

import chess

from puzzle_engine import rules
from puzzle_engine.errors import IllegalMoveError, MalformedPuzzleError
from puzzle_engine.models import HintDescriptor, Phase, Puzzle, ScriptMove
from puzzle_engine.script import parse_script

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class Session:
    """Mutable record of a puzzle attempt.

    ``phase`` is the only state that decides which component may act.
    ``generation`` is bumped whenever deferred work scheduled against this
    session must be discarded.
    """

    puzzle: Puzzle
    initial_position: chess.Board
    position: chess.Board
    script: list[ScriptMove]
    mating_side: chess.Color
    mate_in_x: int
    started_at: float
    cursor: int = 0
    mistakes: int = 0
    phase: Phase = Phase.AWAITING_PLAYER_MOVE
    is_solved: bool = False
    hint: HintDescriptor | None = None
    generation: int = 0
    completed_at: float | None = None
    error: MalformedPuzzleError | None = None
    attempt_reported: bool = False
    solution_viewed: bool = False
    clock: Clock = field(default=time.monotonic, repr=False)

    @property
    def is_complete(self) -> bool:
        return self.phase is Phase.COMPLETE

    @property
    def is_player_turn(self) -> bool:
        return self.cursor % 2 == 0

    def expected_move(self) -> ScriptMove | None:
        """Return the script move at the cursor, or None past the end."""
        if self.cursor >= len(self.script):
            return None
        return self.script[self.cursor]

    def finished(self) -> bool:
        """True once the script is exhausted or the position is mate."""
        return self.cursor >= len(self.script) or rules.is_checkmate(self.position)

    def advance(self, position: chess.Board) -> None:
        """Record a successfully applied script move."""
        self.position = position
        self.cursor += 1

    def complete(self, solved: bool) -> None:
        self.phase = Phase.COMPLETE
        self.is_solved = solved
        self.completed_at = self.clock()
        logger.info(
            "Puzzle %s complete (solved=%s, cursor=%d, mistakes=%d)",
            self.puzzle.id, solved, self.cursor, self.mistakes,
        )

    def invalidate(self) -> int:
        """Supersede any deferred step scheduled against this session."""
        self.generation += 1
        return self.generation

    def rewind(self, phase: Phase) -> None:
        """Return to the post-setup position with counters cleared."""
        self.invalidate()
        self.position = self.initial_position.copy()
        self.cursor = 0
        self.mistakes = 0
        self.hint = None
        self.is_solved = False
        self.completed_at = None
        self.error = None
        self.phase = phase


def create_session(puzzle: Puzzle, clock: Clock = time.monotonic) -> Session:
    """Build a session from a puzzle, playing the setup move.

    Args:
        puzzle: The puzzle to attempt.
        clock: Time source in seconds, used for elapsed-time tracking.

    Returns:
        A session positioned for the player's first move.

    Raises:
        MalformedPuzzleError: If the FEN, a token, or the setup move is bad.
    """
    try:
        setup, script = parse_script(puzzle.moves)
        start = rules.parse_position(puzzle.fen)
        position = rules.apply_move(
            start, setup.from_square, setup.to_square, setup.promotion
        )
    except MalformedPuzzleError as exc:
        raise MalformedPuzzleError(str(exc), puzzle.id) from exc
    except IllegalMoveError as exc:
        raise MalformedPuzzleError(f"setup move is illegal: {exc}", puzzle.id) from exc

    session = Session(
        puzzle=puzzle,
        initial_position=position,
        position=position.copy(),
        script=script,
        mating_side=rules.side_to_move(position),
        mate_in_x=math.ceil(len(script) / 2),
        started_at=clock(),
        clock=clock,
    )
    if session.finished():
        # Nothing left for the player to do.
        session.complete(solved=False)
    logger.info(
        "Session created for puzzle %s (mate in %d, %s to play)",
        puzzle.id, session.mate_in_x, chess.COLOR_NAMES[session.mating_side],
    )
    return session
