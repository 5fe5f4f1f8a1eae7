"""Solution playback: replays the whole script from the post-setup position."""

from __future__ import annotations

import logging
from typing import Callable

from puzzle_engine import rules
from puzzle_engine.errors import IllegalMoveError, MalformedPuzzleError
from puzzle_engine.models import Phase
from puzzle_engine.scheduling import Handle, Scheduler
from puzzle_engine.session import Session

logger = logging.getLogger(__name__)


def play_solution_step(session: Session, generation: int) -> bool:
    """Apply the next script move during playback.

    Returns:
        True if a move was applied, False if playback was superseded.

    Raises:
        MalformedPuzzleError: If the script move is illegal.
    """
    if session.phase is not Phase.PLAYING_BACK_SOLUTION or session.generation != generation:
        logger.debug(
            "Playback step for puzzle %s dropped (gen %d/%d, phase=%s)",
            session.puzzle.id, generation, session.generation, session.phase.value,
        )
        return False

    move = session.expected_move()
    if move is None:
        session.complete(solved=True)
        return False

    promotion = rules.normalize_promotion(
        session.position, move.from_square, move.to_square, move.promotion
    )
    try:
        new_position = rules.apply_move(
            session.position, move.from_square, move.to_square, promotion
        )
    except IllegalMoveError as exc:
        error = MalformedPuzzleError(
            f"solution move {move.uci()} at step {session.cursor} is illegal",
            session.puzzle.id,
        )
        session.error = error
        raise error from exc

    session.advance(new_position)
    if session.finished():
        session.complete(solved=True)
    return True


class SolutionPlayer:
    """Drives a session through its script at a fixed pace."""

    def __init__(
        self,
        scheduler: Scheduler,
        interval: float = 0.4,
        start_delay: float = 0.3,
        on_step: Callable[[Session], None] | None = None,
        on_error: Callable[[Session, MalformedPuzzleError], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._interval = interval
        self._start_delay = start_delay
        self._on_step = on_step
        self._on_error = on_error
        self._pending: Handle | None = None

    @property
    def is_playing(self) -> bool:
        return self._pending is not None

    def start(self, session: Session) -> None:
        """Rewind the session and begin playback.

        The rewind bumps the session generation, so any opponent reply still
        scheduled against the session becomes a no-op.
        """
        self.cancel()
        session.rewind(Phase.PLAYING_BACK_SOLUTION)
        session.solution_viewed = True
        logger.info("Playing back solution for puzzle %s", session.puzzle.id)
        if not session.script:
            session.complete(solved=False)
            return
        self._schedule(session, session.generation, self._start_delay + self._interval)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None

    def _schedule(self, session: Session, generation: int, delay: float) -> None:
        self._pending = self._scheduler.call_later(
            delay, lambda: self._step(session, generation)
        )

    def _step(self, session: Session, generation: int) -> None:
        self._pending = None
        try:
            applied = play_solution_step(session, generation)
        except MalformedPuzzleError as exc:
            logger.warning("Solution playback stopped: %s", exc)
            if self._on_error is not None:
                self._on_error(session, exc)
            return
        if not applied:
            return
        if self._on_step is not None:
            self._on_step(session)
        if session.phase is Phase.PLAYING_BACK_SOLUTION:
            self._schedule(session, generation, self._interval)
