"""Turn scheduler: plays the scripted opponent reply one tick after the player.

Each reply is bound to the session generation and cursor it was scheduled
for. A tick that finds either changed, or the phase moved on, does nothing.
"""

from __future__ import annotations

import logging
from typing import Callable

from puzzle_engine import rules
from puzzle_engine.errors import IllegalMoveError, MalformedPuzzleError
from puzzle_engine.models import Phase
from puzzle_engine.scheduling import Handle, Scheduler
from puzzle_engine.session import Session

logger = logging.getLogger(__name__)


def apply_opponent_reply(session: Session, generation: int, cursor: int) -> bool:
    """Apply the scripted reply if the session is still where it was.

    Args:
        session: Session the reply was scheduled for.
        generation: Session generation at scheduling time.
        cursor: Session cursor at scheduling time.

    Returns:
        True if the reply was applied, False for a stale tick.

    Raises:
        MalformedPuzzleError: If the scripted reply is illegal. The session
            is left in SCHEDULING_OPPONENT_REPLY with ``error`` set.
    """
    if (
        session.phase is not Phase.SCHEDULING_OPPONENT_REPLY
        or session.generation != generation
        or session.cursor != cursor
    ):
        logger.debug(
            "Stale opponent reply for puzzle %s ignored "
            "(scheduled gen=%d cursor=%d, now gen=%d cursor=%d phase=%s)",
            session.puzzle.id, generation, cursor,
            session.generation, session.cursor, session.phase.value,
        )
        return False

    move = session.expected_move()
    if move is None:
        logger.debug("No scripted reply left for puzzle %s", session.puzzle.id)
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
            f"scripted reply {move.uci()} at step {cursor} is illegal", session.puzzle.id
        )
        session.error = error
        raise error from exc

    session.advance(new_position)
    if session.finished():
        session.complete(solved=True)
    else:
        session.phase = Phase.AWAITING_PLAYER_MOVE
    return True


class TurnScheduler:
    """Dispatches at most one pending opponent reply at a time."""

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float = 0.25,
        on_reply: Callable[[Session], None] | None = None,
        on_error: Callable[[Session, MalformedPuzzleError], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._on_reply = on_reply
        self._on_error = on_error
        self._pending: Handle | None = None
        self._pending_key: tuple[int, int, int] | None = None

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def dispatch(self, session: Session) -> bool:
        """Schedule the reply for the session's current cursor.

        Returns:
            False if the session is not waiting for a reply or a reply for
            the same turn is already pending.
        """
        if session.phase is not Phase.SCHEDULING_OPPONENT_REPLY:
            logger.debug("Dispatch skipped: phase is %s", session.phase.value)
            return False

        key = (id(session), session.generation, session.cursor)
        if self._pending is not None and self._pending_key == key:
            logger.debug("Opponent reply for cursor %d already pending", session.cursor)
            return False

        self.cancel()
        generation, cursor = session.generation, session.cursor
        self._pending_key = key
        self._pending = self._scheduler.call_later(
            self._delay, lambda: self._tick(session, generation, cursor)
        )
        logger.debug("Opponent reply scheduled for cursor %d", cursor)
        return True

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_key = None

    def _tick(self, session: Session, generation: int, cursor: int) -> None:
        if self._pending_key == (id(session), generation, cursor):
            self._pending = None
            self._pending_key = None
        try:
            applied = apply_opponent_reply(session, generation, cursor)
        except MalformedPuzzleError as exc:
            logger.warning("Opponent reply aborted: %s", exc)
            if self._on_error is not None:
                self._on_error(session, exc)
            return
        if applied and self._on_reply is not None:
            self._on_reply(session)
