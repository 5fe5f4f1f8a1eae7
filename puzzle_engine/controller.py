"""Puzzle controller: the engine's public entry point.

Owns the current session, the turn scheduler and the solution player,
and publishes engine events to subscribers. All mutation of a session
happens through this object or the deferred calls it schedules.
"""

from __future__ import annotations

import logging
import time

import chess

from puzzle_engine import rules, validator
from puzzle_engine.config import EngineSettings
from puzzle_engine.errors import MalformedPuzzleError, PuzzleEngineError
from puzzle_engine.events import (
    AttemptRecorded,
    EngineEvent,
    HintShown,
    MistakeMade,
    PositionChanged,
    PuzzleCompleted,
    PuzzleFailed,
    Subscriber,
)
from puzzle_engine.hints import plan_hint
from puzzle_engine.models import HintDescriptor, HintKind, Phase, Puzzle
from puzzle_engine.progress import AttemptSink, elapsed_time_ms, moves_tried, report_attempt
from puzzle_engine.scheduling import Scheduler
from puzzle_engine.session import Clock, Session, create_session
from puzzle_engine.solution import SolutionPlayer
from puzzle_engine.turns import TurnScheduler

logger = logging.getLogger(__name__)


def _format_move(
    session: Session,
    from_square: str | int,
    to_square: str | int,
    promotion: str | int | None,
) -> str:
    """UCI text of a parsed player move, as the validator normalised it."""
    origin = rules.parse_square(from_square)
    target = rules.parse_square(to_square)
    piece_type = rules.normalize_promotion(
        session.position, origin, target, rules.parse_promotion(promotion)
    )
    return chess.Move(origin, target, promotion=piece_type).uci()


class PuzzleController:
    """Drives one puzzle session at a time."""

    def __init__(
        self,
        scheduler: Scheduler,
        settings: EngineSettings | None = None,
        clock: Clock = time.monotonic,
        attempt_sink: AttemptSink | None = None,
    ) -> None:
        """Wire the engine components to a scheduler.

        Args:
            scheduler: Deferred-call primitive for replies and playback.
            settings: Pacing settings. Defaults to EngineSettings().
            clock: Time source in seconds.
            attempt_sink: Receives each AttemptRecord once.
        """
        self._settings = settings or EngineSettings()
        self._clock = clock
        self._attempt_sink = attempt_sink
        self._subscribers: list[Subscriber] = []
        self._session: Session | None = None
        self._turns = TurnScheduler(
            scheduler,
            delay=self._settings.opponent_delay,
            on_reply=self._handle_reply,
            on_error=self._handle_error,
        )
        self._solution = SolutionPlayer(
            scheduler,
            interval=self._settings.solution_interval,
            start_delay=self._settings.solution_start_delay,
            on_step=self._handle_playback_step,
            on_error=self._handle_error,
        )

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def phase(self) -> Phase | None:
        return self._session.phase if self._session is not None else None

    @property
    def current_turn(self) -> str | None:
        """Colour to move, or None when no puzzle is in progress."""
        if self._session is None or self._session.is_complete:
            return None
        return chess.COLOR_NAMES[self._session.position.turn]

    @property
    def moves_tried(self) -> int:
        return moves_tried(self._session) if self._session is not None else 0

    @property
    def elapsed_time_ms(self) -> int:
        return elapsed_time_ms(self._session) if self._session is not None else 0

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def load(self, puzzle: Puzzle) -> Session:
        """Start a fresh attempt on ``puzzle``, superseding the current one.

        Raises:
            MalformedPuzzleError: If the puzzle cannot be set up. The
                current session is left untouched in that case.
        """
        session = create_session(puzzle, self._clock)
        self._supersede()
        self._session = session
        self._emit_position(session)
        if session.is_complete:
            self._emit(PuzzleCompleted(puzzle.id, session.is_solved))
        return session

    def reset(self) -> Session:
        """Restart the current puzzle from scratch."""
        return self.load(self._require_session().puzzle)

    def _supersede(self) -> None:
        self._turns.cancel()
        self._solution.cancel()
        if self._session is not None:
            self._session.invalidate()

    def _require_session(self) -> Session:
        if self._session is None:
            raise PuzzleEngineError("No puzzle loaded")
        return self._session

    def _is_current(self, session: Session) -> bool:
        """False once a subscriber has loaded or reset while handling an event."""
        if session is self._session:
            return True
        logger.debug("Session for puzzle %s superseded mid-action", session.puzzle.id)
        return False

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def validate_move(
        self,
        from_square: str | int,
        to_square: str | int,
        promotion: str | int | None = None,
    ) -> bool:
        """Submit a player move. See validator.validate for the rules."""
        session = self._require_session()
        mistakes_before = session.mistakes
        accepted = validator.validate(session, from_square, to_square, promotion)
        if not accepted:
            if session.mistakes > mistakes_before:
                attempted = _format_move(session, from_square, to_square, promotion)
                self._emit(MistakeMade(session.mistakes, attempted))
            return False

        self._emit_position(session)
        if not self._is_current(session):
            return True
        if session.is_complete:
            self._finish(session)
        else:
            self._turns.dispatch(session)
        return True

    def show_hint(self, kind: HintKind | str = HintKind.MOVE) -> HintDescriptor | None:
        session = self._require_session()
        hint = plan_hint(session, kind)
        if hint is None:
            return None
        session.hint = hint
        self._emit(HintShown(hint))
        return hint

    def clear_hint(self) -> None:
        if self._session is not None:
            self._session.hint = None

    def play_solution(self) -> None:
        """Give up on the attempt and replay the full solution.

        An attempt still in progress is reported as a failure first.
        """
        session = self._require_session()
        self._turns.cancel()
        if not session.is_complete and session.phase is not Phase.PLAYING_BACK_SOLUTION:
            record = report_attempt(
                session, self._attempt_sink, success=False, now=self._clock()
            )
            if record is not None:
                self._emit(AttemptRecorded(record))
        self._solution.start(session)
        self._emit_position(session)
        if self._is_current(session) and session.is_complete:
            self._emit(PuzzleCompleted(session.puzzle.id, session.is_solved))

    # ------------------------------------------------------------------
    # Deferred-step callbacks
    # ------------------------------------------------------------------

    def _handle_reply(self, session: Session) -> None:
        self._emit_position(session)
        if self._is_current(session) and session.is_complete:
            self._finish(session)

    def _handle_playback_step(self, session: Session) -> None:
        self._emit_position(session)
        if self._is_current(session) and session.is_complete:
            self._emit(PuzzleCompleted(session.puzzle.id, session.is_solved))

    def _handle_error(self, session: Session, error: MalformedPuzzleError) -> None:
        self._emit(PuzzleFailed(session.puzzle.id, str(error)))

    def _finish(self, session: Session) -> None:
        self._emit(PuzzleCompleted(session.puzzle.id, session.is_solved))
        record = report_attempt(session, self._attempt_sink)
        if record is not None:
            self._emit(AttemptRecorded(record))

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------

    def _emit(self, event: EngineEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)

    def _emit_position(self, session: Session) -> None:
        stack = session.position.move_stack
        last_move = stack[-1].uci() if stack else None
        self._emit(PositionChanged(session.position.fen(), session.cursor, last_move))
