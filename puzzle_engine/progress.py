"""Progress tracking derived from session state."""

from __future__ import annotations

import logging
from typing import Callable

import chess

from puzzle_engine.models import AttemptRecord, PuzzleState
from puzzle_engine.session import Session

logger = logging.getLogger(__name__)

AttemptSink = Callable[[AttemptRecord], None]


def moves_tried(session: Session) -> int:
    return session.cursor + session.mistakes


def elapsed_time_ms(session: Session, now: float | None = None) -> int:
    """Milliseconds from session start to completion.

    While the session is in progress this is 0 unless ``now`` is given.
    """
    end = session.completed_at if session.completed_at is not None else now
    if end is None:
        return 0
    return max(0, round((end - session.started_at) * 1000))


def attempt_record(
    session: Session,
    success: bool | None = None,
    now: float | None = None,
) -> AttemptRecord:
    """Build the telemetry record for a session.

    Args:
        session: The session to summarise.
        success: Overrides ``session.is_solved`` (used when giving up).
        now: Clock reading used as the end time of an unfinished attempt.
    """
    return AttemptRecord(
        puzzle_id=session.puzzle.id,
        success=session.is_solved if success is None else success,
        moves_tried=moves_tried(session),
        time_ms=elapsed_time_ms(session, now),
        mistakes=session.mistakes,
    )


def build_puzzle_state(session: Session, session_id: str = "") -> PuzzleState:
    """Snapshot a session for rendering or tool responses."""
    position = session.position
    stack = position.move_stack
    return PuzzleState(
        session_id=session_id,
        puzzle_id=session.puzzle.id,
        fen=position.fen(),
        board_display=str(position),
        phase=session.phase.value,
        cursor=session.cursor,
        script_length=len(session.script),
        mate_in_x=session.mate_in_x,
        mating_side=chess.COLOR_NAMES[session.mating_side],
        side_to_move=None if session.is_complete else chess.COLOR_NAMES[position.turn],
        mistakes=session.mistakes,
        moves_tried=moves_tried(session),
        elapsed_time_ms=elapsed_time_ms(session),
        is_complete=session.is_complete,
        is_solved=session.is_solved,
        solution_viewed=session.solution_viewed,
        rating=session.puzzle.rating,
        themes=list(session.puzzle.themes),
        last_move=stack[-1].uci() if stack else None,
        hint=session.hint.as_dict() if session.hint is not None else None,
        legal_moves=[m.uci() for m in position.legal_moves],
        error=str(session.error) if session.error is not None else None,
    )


def report_attempt(
    session: Session,
    sink: AttemptSink | None,
    success: bool | None = None,
    now: float | None = None,
) -> AttemptRecord | None:
    """Hand the attempt record to the sink, at most once per session.

    Returns:
        The record if it was reported now, else None.
    """
    if session.attempt_reported:
        return None
    session.attempt_reported = True
    record = attempt_record(session, success, now)
    logger.info(
        "Attempt on puzzle %s: success=%s moves=%d mistakes=%d time=%dms",
        record.puzzle_id, record.success, record.moves_tried,
        record.mistakes, record.time_ms,
    )
    if sink is not None:
        sink(record)
    return record
