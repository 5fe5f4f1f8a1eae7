"""Move validation against the puzzle script.

A candidate matches the expected script move either field for field or,
failing that, when both moves lead to the same position. The second check
absorbs notation differences such as a missing or extra promotion letter.
"""

from __future__ import annotations

import logging

import chess

from puzzle_engine import rules
from puzzle_engine.errors import EngineInvariantError, IllegalMoveError
from puzzle_engine.models import Phase, ScriptMove
from puzzle_engine.session import Session

logger = logging.getLogger(__name__)


def _resulting_position(position: chess.Board, move: ScriptMove) -> chess.Board | None:
    promotion = rules.normalize_promotion(
        position, move.from_square, move.to_square, move.promotion
    )
    try:
        return rules.apply_move(position, move.from_square, move.to_square, promotion)
    except IllegalMoveError:
        return None


def matches_script(
    position: chess.Board,
    candidate: ScriptMove,
    expected: ScriptMove,
) -> bool:
    """Compare a legal candidate with the expected script move.

    Args:
        position: Board before either move.
        candidate: The player's move, promotion already normalised.
        expected: Script entry at the cursor.

    Returns:
        True on exact match or identical resulting positions.
    """
    if candidate == expected:
        return True

    candidate_result = _resulting_position(position, candidate)
    expected_result = _resulting_position(position, expected)
    if candidate_result is None or expected_result is None:
        return False
    if candidate_result.fen() == expected_result.fen():
        logger.debug(
            "Move %s matches script move %s by resulting position",
            candidate.uci(), expected.uci(),
        )
        return True
    return False


def validate(
    session: Session,
    from_square: str | int,
    to_square: str | int,
    promotion: str | int | None = None,
) -> bool:
    """Check a player move against the script and apply it on success.

    Outright illegal moves are rejected without counting a mistake. Legal
    moves that do not match the script increment ``session.mistakes``.
    On success the cursor advances and the phase moves to COMPLETE or
    SCHEDULING_OPPONENT_REPLY; the caller dispatches the reply.

    Returns:
        True if the move was accepted.

    Raises:
        EngineInvariantError: If a confirmed move cannot be applied.
    """
    if session.phase is not Phase.AWAITING_PLAYER_MOVE:
        return False
    if not session.is_player_turn:
        return False
    expected = session.expected_move()
    if expected is None:
        return False

    position = session.position
    try:
        origin = rules.parse_square(from_square)
        target = rules.parse_square(to_square)
        piece_type = rules.parse_promotion(promotion)
    except ValueError:
        logger.debug("Unreadable move %r-%r (%r)", from_square, to_square, promotion)
        return False

    candidate = ScriptMove(
        origin, target, rules.normalize_promotion(position, origin, target, piece_type)
    )
    try:
        rules.apply_move(position, candidate.from_square, candidate.to_square, candidate.promotion)
    except IllegalMoveError:
        logger.debug("Illegal move %s rejected for %s", candidate.uci(), position.fen())
        return False

    if not matches_script(position, candidate, expected):
        session.mistakes += 1
        logger.debug(
            "Wrong move %s (expected %s), mistakes=%d",
            candidate.uci(), expected.uci(), session.mistakes,
        )
        return False

    try:
        new_position = rules.apply_move(
            position, candidate.from_square, candidate.to_square, candidate.promotion
        )
    except IllegalMoveError as exc:
        logger.error("Confirmed move %s rejected by rules adapter", candidate.uci())
        raise EngineInvariantError(str(exc)) from exc

    session.advance(new_position)
    session.hint = None
    if session.finished():
        session.complete(solved=True)
    else:
        session.phase = Phase.SCHEDULING_OPPONENT_REPLY
    return True
