"""Hint planning from the next expected script move."""

from __future__ import annotations

import logging

from puzzle_engine.models import HintDescriptor, HintKind, Phase
from puzzle_engine.session import Session

logger = logging.getLogger(__name__)


def plan_hint(session: Session, kind: HintKind | str = HintKind.MOVE) -> HintDescriptor | None:
    """Describe the squares to highlight for the player's next move.

    Never mutates the session.

    Args:
        session: Current session.
        kind: MOVE for origin and destination, PIECE for origin only.

    Returns:
        The hint, or None when it is not the player's turn to move.
    """
    kind = HintKind(kind)
    if session.phase is not Phase.AWAITING_PLAYER_MOVE or not session.is_player_turn:
        return None
    expected = session.expected_move()
    if expected is None:
        return None

    logger.debug("Hint (%s) requested at cursor %d", kind.value, session.cursor)
    if kind is HintKind.PIECE:
        return HintDescriptor(kind, expected.from_square)
    return HintDescriptor(kind, expected.from_square, expected.to_square)
