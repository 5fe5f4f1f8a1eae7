"""Puzzle script parsing.

A raw move list is a space-separated string of UCI-like tokens
``<from><to>[promotion]``. Token 0 is the setup move; the rest is the
playable script, alternating player move / scripted opponent reply.
"""

from __future__ import annotations

from puzzle_engine.errors import MalformedPuzzleError
from puzzle_engine.models import ScriptMove
from puzzle_engine.rules import parse_promotion, parse_square


def tokenize(moves: str) -> list[str]:
    return [token for token in moves.split() if token.strip()]


def parse_token(token: str) -> ScriptMove:
    """Parse one move token, accepting the promotion letter in either case.

    Raises:
        MalformedPuzzleError: If the token is not a coordinate move.
    """
    if len(token) not in (4, 5):
        raise MalformedPuzzleError(f"bad move token '{token}'")
    try:
        from_square = parse_square(token[0:2])
        to_square = parse_square(token[2:4])
        promotion = parse_promotion(token[4:] or None)
    except ValueError as exc:
        raise MalformedPuzzleError(f"bad move token '{token}': {exc}") from exc
    return ScriptMove(from_square, to_square, promotion)


def parse_script(moves: str) -> tuple[ScriptMove, list[ScriptMove]]:
    """Split a raw move list into (setup move, playable script).

    Raises:
        MalformedPuzzleError: If the list is empty or any token is malformed.
    """
    tokens = tokenize(moves)
    if not tokens:
        raise MalformedPuzzleError("move list is empty")
    parsed = [parse_token(token) for token in tokens]
    return parsed[0], parsed[1:]
