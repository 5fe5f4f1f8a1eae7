"""Rules adapter over python-chess.

The engine never mutates a board it was handed: apply_move returns a new
board and leaves the input untouched.
"""

from __future__ import annotations

import chess

from puzzle_engine.errors import IllegalMoveError, MalformedPuzzleError

_PROMOTION_PIECES = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)


def parse_position(fen: str) -> chess.Board:
    """Build a board from FEN.

    Raises:
        MalformedPuzzleError: If the FEN is invalid.
    """
    try:
        return chess.Board(fen)
    except ValueError as exc:
        raise MalformedPuzzleError(f"invalid FEN '{fen}': {exc}") from exc


def serialize_position(position: chess.Board) -> str:
    return position.fen()


def side_to_move(position: chess.Board) -> chess.Color:
    return position.turn


def is_checkmate(position: chess.Board) -> bool:
    return position.is_checkmate()


def parse_square(value: str | int) -> chess.Square:
    """Accept a square name ("e7") or a python-chess square index.

    Raises:
        ValueError: If the value does not name a board square.
    """
    if isinstance(value, int):
        if value not in chess.SQUARES:
            raise ValueError(f"square index out of range: {value}")
        return value
    return chess.parse_square(value.strip().lower())


def parse_promotion(value: str | int | None) -> chess.PieceType | None:
    """Accept a promotion letter in any case, a piece type, or None.

    Raises:
        ValueError: If the value is not a knight, bishop, rook or queen.
    """
    if value is None or value == "":
        return None
    if isinstance(value, int):
        piece_type = value
    else:
        symbol = value.strip().lower()
        if symbol not in chess.PIECE_SYMBOLS[1:]:
            raise ValueError(f"unknown promotion piece: {value!r}")
        piece_type = chess.PIECE_SYMBOLS.index(symbol)
    if piece_type not in _PROMOTION_PIECES:
        raise ValueError(f"cannot promote to {chess.piece_name(piece_type)}")
    return piece_type


def needs_promotion(
    position: chess.Board,
    from_square: chess.Square,
    to_square: chess.Square,
) -> bool:
    """True if the piece on from_square is a pawn heading for its last rank."""
    piece = position.piece_at(from_square)
    if piece is None or piece.piece_type != chess.PAWN:
        return False
    last_rank = 7 if piece.color == chess.WHITE else 0
    return chess.square_rank(to_square) == last_rank


def normalize_promotion(
    position: chess.Board,
    from_square: chess.Square,
    to_square: chess.Square,
    promotion: chess.PieceType | None,
) -> chess.PieceType | None:
    """Default promoting pawn moves to a queen and drop stray promotion pieces."""
    if needs_promotion(position, from_square, to_square):
        return promotion or chess.QUEEN
    return None


def apply_move(
    position: chess.Board,
    from_square: chess.Square,
    to_square: chess.Square,
    promotion: chess.PieceType | None = None,
) -> chess.Board:
    """Return a new board with the move played.

    Raises:
        IllegalMoveError: If the move is not legal in ``position``.
    """
    move = chess.Move(from_square, to_square, promotion=promotion)
    if not position.is_legal(move):
        raise IllegalMoveError(move.uci(), position.fen())
    new_position = position.copy()
    new_position.push(move)
    return new_position
