"""Puzzle sources: JSON puzzle lists and the Lichess puzzle database.

Lichess CSV columns:
  PuzzleId, FEN, Moves, Rating, RatingDeviation, Popularity, NbPlays,
  Themes, GameUrl, OpeningTags

The Lichess FEN is the position BEFORE the setup move, which is exactly
what the engine expects, so rows are kept in their raw form.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterator
from pathlib import Path

import zstandard

from puzzle_engine import rules
from puzzle_engine.errors import IllegalMoveError, MalformedPuzzleError
from puzzle_engine.models import Puzzle
from puzzle_engine.script import parse_token, tokenize

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_DB = DATA_DIR / "lichess_db_puzzle.csv.zst"

# Record keys accepted for each Puzzle field, API style first
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "PuzzleId", "lichess_id"),
    "fen": ("fen", "FEN"),
    "moves": ("moves", "Moves"),
    "rating": ("rating", "Rating"),
    "themes": ("themes", "Themes"),
    "url": ("url", "GameUrl"),
}


def _lookup(record: dict, field: str):
    for key in _FIELD_ALIASES[field]:
        if key in record and record[key] not in (None, ""):
            return record[key]
    return None


def puzzle_from_record(record: dict) -> Puzzle:
    """Build a Puzzle from an API or Lichess-style dict.

    ``moves`` and ``themes`` may be strings or lists.

    Raises:
        MalformedPuzzleError: If id, fen or moves is missing or rating is not numeric.
    """
    puzzle_id = _lookup(record, "id")
    fen = _lookup(record, "fen")
    moves = _lookup(record, "moves")
    missing = [
        name for name, value in (("id", puzzle_id), ("fen", fen), ("moves", moves))
        if value is None
    ]
    if missing:
        raise MalformedPuzzleError(f"record missing field(s): {', '.join(missing)}")

    if isinstance(moves, (list, tuple)):
        moves = " ".join(str(m) for m in moves)

    themes = _lookup(record, "themes") or ()
    if isinstance(themes, str):
        themes = themes.split()

    try:
        rating = int(_lookup(record, "rating") or 0)
    except (TypeError, ValueError) as exc:
        raise MalformedPuzzleError(f"bad rating: {exc}", str(puzzle_id)) from exc

    return Puzzle(
        id=str(puzzle_id),
        fen=str(fen),
        moves=str(moves),
        rating=rating,
        themes=tuple(themes),
        url=_lookup(record, "url"),
    )


def load_puzzles_json(path: Path) -> list[Puzzle]:
    """Load a JSON array of puzzle records.

    Raises:
        MalformedPuzzleError: If the file is not a JSON array or a record is bad.
        OSError: If the file cannot be read.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedPuzzleError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise MalformedPuzzleError(f"{path} must contain a JSON array")
    return [puzzle_from_record(record) for record in data]


def iter_lichess_puzzles(
    db_path: Path,
    themes: list[str] | None = None,
    min_rating: int = 0,
    max_rating: int = 9999,
    min_popularity: int = -100,
    limit: int | None = None,
) -> Iterator[Puzzle]:
    """Stream puzzles from the Lichess puzzle DB (CSV.ZST).

    Args:
        db_path: Path to lichess_db_puzzle.csv.zst.
        themes: Keep rows with at least one of these themes (None keeps all).
        min_rating: Minimum puzzle rating.
        max_rating: Maximum puzzle rating.
        min_popularity: Minimum popularity score (-100 to 100).
        limit: Stop after this many puzzles.

    Yields:
        Puzzles in file order.
    """
    theme_set = set(themes or ())
    found = 0

    with open(db_path, "rb") as f:
        dctx = zstandard.ZstdDecompressor()
        reader = dctx.stream_reader(f)
        text = io.TextIOWrapper(reader, encoding="utf-8")
        csv_reader = csv.reader(text)

        # Skip header
        if next(csv_reader, None) is None:
            return

        for row in csv_reader:
            if limit is not None and found >= limit:
                break
            if len(row) < 8:
                continue

            try:
                rating = int(row[3])
                popularity = int(row[5])
            except (ValueError, IndexError):
                continue

            if rating < min_rating or rating > max_rating:
                continue
            if popularity < min_popularity:
                continue

            puzzle_themes = row[7].split() if row[7] else []
            if theme_set and not theme_set & set(puzzle_themes):
                continue

            # Need at least setup move + 1 solution move
            if len(tokenize(row[2])) < 2:
                continue

            found += 1
            yield Puzzle(
                id=row[0],
                fen=row[1],
                moves=row[2],
                rating=rating,
                themes=tuple(puzzle_themes),
                url=row[8] if len(row) > 8 and row[8] else None,
            )


def validate_puzzle(puzzle: Puzzle) -> list[str]:
    """Dry-run the full move list. Returns list of error messages."""
    errors: list[str] = []
    prefix = f"puzzle {puzzle.id}"

    try:
        board = rules.parse_position(puzzle.fen)
    except MalformedPuzzleError as e:
        return [f"{prefix}: {e}"]

    tokens = tokenize(puzzle.moves)
    if not tokens:
        return [f"{prefix}: empty move list"]

    for i, token in enumerate(tokens):
        try:
            move = parse_token(token)
        except MalformedPuzzleError as e:
            errors.append(f"{prefix}: {e} at step {i}")
            break
        promotion = rules.normalize_promotion(
            board, move.from_square, move.to_square, move.promotion
        )
        try:
            board = rules.apply_move(board, move.from_square, move.to_square, promotion)
        except IllegalMoveError:
            errors.append(
                f"{prefix}: illegal move '{token}' at step {i} (FEN: {board.fen()})"
            )
            break

    return errors
