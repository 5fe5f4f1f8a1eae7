"""Terminal puzzle trainer.

Renders a Rich-based board with a progress sidebar and reads moves from
stdin. Opponent replies and solution playback run through a
ManualScheduler drained with real sleeps, so the board updates at the
configured pace.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable

import chess
from rich.console import Console
from rich.layout import Layout
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from puzzle_engine.config import EngineSettings, configure_logging
from puzzle_engine.controller import PuzzleController
from puzzle_engine.errors import MalformedPuzzleError
from puzzle_engine.models import AttemptRecord, HintKind, Puzzle
from puzzle_engine.progress import build_puzzle_state
from puzzle_engine.scheduling import ManualScheduler
from puzzle_engine.sources import DEFAULT_DB, iter_lichess_puzzles, load_puzzles_json

# Unicode piece symbols
_PIECE_SYMBOLS = {
    "K": "♔", "Q": "♕", "R": "♖", "B": "♗",
    "N": "♘", "P": "♙",
    "k": "♚", "q": "♛", "r": "♜", "b": "♝",
    "n": "♞", "p": "♟",
}

_LIGHT_SQ = "grey85"
_DARK_SQ = "grey50"
_HIGHLIGHT = "yellow"
_HINT = "green"

_HELP = "Enter a move (e.g. e2e4, e7e8q) or: hint, piece, solution, reset, quit"


def render_board(state: dict) -> Layout:
    """Render the board and sidebar from a PuzzleState dict."""
    layout = Layout()
    layout.split_row(
        Layout(name="board", ratio=2),
        Layout(name="sidebar", ratio=1),
    )
    layout["board"].update(_render_board_panel(state))
    layout["sidebar"].update(_render_sidebar(state))
    return layout


def _square_set(uci_or_names: list[str]) -> set[int]:
    squares: set[int] = set()
    for name in uci_or_names:
        try:
            squares.add(chess.parse_square(name))
        except ValueError:
            continue
    return squares


def _render_board_panel(state: dict) -> Panel:
    board = chess.Board(state.get("fen", chess.STARTING_FEN))
    is_flipped = state.get("mating_side") == "black"

    last_move = state.get("last_move")
    highlight_squares = _square_set([last_move[0:2], last_move[2:4]]) if last_move else set()

    hint = state.get("hint")
    hint_squares = _square_set([s for s in (hint or {}).values() if s and len(s) == 2])

    table = Table(show_header=False, show_edge=False, pad_edge=False,
                  box=None, padding=(0, 1))
    table.add_column(width=2, justify="right")
    for _ in range(8):
        table.add_column(width=3, justify="center")

    ranks = range(8) if is_flipped else range(7, -1, -1)
    files = list(range(7, -1, -1)) if is_flipped else list(range(8))

    for rank in ranks:
        row: list[Text] = [Text(str(rank + 1), style="bold")]
        for file in files:
            sq = chess.square(file, rank)
            piece = board.piece_at(sq)

            is_light = (rank + file) % 2 == 1
            bg = _LIGHT_SQ if is_light else _DARK_SQ
            if sq in highlight_squares:
                bg = _HIGHLIGHT
            if sq in hint_squares:
                bg = _HINT

            symbol = _PIECE_SYMBOLS.get(piece.symbol(), "?") if piece is not None else " "
            row.append(Text(f" {symbol} ", style=f"on {bg}"))
        table.add_row(*row)

    file_labels = [Text("  ")]
    for f in files:
        file_labels.append(Text(f" {chr(ord('a') + f)} ", style="bold"))
    table.add_row(*file_labels)

    title = f"Puzzle {state.get('puzzle_id', '?')}"
    if state.get("is_complete"):
        if state.get("solution_viewed"):
            title = "Solution"
        else:
            title = "Solved!" if state.get("is_solved") else "Puzzle over"
    return Panel(table, title=title, border_style="blue")


def _render_sidebar(state: dict) -> Panel:
    parts: list[str] = []

    parts.append(f"[bold]Rating:[/bold] {state.get('rating', 0)}")
    themes = state.get("themes") or []
    if themes:
        parts.append(f"[italic]{', '.join(themes)}[/italic]")
    parts.append("")

    mate_in = state.get("mate_in_x", 0)
    if mate_in:
        parts.append(f"[bold]Mate in {mate_in}[/bold]")
    parts.append(f"Playing as: {state.get('mating_side', 'white')}")
    to_move = state.get("side_to_move")
    if to_move:
        parts.append(f"To move: {to_move}")
    parts.append("")

    parts.append(f"Phase: {state.get('phase', '').replace('_', ' ')}")
    parts.append(f"Progress: {state.get('cursor', 0)}/{state.get('script_length', 0)}")
    parts.append(f"Mistakes: {state.get('mistakes', 0)}")
    parts.append(f"Moves tried: {state.get('moves_tried', 0)}")
    if state.get("is_complete"):
        parts.append(f"Time: {state.get('elapsed_time_ms', 0) / 1000:.1f}s")
    if state.get("solution_viewed"):
        parts.append("[italic]Solution shown[/italic]")

    error = state.get("error")
    if error:
        parts.append("")
        parts.append(f"[red]{escape(error)}[/red]")

    return Panel("\n".join(parts), title="Info", border_style="green")


def _redraw(console: Console, controller: PuzzleController) -> None:
    state = asdict(build_puzzle_state(controller.session))
    console.print(render_board(state))


def play(
    controller: PuzzleController,
    scheduler: ManualScheduler,
    console: Console,
    read_line: Callable[[str], str] = input,
    sleep: Callable[[float], None] | None = time.sleep,
) -> None:
    """Run the interactive loop until the puzzle ends or the user quits."""
    console.print(_HELP)
    _redraw(console, controller)

    while True:
        # Redraw after every deferred step so playback is visible
        while scheduler.run_next(sleep):
            _redraw(console, controller)

        session = controller.session
        if session.is_complete:
            break

        try:
            command = read_line("> ").strip().lower()
        except EOFError:
            break

        if not command:
            continue
        if command in ("quit", "exit", "q"):
            break
        if command == "hint":
            if controller.show_hint(HintKind.MOVE) is None:
                console.print("[yellow]No hint available right now[/yellow]")
        elif command == "piece":
            if controller.show_hint(HintKind.PIECE) is None:
                console.print("[yellow]No hint available right now[/yellow]")
        elif command == "solution":
            controller.play_solution()
        elif command == "reset":
            controller.reset()
        elif len(command) in (4, 5):
            mistakes = session.mistakes
            if not controller.validate_move(command[0:2], command[2:4], command[4:] or None):
                if session.mistakes > mistakes:
                    console.print("[red]Not the right move, try again[/red]")
                elif session.error is not None:
                    console.print(f"[red]{escape(str(session.error))}[/red]")
                    console.print("[yellow]Type reset to start over[/yellow]")
                else:
                    console.print("[red]Illegal move[/red]")
                continue
        else:
            console.print(_HELP)
            continue
        _redraw(console, controller)


def _load_puzzle(args: argparse.Namespace) -> Puzzle:
    """Pick the puzzle to play from CLI arguments.

    Raises:
        MalformedPuzzleError: If the puzzle source is unusable.
        OSError: If a puzzle file cannot be read.
    """
    if args.fen and args.moves:
        return Puzzle(id=args.id, fen=args.fen, moves=args.moves)

    if args.json:
        puzzles = load_puzzles_json(Path(args.json))
        if not puzzles:
            raise MalformedPuzzleError(f"{args.json} contains no puzzles")
        if args.index < 0 or args.index >= len(puzzles):
            raise MalformedPuzzleError(
                f"index {args.index} out of range (file has {len(puzzles)} puzzles)"
            )
        return puzzles[args.index]

    themes = [t.strip() for t in (args.themes or "").split(",") if t.strip()]
    for puzzle in iter_lichess_puzzles(
        Path(args.db),
        themes=themes or None,
        min_rating=args.min_rating,
        max_rating=args.max_rating,
        limit=1,
    ):
        return puzzle
    raise MalformedPuzzleError("no matching puzzle found in the Lichess database")


def main() -> int:
    """CLI entry point for tui.py."""
    parser = argparse.ArgumentParser(description="Chess puzzle trainer")
    parser.add_argument("--fen", type=str, default=None, help="Position before the setup move")
    parser.add_argument("--moves", type=str, default=None, help="Space-separated UCI moves")
    parser.add_argument("--id", type=str, default="cli", help="Puzzle id for --fen/--moves")
    parser.add_argument("--json", type=str, default=None, help="JSON file of puzzle records")
    parser.add_argument("--index", type=int, default=0, help="Puzzle index in --json file")
    parser.add_argument(
        "--db", type=str, default=str(DEFAULT_DB),
        help=f"Path to lichess_db_puzzle.csv.zst (default: {DEFAULT_DB})",
    )
    parser.add_argument(
        "--themes", type=str, default="",
        help="Comma-separated Lichess theme names (e.g., mateIn2,fork)",
    )
    parser.add_argument("--min-rating", type=int, default=0)
    parser.add_argument("--max-rating", type=int, default=9999)
    parser.add_argument("--fast", action="store_true", help="No pacing delays")
    parser.add_argument("--log-level", type=str, default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    console = Console()

    try:
        puzzle = _load_puzzle(args)
    except (MalformedPuzzleError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    records: list[AttemptRecord] = []
    scheduler = ManualScheduler()
    controller = PuzzleController(
        scheduler,
        settings=EngineSettings.from_env(),
        attempt_sink=records.append,
    )
    try:
        controller.load(puzzle)
    except MalformedPuzzleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        play(controller, scheduler, console, sleep=None if args.fast else time.sleep)
    except KeyboardInterrupt:
        pass

    for record in records:
        print(json.dumps(record.as_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
