"""Pytest tests for the terminal trainer.

The interactive loop is driven with a scripted input function, a
recording Console and no sleeping.
"""

from __future__ import annotations

import io
from dataclasses import asdict

from rich.console import Console
from rich.layout import Layout

from puzzle_engine.progress import build_puzzle_state
from puzzle_engine.session import create_session
from puzzle_engine.tui import play, render_board
from sample_puzzles import BROKEN_REPLY_PUZZLE, OPENING_PUZZLE, PROMOTION_PUZZLE


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, force_terminal=False)


def _scripted(lines: list[str]):
    remaining = list(lines)

    def read_line(prompt: str) -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return read_line


class TestRenderBoard:

    def test_returns_layout(self):
        state = asdict(build_puzzle_state(create_session(OPENING_PUZZLE)))
        layout = render_board(state)
        assert isinstance(layout, Layout)

    def test_renders_title_and_sidebar(self):
        state = asdict(build_puzzle_state(create_session(OPENING_PUZZLE)))
        console = _console()
        console.print(render_board(state))
        output = console.file.getvalue()
        assert "Puzzle open01" in output
        assert "Mate in 3" in output
        assert "Mistakes: 0" in output

    def test_solved_title(self):
        session = create_session(PROMOTION_PUZZLE)
        session.cursor = 1
        session.complete(solved=True)
        console = _console()
        console.print(render_board(asdict(build_puzzle_state(session))))
        assert "Solved!" in console.file.getvalue()


class TestPlay:

    def test_solves_puzzle(self, controller, scheduler, attempts):
        controller.load(OPENING_PUZZLE)
        console = _console()
        play(controller, scheduler, console, _scripted(["e7e5", "b8c6", "g8f6"]), sleep=None)

        assert controller.session.is_solved
        assert len(attempts) == 1
        assert "Solved!" in console.file.getvalue()

    def test_reports_wrong_and_illegal_moves(self, controller, scheduler):
        controller.load(OPENING_PUZZLE)
        console = _console()
        play(controller, scheduler, console, _scripted(["d7d5", "e2e4", "quit"]), sleep=None)

        output = console.file.getvalue()
        assert "Not the right move, try again" in output
        assert "Illegal move" in output
        assert controller.session.mistakes == 1

    def test_solution_command_plays_to_end(self, controller, scheduler, attempts):
        controller.load(OPENING_PUZZLE)
        play(controller, scheduler, _console(), _scripted(["solution"]), sleep=None)

        assert controller.session.is_complete
        assert controller.session.cursor == 5
        assert attempts[0].success is False

    def test_hint_and_reset(self, controller, scheduler):
        controller.load(OPENING_PUZZLE)
        play(controller, scheduler, _console(), _scripted(["d7d5", "hint", "reset"]), sleep=None)

        session = controller.session
        assert session.mistakes == 0
        assert session.hint is None

    def test_end_of_input_stops(self, controller, scheduler):
        controller.load(OPENING_PUZZLE)
        play(controller, scheduler, _console(), _scripted([]), sleep=None)
        assert not controller.session.is_complete

    def test_solution_title_after_playback(self, controller, scheduler):
        controller.load(OPENING_PUZZLE)
        console = _console()
        play(controller, scheduler, console, _scripted(["solution"]), sleep=None)
        assert "Solution shown" in console.file.getvalue()

    def test_stalled_puzzle_suggests_reset(self, controller, scheduler):
        controller.load(BROKEN_REPLY_PUZZLE)
        console = _console()
        play(controller, scheduler, console, _scripted(["e7e5", "b8c6", "quit"]), sleep=None)

        output = console.file.getvalue()
        assert "scripted reply a1a8" in output
        assert "Type reset to start over" in output
        assert "Illegal move" not in output
