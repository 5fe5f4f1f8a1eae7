"""Pytest tests for solution playback.

Playback must rewind, replay each script move exactly once, refuse
player moves while running, and stop cleanly when superseded.
"""

from __future__ import annotations

import pytest

from puzzle_engine.errors import MalformedPuzzleError
from puzzle_engine.models import Phase
from puzzle_engine.scheduling import ManualScheduler
from puzzle_engine.session import create_session
from puzzle_engine.solution import SolutionPlayer, play_solution_step
from puzzle_engine.validator import validate
from sample_puzzles import BROKEN_REPLY_PUZZLE, FOOLS_MATE_PUZZLE, OPENING_PUZZLE

_OPENING_LINE = ["e2e4", "e7e5", "g1f3", "b8c6", "f1c4", "g8f6"]


def _history(session) -> list[str]:
    return [m.uci() for m in session.position.move_stack]


class TestSolutionPlayer:

    def test_replays_full_script(self):
        scheduler = ManualScheduler()
        steps = []
        player = SolutionPlayer(scheduler, on_step=lambda s: steps.append(s.cursor))
        session = create_session(OPENING_PUZZLE)

        player.start(session)
        assert session.phase is Phase.PLAYING_BACK_SOLUTION
        assert session.cursor == 0

        scheduler.run_pending()
        assert steps == [1, 2, 3, 4, 5]
        assert _history(session) == _OPENING_LINE
        assert session.phase is Phase.COMPLETE
        assert session.is_solved is True
        assert not player.is_playing

    def test_one_move_per_step(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(OPENING_PUZZLE)
        player.start(session)

        scheduler.run_next()
        assert session.cursor == 1
        scheduler.run_next()
        assert session.cursor == 2

    def test_pacing_delays(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler, interval=0.4, start_delay=0.3)
        session = create_session(FOOLS_MATE_PUZZLE)
        player.start(session)

        slept = []
        scheduler.run_pending(sleep=slept.append)
        assert slept == pytest.approx([0.7, 0.4, 0.4])

    def test_rewinds_progress_and_mistakes(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(OPENING_PUZZLE)
        validate(session, "d7", "d5")
        validate(session, "e7", "e5")
        assert session.mistakes == 1

        player.start(session)
        assert session.cursor == 0
        assert session.mistakes == 0
        assert _history(session) == ["e2e4"]
        assert session.solution_viewed is True

    def test_player_moves_refused_during_playback(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(OPENING_PUZZLE)
        player.start(session)

        assert validate(session, "e7", "e5") is False
        assert session.mistakes == 0
        assert session.cursor == 0

    def test_stops_at_checkmate(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(FOOLS_MATE_PUZZLE)
        player.start(session)
        scheduler.run_pending()

        assert session.position.is_checkmate()
        assert session.phase is Phase.COMPLETE
        assert session.is_solved is True

    def test_cancel_stops_loop(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(OPENING_PUZZLE)
        player.start(session)
        scheduler.run_next()
        player.cancel()

        assert scheduler.run_pending() == 0
        assert session.cursor == 1

    def test_superseded_session_stops(self):
        scheduler = ManualScheduler()
        player = SolutionPlayer(scheduler)
        session = create_session(OPENING_PUZZLE)
        player.start(session)
        scheduler.run_next()
        session.invalidate()

        scheduler.run_pending()
        assert session.cursor == 1
        assert session.phase is Phase.PLAYING_BACK_SOLUTION

    def test_illegal_script_move_reported(self):
        scheduler = ManualScheduler()
        errors = []
        player = SolutionPlayer(scheduler, on_error=lambda s, exc: errors.append(exc))
        session = create_session(BROKEN_REPLY_PUZZLE)
        player.start(session)
        scheduler.run_pending()

        assert session.cursor == 1
        assert len(errors) == 1
        assert isinstance(errors[0], MalformedPuzzleError)
        assert session.error is errors[0]


class TestPlaySolutionStep:

    def test_requires_playback_phase(self):
        session = create_session(OPENING_PUZZLE)
        assert play_solution_step(session, session.generation) is False
        assert session.cursor == 0
