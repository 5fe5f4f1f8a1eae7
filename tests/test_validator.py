"""Pytest tests for move validation against the puzzle script.

Covers guards, outright illegal moves, wrong moves, promotion defaults
and the resulting-position equivalence fallback.
"""

from __future__ import annotations

from unittest.mock import patch

import chess
import pytest

from puzzle_engine import rules
from puzzle_engine.errors import EngineInvariantError, IllegalMoveError
from puzzle_engine.models import HintDescriptor, HintKind, Phase, Puzzle, ScriptMove
from puzzle_engine.session import create_session
from puzzle_engine.turns import apply_opponent_reply
from puzzle_engine.validator import matches_script, validate
from sample_puzzles import FOOLS_MATE_PUZZLE, OPENING_PUZZLE, PROMOTION_PUZZLE


# ---------------------------------------------------------------------------
# Accept / reject
# ---------------------------------------------------------------------------


class TestAcceptReject:

    def test_correct_move_advances_cursor(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, "e7", "e5") is True
        assert session.cursor == 1
        assert session.mistakes == 0
        assert session.phase is Phase.SCHEDULING_OPPONENT_REPLY
        assert session.position.move_stack[-1].uci() == "e7e5"

    def test_square_indices_accepted(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, chess.E7, chess.E5) is True

    def test_opponents_piece_is_illegal_not_a_mistake(self):
        """At cursor 0 Black is to move, so g1f3 is simply illegal."""
        session = create_session(OPENING_PUZZLE)
        fen_before = session.position.fen()

        assert validate(session, "g1", "f3") is False
        assert session.mistakes == 0
        assert session.cursor == 0
        assert session.position.fen() == fen_before

    def test_legal_wrong_move_counts_mistake(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, "b8", "c6") is False
        assert session.mistakes == 1
        assert session.cursor == 0
        assert session.phase is Phase.AWAITING_PLAYER_MOVE

    def test_two_wrong_moves(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, "b8", "c6") is False
        assert validate(session, "d7", "d5") is False
        assert session.mistakes == 2
        assert session.cursor == 0

    def test_unknown_square_rejected_without_mistake(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, "e9", "e5") is False
        assert session.mistakes == 0

    def test_accepted_move_clears_hint(self):
        session = create_session(OPENING_PUZZLE)
        session.hint = HintDescriptor(HintKind.MOVE, chess.E7, chess.E5)
        validate(session, "e7", "e5")
        assert session.hint is None

    def test_wrong_move_keeps_hint(self):
        session = create_session(OPENING_PUZZLE)
        hint = HintDescriptor(HintKind.PIECE, chess.E7)
        session.hint = hint
        validate(session, "d7", "d5")
        assert session.hint == hint


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:

    @pytest.mark.parametrize(
        "phase",
        [Phase.SCHEDULING_OPPONENT_REPLY, Phase.PLAYING_BACK_SOLUTION, Phase.COMPLETE],
    )
    def test_refuses_outside_player_phase(self, phase):
        session = create_session(OPENING_PUZZLE)
        session.phase = phase
        assert validate(session, "e7", "e5") is False
        assert session.cursor == 0
        assert session.mistakes == 0

    def test_refuses_on_opponent_cursor(self):
        session = create_session(OPENING_PUZZLE)
        session.cursor = 1
        assert validate(session, "e7", "e5") is False
        assert session.mistakes == 0

    def test_refuses_past_script_end(self):
        session = create_session(OPENING_PUZZLE)
        session.cursor = len(session.script) + 1
        assert validate(session, "e7", "e5") is False


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


class TestCompletion:

    def test_last_script_move_completes(self):
        session = create_session(PROMOTION_PUZZLE)
        assert validate(session, "e7", "e8", "q") is True
        assert session.phase is Phase.COMPLETE
        assert session.is_solved is True
        assert session.mistakes == 0

    def test_checkmate_completes_before_script_end(self):
        puzzle = Puzzle(
            id="mate-extra",
            fen=FOOLS_MATE_PUZZLE.fen,
            moves=FOOLS_MATE_PUZZLE.moves + " a2a3",
        )
        session = create_session(puzzle)
        validate(session, "e7", "e5")
        assert apply_opponent_reply(session, session.generation, session.cursor)
        assert session.position.move_stack[-1].uci() == "g2g4"

        assert validate(session, "d8", "h4") is True
        assert session.position.is_checkmate()
        assert session.cursor == 3
        assert len(session.script) == 4
        assert session.phase is Phase.COMPLETE
        assert session.is_solved is True


# ---------------------------------------------------------------------------
# Promotion handling
# ---------------------------------------------------------------------------


class TestPromotion:

    def test_missing_letter_defaults_to_queen(self):
        session = create_session(PROMOTION_PUZZLE)
        assert validate(session, "e7", "e8") is True
        piece = session.position.piece_at(chess.E8)
        assert piece == chess.Piece(chess.QUEEN, chess.WHITE)
        assert session.is_solved is True
        assert session.mistakes == 0

    def test_uppercase_letter_accepted(self):
        session = create_session(PROMOTION_PUZZLE)
        assert validate(session, "e7", "e8", "Q") is True

    def test_script_without_letter_matches_by_position(self):
        puzzle = Puzzle(id="promo-bare", fen=PROMOTION_PUZZLE.fen, moves="a8b7 e7e8")
        session = create_session(puzzle)
        assert validate(session, "e7", "e8", "q") is True
        assert session.is_solved is True

    def test_underpromotion_is_wrong(self):
        session = create_session(PROMOTION_PUZZLE)
        assert validate(session, "e7", "e8", "n") is False
        assert session.mistakes == 1
        assert session.cursor == 0

    def test_stray_promotion_letter_dropped(self):
        session = create_session(OPENING_PUZZLE)
        assert validate(session, "e7", "e5", "q") is True


class TestMatchesScript:

    def test_exact_match(self):
        board = chess.Board()
        move = ScriptMove(chess.E2, chess.E4)
        assert matches_script(board, move, ScriptMove(chess.E2, chess.E4))

    def test_different_moves(self):
        board = chess.Board()
        assert not matches_script(
            board, ScriptMove(chess.E2, chess.E4), ScriptMove(chess.D2, chess.D4)
        )

    def test_illegal_expected_never_matches(self):
        board = chess.Board()
        assert not matches_script(
            board, ScriptMove(chess.E2, chess.E4), ScriptMove(chess.E2, chess.E5)
        )

    def test_castling_notations_are_equivalent(self):
        board = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        king_two_squares = ScriptMove(chess.E1, chess.G1)
        king_takes_rook = ScriptMove(chess.E1, chess.H1)
        assert matches_script(board, king_takes_rook, king_two_squares)


# ---------------------------------------------------------------------------
# Rules adapter disagreement
# ---------------------------------------------------------------------------


class TestInvariantViolation:

    def test_confirmed_move_rejected_on_apply(self):
        session = create_session(OPENING_PUZZLE)
        real_apply = rules.apply_move
        calls = []

        def apply_once(position, from_square, to_square, promotion=None):
            calls.append((from_square, to_square))
            if len(calls) == 1:
                return real_apply(position, from_square, to_square, promotion)
            raise IllegalMoveError("e7e5", position.fen())

        with patch("puzzle_engine.rules.apply_move", side_effect=apply_once):
            with pytest.raises(EngineInvariantError, match="e7e5"):
                validate(session, "e7", "e5")

        assert len(calls) == 2
        assert session.cursor == 0
        assert session.mistakes == 0
        assert session.phase is Phase.AWAITING_PLAYER_MOVE
        assert [m.uci() for m in session.position.move_stack] == ["e2e4"]
