"""MCP server for the chess puzzle trainer.

Exposes puzzle sessions to an agent via FastMCP. Sessions are stored in
memory keyed by UUID. Each session has its own ManualScheduler, drained
before every response so replies and playback are already applied.
"""

from __future__ import annotations

import sys
import uuid
from dataclasses import asdict
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

from mcp.server.fastmcp import FastMCP

from puzzle_engine.config import EngineSettings, configure_logging
from puzzle_engine.controller import PuzzleController
from puzzle_engine.errors import MalformedPuzzleError
from puzzle_engine.models import HintKind, Puzzle
from puzzle_engine.progress import build_puzzle_state
from puzzle_engine.scheduling import ManualScheduler

from response_schemas import minify_attempt, minify_puzzle_state  # noqa: E402

mcp = FastMCP("chess-puzzles")

# In-memory session store: session_id -> {controller, scheduler, attempts}
_sessions: dict[str, dict] = {}


def _get_session(session_id: str) -> dict | None:
    return _sessions.get(session_id)


def _drain(record: dict) -> None:
    """Run every deferred step queued for a session."""
    record["scheduler"].run_pending()


def _state_response(session_id: str, record: dict, **extra) -> dict:
    _drain(record)
    controller: PuzzleController = record["controller"]
    state = asdict(build_puzzle_state(controller.session, session_id))
    response = minify_puzzle_state(state)
    response.update(extra)
    return response


# ---------------------------------------------------------------------------
# Session tools
# ---------------------------------------------------------------------------


@mcp.tool()
def new_puzzle(
    fen: str,
    moves: str,
    puzzle_id: str = "",
    rating: int = 0,
    themes: list[str] | None = None,
) -> dict:
    """Start a puzzle session.

    Args:
        fen: Position BEFORE the setup move (Lichess convention).
        moves: Space-separated UCI moves; the first is the setup move.
        puzzle_id: Optional puzzle identifier.
        rating: Optional puzzle rating.
        themes: Optional theme tags.

    Returns:
        Puzzle state after the setup move.
    """
    session_id = str(uuid.uuid4())
    puzzle = Puzzle(
        id=puzzle_id or session_id[:8],
        fen=fen,
        moves=moves,
        rating=rating,
        themes=tuple(themes or ()),
    )

    scheduler = ManualScheduler()
    record: dict = {"scheduler": scheduler, "attempts": []}
    controller = PuzzleController(
        scheduler,
        settings=EngineSettings.from_env(),
        attempt_sink=record["attempts"].append,
    )
    try:
        controller.load(puzzle)
    except MalformedPuzzleError as exc:
        return {"error": f"Malformed puzzle: {exc}"}

    record["controller"] = controller
    _sessions[session_id] = record
    return _state_response(session_id, record)


@mcp.tool()
def get_puzzle_state(session_id: str) -> dict:
    """Get the current state of a puzzle session.

    Args:
        session_id: UUID of the session.

    Returns:
        Puzzle state dict.
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}
    return _state_response(session_id, record)


@mcp.tool()
def submit_move(session_id: str, move: str) -> dict:
    """Submit the player's move in UCI notation.

    A correct move is followed by the scripted opponent reply, already
    applied in the returned state.

    Args:
        session_id: UUID of the session.
        move: Move in UCI notation (e.g., 'e2e4', 'e7e8q').

    Returns:
        Puzzle state with an ``accepted`` flag.
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}

    move = move.strip()
    if len(move) not in (4, 5):
        return {"error": f"Invalid UCI move: {move}"}

    controller: PuzzleController = record["controller"]
    if controller.session.is_complete:
        return {"error": "Puzzle is already complete"}

    accepted = controller.validate_move(move[0:2], move[2:4], move[4:] or None)
    return _state_response(session_id, record, accepted=accepted)


@mcp.tool()
def show_hint(session_id: str, kind: str = "move") -> dict:
    """Reveal the next move ('move') or just the piece to move ('piece').

    Args:
        session_id: UUID of the session.
        kind: 'move' or 'piece'.

    Returns:
        Puzzle state including the hint.
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}
    try:
        hint_kind = HintKind(kind)
    except ValueError:
        return {"error": f"Unknown hint kind: {kind}. Use 'move' or 'piece'."}

    controller: PuzzleController = record["controller"]
    if controller.show_hint(hint_kind) is None:
        return {"error": "No hint available: it is not the player's turn"}
    return _state_response(session_id, record)


@mcp.tool()
def reset_puzzle(session_id: str) -> dict:
    """Restart the puzzle from the post-setup position.

    Args:
        session_id: UUID of the session.

    Returns:
        Fresh puzzle state.
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}
    record["controller"].reset()
    return _state_response(session_id, record)


@mcp.tool()
def play_solution(session_id: str) -> dict:
    """Give up and play back the whole solution.

    Args:
        session_id: UUID of the session.

    Returns:
        Final puzzle state after playback.
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}
    record["controller"].play_solution()
    return _state_response(session_id, record)


@mcp.tool()
def get_attempt(session_id: str) -> dict:
    """Get the attempt record reported for this session, if any.

    Args:
        session_id: UUID of the session.

    Returns:
        Dict with ``attempts`` (telemetry payloads, oldest first).
    """
    record = _get_session(session_id)
    if record is None:
        return {"error": f"Session not found: {session_id}"}
    _drain(record)
    return {
        "session_id": session_id,
        "attempts": [minify_attempt(a.as_dict()) for a in record["attempts"]],
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging()
    mcp.run()
