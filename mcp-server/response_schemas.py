"""Response schemas and minification for MCP tool responses.

Minifies MCP tool return values to reduce LLM context token waste:
the ASCII board and full legal-move list are dropped, and the hint is
flattened to square names.
"""

from __future__ import annotations

import os


# ---------------------------------------------------------------------------
# Minification functions
# ---------------------------------------------------------------------------


def minify_puzzle_state(state: dict) -> dict:
    """Minify a PuzzleState dict for MCP response.

    Replaces legal_moves with a count, drops board_display and
    elapsed time until the puzzle is complete, and omits a null error.

    Args:
        state: Full PuzzleState dict (as produced by build_puzzle_state).

    Returns:
        Minified dict with reduced token footprint.
    """
    result = {}

    for key in (
        "session_id", "puzzle_id", "fen", "phase", "cursor", "script_length",
        "mate_in_x", "mating_side", "side_to_move", "mistakes", "moves_tried",
        "is_complete", "is_solved", "solution_viewed", "last_move",
    ):
        if key in state:
            result[key] = state[key]

    legal_moves = state.get("legal_moves", [])
    if isinstance(legal_moves, list):
        result["legal_moves_count"] = len(legal_moves)
    else:
        result["legal_moves_count"] = 0

    hint = state.get("hint")
    if isinstance(hint, dict):
        result["hint"] = {k: v for k, v in hint.items() if v is not None}
    else:
        result["hint"] = None

    if state.get("is_complete"):
        result["elapsed_time_ms"] = state.get("elapsed_time_ms", 0)

    if state.get("error"):
        result["error_detail"] = state["error"]

    # Removed fields: board_display, legal_moves, rating, themes

    return result


def minify_attempt(attempt: dict) -> dict:
    """Keep only the telemetry payload keys of an attempt dict."""
    return {
        key: attempt[key]
        for key in ("puzzleId", "success", "movesTried", "timeMs", "mistakes")
        if key in attempt
    }


# ---------------------------------------------------------------------------
# Validation schemas (dict-based)
# ---------------------------------------------------------------------------

PUZZLE_STATE_SCHEMA = {
    "session_id": str,
    "puzzle_id": str,
    "fen": str,
    "phase": str,
    "cursor": int,
    "script_length": int,
    "mate_in_x": int,
    "mating_side": str,
    "side_to_move": (str, type(None)),
    "mistakes": int,
    "moves_tried": int,
    "is_complete": bool,
    "is_solved": bool,
    "solution_viewed": bool,
    "last_move": (str, type(None)),
    "legal_moves_count": int,
    "hint": (dict, type(None)),
}

ATTEMPT_SCHEMA = {
    "puzzleId": str,
    "success": bool,
    "movesTried": int,
    "timeMs": int,
    "mistakes": int,
}

ERROR_SCHEMA = {
    "error": str,
}


def validate_response(response: dict, schema: dict) -> list[str]:
    """Validate a response dict against a schema.

    Only runs when PUZZLE_ENGINE_VALIDATE=1 env var is set.

    Args:
        response: Response dict to validate.
        schema: Dict mapping key names to expected types (or tuple of types).

    Returns:
        List of validation error strings (empty = valid).
    """
    if os.environ.get("PUZZLE_ENGINE_VALIDATE") != "1":
        return []

    errors = []

    if not isinstance(response, dict):
        errors.append(f"Response is not a dict: {type(response).__name__}")
        return errors

    for key, expected_types in schema.items():
        if key not in response:
            errors.append(f"Missing key: {key}")
            continue

        value = response[key]
        if isinstance(expected_types, tuple):
            if not isinstance(value, expected_types):
                type_names = ", ".join(t.__name__ for t in expected_types)
                errors.append(
                    f"Key '{key}': expected ({type_names}), "
                    f"got {type(value).__name__}"
                )
        else:
            if not isinstance(value, expected_types):
                errors.append(
                    f"Key '{key}': expected {expected_types.__name__}, "
                    f"got {type(value).__name__}"
                )

    return errors
