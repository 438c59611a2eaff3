"""
Tracker constants: starting position, stable-id format, and session defaults.

All literal values used by the tracker and the session live here so that the
web layer and the console driver never introduce their own copies. None of
these values affect game rules; python-chess remains the only authority on
legality.
"""

import chess

# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

STARTING_FEN: str = chess.STARTING_FEN

# ---------------------------------------------------------------------------
# Stable ids
# ---------------------------------------------------------------------------
# A stable id reads "<side>-<symbol>-<serial>", e.g. "w-n-17". The side and
# symbol make ids easy to eyeball in logs; only the serial guarantees
# uniqueness.

ID_SEPARATOR: str = "-"

SIDE_TAGS: dict[chess.Color, str] = {
    chess.WHITE: "w",
    chess.BLACK: "b",
}

# ---------------------------------------------------------------------------
# Session defaults
# ---------------------------------------------------------------------------
# The board UI offers no promotion picker, so a pawn reaching the last rank
# becomes a queen unless the caller names another piece.

DEFAULT_PROMOTION: chess.PieceType = chess.QUEEN
