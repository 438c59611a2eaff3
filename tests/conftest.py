import itertools

import chess
import pytest


@pytest.fixture
def mint():
    """Deterministic stable-id factory: id1, id2, ..."""
    serials = itertools.count(1)

    def _mint(piece_type: chess.PieceType, color: chess.Color) -> str:
        return f"id{next(serials)}"

    return _mint


@pytest.fixture
def board_of():
    """Snapshot builder: board_of(e1="K", h1="R") -> {E1: K, H1: R}."""

    def _board_of(**placement: str) -> dict[chess.Square, chess.Piece]:
        return {
            chess.parse_square(sq): chess.Piece.from_symbol(sym)
            for sq, sym in placement.items()
        }

    return _board_of
