"""
Data model for piece tracking: physical pieces, tracked pieces, and stable ids.

A board snapshot is whatever python-chess hands us from Board.piece_map(): a
mapping from square index to chess.Piece. The tracker flattens it into
PhysicalPiece records and returns TrackedPiece records, which are the same
triple plus a stable id used by the renderer as an animation key.

Stable ids carry animation continuity, not chess identity. They are minted
from a process-wide counter, so an id that has been retired (captured piece,
promoted pawn) is never handed out again while the process lives.
"""

import itertools
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

import chess

from tracking.constants import ID_SEPARATOR, SIDE_TAGS

# A board snapshot as produced by chess.Board.piece_map().
Snapshot = Mapping[chess.Square, chess.Piece]

# (side, kind) key that partitions pieces into interchangeable groups.
PartitionKey = tuple[chess.Color, chess.PieceType]

# Signature of a stable-id factory: (piece_type, color) -> new id.
IdMinter = Callable[[chess.PieceType, chess.Color], str]

_serials = itertools.count(1)


def new_stable_id(piece_type: chess.PieceType, color: chess.Color) -> str:
    """
    Mint a stable id that has never been issued before in this process.

    The side/symbol prefix is cosmetic; uniqueness comes from the serial.

    Args:
        piece_type: python-chess piece type of the new piece.
        color:      chess.WHITE or chess.BLACK.

    Returns:
        A string such as "w-q-42".
    """
    return ID_SEPARATOR.join(
        (SIDE_TAGS[color], chess.piece_symbol(piece_type), str(next(_serials)))
    )


@dataclass(frozen=True)
class PhysicalPiece:
    """A piece standing on a square in one snapshot. Has no identity."""

    square: chess.Square
    piece_type: chess.PieceType
    color: chess.Color

    @property
    def key(self) -> PartitionKey:
        return (self.color, self.piece_type)


@dataclass(frozen=True)
class TrackedPiece:
    """
    A physical piece plus the stable id the renderer keys its object on.

    Attributes:
        id:         Stable id; unique within one generation.
        square:     python-chess square index (a1 = 0, h8 = 63).
        piece_type: python-chess piece type (chess.PAWN .. chess.KING).
        color:      chess.WHITE or chess.BLACK.
    """

    id: str
    square: chess.Square
    piece_type: chess.PieceType
    color: chess.Color

    @property
    def key(self) -> PartitionKey:
        return (self.color, self.piece_type)

    @property
    def square_name(self) -> str:
        return chess.square_name(self.square)

    @property
    def symbol(self) -> str:
        """FEN letter for the piece: upper-case for White, lower-case for Black."""
        return chess.Piece(self.piece_type, self.color).symbol()

    def to_dict(self) -> dict[str, str]:
        """JSON-friendly form used by the web API and the console driver."""
        return {
            "id": self.id,
            "square": self.square_name,
            "type": chess.piece_symbol(self.piece_type),
            "color": SIDE_TAGS[self.color],
        }


def flatten_snapshot(snapshot: Snapshot) -> list[PhysicalPiece]:
    """
    Flatten a square -> piece mapping into PhysicalPiece records.

    Squares are visited in ascending index order (a1, b1, ..., h8). This is
    the enumeration order the reconciler relies on when breaking distance ties.
    """
    return [
        PhysicalPiece(square, piece.piece_type, piece.color)
        for square, piece in sorted(snapshot.items())
    ]


def index_by_id(pieces: Iterable[TrackedPiece]) -> dict[str, TrackedPiece]:
    """Build the caller-held stable id -> tracked piece table."""
    return {p.id: p for p in pieces}
