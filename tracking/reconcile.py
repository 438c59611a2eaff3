"""
Piece reconciliation: carry stable ids from one board snapshot to the next.

The renderer keeps one visual object per stable id. When python-chess accepts
a move, the board changes from one snapshot to another, and the renderer needs
to know which old object should slide to which new square instead of being
destroyed and recreated. That is the only question this module answers.

Pieces are partitioned by (side, kind). A white knight can only inherit the id
of another white knight: pieces of the same kind and side look identical, so
any pairing within a partition is visually valid. Within a partition, four
passes run over shrinking pools of unmatched old and new entries:

1. Stationary: an old and a new entry on the same square keep the id. This
   covers every piece the move did not touch.

2. Hinted: if a move is supplied, the old entry on move.from_square pairs
   with the new entry on move.to_square. This is the piece that actually
   moved.

3. Nearest: every remaining (old, new) pair is scored by the Euclidean
   distance between their squares, treating file and rank as Cartesian
   coordinates. Pairs are consumed closest first, skipping any whose old or
   new side is already taken. This catches displacements the move does not
   describe, such as the rook during castling.

4. Creation: new entries still unmatched get a freshly minted id. This covers
   promotions (a queen appears in a partition with no old counterpart) and the
   very first call, when there is no previous generation at all.

Old entries still unmatched after pass 3 are dropped. They were captured, and
their ids are never minted again.

Pass 3 is a greedy heuristic, not a minimum-cost assignment. A wrong pairing
only makes a piece jump instead of glide; it never affects the game. Ties are
resolved by enumeration order: old entries in the order the caller supplied
them, new entries in ascending square order.

Cost is O(k^2 log k) per partition of size k, from sorting the pair table in
pass 3. k is at most ten (eight pawns promoted plus two originals), so the
whole call is effectively linear in the number of pieces.
"""

import logging
import math
from collections import defaultdict
from typing import Iterable

import chess

from tracking.pieces import (
    IdMinter,
    PartitionKey,
    PhysicalPiece,
    Snapshot,
    TrackedPiece,
    flatten_snapshot,
    new_stable_id,
)

_log = logging.getLogger(__name__)


def planar_distance(a: chess.Square, b: chess.Square) -> float:
    """
    Euclidean distance between two squares in board coordinates.

    python-chess ships chess.square_distance, but that is the king-move
    (Chebyshev) metric; pass 3 needs the straight-line distance so that a
    knight hop ranks behind an orthogonal slide of one square.
    """
    return math.hypot(
        chess.square_file(a) - chess.square_file(b),
        chess.square_rank(a) - chess.square_rank(b),
    )


def _match_partition(
    old: list[TrackedPiece],
    new: list[PhysicalPiece],
    hint: chess.Move | None,
    mint: IdMinter,
) -> list[TrackedPiece]:
    """
    Run the four matching passes over one (side, kind) partition.

    Args:
        old:  Previous-generation entries of this partition, caller order.
        new:  Current snapshot entries of this partition, square order.
        hint: The move that produced the snapshot, or None.
        mint: Factory for fresh stable ids.

    Returns:
        One TrackedPiece per entry of `new`, in the same order.
    """
    inherited: dict[int, str] = {}  # index into new -> id taken from old
    used_old: set[int] = set()

    def pair(o_idx: int, n_idx: int) -> None:
        used_old.add(o_idx)
        inherited[n_idx] = old[o_idx].id

    # Pass 1: stationary. Squares are unique within a snapshot.
    new_index = {piece.square: n_idx for n_idx, piece in enumerate(new)}
    for o_idx, piece in enumerate(old):
        n_idx = new_index.get(piece.square)
        if n_idx is not None and n_idx not in inherited:
            pair(o_idx, n_idx)

    # Pass 2: the piece that executed the move.
    if hint is not None:
        o_idx = next(
            (i for i, p in enumerate(old) if i not in used_old and p.square == hint.from_square),
            None,
        )
        n_idx = next(
            (i for i, p in enumerate(new) if i not in inherited and p.square == hint.to_square),
            None,
        )
        if o_idx is not None and n_idx is not None:
            pair(o_idx, n_idx)

    # Pass 3: greedy nearest neighbour over whatever is left.
    candidates = [
        (planar_distance(o.square, n.square), o_idx, n_idx)
        for o_idx, o in enumerate(old)
        if o_idx not in used_old
        for n_idx, n in enumerate(new)
        if n_idx not in inherited
    ]
    # list.sort is stable, so equal distances keep enumeration order.
    candidates.sort(key=lambda c: c[0])
    for _, o_idx, n_idx in candidates:
        if o_idx in used_old or n_idx in inherited:
            continue
        pair(o_idx, n_idx)

    # Pass 4: creation.
    return [
        TrackedPiece(
            id=inherited[n_idx] if n_idx in inherited else mint(p.piece_type, p.color),
            square=p.square,
            piece_type=p.piece_type,
            color=p.color,
        )
        for n_idx, p in enumerate(new)
    ]


def reconcile(
    previous: Iterable[TrackedPiece],
    current: Snapshot,
    hint: chess.Move | None = None,
    mint: IdMinter = new_stable_id,
) -> list[TrackedPiece]:
    """
    Compute the next tracked generation for a new board snapshot.

    This is a pure function of its inputs: it never mutates `previous`, holds
    no state between calls, and never raises for an inconsistent hint (a hint
    that matches nothing simply falls through to the nearest and creation
    passes). Callers must serialise calls that share a `previous` generation.

    Args:
        previous: The previous generation, e.g. the values of the caller's
                  id -> TrackedPiece table. Empty on the first call.
        current:  Square -> piece mapping, as returned by
                  chess.Board.piece_map(). At most one piece per square is
                  assumed and not re-validated.
        hint:     The move that turned the previous position into `current`,
                  or None when unknown (first call, position jump). Only
                  from_square and to_square are consulted.
        mint:     Stable-id factory. Defaults to the process-wide counter;
                  tests inject a deterministic one.

    Returns:
        Exactly one TrackedPiece per occupied square of `current`, sorted by
        square. Ids are either inherited from `previous` or freshly minted,
        and no id appears twice.

    Example:
        >>> import chess
        >>> first = reconcile([], {chess.A1: chess.Piece(chess.ROOK, chess.WHITE)})
        >>> moved = reconcile(first, {chess.D1: chess.Piece(chess.ROOK, chess.WHITE)},
        ...                   chess.Move(chess.A1, chess.D1))
        >>> moved[0].id == first[0].id
        True
    """
    old_groups: dict[PartitionKey, list[TrackedPiece]] = defaultdict(list)
    for piece in previous:
        old_groups[piece.key].append(piece)

    new_groups: dict[PartitionKey, list[PhysicalPiece]] = defaultdict(list)
    for piece in flatten_snapshot(current):
        new_groups[piece.key].append(piece)

    # Partitions present only in the old generation contribute nothing:
    # every piece in them was captured or promoted away.
    result: list[TrackedPiece] = []
    for key, new_pieces in new_groups.items():
        result.extend(_match_partition(old_groups.get(key, []), new_pieces, hint, mint))

    result.sort(key=lambda p: p.square)

    if _log.isEnabledFor(logging.DEBUG):
        old_ids = {p.id for pieces in old_groups.values() for p in pieces}
        kept = sum(1 for p in result if p.id in old_ids)
        _log.debug(
            "reconcile: hint=%s kept=%d minted=%d retired=%d",
            hint.uci() if hint is not None else "-",
            kept,
            len(result) - kept,
            len(old_ids) - kept,
        )

    return result
