"""
Piece tracking package.

This package keeps a stable identity on each chess piece across moves so a
renderer can animate a piece sliding from square to square instead of
destroying and recreating it. python-chess stays the sole authority on rules;
nothing here affects legality.

Modules:
    constants — Starting position, stable-id format, session defaults
    pieces    — PhysicalPiece / TrackedPiece records and stable-id minting
    reconcile — Matches the previous tracked generation to a new snapshot
    session   — Game session that owns the board and the tracked generation
"""
