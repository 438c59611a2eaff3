#!/usr/bin/env python3
"""
Benchmark: replay fixed games through the tracker and time reconciliation.

Each line below is replayed move by move through a GameSession. For every
line the script reports how many stable ids were kept, minted and retired in
total, plus the average time per reconcile call. Quiet moves should mint and
retire nothing; captures retire one id each; promotions retire a pawn id and
mint one new id.

Usage: python3 tools/bench.py
"""
import os
import sys
import time

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

from tracking.constants import STARTING_FEN
from tracking.session import GameSession

# Fixed forever, so numbers stay comparable between runs.
LINES = [
    ("Italian O-O", STARTING_FEN, "e2e4 e7e5 g1f3 b8c6 f1c4 f8c5 e1g1 g8f6"),
    ("En passant", STARTING_FEN, "e2e4 a7a6 e4e5 d7d5 e5d6"),
    ("Scholar mate", STARTING_FEN, "e2e4 e7e5 d1h5 b8c6 f1c4 g8f6 h5f7"),
    ("Exchange", STARTING_FEN, "e2e4 d7d5 e4d5 d8d5 b1c3 d5a5"),
    ("Promotion", "8/P6k/8/8/8/8/8/K7 w - - 0 1", "a7a8q h7g6 a8b8"),
    ("Black O-O-O", "r3k3/8/8/8/8/8/8/4K3 b q - 0 1", "e8c8 e1d2"),
]


def run_line(label: str, fen: str, moves: str) -> dict:
    """Replay one line and collect id turnover and timing.

    Args:
        label: Human-readable line name for display.
        fen:   Starting position.
        moves: Space-separated UCI moves.

    Returns:
        Dict with keys: label, plies, kept, minted, retired, us_per_move.
    """
    session = GameSession(fen)
    kept = minted = retired = 0
    elapsed = 0.0
    plies = 0

    for uci in moves.split():
        before = {p.id for p in session.pieces}
        start = time.perf_counter()
        session.push_uci(uci)
        elapsed += time.perf_counter() - start
        after = {p.id for p in session.pieces}

        same = len(before & after)
        kept += same
        minted += len(after) - same
        retired += len(before) - same
        plies += 1

    return {
        "label": label,
        "plies": plies,
        "kept": kept,
        "minted": minted,
        "retired": retired,
        "us_per_move": int(elapsed * 1_000_000 / plies) if plies else 0,
    }


def main() -> None:
    """Replay all lines and print a summary table."""
    print(f"Piece tracker benchmark — {sys.executable}")
    print()
    print(
        f"{'Line':<14} {'Plies':>5} {'Kept':>6} {'Minted':>7} "
        f"{'Retired':>8} {'us/move':>8}"
    )
    print("-" * 53)

    results = [run_line(*line) for line in LINES]
    for r in results:
        print(
            f"{r['label']:<14} {r['plies']:>5} {r['kept']:>6} {r['minted']:>7} "
            f"{r['retired']:>8} {r['us_per_move']:>8,}"
        )

    total_plies = sum(r["plies"] for r in results)
    if total_plies:
        avg = sum(r["us_per_move"] * r["plies"] for r in results) // total_plies
        print("-" * 53)
        print(f"{'AVERAGE':<14} {total_plies:>5} {'':>6} {'':>7} {'':>8} {avg:>8,}")


if __name__ == "__main__":
    main()
