"""
Console driver for the piece tracker.

A small line protocol for exercising the tracker from a terminal or a script,
without the web app. The driver reads commands from stdin and writes replies
to stdout, one line each, flushed immediately so a parent process reading
through a pipe never blocks on a buffered reply.

Commands:
    new                 start a new game (every piece gets a new id)
    move <uci>          apply a move, e.g. "move e2e4" or "move e7e8n"
    fen <FEN>           jump to an arbitrary position (no move hint)
    pieces              list tracked pieces, then "ok"
    status              print "status <state> turn <w|b> check <yes|no>"
    quit                exit the loop

Replies:
    piece <id> <square> <symbol>            e.g. "piece w-n-7 f3 N"
    moved <uci> kept <n> minted <n> retired <n>
    ok

Errors (illegal moves, bad FEN, unknown commands, or a failure inside any
handler) go to stderr and the loop keeps running. stdout carries replies
only. FEN letters are upper-case for White and lower-case for Black.
"""

import sys
import os
from typing import Iterable

# ---------------------------------------------------------------------------
# Path setup: make 'tracking' importable when this script is run directly
# as `python interface/console.py` from the repo root.
# ---------------------------------------------------------------------------
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

import chess
from tracking.pieces import TrackedPiece, index_by_id
from tracking.session import GameSession


def _send(line: str) -> None:
    """Write one reply line to stdout and flush."""
    print(line, flush=True)


def _log(message: str) -> None:
    """Write a diagnostic line to stderr, keeping stdout clean for replies."""
    print(message, file=sys.stderr, flush=True)


def format_piece(piece: TrackedPiece) -> str:
    return f"piece {piece.id} {piece.square_name} {piece.symbol}"


class ConsoleHandler:
    """
    Stateful handler for the console protocol.

    Attributes:
        session: The game session; replaced wholesale by "new".
    """

    def __init__(self, session: GameSession | None = None) -> None:
        self.session: GameSession = session if session is not None else GameSession()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_new(self) -> None:
        self.session.reset()
        _send("ok")

    def handle_move(self, tokens: list[str]) -> None:
        """
        Apply one UCI move and report how the tracked generation changed.

        kept/minted/retired count ids carried over, newly created, and
        dropped. A quiet move reports minted 0 retired 0; a capture retires
        one id; a promotion retires the pawn's id and mints the new piece's.
        """
        if len(tokens) != 1:
            _log("console: usage: move <uci>")
            return

        before = index_by_id(self.session.pieces)
        try:
            move = self.session.push_uci(tokens[0])
        except ValueError as e:
            _log(f"console: rejected move {tokens[0]}: {e}")
            return

        after = index_by_id(self.session.pieces)
        kept = len(before.keys() & after.keys())
        _send(
            f"moved {move.uci()} kept {kept} "
            f"minted {len(after) - kept} retired {len(before) - kept}"
        )

    def handle_fen(self, tokens: list[str]) -> None:
        try:
            self.session.set_fen(" ".join(tokens))
        except ValueError as e:
            _log(f"console: invalid fen: {e}")
            return
        _send("ok")

    def handle_pieces(self) -> None:
        for piece in self.session.pieces:
            _send(format_piece(piece))
        _send("ok")

    def handle_status(self) -> None:
        view = self.session.state()
        turn = "w" if view.turn == chess.WHITE else "b"
        check = "yes" if view.in_check else "no"
        _send(f"status {view.status.value} turn {turn} check {check}")

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------

    def dispatch(self, line: str) -> bool:
        """
        Execute one command line.

        Returns:
            False when the loop should stop ("quit"), True otherwise.
        """
        tokens = line.split()
        if not tokens:
            return True

        command, args = tokens[0], tokens[1:]
        if command == "quit":
            return False
        if command == "new":
            self.handle_new()
        elif command == "move":
            self.handle_move(args)
        elif command == "fen":
            self.handle_fen(args)
        elif command == "pieces":
            self.handle_pieces()
        elif command == "status":
            self.handle_status()
        else:
            _log(f"console: ignoring unknown command: {command!r}")
        return True


def run_console_loop(lines: Iterable[str] | None = None) -> None:
    """
    Read commands until "quit" or end of input.

    Each command is wrapped in a try/except so that a bug in one handler
    does not end the session. Errors are logged to stderr and the loop
    continues.

    Args:
        lines: Command source. Defaults to sys.stdin.
    """
    handler = ConsoleHandler()

    for raw_line in lines if lines is not None else sys.stdin:
        line = raw_line.strip()
        try:
            if not handler.dispatch(line):
                break
        except Exception as e:
            _log(f"console: unhandled error for command {line!r}: {e}")


if __name__ == "__main__":
    run_console_loop()
