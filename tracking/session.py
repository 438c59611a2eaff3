"""
Game session: the owner of the tracked-piece generation between moves.

python-chess decides what is legal and when the game is over; the reconciler
decides which piece is which. GameSession sits between them. It keeps the
current chess.Board together with the current tracked generation and swaps
both in one step after every accepted move, position jump or reset.

Threading model:
    The web app shares one session across FastAPI's worker threads. Every
    public method and property that reads or replaces state takes the
    session lock. Reads need it too: python-chess answers some questions
    (threefold repetition claims) by pushing and popping moves on the board
    itself. The lock is reentrant so that a caller can hold it across a
    transition and the state() read that reports it; see locked().
"""

import enum
import logging
import threading
from dataclasses import dataclass

import chess

from tracking.constants import DEFAULT_PROMOTION, STARTING_FEN
from tracking.pieces import IdMinter, TrackedPiece, new_stable_id
from tracking.reconcile import reconcile

_log = logging.getLogger(__name__)


class GameStatus(enum.Enum):
    PLAYING = "playing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


class GameOverError(ValueError):
    """Raised when a move is attempted after the game has finished."""


@dataclass(frozen=True)
class SessionState:
    """
    One consistent view of the session, taken under a single lock hold.

    Attributes:
        fen:       Current position.
        turn:      Side to move.
        status:    Game classification.
        in_check:  Whether the side to move is in check.
        winner:    Side that delivered mate, or None.
        last_move: Move that produced the position, or None.
        pieces:    Tracked generation, sorted by square.
    """

    fen: str
    turn: chess.Color
    status: GameStatus
    in_check: bool
    winner: chess.Color | None
    last_move: chess.Move | None
    pieces: tuple[TrackedPiece, ...]


class GameSession:
    """
    A chess game plus the stable-id generation that animates it.

    Attributes:
        board:     The authoritative python-chess board. Treat as read-only
                   outside this class; mutate through push/set_fen/reset,
                   and read it only while holding locked().
        pieces:    The current tracked generation, sorted by square.
        last_move: The move that produced the current position, or None
                   after a reset or position jump.
    """

    def __init__(self, fen: str = STARTING_FEN, mint: IdMinter = new_stable_id) -> None:
        self._lock = threading.RLock()
        self._mint = mint
        self.board: chess.Board = chess.Board(fen)
        self.last_move: chess.Move | None = None
        self.pieces: list[TrackedPiece] = reconcile([], self.board.piece_map(), None, mint)

    def locked(self) -> threading.RLock:
        """
        The session lock, for use as `with session.locked(): ...`.

        Holding it makes a transition and the following state() read atomic
        with respect to other threads.
        """
        return self._lock

    # -----------------------------------------------------------------------
    # Derived state
    # -----------------------------------------------------------------------

    @property
    def fen(self) -> str:
        with self._lock:
            return self.board.fen()

    @property
    def turn(self) -> chess.Color:
        with self._lock:
            return self.board.turn

    @property
    def in_check(self) -> bool:
        with self._lock:
            return self.board.is_check()

    @property
    def status(self) -> GameStatus:
        """
        Classify the position.

        Checkmate is tested first, then stalemate, then every other draw
        python-chess knows about, including draws that are merely claimable
        (threefold repetition, fifty-move rule).
        """
        with self._lock:
            board = self.board
            if board.is_checkmate():
                return GameStatus.CHECKMATE
            if board.is_stalemate():
                return GameStatus.STALEMATE
            if board.is_game_over(claim_draw=True):
                return GameStatus.DRAW
            return GameStatus.PLAYING

    @property
    def winner(self) -> chess.Color | None:
        """The side that delivered mate, or None if nobody has won."""
        with self._lock:
            if self.status is GameStatus.CHECKMATE:
                return not self.board.turn
            return None

    def state(self) -> SessionState:
        """Snapshot fen, status, tracked pieces and the rest in one lock hold."""
        with self._lock:
            return SessionState(
                fen=self.board.fen(),
                turn=self.board.turn,
                status=self.status,
                in_check=self.board.is_check(),
                winner=self.winner,
                last_move=self.last_move,
                pieces=tuple(self.pieces),
            )

    def legal_targets(self, square: chess.Square) -> list[chess.Square]:
        """
        Destination squares for the piece on `square`.

        Empty if the square is empty or holds a piece of the side not to
        move. Promotions to different pieces share a destination, so each
        square is listed once.
        """
        with self._lock:
            piece = self.board.piece_at(square)
            if piece is None or piece.color != self.board.turn:
                return []
            targets = {m.to_square for m in self.board.legal_moves if m.from_square == square}
            return sorted(targets)

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    def push(
        self,
        from_square: chess.Square,
        to_square: chess.Square,
        promotion: chess.PieceType | None = None,
    ) -> chess.Move:
        """
        Apply a move and advance the tracked generation.

        A pawn move onto the last rank without an explicit promotion piece is
        promoted to DEFAULT_PROMOTION.

        Args:
            from_square: Origin square.
            to_square:   Destination square.
            promotion:   Piece type to promote to, if any.

        Returns:
            The move as applied.

        Raises:
            GameOverError:         The game has already finished.
            chess.IllegalMoveError: python-chess rejected the move. The
                                   session is left unchanged.
        """
        with self._lock:
            if self.board.is_game_over(claim_draw=True):
                raise GameOverError(f"Game is already over: {self.board.result(claim_draw=True)}")

            if promotion is None and self._is_promotion_push(from_square, to_square):
                promotion = DEFAULT_PROMOTION

            move = chess.Move(from_square, to_square, promotion=promotion)
            if not self.board.is_legal(move):
                raise chess.IllegalMoveError(f"illegal move: {move.uci()} in {self.board.fen()}")

            self.board.push(move)
            self.last_move = move
            self.pieces = reconcile(self.pieces, self.board.piece_map(), move, self._mint)
            _log.info("Move=%s fen=%s", move.uci(), self.board.fen())
            return move

    def push_uci(self, uci: str) -> chess.Move:
        """
        Apply a move given in UCI notation (e.g. "e2e4", "e7e8n").

        Raises:
            chess.InvalidMoveError: The text is not a UCI move.
            plus everything push() raises.
        """
        move = chess.Move.from_uci(uci)
        return self.push(move.from_square, move.to_square, move.promotion)

    def set_fen(self, fen: str) -> None:
        """
        Jump to an arbitrary position.

        There is no move connecting the two positions, so pieces are matched
        without a hint. Raises ValueError for a malformed FEN and leaves the
        session unchanged.
        """
        board = chess.Board(fen)
        with self._lock:
            self.board = board
            self.last_move = None
            self.pieces = reconcile(self.pieces, board.piece_map(), None, self._mint)
            _log.info("Position set fen=%s", board.fen())

    def reset(self) -> None:
        """Start a new game. Every piece gets a new id."""
        with self._lock:
            self.board = chess.Board(STARTING_FEN)
            self.last_move = None
            self.pieces = reconcile([], self.board.piece_map(), None, self._mint)
            _log.info("New game")

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _is_promotion_push(self, from_square: chess.Square, to_square: chess.Square) -> bool:
        piece = self.board.piece_at(from_square)
        if piece is None or piece.piece_type != chess.PAWN:
            return False
        last_rank = 7 if piece.color == chess.WHITE else 0
        return chess.square_rank(to_square) == last_rank
