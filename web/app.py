"""
FastAPI web application for the piece tracker.

Holds one game session in process and exposes it to a 3D board frontend. Every
state-changing endpoint returns the full StateResponse, including the tracked
pieces; the frontend keys each visual piece object on its stable id, so a
piece whose id survives a move is animated rather than re-created.

Architecture notes:
- Sync endpoints (not async): FastAPI runs sync handlers in a thread pool.
  GameSession serialises transitions and reads with its own lock, so
  concurrent requests never reconcile against the same previous generation
  twice, and never read a board python-chess is temporarily modifying.
- Session and commentator are injected through Depends() so tests can swap
  them with app.dependency_overrides.
- Rules belong to python-chess. Any ValueError it raises (illegal move, bad
  FEN, bad square name) becomes HTTP 400.
"""

import logging
from typing import Annotated

import chess
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracking.constants import SIDE_TAGS
from tracking.session import GameSession, SessionState
from web.commentary import Commentator, CommentaryUnavailable

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

app = FastAPI(title="Chess Piece Tracker", version="1.0.0")

_session = GameSession()
_commentator = Commentator.from_env()


def get_session() -> GameSession:
    return _session


def get_commentator() -> Commentator:
    return _commentator


SessionDep = Annotated[GameSession, Depends(get_session)]
CommentatorDep = Annotated[Commentator, Depends(get_commentator)]


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    """
    A move chosen on the board.

    Fields:
        from:      Origin square name, e.g. "e2".
        to:        Destination square name, e.g. "e4".
        promotion: Optional promotion piece letter ("q", "r", "b", "n").
                   Omitted on a promoting pawn move means queen.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_square: str = Field(alias="from")
    to: str
    promotion: str | None = None

    @field_validator("promotion")
    @classmethod
    def check_promotion(cls, v: str | None) -> str | None:
        """Accept a single promotion letter in either case."""
        if v is None:
            return None
        v = v.lower()
        if v not in ("q", "r", "b", "n"):
            raise ValueError(f"promotion must be one of q, r, b, n (got {v!r})")
        return v


class PositionRequest(BaseModel):
    fen: str


class PieceModel(BaseModel):
    id: str
    square: str
    type: str
    color: str


class StateResponse(BaseModel):
    """
    Full session state after a request.

    Fields:
        fen:       Current position.
        turn:      Side to move, "w" or "b".
        status:    "playing", "checkmate", "stalemate" or "draw".
        in_check:  Whether the side to move is in check.
        winner:    "w" or "b" after checkmate, otherwise null.
        last_move: UCI of the move that produced this position, or null.
        pieces:    Tracked pieces sorted by square.
    """

    fen: str
    turn: str
    status: str
    in_check: bool
    winner: str | None
    last_move: str | None
    pieces: list[PieceModel]


class TargetsResponse(BaseModel):
    square: str
    targets: list[str]


class HintResponse(BaseModel):
    hint: str


def _state(view: SessionState) -> StateResponse:
    return StateResponse(
        fen=view.fen,
        turn=SIDE_TAGS[view.turn],
        status=view.status.value,
        in_check=view.in_check,
        winner=SIDE_TAGS[view.winner] if view.winner is not None else None,
        last_move=view.last_move.uci() if view.last_move is not None else None,
        pieces=[PieceModel(**p.to_dict()) for p in view.pieces],
    )


def _parse_square(name: str) -> chess.Square:
    try:
        return chess.parse_square(name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid square: {name!r}") from exc


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------
# Transitions hold the session lock through the state() read, so a response
# always describes the generation its own request produced.


@app.get("/api/state", response_model=StateResponse)
def api_state(session: SessionDep) -> StateResponse:
    """Return the current position and tracked pieces."""
    return _state(session.state())


@app.get("/api/moves/{square}", response_model=TargetsResponse)
def api_moves(square: str, session: SessionDep) -> TargetsResponse:
    """
    List destination squares for the piece on `square`.

    Empty when the square is empty or holds a piece of the side not to move.

    Raises:
        HTTPException 400: Malformed square name.
    """
    targets = session.legal_targets(_parse_square(square))
    return TargetsResponse(square=square, targets=[chess.square_name(t) for t in targets])


@app.post("/api/move", response_model=StateResponse)
def api_move(request: MoveRequest, session: SessionDep) -> StateResponse:
    """
    Apply a move and return the new state.

    Raises:
        HTTPException 400: Malformed square, illegal move, or game over.
    """
    from_square = _parse_square(request.from_square)
    to_square = _parse_square(request.to)
    promotion = chess.PIECE_SYMBOLS.index(request.promotion) if request.promotion else None

    with session.locked():
        try:
            session.push(from_square, to_square, promotion)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        view = session.state()

    return _state(view)


@app.post("/api/position", response_model=StateResponse)
def api_position(request: PositionRequest, session: SessionDep) -> StateResponse:
    """
    Jump to an arbitrary position.

    Raises:
        HTTPException 400: Malformed FEN.
    """
    with session.locked():
        try:
            session.set_fen(request.fen)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc
        view = session.state()

    return _state(view)


@app.post("/api/reset", response_model=StateResponse)
def api_reset(session: SessionDep) -> StateResponse:
    """Start a new game."""
    with session.locked():
        session.reset()
        view = session.state()

    return _state(view)


@app.post("/api/hint", response_model=HintResponse)
def api_hint(session: SessionDep, commentator: CommentatorDep) -> HintResponse:
    """
    Ask the commentary service for a suggestion in the current position.

    The network call runs outside the session lock.

    Raises:
        HTTPException 503: No commentary service is configured.
    """
    view = session.state()
    try:
        hint = commentator.advise(view.fen, view.turn)
    except CommentaryUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return HintResponse(hint=hint)
