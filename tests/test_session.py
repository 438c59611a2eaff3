import threading

import chess
import pytest

from tracking.session import GameOverError, GameSession, GameStatus, SessionState

SCHOLAR = "e2e4 e7e5 d1h5 b8c6 f1c4 g8f6 h5f7"


def _id_at(session, name):
    square = chess.parse_square(name)
    return next(p.id for p in session.pieces if p.square == square)


def _ids(session):
    return {p.id for p in session.pieces}


def test_new_session_tracks_starting_position(mint):
    session = GameSession(mint=mint)

    assert len(session.pieces) == 32
    assert len(_ids(session)) == 32
    assert session.status is GameStatus.PLAYING
    assert session.turn == chess.WHITE
    assert session.last_move is None


def test_push_keeps_ids(mint):
    session = GameSession(mint=mint)
    before = _ids(session)
    pawn = _id_at(session, "e2")

    move = session.push(chess.E2, chess.E4)

    assert move == chess.Move.from_uci("e2e4")
    assert session.last_move == move
    assert _ids(session) == before
    assert _id_at(session, "e4") == pawn


def test_illegal_move_leaves_session_unchanged(mint):
    session = GameSession(mint=mint)
    pieces = list(session.pieces)
    fen = session.fen

    with pytest.raises(chess.IllegalMoveError):
        session.push(chess.E2, chess.E5)

    assert session.pieces == pieces
    assert session.fen == fen


def test_push_uci_rejects_garbage():
    session = GameSession()
    with pytest.raises(ValueError):
        session.push_uci("hello")


def test_promotion_defaults_to_queen(mint):
    session = GameSession("8/P6k/8/8/8/8/8/K7 w - - 0 1", mint=mint)
    pawn = _id_at(session, "a7")

    move = session.push(chess.A7, chess.A8)

    assert move.promotion == chess.QUEEN
    assert session.board.piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)
    assert _id_at(session, "a8") != pawn
    assert pawn not in _ids(session)


def test_underpromotion(mint):
    session = GameSession("8/P6k/8/8/8/8/8/K7 w - - 0 1", mint=mint)
    session.push_uci("a7a8n")

    assert session.board.piece_at(chess.A8) == chess.Piece(chess.KNIGHT, chess.WHITE)


def test_castling_keeps_rook_id(mint):
    session = GameSession("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1", mint=mint)
    king, rook = _id_at(session, "e1"), _id_at(session, "h1")

    session.push_uci("e1g1")

    assert _id_at(session, "g1") == king
    assert _id_at(session, "f1") == rook


def test_scholar_mate(mint):
    session = GameSession(mint=mint)
    for uci in SCHOLAR.split():
        session.push_uci(uci)

    assert session.status is GameStatus.CHECKMATE
    assert session.winner == chess.WHITE
    assert session.in_check
    with pytest.raises(GameOverError):
        session.push_uci("a7a6")


def test_stalemate_is_reported_before_draw():
    session = GameSession("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")

    assert session.status is GameStatus.STALEMATE
    assert session.winner is None


def test_insufficient_material_is_a_draw():
    session = GameSession("8/8/8/8/8/8/8/K6k w - - 0 1")

    assert session.status is GameStatus.DRAW
    with pytest.raises(GameOverError):
        session.push_uci("a1a2")


def test_legal_targets():
    session = GameSession()

    assert session.legal_targets(chess.E2) == [chess.E3, chess.E4]
    assert session.legal_targets(chess.G1) == [chess.F3, chess.H3]
    assert session.legal_targets(chess.E7) == []  # not Black's turn
    assert session.legal_targets(chess.E4) == []  # empty


def test_legal_targets_lists_promotion_square_once():
    session = GameSession("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    assert session.legal_targets(chess.A7) == [chess.A8]


def test_set_fen_matches_without_hint(mint):
    session = GameSession(mint=mint)
    before = _ids(session)
    pawn = _id_at(session, "e2")

    session.set_fen("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1")

    assert session.last_move is None
    assert _ids(session) == before
    assert _id_at(session, "e4") == pawn


def test_set_fen_rejects_garbage(mint):
    session = GameSession(mint=mint)
    pieces = list(session.pieces)

    with pytest.raises(ValueError):
        session.set_fen("not a fen")

    assert session.pieces == pieces


def test_reset_issues_fresh_ids(mint):
    session = GameSession(mint=mint)
    session.push_uci("e2e4")
    before = _ids(session)

    session.reset()

    assert session.fen == chess.STARTING_FEN
    assert session.last_move is None
    assert len(session.pieces) == 32
    assert before.isdisjoint(_ids(session))


def test_state_is_one_consistent_view(mint):
    session = GameSession(mint=mint)
    for uci in SCHOLAR.split():
        session.push_uci(uci)

    view = session.state()

    assert isinstance(view, SessionState)
    assert view.fen == session.fen
    assert view.status is GameStatus.CHECKMATE
    assert view.winner == chess.WHITE
    assert view.in_check
    assert view.last_move == chess.Move.from_uci("h5f7")
    assert view.pieces == tuple(session.pieces)


def test_concurrent_reads_do_not_disturb_moves():
    # Readers ask for the game status, which makes python-chess test
    # repetition claims by pushing and popping moves on the session board.
    session = GameSession()
    line = "e2e4 e7e5 g1f3 b8c6 f1c4 f8c5 e1g1 g8f6 d2d3 d7d6".split()
    errors = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                view = session.state()
                occupancy = {p.square: chess.Piece(p.piece_type, p.color) for p in view.pieces}
                assert occupancy == chess.Board(view.fen).piece_map()
                session.status
                session.winner
            except Exception as exc:
                errors.append(exc)

    readers = [threading.Thread(target=reader) for _ in range(3)]
    for t in readers:
        t.start()
    try:
        for _ in range(10):
            session.reset()
            for uci in line:
                session.push_uci(uci)
            with session.locked():
                assert [m.uci() for m in session.board.move_stack] == line
    finally:
        done.set()
        for t in readers:
            t.join()

    assert errors == []
    assert session.status is GameStatus.PLAYING
