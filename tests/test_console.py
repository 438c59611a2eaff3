from interface.console import ConsoleHandler, run_console_loop
from tracking.session import GameSession


def _lines(out):
    return out.strip().splitlines()


def test_pieces_lists_every_tracked_piece(capsys, mint):
    handler = ConsoleHandler(GameSession(mint=mint))
    handler.dispatch("pieces")

    lines = _lines(capsys.readouterr().out)
    assert len(lines) == 33
    assert lines[0] == "piece id1 a1 R"
    assert lines[-2].endswith(" h8 r")
    assert lines[-1] == "ok"


def test_move_reports_id_turnover(capsys):
    handler = ConsoleHandler()
    for cmd in ("move e2e4", "move d7d5", "move e4d5"):
        handler.dispatch(cmd)

    lines = _lines(capsys.readouterr().out)
    assert lines == [
        "moved e2e4 kept 32 minted 0 retired 0",
        "moved d7d5 kept 32 minted 0 retired 0",
        "moved e4d5 kept 31 minted 0 retired 1",
    ]


def test_rejected_move_goes_to_stderr(capsys):
    handler = ConsoleHandler()
    assert handler.dispatch("move e2e5") is True

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "rejected move e2e5" in captured.err


def test_fen_and_status(capsys):
    handler = ConsoleHandler()
    handler.dispatch("fen 7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    handler.dispatch("status")

    assert _lines(capsys.readouterr().out) == [
        "ok",
        "status stalemate turn b check no",
    ]


def test_unknown_command_is_ignored(capsys):
    assert ConsoleHandler().dispatch("fly") is True
    assert "unknown command" in capsys.readouterr().err


def test_loop_stops_at_quit(capsys):
    run_console_loop(["new\n", "\n", "quit\n", "status\n"])

    assert _lines(capsys.readouterr().out) == ["ok"]


def test_loop_survives_a_failing_handler(capsys, monkeypatch):
    def broken(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(ConsoleHandler, "handle_status", broken)
    run_console_loop(["status\n", "new\n", "quit\n"])

    captured = capsys.readouterr()
    assert _lines(captured.out) == ["ok"]
    assert "unhandled error for command 'status': boom" in captured.err
