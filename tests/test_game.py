import pytest

from engine.board import Board, BoardFormatError, Color, GameStatus, Position
from engine.game import Game, IllegalMoveError
from engine.rules import MoveResult


def P(row, col):
    return Position(row, col)


def test_white_moves_first():
    game = Game()

    with pytest.raises(IllegalMoveError):
        game.play(P(2, 1), P(3, 0))

    game.play(P(5, 2), P(4, 3))
    assert game.current_player is Color.BLACK


def test_illegal_destination_and_empty_square():
    game = Game()

    with pytest.raises(IllegalMoveError):
        game.play(P(5, 2), P(3, 4))
    with pytest.raises(IllegalMoveError):
        game.play(P(4, 1), P(3, 2))
    assert game.history == []


def test_chain_piece_must_continue(make_board):
    game = Game()
    game.load(make_board((6, 1, "white"), (5, 2, "black"), (3, 4, "black"), (6, 5, "white"), (0, 1, "black")))

    game.play(P(6, 1), P(4, 3))

    assert game.in_chain
    assert game.valid_moves(P(6, 5)) == []
    assert game.valid_moves(P(4, 3)) == [P(2, 5)]
    with pytest.raises(IllegalMoveError):
        game.play(P(6, 5), P(5, 4))

    game.play(P(4, 3), P(2, 5))
    assert not game.in_chain
    assert game.current_player is Color.BLACK


def test_history_records_timestamps_and_captures(make_board, clock_factory):
    clock = clock_factory(start=1_700_000_000.0, step=1.5)
    game = Game(clock=clock)
    game.load(make_board((4, 3, "white"), (3, 2, "black"), (0, 1, "black")))

    game.play(P(4, 3), P(2, 1))

    move = game.history[-1]
    assert move.timestamp == 1_700_000_000_000
    assert [p.id for p in move.captured] == ["black-3-2"]
    assert game.snapshot()["last_move"]["captured_pieces"][0]["id"] == "black-3-2"


def test_game_over_rejects_moves(make_board):
    game = Game()
    game.load(make_board((4, 3, "white"), (3, 2, "black")))

    game.play(P(4, 3), P(2, 1))

    assert game.is_over
    assert game.winner is Color.WHITE
    assert game.state.status is GameStatus.WHITE_WINS
    with pytest.raises(IllegalMoveError):
        game.play(P(2, 1), P(1, 0))
    assert game.play_ai("easy") == (None, None)


def test_load_detects_finished_position(make_board):
    game = Game()
    game.load(make_board((6, 1, "black"), (7, 0, "white"), (7, 2, "white")), Color.BLACK)
    assert game.winner is Color.WHITE


def test_reset_restores_start():
    game = Game()
    game.play(P(5, 2), P(4, 3))

    game.reset()

    assert game.board == Board.initial()
    assert game.history == []
    assert game.current_player is Color.WHITE


def test_play_ai_moves_for_side_to_move(rng):
    game = Game()
    game.play(P(5, 2), P(4, 3))

    ai_move, result = game.play_ai("medium", time_budget_ms=200, rng=rng)

    assert result.success
    assert game.board.piece_at(ai_move.to_pos).color is Color.BLACK
    assert game.current_player is Color.WHITE
    assert len(game.history) == 2


def test_snapshot_shape():
    snap = Game().snapshot()

    assert set(snap) == {
        "board", "current_player", "game_status", "selected_piece",
        "valid_moves", "captured_pieces", "last_move", "move_count",
    }
    assert snap["current_player"] == "white"
    assert snap["game_status"] == "playing"
    assert snap["move_count"] == 0
    assert snap["last_move"] is None


def test_from_snapshot_resumes_position():
    game = Game()
    game.play(P(5, 2), P(4, 3))

    resumed = Game.from_snapshot(game.snapshot())

    assert resumed.board == game.board
    assert resumed.current_player is Color.BLACK
    assert resumed.history == []


def test_from_snapshot_rejects_bad_player():
    data = Game().snapshot()
    data["current_player"] = "red"
    with pytest.raises(BoardFormatError):
        Game.from_snapshot(data)


def test_rules_disagreeing_with_validation_raises(monkeypatch):
    game = Game()
    monkeypatch.setattr("engine.game.make_move", lambda board, f, t: MoveResult(success=False))

    with pytest.raises(RuntimeError):
        game.play(P(5, 2), P(4, 3))
    assert game.history == []
