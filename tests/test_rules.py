import pytest

from engine.board import Board, Color, GameState, GameStatus, PieceType, Position, Step
from engine.rules import (
    apply_step,
    check_game_status,
    get_all_captures,
    get_capture_targets,
    get_valid_moves,
    legal_steps,
    make_move,
)


def P(row, col):
    return Position(row, col)


# ---------------------------------------------------------------------------
# Move generation
# ---------------------------------------------------------------------------


def test_opening_has_no_captures_and_only_forward_steps():
    board = Board.initial()

    assert get_all_captures(board, Color.BLACK) == []
    for p in board.pieces(Color.BLACK):
        for dest in get_valid_moves(board, p):
            assert dest.row == p.position.row + 1
            assert abs(dest.col - p.position.col) == 1


def test_front_row_moves_on_opening():
    board = Board.initial()
    assert get_valid_moves(board, board.piece_at(P(5, 2))) == [P(4, 1), P(4, 3)]
    # Back rows are blocked by their own pieces.
    assert get_valid_moves(board, board.piece_at(P(6, 1))) == []


def test_regular_capture_removes_jumped_piece(make_board):
    board = make_board((4, 3, "white"), (3, 2, "black"))
    white = board.piece_at(P(4, 3))

    assert P(2, 1) in get_valid_moves(board, white)

    result = make_move(board, P(4, 3), P(2, 1))
    new_board = result.new_state.board
    assert result.success
    assert new_board.piece_at(P(3, 2)) is None
    assert new_board.piece_at(P(2, 1)).id == white.id
    assert [p.position for p in result.captured_pieces] == [P(3, 2)]


def test_regular_piece_captures_backwards(make_board):
    board = make_board((4, 3, "white"), (5, 4, "black"))
    assert get_valid_moves(board, board.piece_at(P(4, 3))) == [P(6, 5)]


def test_regular_piece_never_steps_backwards(make_board):
    board = make_board((4, 3, "white"))
    assert get_valid_moves(board, board.piece_at(P(4, 3))) == [P(3, 2), P(3, 4)]


def test_mandatory_capture_restricts_other_pieces(make_board):
    board = make_board((4, 3, "white"), (3, 2, "black"), (6, 1, "white"))

    assert get_valid_moves(board, board.piece_at(P(6, 1))) == []
    assert get_valid_moves(board, board.piece_at(P(4, 3))) == [P(2, 1)]
    assert all(step.is_capture for step in legal_steps(board, Color.WHITE))


def test_capture_blocked_by_occupied_landing(make_board):
    board = make_board((4, 3, "white"), (3, 2, "black"), (2, 1, "black"))
    assert get_all_captures(board, Color.WHITE) == []


def test_flying_king_lands_anywhere_beyond_the_jumped_piece(make_board):
    # Mirror of the a-file corner case on the dark long diagonal.
    board = make_board((0, 7, "white", "king"), (3, 4, "black"))
    king = board.piece_at(P(0, 7))

    assert get_valid_moves(board, king) == [P(4, 3), P(5, 2), P(6, 1), P(7, 0)]
    assert get_capture_targets(board, king) == [P(3, 4)]


def test_king_landing_stops_at_next_piece(make_board):
    board = make_board((0, 7, "white", "king"), (3, 4, "black"), (6, 1, "white"))
    assert get_valid_moves(board, board.piece_at(P(0, 7))) == [P(4, 3), P(5, 2)]


def test_king_cannot_jump_two_pieces_or_a_friend(make_board):
    two_enemies = make_board((0, 7, "white", "king"), (2, 5, "black"), (3, 4, "black"))
    friend = make_board((0, 7, "white", "king"), (1, 6, "white"), (3, 4, "black"))

    assert get_all_captures(two_enemies, Color.WHITE) == []
    assert get_all_captures(friend, Color.WHITE) == []


def test_king_quiet_moves_fly_until_blocked(make_board):
    board = make_board((4, 3, "black", "king"), (6, 1, "black"))
    moves = get_valid_moves(board, board.piece_at(P(4, 3)))

    assert P(5, 2) in moves
    assert P(6, 1) not in moves and P(7, 0) not in moves
    assert {P(0, 7), P(7, 6), P(1, 0)} <= set(moves)


# ---------------------------------------------------------------------------
# make_move
# ---------------------------------------------------------------------------


def test_make_move_rejects_empty_source_and_light_square():
    board = Board.initial()

    assert not make_move(board, P(4, 1), P(3, 2)).success
    failed = make_move(board, P(5, 2), P(4, 2))
    assert not failed.success
    assert failed.new_state is None
    assert failed.captured_pieces == ()


def test_make_move_does_not_touch_input_board():
    board = Board.initial()
    before = board.to_rows()

    make_move(board, P(5, 2), P(4, 3))
    get_valid_moves(board, board.piece_at(P(5, 2)))

    assert board.to_rows() == before


def test_quiet_move_switches_turn():
    result = make_move(Board.initial(), P(5, 2), P(4, 3))

    assert result.success and not result.has_more_captures
    assert result.new_state.current_player is Color.BLACK
    assert result.new_state.status is GameStatus.PLAYING
    assert result.new_state.selected_piece is None


def test_capture_chain_keeps_turn_with_same_piece(make_board):
    board = make_board((6, 1, "white"), (5, 2, "black"), (3, 4, "black"), (0, 1, "black"))

    first = make_move(board, P(6, 1), P(4, 3))
    state = first.new_state
    assert first.has_more_captures
    assert state.current_player is Color.WHITE
    assert state.selected_piece.id == "white-6-1"
    assert state.valid_moves == (P(2, 5),)

    second = make_move(state.board, P(4, 3), P(2, 5))
    assert not second.has_more_captures
    assert second.new_state.current_player is Color.BLACK
    assert second.new_state.board.count(Color.BLACK) == 1


def test_promotion_on_far_row(make_board):
    white = make_move(make_board((1, 2, "white"), (5, 0, "black")), P(1, 2), P(0, 1))
    black = make_move(make_board((6, 3, "black"), (2, 1, "white")), P(6, 3), P(7, 4))

    assert white.new_state.board.piece_at(P(0, 1)).type is PieceType.KING
    assert black.new_state.board.piece_at(P(7, 4)).type is PieceType.KING
    assert white.new_state.board.piece_at(P(0, 1)).id == "white-1-2"


def test_king_stays_king_away_from_promotion_row(make_board):
    board = make_board((0, 1, "white", "king"), (7, 0, "black"))
    result = make_move(board, P(0, 1), P(3, 4))
    assert result.new_state.board.piece_at(P(3, 4)).is_king


def test_promotion_happens_before_chain_check(make_board):
    # After crowning on (0, 1) only a flying king can reach (4, 5).
    board = make_board((2, 3, "white"), (1, 2, "black"), (4, 5, "black"))

    result = make_move(board, P(2, 3), P(0, 1))

    assert result.has_more_captures
    assert result.new_state.selected_piece.is_king
    assert result.new_state.valid_moves == (P(5, 6), P(6, 7))


def test_king_capture_removes_jumped_piece(make_board):
    board = make_board((0, 7, "white", "king"), (3, 4, "black"), (7, 6, "black"))
    result = make_move(board, P(0, 7), P(5, 2))

    assert result.new_state.board.piece_at(P(3, 4)) is None
    assert [p.id for p in result.captured_pieces] == ["black-3-4"]


def test_quiet_king_move_never_keeps_the_turn(make_board):
    # From (4, 3) the king could take (2, 5), but the move itself took nothing.
    board = make_board((7, 0, "white", "king"), (2, 5, "black"), (1, 0, "black"))
    result = make_move(board, P(7, 0), P(4, 3))

    assert result.captured_pieces == ()
    assert not result.has_more_captures
    assert result.new_state.current_player is Color.BLACK


def test_last_capture_wins_the_game(make_board):
    board = make_board((4, 3, "white"), (3, 2, "black"))
    result = make_move(board, P(4, 3), P(2, 1))
    assert result.new_state.status is GameStatus.WHITE_WINS


# ---------------------------------------------------------------------------
# Game status
# ---------------------------------------------------------------------------


def test_no_pieces_loses(make_board):
    board = make_board((4, 3, "white"))
    assert check_game_status(board, Color.BLACK) is GameStatus.WHITE_WINS
    assert check_game_status(board, Color.WHITE) is GameStatus.PLAYING


def test_blockade_loses(make_board):
    board = make_board((6, 1, "black"), (7, 0, "white"), (7, 2, "white"))
    assert check_game_status(board, Color.BLACK) is GameStatus.WHITE_WINS


def test_blocked_pieces_with_a_capture_still_play(make_board):
    board = make_board((6, 1, "black"), (7, 0, "white"), (7, 2, "white"), (3, 4, "black"), (4, 5, "white"))
    assert check_game_status(board, Color.BLACK) is GameStatus.PLAYING


def test_starting_position_is_playing():
    assert check_game_status(Board.initial(), Color.WHITE) is GameStatus.PLAYING


def test_apply_step_rejects_step_from_empty_square():
    state = GameState(board=Board.initial())
    with pytest.raises(RuntimeError):
        apply_step(state, Step(P(4, 3), P(3, 2), False))
