import pytest

from engine.board import Board
from engine.constants import DIFFICULTY_PROFILES, EDGE_PENALTY_KING, EDGE_PENALTY_REGULAR
from engine.evaluate import (
    SCORING_TERMS,
    active_terms,
    diagonal_control,
    endgame,
    evaluate,
    evaluate_terms,
    material,
    position,
    sacrifice,
    strategic_factor,
    tempo,
    threats,
)

EASY = DIFFICULTY_PROFILES["easy"]
MEDIUM = DIFFICULTY_PROFILES["medium"]
HARD = DIFFICULTY_PROFILES["hard"]


@pytest.mark.parametrize("profile", [EASY, MEDIUM, HARD])
def test_starting_position_is_balanced(profile):
    board = Board.initial()
    assert evaluate(board, profile) == 0
    for term in SCORING_TERMS:
        assert term.fn(board) == 0, term.name


def test_material_is_black_positive(make_board):
    board = make_board((3, 4, "black", "king"), (4, 5, "white"))
    assert material(board) == 300


def test_easy_ignores_placement(make_board):
    back = make_board((1, 2, "black"), (6, 1, "white"))
    centre = make_board((3, 4, "black"), (6, 1, "white"))

    assert evaluate(back, EASY) == evaluate(centre, EASY) == 0
    assert evaluate(back, MEDIUM) != evaluate(centre, MEDIUM)


def test_edge_penalty_hits_men_harder(make_board):
    assert EDGE_PENALTY_REGULAR > EDGE_PENALTY_KING
    # centrality 2, edge -8, advancement 3
    assert position(make_board((1, 0, "black"))) == -3
    # centrality 2, edge -4, king centrality 3
    assert position(make_board((1, 0, "black", "king"))) == 1


def test_advanced_men_score_higher(make_board):
    assert position(make_board((5, 2, "black"))) > position(make_board((2, 1, "black")))
    assert position(make_board((2, 1, "white"))) < 0


def test_threats(make_board):
    # Black can take (4, 3); white cannot take back because (2, 1) is covered.
    board = make_board((3, 2, "black"), (2, 1, "black"), (4, 3, "white"))
    assert threats(board) == 100 // 6 + 100 // 3


def test_diagonal_control_counts_kings_double(make_board):
    assert diagonal_control(make_board((2, 1, "black"))) == 3
    assert diagonal_control(make_board((3, 4, "black"))) == 6
    assert diagonal_control(make_board((3, 4, "black", "king"))) == 12
    assert diagonal_control(make_board((3, 4, "white", "king"))) == -12


def test_tempo_and_endgame(make_board):
    board = make_board((3, 4, "black", "king"), (6, 7, "white"))

    assert tempo(board) == 12 - 1
    assert endgame(board) == 0.25 * 300 + 6 * 4
    assert endgame(Board.initial()) == 0


def test_sacrifice_rewards_multi_capture(make_board):
    board = make_board((2, 1, "black"), (3, 2, "white"), (5, 4, "white"))
    assert sacrifice(board) == 40


def test_active_terms_by_tier():
    assert active_terms(EASY) == []
    assert [t.name for t in active_terms(MEDIUM)] == [
        "position", "mobility", "captures", "threats", "diagonal_control",
    ]
    assert len(active_terms(HARD)) == len(SCORING_TERMS)


def test_strategic_factor_grows_in_endgame(make_board):
    small = make_board((3, 4, "black", "king"), (6, 7, "white"))

    assert strategic_factor(Board.initial(), MEDIUM) == 1.5
    assert strategic_factor(small, MEDIUM) == pytest.approx(2.25)
    assert strategic_factor(small, HARD) == pytest.approx(3.0)


def test_evaluate_is_material_plus_scaled_terms(make_board):
    board = make_board((3, 4, "black", "king"), (6, 7, "white"), (5, 0, "white"))
    breakdown = evaluate_terms(board, HARD)
    material_score = breakdown.pop("material")

    expected = material_score + strategic_factor(board, HARD) * sum(breakdown.values())
    assert evaluate(board, HARD) == pytest.approx(expected)
