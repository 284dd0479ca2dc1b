"""
Static evaluation: material plus a table of difficulty-gated scoring terms.

A search needs a number for positions it does not expand further. This
module produces one by summing independent scoring terms. Each term is a
plain function of the board returning "black minus white", so it can be
tested on a fixed board without running a search.

    score = material + multiplier * endgame_factor * sum(strategic terms)

- material always applies and dominates (man = 100, king = 400).
- Strategic terms are skipped entirely on the easy tier.
- Terms flagged `hard_only` (tempo, sacrifice, endgame) apply on hard only.
- `multiplier` is the tier's strategic multiplier (1.5 medium, 2.0 hard);
  `endgame_factor` is 1.5 once ENDGAME_PIECE_LIMIT or fewer pieces remain.

The score is always from black's point of view: positive means black is
ahead. The search flips the sign when it plays white.
"""

from dataclasses import dataclass
from typing import Callable

from engine.board import Board, Color, Piece, Position
from engine.constants import (
    ADVANCE_WEIGHT,
    BOARD_SIZE,
    CAPTURE_BONUS,
    CENTER_WEIGHT,
    DIAGONAL_WEIGHT,
    DifficultyProfile,
    EDGE_PENALTY_KING,
    EDGE_PENALTY_REGULAR,
    ENDGAME_KING_CENTER_WEIGHT,
    ENDGAME_MATERIAL_SHARE,
    ENDGAME_MULTIPLIER,
    ENDGAME_PIECE_LIMIT,
    KING_CENTER_WEIGHT,
    KING_VALUE,
    MOBILITY_WEIGHT,
    PIECE_VALUE,
    SACRIFICE_BONUS,
    TEMPO_WEIGHT,
    THREAT_PENALTY_DIVISOR,
    THREAT_REWARD_DIVISOR,
)
from engine.rules import get_all_captures, get_capture_targets, legal_steps, make_move

_CENTER = (BOARD_SIZE - 1) / 2
_MAX_CENTER_DISTANCE = BOARD_SIZE - 1


def piece_value(piece: Piece) -> int:
    return KING_VALUE if piece.is_king else PIECE_VALUE


def _centrality(pos: Position) -> float:
    """7 minus the Manhattan distance to the board centre (0..6)."""
    return _MAX_CENTER_DISTANCE - (abs(_CENTER - pos.row) + abs(_CENTER - pos.col))


def _black_minus_white(board: Board, side_score: Callable[[Board, Color], float]) -> float:
    return side_score(board, Color.BLACK) - side_score(board, Color.WHITE)


# ---------------------------------------------------------------------------
# Scoring terms
# ---------------------------------------------------------------------------


def material(board: Board) -> float:
    score = 0
    for piece in board:
        value = piece_value(piece)
        score += value if piece.color is Color.BLACK else -value
    return score


def _position_side(board: Board, color: Color) -> float:
    bonus = 0.0
    for piece in board.pieces(color):
        pos = piece.position
        bonus += _centrality(pos) * CENTER_WEIGHT
        if pos.row in (0, BOARD_SIZE - 1) or pos.col in (0, BOARD_SIZE - 1):
            bonus -= EDGE_PENALTY_KING if piece.is_king else EDGE_PENALTY_REGULAR
        if piece.is_king:
            bonus += _centrality(pos) * KING_CENTER_WEIGHT
        else:
            advanced = pos.row if color is Color.BLACK else BOARD_SIZE - 1 - pos.row
            # Grows faster the closer the piece gets to the promotion row.
            bonus += ADVANCE_WEIGHT * advanced + advanced * advanced // 2
    return bonus


def position(board: Board) -> float:
    """Centrality, edge penalty, advancement of men, king centrality."""
    return _black_minus_white(board, _position_side)


def mobility(board: Board) -> float:
    return _black_minus_white(
        board, lambda b, color: MOBILITY_WEIGHT * len(legal_steps(b, color))
    )


def captures(board: Board) -> float:
    return _black_minus_white(
        board, lambda b, color: CAPTURE_BONUS * len(get_all_captures(b, color))
    )


def _attacked_squares(board: Board, attacker: Color) -> set[Position]:
    squares: set[Position] = set()
    for piece in board.pieces(attacker):
        squares.update(get_capture_targets(board, piece))
    return squares


def _threats_side(board: Board, color: Color) -> float:
    hanging = _attacked_squares(board, color.opponent)
    attacked = _attacked_squares(board, color)
    score = 0.0
    for pos in hanging:
        score -= piece_value(board.piece_at(pos)) // THREAT_PENALTY_DIVISOR
    for pos in attacked:
        score += piece_value(board.piece_at(pos)) // THREAT_REWARD_DIVISOR
    return score


def threats(board: Board) -> float:
    """Penalise own pieces the opponent can take; reward pieces we can take."""
    return _black_minus_white(board, _threats_side)


def _on_main_diagonal(pos: Position) -> int:
    """How many of the main diagonals pass through `pos` (0, 1 or 2)."""
    # Long road: the only 8-square dark diagonal. Double corner: the two
    # 7-square diagonals next to the light main diagonal.
    on_long_road = pos.row + pos.col == BOARD_SIZE - 1
    on_double_corner = abs(pos.row - pos.col) == 1
    return int(on_long_road) + int(on_double_corner)


def _diagonal_side(board: Board, color: Color) -> float:
    score = 0.0
    for piece in board.pieces(color):
        weight = 2 if piece.is_king else 1
        score += DIAGONAL_WEIGHT * weight * _on_main_diagonal(piece.position)
    return score


def diagonal_control(board: Board) -> float:
    return _black_minus_white(board, _diagonal_side)


def tempo(board: Board) -> float:
    """Difference in the number of available moves."""
    return TEMPO_WEIGHT * (len(legal_steps(board, Color.BLACK)) - len(legal_steps(board, Color.WHITE)))


def _sacrifice_side(board: Board, color: Color) -> float:
    bonus = 0.0
    for step in legal_steps(board, color):
        if not step.is_capture:
            # legal_steps returns captures only when any exist.
            break
        if make_move(board, step.from_pos, step.to_pos).has_more_captures:
            bonus += SACRIFICE_BONUS
    return bonus


def sacrifice(board: Board) -> float:
    """Reward captures that open a multi-capture chain."""
    return _black_minus_white(board, _sacrifice_side)


def is_endgame(board: Board) -> bool:
    return board.total_pieces <= ENDGAME_PIECE_LIMIT


def endgame(board: Board) -> float:
    if not is_endgame(board):
        return 0.0
    score = ENDGAME_MATERIAL_SHARE * material(board)
    for piece in board:
        if piece.is_king:
            bonus = _centrality(piece.position) * ENDGAME_KING_CENTER_WEIGHT
            score += bonus if piece.color is Color.BLACK else -bonus
    return score


@dataclass(frozen=True)
class ScoringTerm:
    name: str
    fn: Callable[[Board], float]
    hard_only: bool = False


SCORING_TERMS: tuple[ScoringTerm, ...] = (
    ScoringTerm("position", position),
    ScoringTerm("mobility", mobility),
    ScoringTerm("captures", captures),
    ScoringTerm("threats", threats),
    ScoringTerm("diagonal_control", diagonal_control),
    ScoringTerm("tempo", tempo, hard_only=True),
    ScoringTerm("sacrifice", sacrifice, hard_only=True),
    ScoringTerm("endgame", endgame, hard_only=True),
)


def active_terms(profile: DifficultyProfile) -> list[ScoringTerm]:
    if not profile.strategic:
        return []
    return [term for term in SCORING_TERMS if profile.advanced_terms or not term.hard_only]


def strategic_factor(board: Board, profile: DifficultyProfile) -> float:
    factor = profile.strategic_multiplier
    if is_endgame(board):
        factor *= ENDGAME_MULTIPLIER
    return factor


def evaluate_terms(board: Board, profile: DifficultyProfile) -> dict[str, float]:
    """Per-term breakdown (unscaled), material first. Used for diagnostics."""
    breakdown = {"material": material(board)}
    for term in active_terms(profile):
        breakdown[term.name] = term.fn(board)
    return breakdown


def evaluate(board: Board, profile: DifficultyProfile) -> float:
    """
    Score `board` from black's point of view.

    Args:
        board:   Position to score. Not modified.
        profile: Difficulty tier; decides which terms apply and how strongly.

    Returns:
        Points, positive when black is ahead. Material dominates: a single
        man outweighs most positional differences.

    Example:
        >>> from engine.constants import DIFFICULTY_PROFILES
        >>> evaluate(Board.initial(), DIFFICULTY_PROFILES["easy"])
        0
    """
    score = material(board)
    terms = active_terms(profile)
    if not terms:
        return score
    strategic = sum(term.fn(board) for term in terms)
    return score + strategic_factor(board, profile) * strategic
