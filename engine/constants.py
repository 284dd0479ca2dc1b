"""
Engine constants: piece values, scores, difficulty tiers and search parameters.

All numeric constants used throughout the engine are defined here so that
the rules, evaluation and search modules never introduce their own magic
numbers. Tuning the computer opponent means editing this file only.

Values are expressed in "men": 1 regular piece = 100 points. A king is worth
four men, which matches the usual practical weighting in Russian draughts
where a flying king dominates long diagonals.
"""

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Board geometry
# ---------------------------------------------------------------------------

BOARD_SIZE: int = 8

# Rows that hold pieces at the start of a game.
BLACK_START_ROWS: tuple[int, ...] = (0, 1, 2)
WHITE_START_ROWS: tuple[int, ...] = (5, 6, 7)

DIAGONALS: tuple[tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))

# ---------------------------------------------------------------------------
# Piece values
# ---------------------------------------------------------------------------

PIECE_VALUE: int = 100
KING_VALUE: int = 400

# ---------------------------------------------------------------------------
# Special scores
# ---------------------------------------------------------------------------
# WIN_SCORE dwarfs any heuristic score. The remaining depth is added on top
# so a faster forced win outranks a slower one.

WIN_SCORE: int = 100_000

# A forced capture sequence worth more than this is played without running
# the full search.
FORCED_CAPTURE_THRESHOLD: int = 500

# ---------------------------------------------------------------------------
# Evaluation weights
# ---------------------------------------------------------------------------

CENTER_WEIGHT: int = 2
EDGE_PENALTY_REGULAR: int = 8
EDGE_PENALTY_KING: int = 4
ADVANCE_WEIGHT: int = 3
KING_CENTER_WEIGHT: int = 3
MOBILITY_WEIGHT: int = 2
CAPTURE_BONUS: int = 50
THREAT_PENALTY_DIVISOR: int = 3
THREAT_REWARD_DIVISOR: int = 6
DIAGONAL_WEIGHT: int = 3
TEMPO_WEIGHT: int = 1
SACRIFICE_BONUS: int = 40
ENDGAME_MATERIAL_SHARE: float = 0.25
ENDGAME_KING_CENTER_WEIGHT: int = 4

# Endgame starts when this many pieces or fewer remain on the board.
ENDGAME_PIECE_LIMIT: int = 8
ENDGAME_MULTIPLIER: float = 1.5

# ---------------------------------------------------------------------------
# Search parameters
# ---------------------------------------------------------------------------

# Iterative deepening starts at this depth and grows by DEPTH_STEP so every
# iteration ends on the same side's reply.
START_DEPTH: int = 2
DEPTH_STEP: int = 2

# No new iteration is started once this share of the budget is spent.
ITERATION_TIME_FRACTION: float = 0.8

# Easy tier: chance of skipping the search and the size of the pool it
# picks from.
EASY_RANDOM_CHANCE: float = 0.2
EASY_RANDOM_POOL: int = 5


@dataclass(frozen=True)
class DifficultyProfile:
    """Search and evaluation settings for one difficulty tier."""

    name: str
    max_depth: int
    jitter: float
    time_budget_ms: int
    strategic: bool
    strategic_multiplier: float
    advanced_terms: bool


DIFFICULTY_PROFILES: dict[str, DifficultyProfile] = {
    "easy": DifficultyProfile(
        name="easy",
        max_depth=6,
        jitter=40.0,
        time_budget_ms=1_000,
        strategic=False,
        strategic_multiplier=1.0,
        advanced_terms=False,
    ),
    "medium": DifficultyProfile(
        name="medium",
        max_depth=10,
        jitter=2.0,
        time_budget_ms=8_000,
        strategic=True,
        strategic_multiplier=1.5,
        advanced_terms=False,
    ),
    "hard": DifficultyProfile(
        name="hard",
        max_depth=14,
        jitter=0.0,
        time_budget_ms=15_000,
        strategic=True,
        strategic_multiplier=2.0,
        advanced_terms=True,
    ),
}

DEFAULT_DIFFICULTY: str = "medium"

# ---------------------------------------------------------------------------
# Online rooms
# ---------------------------------------------------------------------------

ROOM_TTL_SECONDS: float = 30 * 60
ROOM_CODE_LENGTH: int = 6
