"""
Search entry point: minimax with alpha-beta pruning, cheap move ordering,
forced-capture detection and iterative deepening under a time budget.

get_best_move() is the interface the game session, the text protocol and the
web layer depend on. It picks one step for the computer side (black by
default). When that step starts a capture chain the caller asks again with
`continuing` set to the moving piece.

Order of precedence inside get_best_move():

1. No legal step for the computer side: return None.
2. Easy tier, 20% of the time: pick uniformly among the 5 best steps by the
   cheap ordering and return with score 0. Deliberately human-like.
3. Other tiers: pre-order the steps (captures, promotions, forward moves,
   central destinations first) so alpha-beta prunes more.
4. Other tiers: if a capture sequence is worth more than
   FORCED_CAPTURE_THRESHOLD after the opponent's best recapture, play it
   without a full search.
5. Iterative deepening from START_DEPTH in steps of DEPTH_STEP up to the
   tier's depth ceiling. No new iteration starts after
   ITERATION_TIME_FRACTION of the budget; once the full budget is spent every
   remaining node is scored by the static evaluator instead of expanded. An
   iteration cut short that way is discarded if an earlier one completed.
   Root scores get the tier's uniform jitter; the first strictly better
   score wins, so ties go to the earlier step in the ordered list.
6. A side with no legal moves loses; the score is WIN_SCORE plus the
   remaining depth, so faster wins and slower losses are preferred.

Time is read through an injectable clock and cancellation through an optional
threading.Event, so tests can force early cutoffs deterministically. The
search never raises for game conditions.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from engine.board import Board, Color, GameState, GameStatus, Piece, Position, Step
from engine.constants import (
    DEPTH_STEP,
    DIFFICULTY_PROFILES,
    DifficultyProfile,
    EASY_RANDOM_CHANCE,
    EASY_RANDOM_POOL,
    FORCED_CAPTURE_THRESHOLD,
    ITERATION_TIME_FRACTION,
    KING_VALUE,
    PIECE_VALUE,
    START_DEPTH,
    WIN_SCORE,
)
from engine.evaluate import evaluate, piece_value
from engine.rules import apply_step, legal_steps, make_move

_log = logging.getLogger(__name__)

Clock = Callable[[], float]

_PROMOTION_GAIN = KING_VALUE - PIECE_VALUE


@dataclass(frozen=True)
class AIMove:
    """
    The step chosen by the search.

    Attributes:
        from_pos: Square of the moving piece.
        to_pos:   Destination square.
        score:    Score from the computer side's point of view (includes
                  jitter; 0 for the easy tier's random pick).
        depth:    Deepest iteration that completed (0 when no search ran).
        nodes:    Positions visited.
    """

    from_pos: Position
    to_pos: Position
    score: float
    depth: int = 0
    nodes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_pos.to_dict(),
            "to": self.to_pos.to_dict(),
            "score": self.score,
            "depth": self.depth,
            "nodes": self.nodes,
        }


@dataclass
class SearchState:
    """
    Mutable bookkeeping for one get_best_move() call.

    Attributes:
        profile:       Difficulty tier in use.
        color:         The computer side; scores are from its point of view.
        clock:         Returns seconds; only differences are used.
        start_time:    clock() reading when the search began.
        budget_ms:     Wall-clock budget for the whole call.
        stop_event:    Optional external cancel, treated like an exhausted
                       budget.
        node_count:    Positions visited so far.
        timed_out:     Set once the budget is exhausted; from then on nodes
                       are scored statically.
    """

    profile: DifficultyProfile
    color: Color
    clock: Clock = time.monotonic
    start_time: float = 0.0
    budget_ms: float = 0.0
    stop_event: threading.Event | None = None
    node_count: int = 0
    timed_out: bool = False
    sign: int = field(init=False)

    def __post_init__(self) -> None:
        self.sign = 1 if self.color is Color.BLACK else -1

    def elapsed_ms(self) -> float:
        return (self.clock() - self.start_time) * 1000

    def out_of_time(self) -> bool:
        if not self.timed_out:
            if self.stop_event is not None and self.stop_event.is_set():
                self.timed_out = True
            elif self.elapsed_ms() >= self.budget_ms:
                self.timed_out = True
        return self.timed_out

    def static_score(self, board: Board) -> float:
        return self.sign * evaluate(board, self.profile)


def get_profile(difficulty: str | DifficultyProfile) -> DifficultyProfile:
    if isinstance(difficulty, DifficultyProfile):
        return difficulty
    try:
        return DIFFICULTY_PROFILES[difficulty]
    except KeyError:
        raise ValueError(f"Unknown difficulty {difficulty!r}") from None


# ---------------------------------------------------------------------------
# Move ordering
# ---------------------------------------------------------------------------


def _jumped_piece(board: Board, step: Step) -> Piece | None:
    d_row = 1 if step.to_pos.row > step.from_pos.row else -1
    d_col = 1 if step.to_pos.col > step.from_pos.col else -1
    square = step.from_pos.offset(d_row, d_col)
    while square != step.to_pos:
        piece = board.piece_at(square)
        if piece is not None:
            return piece
        square = square.offset(d_row, d_col)
    return None


def order_score(board: Board, step: Step) -> float:
    """
    Cheap static score used to order steps before searching them.

    captures: 1000 + value of the jumped piece
    promotion: +300
    forward step of a man: +10
    destination centrality: up to +12
    """
    piece = board.piece_at(step.from_pos)
    score = 0.0
    if step.is_capture:
        victim = _jumped_piece(board, step)
        score += 1000 + (piece_value(victim) if victim is not None else 0)
    if piece is not None and not piece.is_king:
        if step.to_pos.row == piece.color.promotion_row:
            score += _PROMOTION_GAIN
        if (step.to_pos.row - step.from_pos.row) * piece.color.forward > 0:
            score += 10
    centre_distance = abs(3.5 - step.to_pos.row) + abs(3.5 - step.to_pos.col)
    score += (7 - centre_distance) * 2
    return score


def order_steps(board: Board, steps: list[Step]) -> list[Step]:
    """Sort steps best-first; equal scores keep their generation order."""
    return sorted(steps, key=lambda s: order_score(board, s), reverse=True)


# ---------------------------------------------------------------------------
# Forced capture detection
# ---------------------------------------------------------------------------


def _step_gain(board: Board, step: Step) -> tuple[int, GameState, bool]:
    """Material won by one step, its resulting state, and whether the chain continues."""
    piece = board.piece_at(step.from_pos)
    result = make_move(board, step.from_pos, step.to_pos)
    if result.new_state is None:
        raise RuntimeError(f"Step {step.to_notation()} was rejected by the rules")
    gain = sum(piece_value(p) for p in result.captured_pieces)
    if piece is not None and not piece.is_king and step.to_pos.row == piece.color.promotion_row:
        gain += _PROMOTION_GAIN
    return gain, result.new_state, result.has_more_captures


def _best_chain(state: GameState, depth_left: int, search: SearchState) -> tuple[int, GameState]:
    """Best material the side to move collects by finishing its capture chain."""
    if state.selected_piece is None or depth_left <= 0 or search.out_of_time():
        return 0, state
    best: tuple[int, GameState] | None = None
    for step in legal_steps(state.board, state.current_player, state.selected_piece):
        search.node_count += 1
        gain, child, _ = _step_gain(state.board, step)
        rest, end = _best_chain(child, depth_left - 1, search)
        if best is None or gain + rest > best[0]:
            best = (gain + rest, end)
    return best if best is not None else (0, state)


def _best_capture_turn(state: GameState, depth_left: int, search: SearchState) -> tuple[int, GameState]:
    """Best full capture turn (chain included) for the side to move; 0 if none."""
    best: tuple[int, GameState] = (0, state)
    for step in legal_steps(state.board, state.current_player, state.selected_piece):
        if not step.is_capture:
            break
        search.node_count += 1
        gain, child, _ = _step_gain(state.board, step)
        rest, end = _best_chain(child, depth_left - 1, search)
        if gain + rest > best[0]:
            best = (gain + rest, end)
    return best


def find_forced_capture(root: GameState, steps: list[Step], search: SearchState) -> AIMove | None:
    """
    Look for a capture sequence that clearly wins material.

    Each root capture is followed through the best continuation of its chain,
    then the opponent's best capture turn in reply is subtracted. The first
    step whose net gain exceeds FORCED_CAPTURE_THRESHOLD is returned.
    """
    depth = search.profile.max_depth
    best: AIMove | None = None
    for step in steps:
        if not step.is_capture or search.out_of_time():
            break
        search.node_count += 1
        gain, child, _ = _step_gain(root.board, step)
        rest, end = _best_chain(child, depth - 1, search)
        total = gain + rest
        if end.status is GameStatus.win_for(search.color):
            total += WIN_SCORE
        elif not end.status.is_terminal:
            reply, _ = _best_capture_turn(end, depth - 1, search)
            total -= reply
        if total > FORCED_CAPTURE_THRESHOLD and (best is None or total > best.score):
            best = AIMove(step.from_pos, step.to_pos, float(total), depth=0, nodes=search.node_count)
    return best


# ---------------------------------------------------------------------------
# Minimax
# ---------------------------------------------------------------------------


def _terminal_score(state: GameState, depth: int, search: SearchState) -> float:
    magnitude = WIN_SCORE + depth
    return magnitude if state.status is GameStatus.win_for(search.color) else -magnitude


def minimax(
    state: GameState,
    depth: int,
    alpha: float,
    beta: float,
    search: SearchState,
) -> float:
    """
    Alpha-beta minimax from the computer side's point of view.

    The maximizing side is whoever the computer plays; a pending capture chain
    keeps the same side to move, so maximizing is decided per node from
    `state.current_player` rather than by alternating.

    Args:
        state:  Position to score. Not modified.
        depth:  Remaining plies; 0 means score statically.
        alpha:  Best score the maximizer is already guaranteed.
        beta:   Best score the minimizer is already guaranteed.
        search: Per-call bookkeeping (profile, clock, counters).

    Returns:
        Score of the position. A value <= alpha is only an upper bound and a
        value >= beta only a lower bound, as usual for alpha-beta.
    """
    search.node_count += 1

    if state.status.is_terminal:
        return _terminal_score(state, depth, search)

    if depth <= 0 or search.out_of_time():
        return search.static_score(state.board)

    steps = legal_steps(state.board, state.current_player, state.selected_piece)
    if not steps:
        # Only reachable mid-chain with a stale selected piece.
        return search.static_score(state.board)
    if search.profile.strategic:
        steps = order_steps(state.board, steps)

    if state.current_player is search.color:
        value = -math.inf
        for step in steps:
            value = max(value, minimax(apply_step(state, step), depth - 1, alpha, beta, search))
            alpha = max(alpha, value)
            if alpha >= beta:
                break
        return value

    value = math.inf
    for step in steps:
        value = min(value, minimax(apply_step(state, step), depth - 1, alpha, beta, search))
        beta = min(beta, value)
        if alpha >= beta:
            break
    return value


def _search_root(
    root: GameState,
    steps: list[Step],
    depth: int,
    search: SearchState,
    rng: random.Random,
) -> tuple[Step, float]:
    """One iteration over the root steps. Returns the best step and its jittered score."""
    jitter = search.profile.jitter
    best_step = steps[0]
    best_score = -math.inf
    best_raw = -math.inf
    for step in steps:
        # A step whose raw score stays below best_raw - 2*jitter cannot beat
        # the current best whatever noise either receives, so it may fail low.
        alpha = best_raw - 2 * jitter
        raw = minimax(apply_step(root, step), depth - 1, alpha, math.inf, search)
        score = raw + rng.uniform(-jitter, jitter) if jitter else raw
        if score > best_score:
            best_step, best_score, best_raw = step, score, raw
    return best_step, best_score


def get_best_move(
    board: Board,
    difficulty: str | DifficultyProfile,
    *,
    color: Color = Color.BLACK,
    continuing: Piece | None = None,
    time_budget_ms: int | None = None,
    clock: Clock = time.monotonic,
    rng: random.Random | None = None,
    stop_event: threading.Event | None = None,
) -> AIMove | None:
    """
    Choose a step for `color` (black unless told otherwise).

    Args:
        board:          Current position. Not modified.
        difficulty:     "easy", "medium", "hard" or a DifficultyProfile.
        color:          Side the computer plays.
        continuing:     Piece that is mid-chain and must capture again; only
                        its follow-up captures are considered.
        time_budget_ms: Overrides the tier's thinking time.
        clock:          Time source in seconds (time.monotonic by default).
        rng:            Random source for the easy shortcut and the jitter.
        stop_event:     Optional cancel signal; behaves like an exhausted
                        budget.

    Returns:
        AIMove, or None when `color` has no legal step at all.

    Raises:
        ValueError: unknown difficulty name.
    """
    profile = get_profile(difficulty)
    rng = rng if rng is not None else random.Random()

    steps = legal_steps(board, color, continuing)
    if not steps:
        return None

    if profile.name == "easy" and rng.random() < EASY_RANDOM_CHANCE:
        pool = order_steps(board, steps)[:EASY_RANDOM_POOL]
        pick = rng.choice(pool)
        return AIMove(pick.from_pos, pick.to_pos, 0.0)

    search = SearchState(
        profile=profile,
        color=color,
        clock=clock,
        start_time=clock(),
        budget_ms=float(time_budget_ms if time_budget_ms is not None else profile.time_budget_ms),
        stop_event=stop_event,
    )
    root = GameState(board=board, current_player=color, selected_piece=continuing)

    if profile.strategic:
        steps = order_steps(board, steps)
        forced = find_forced_capture(root, steps, search)
        if forced is not None:
            _log.debug(
                "forced capture %s%s score=%.0f",
                forced.from_pos.to_notation(), forced.to_pos.to_notation(), forced.score,
            )
            return forced

    best: AIMove | None = None
    depth = START_DEPTH
    while depth <= profile.max_depth:
        if search.elapsed_ms() >= search.budget_ms * ITERATION_TIME_FRACTION or search.out_of_time():
            break

        step, score = _search_root(root, steps, depth, search, rng)

        if search.timed_out and best is not None:
            # Interrupted iteration: keep the last complete result.
            break
        best = AIMove(step.from_pos, step.to_pos, score, depth=depth, nodes=search.node_count)
        _log.debug(
            "depth=%d best=%s score=%.1f nodes=%d elapsed=%.0fms",
            depth, step.to_notation(), score, search.node_count, search.elapsed_ms(),
        )
        if search.timed_out or abs(score) >= WIN_SCORE:
            break
        depth += DEPTH_STEP

    if best is None:
        # Budget gone before the first iteration: best static guess.
        step = steps[0]
        score = search.static_score(apply_step(root, step).board)
        best = AIMove(step.from_pos, step.to_pos, score, depth=0, nodes=search.node_count)

    return replace(best, nodes=search.node_count)
