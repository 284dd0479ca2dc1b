"""
Rules of Russian draughts on an 8x8 board.

Everything here is a pure function of its arguments: boards are immutable,
nothing is cached between calls, and the mandatory capture rule is evaluated
fresh against the board it is given.

Rules implemented:
    - Regular pieces step one square diagonally forward (white towards row 0,
      black towards row 7) and capture by a short jump in any of the four
      diagonal directions, backwards included.
    - Kings fly: they move any distance along an empty diagonal, and capture
      by jumping the first enemy piece on a ray (everything before it empty)
      and landing on any empty square beyond it, up to the next piece.
    - Capturing is mandatory. If any piece of a color can capture, that color
      may only capture.
    - A piece reaching the far row is promoted immediately, before the
      capture chain continues, so a freshly crowned king keeps capturing as
      a king.
    - A capture that leaves the same piece with another capture keeps the
      turn with that piece.

The one failure signal is `MoveResult.success == False` from make_move() for
a request with no piece at the source or a destination that is not a dark
on-board square. Every other legality check is the caller's job: callers are
expected to pass only destinations returned by get_valid_moves().
"""

from __future__ import annotations

from dataclasses import dataclass

from engine.board import Board, Color, GameState, GameStatus, Piece, Position, Step
from engine.constants import BOARD_SIZE, DIAGONALS


@dataclass(frozen=True)
class MoveResult:
    """
    Outcome of make_move().

    Attributes:
        success:            False when the request was rejected; nothing else
                            is set in that case.
        new_state:          Position after the move (board, side to move,
                            status, pending chain).
        captured_pieces:    Pieces removed by this move, in ray order.
        has_more_captures:  True when the same piece must capture again.
    """

    success: bool
    new_state: GameState | None = None
    captured_pieces: tuple[Piece, ...] = ()
    has_more_captures: bool = False


def _captures_with_targets(board: Board, piece: Piece) -> list[tuple[Position, Position]]:
    """(landing square, jumped square) pairs for every capture of `piece`."""
    result: list[tuple[Position, Position]] = []
    origin = piece.position

    if not piece.is_king:
        for d_row, d_col in DIAGONALS:
            enemy_pos = origin.offset(d_row, d_col)
            landing = origin.offset(2 * d_row, 2 * d_col)
            if not landing.in_bounds:
                continue
            enemy = board.piece_at(enemy_pos)
            if enemy is not None and enemy.color is not piece.color and board.is_empty(landing):
                result.append((landing, enemy_pos))
        return result

    for d_row, d_col in DIAGONALS:
        jumped: Position | None = None
        for distance in range(1, BOARD_SIZE):
            square = origin.offset(d_row * distance, d_col * distance)
            if not square.in_bounds:
                break
            occupant = board.piece_at(square)
            if occupant is not None:
                if jumped is None and occupant.color is not piece.color:
                    jumped = square
                    continue
                # Friendly piece, or a second piece behind the enemy.
                break
            if jumped is not None:
                result.append((square, jumped))
    return result


def get_capture_moves(board: Board, piece: Piece) -> list[Position]:
    """Landing squares of every capture available to `piece`."""
    return [landing for landing, _ in _captures_with_targets(board, piece)]


def get_capture_targets(board: Board, piece: Piece) -> list[Position]:
    """Squares of the enemy pieces `piece` can jump right now (no duplicates)."""
    targets: list[Position] = []
    for _, jumped in _captures_with_targets(board, piece):
        if jumped not in targets:
            targets.append(jumped)
    return targets


def get_regular_moves(board: Board, piece: Piece) -> list[Position]:
    """Quiet (non-capturing) destinations of `piece`."""
    moves: list[Position] = []
    origin = piece.position

    if not piece.is_king:
        d_row = piece.color.forward
        for d_col in (-1, 1):
            target = origin.offset(d_row, d_col)
            if target.in_bounds and board.is_empty(target):
                moves.append(target)
        return moves

    for d_row, d_col in DIAGONALS:
        for distance in range(1, BOARD_SIZE):
            target = origin.offset(d_row * distance, d_col * distance)
            if not target.in_bounds or not board.is_empty(target):
                break
            moves.append(target)
    return moves


def get_all_captures(board: Board, color: Color) -> list[Position]:
    """Landing squares of every capture available to `color`."""
    captures: list[Position] = []
    for piece in board.pieces(color):
        captures.extend(get_capture_moves(board, piece))
    return captures


def has_any_capture(board: Board, color: Color) -> bool:
    return any(_captures_with_targets(board, piece) for piece in board.pieces(color))


def get_valid_moves(board: Board, piece: Piece) -> list[Position]:
    """
    Legal destinations for `piece` under the mandatory capture rule.

    If any piece of the same color can capture, only capture destinations
    are returned (an empty list when this particular piece cannot capture).
    Otherwise the quiet moves are returned.
    """
    if has_any_capture(board, piece.color):
        return get_capture_moves(board, piece)
    return get_regular_moves(board, piece)


def legal_steps(board: Board, color: Color, continuing: Piece | None = None) -> list[Step]:
    """
    Every legal step for `color`, in row-major order of the moving pieces.

    With `continuing` set the turn is mid-chain and only that piece's
    follow-up captures are legal.
    """
    if continuing is not None:
        piece = board.piece_at(continuing.position)
        if piece is None:
            return []
        return [Step(piece.position, landing, True) for landing in get_capture_moves(board, piece)]

    pieces = board.pieces(color)
    captures = [
        Step(piece.position, landing, True)
        for piece in pieces
        for landing in get_capture_moves(board, piece)
    ]
    if captures:
        return captures
    return [
        Step(piece.position, target, False)
        for piece in pieces
        for target in get_regular_moves(board, piece)
    ]


def check_game_status(board: Board, player: Color) -> GameStatus:
    """
    Status of the game with `player` about to move.

    The player loses with no pieces left, or when none of their pieces has a
    capture or a quiet move (blockade). Draws are never declared here.
    """
    pieces = board.pieces(player)
    if not pieces:
        return GameStatus.win_for(player.opponent)
    if has_any_capture(board, player):
        return GameStatus.PLAYING
    if not any(get_regular_moves(board, piece) for piece in pieces):
        return GameStatus.win_for(player.opponent)
    return GameStatus.PLAYING


def _should_promote(piece: Piece, target: Position) -> bool:
    return not piece.is_king and target.row == piece.color.promotion_row


def make_move(board: Board, from_pos: Position, to_pos: Position) -> MoveResult:
    """
    Apply a move and return the resulting state.

    The input board is never modified. Fails (success=False) when there is
    no piece at `from_pos` or `to_pos` is not a dark square on the board.

    Args:
        board:    Position before the move.
        from_pos: Square of the piece to move.
        to_pos:   Destination, normally taken from get_valid_moves().

    Returns:
        MoveResult. On a capture that leaves the moved piece with another
        capture, the side to move is unchanged, `has_more_captures` is True
        and `new_state.valid_moves` holds the follow-up landing squares.
        Otherwise the turn passes and the status is recomputed for the
        opponent.
    """
    from_pos = Position(*from_pos)
    to_pos = Position(*to_pos)
    if not from_pos.in_bounds or not to_pos.in_bounds or not to_pos.is_dark:
        return MoveResult(success=False)
    piece = board.piece_at(from_pos)
    if piece is None:
        return MoveResult(success=False)

    moved = piece.moved_to(to_pos)
    if _should_promote(piece, to_pos):
        moved = moved.promoted()

    captured: list[Piece] = []
    distance = abs(to_pos.row - from_pos.row)
    if distance > 1:
        step_row = 1 if to_pos.row > from_pos.row else -1
        step_col = 1 if to_pos.col > from_pos.col else -1
        if piece.is_king:
            between = [from_pos.offset(step_row * i, step_col * i) for i in range(1, distance)]
        else:
            between = [from_pos.offset(step_row, step_col)]
        for square in between:
            occupant = board.piece_at(square)
            if occupant is not None and occupant.color is not piece.color:
                captured.append(occupant)

    new_board = board.with_move(from_pos, to_pos, moved).without(p.position for p in captured)
    moved = new_board.piece_at(to_pos)

    if captured:
        follow_ups = get_capture_moves(new_board, moved)
        if follow_ups:
            return MoveResult(
                success=True,
                new_state=GameState(
                    board=new_board,
                    current_player=piece.color,
                    status=GameStatus.PLAYING,
                    selected_piece=moved,
                    valid_moves=tuple(follow_ups),
                    captured_pieces=tuple(captured),
                ),
                captured_pieces=tuple(captured),
                has_more_captures=True,
            )

    next_player = piece.color.opponent
    return MoveResult(
        success=True,
        new_state=GameState(
            board=new_board,
            current_player=next_player,
            status=check_game_status(new_board, next_player),
            captured_pieces=tuple(captured),
        ),
        captured_pieces=tuple(captured),
        has_more_captures=False,
    )


def apply_step(state: GameState, step: Step) -> GameState:
    """Advance a GameState by one generated step (search helper)."""
    result = make_move(state.board, step.from_pos, step.to_pos)
    if result.new_state is None:
        raise RuntimeError(f"Step {step.to_notation()} was rejected; steps must come from legal_steps()")
    return result.new_state
