"""
Game session: one game's state, turn enforcement and move history.

The rules module is deliberately permissive: make_move() trusts its caller to
pass only legal destinations. Game is that caller for the text protocol and
the web layer. It rejects moves out of turn, moves of the wrong piece during a
capture chain and destinations not offered by get_valid_moves(), then hands
the move to the rules module and records it.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from engine.board import Board, BoardFormatError, Color, GameState, GameStatus, Move, Position
from engine.rules import MoveResult, check_game_status, get_valid_moves, make_move
from engine.search import AIMove, get_best_move


class GameError(Exception):
    """Base class for session-level errors."""


class IllegalMoveError(GameError):
    """Raised when a requested move is not legal in the current position."""


class Game:
    """
    Mutable wrapper around an immutable GameState.

    Attributes:
        state:   Current position, side to move, status and pending chain.
        history: Moves played so far, oldest first.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self.state: GameState = GameState(board=Board.initial())
        self.history: list[Move] = []

    def reset(self) -> None:
        """Start a new game (or a rematch) from the standard layout."""
        self.state = GameState(board=Board.initial())
        self.history = []

    def load(self, board: Board, current_player: Color = Color.WHITE) -> None:
        """Resume from a serialized position; the history starts empty."""
        self.state = GameState(
            board=board,
            current_player=current_player,
            status=check_game_status(board, current_player),
        )
        self.history = []

    @classmethod
    def from_snapshot(cls, data: dict[str, Any], clock: Callable[[], float] = time.time) -> Game:
        """
        Rebuild a session from snapshot() output (or any dict with "board"
        rows and "current_player").

        A pending capture chain is not restored; the position is resumed at a
        turn boundary.

        Raises:
            BoardFormatError: malformed board or unknown player color.
        """
        try:
            current_player = Color(data.get("current_player", Color.WHITE.value))
        except ValueError as exc:
            raise BoardFormatError(f"Unknown player {data.get('current_player')!r}") from exc
        game = cls(clock=clock)
        game.load(Board.from_rows(data.get("board")), current_player)
        return game

    @property
    def board(self) -> Board:
        return self.state.board

    @property
    def current_player(self) -> Color:
        return self.state.current_player

    @property
    def is_over(self) -> bool:
        return self.state.status.is_terminal

    @property
    def in_chain(self) -> bool:
        return self.state.selected_piece is not None

    def valid_moves(self, pos: Position) -> list[Position]:
        """Legal destinations for the piece on `pos`; empty when it may not move."""
        if self.is_over:
            return []
        piece = self.state.board.piece_at(Position(*pos))
        if piece is None or piece.color is not self.state.current_player:
            return []
        if self.in_chain:
            if piece.position != self.state.selected_piece.position:
                return []
            return list(self.state.valid_moves)
        return get_valid_moves(self.state.board, piece)

    def play(self, from_pos: Position, to_pos: Position) -> MoveResult:
        """
        Play a move for the side to move.

        Raises:
            IllegalMoveError: game over, wrong side, wrong piece mid-chain,
                or a destination that is not a legal move.
        """
        from_pos = Position(*from_pos)
        to_pos = Position(*to_pos)
        if self.is_over:
            raise IllegalMoveError(f"Game is already over: {self.state.status.value}")
        piece = self.state.board.piece_at(from_pos)
        if piece is None:
            raise IllegalMoveError(f"No piece on {from_pos.to_notation()}")
        if piece.color is not self.state.current_player:
            raise IllegalMoveError(f"It is {self.state.current_player.value}'s turn")
        if self.in_chain and from_pos != self.state.selected_piece.position:
            raise IllegalMoveError(
                f"The piece on {self.state.selected_piece.position.to_notation()} must continue capturing"
            )
        if to_pos not in self.valid_moves(from_pos):
            raise IllegalMoveError(f"Illegal move: {from_pos.to_notation()}{to_pos.to_notation()}")

        result = make_move(self.state.board, from_pos, to_pos)
        if result.new_state is None:
            # Validated above; reaching this means the rules and Game disagree.
            raise RuntimeError(f"Rules rejected validated move {from_pos.to_notation()}{to_pos.to_notation()}")
        self.state = result.new_state
        self.history.append(
            Move(
                from_pos=from_pos,
                to_pos=to_pos,
                captured=result.captured_pieces,
                timestamp=int(self._clock() * 1000),
            )
        )
        return result

    def play_ai(self, difficulty: str, **search_kwargs: Any) -> tuple[AIMove | None, MoveResult | None]:
        """
        Let the search pick and play one step for the side to move.

        Returns (None, None) when the game is over or the side has no move.
        """
        if self.is_over:
            return None, None
        ai_move = get_best_move(
            self.state.board,
            difficulty,
            color=self.state.current_player,
            continuing=self.state.selected_piece,
            **search_kwargs,
        )
        if ai_move is None:
            return None, None
        return ai_move, self.play(ai_move.from_pos, ai_move.to_pos)

    @property
    def winner(self) -> Color | None:
        if self.state.status is GameStatus.WHITE_WINS:
            return Color.WHITE
        if self.state.status is GameStatus.BLACK_WINS:
            return Color.BLACK
        return None

    def snapshot(self) -> dict[str, Any]:
        data = self.state.to_dict()
        data["last_move"] = self.history[-1].to_dict() if self.history else None
        data["move_count"] = len(self.history)
        return data
