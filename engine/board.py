"""
Board data model: colors, pieces, positions and the immutable 8x8 board.

The board is a value. Every change (moving a piece, removing a captured
piece) returns a new Board and leaves the original untouched, so callers can
keep references to earlier positions without worrying about aliasing.

The cell index is the single source of truth for where a piece stands. A
Piece still carries its `position` because external consumers expect it in
the serialized form, but the Board rebuilds that field from the cell index on
every write and on every load, so the two can never disagree.

Serialized form (used by the web layer and the text protocol):
    8x8 list of rows, each cell either None or
    {"id": str, "type": "regular"|"king", "color": "white"|"black",
     "position": {"row": int, "col": int}}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Iterator, NamedTuple

from engine.constants import BLACK_START_ROWS, BOARD_SIZE, WHITE_START_ROWS


class BoardFormatError(ValueError):
    """Raised when a serialized board or piece layout is malformed."""


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> Color:
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a regular piece's forward step."""
        return -1 if self is Color.WHITE else 1

    @property
    def promotion_row(self) -> int:
        return 0 if self is Color.WHITE else BOARD_SIZE - 1


class PieceType(str, Enum):
    REGULAR = "regular"
    KING = "king"


class GameStatus(str, Enum):
    PLAYING = "playing"
    WHITE_WINS = "white-wins"
    BLACK_WINS = "black-wins"
    # Reserved: no rule currently produces a draw.
    DRAW = "draw"

    @property
    def is_terminal(self) -> bool:
        return self is not GameStatus.PLAYING

    @staticmethod
    def win_for(color: Color) -> GameStatus:
        return GameStatus.WHITE_WINS if color is Color.WHITE else GameStatus.BLACK_WINS


class Position(NamedTuple):
    row: int
    col: int

    @property
    def in_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    @property
    def is_dark(self) -> bool:
        return (self.row + self.col) % 2 == 1

    def offset(self, d_row: int, d_col: int) -> Position:
        return Position(self.row + d_row, self.col + d_col)

    def to_notation(self) -> str:
        """Algebraic square name: file a-h is col 0-7, rank 1 is row 7."""
        return f"{'abcdefgh'[self.col]}{BOARD_SIZE - self.row}"

    @classmethod
    def from_notation(cls, text: str) -> Position:
        if len(text) != 2 or text[0] not in "abcdefgh" or not text[1].isdigit():
            raise BoardFormatError(f"Invalid square: {text!r}")
        pos = cls(BOARD_SIZE - int(text[1]), "abcdefgh".index(text[0]))
        if not pos.in_bounds:
            raise BoardFormatError(f"Square off the board: {text!r}")
        return pos

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}


@dataclass(frozen=True)
class Piece:
    id: str
    type: PieceType
    color: Color
    position: Position

    @property
    def is_king(self) -> bool:
        return self.type is PieceType.KING

    def moved_to(self, position: Position) -> Piece:
        return replace(self, position=position)

    def promoted(self) -> Piece:
        return replace(self, type=PieceType.KING)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "color": self.color.value,
            "position": self.position.to_dict(),
        }


@dataclass(frozen=True)
class Move:
    """A played move as recorded in a game's history."""

    from_pos: Position
    to_pos: Position
    captured: tuple[Piece, ...] = ()
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_pos.to_dict(),
            "to": self.to_pos.to_dict(),
            "captured_pieces": [p.to_dict() for p in self.captured],
            "timestamp": self.timestamp,
        }


class Step(NamedTuple):
    """A candidate move produced by move generation."""

    from_pos: Position
    to_pos: Position
    is_capture: bool

    def to_notation(self) -> str:
        return self.from_pos.to_notation() + self.to_pos.to_notation()


def _index(pos: Position) -> int:
    return pos.row * BOARD_SIZE + pos.col


class Board:
    """Immutable 8x8 checkers board."""

    __slots__ = ("_cells",)

    def __init__(self, cells: Iterable[Piece | None]) -> None:
        cells = tuple(cells)
        if len(cells) != BOARD_SIZE * BOARD_SIZE:
            raise BoardFormatError(f"Board needs {BOARD_SIZE * BOARD_SIZE} cells, got {len(cells)}")
        self._cells: tuple[Piece | None, ...] = cells

    # -----------------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------------

    @classmethod
    def empty(cls) -> Board:
        return cls([None] * (BOARD_SIZE * BOARD_SIZE))

    @classmethod
    def initial(cls) -> Board:
        """Standard starting layout: black on rows 0-2, white on rows 5-7."""
        pieces = []
        for color, rows in ((Color.BLACK, BLACK_START_ROWS), (Color.WHITE, WHITE_START_ROWS)):
            for row in rows:
                for col in range(BOARD_SIZE):
                    pos = Position(row, col)
                    if pos.is_dark:
                        pieces.append(Piece(f"{color.value}-{row}-{col}", PieceType.REGULAR, color, pos))
        return cls.from_pieces(pieces)

    @classmethod
    def from_pieces(cls, pieces: Iterable[Piece]) -> Board:
        cells: list[Piece | None] = [None] * (BOARD_SIZE * BOARD_SIZE)
        seen_ids: set[str] = set()
        for piece in pieces:
            pos = Position(*piece.position)
            if not pos.in_bounds or not pos.is_dark:
                raise BoardFormatError(f"Piece {piece.id} must stand on a dark square, got {tuple(pos)}")
            if cells[_index(pos)] is not None:
                raise BoardFormatError(f"Two pieces on square {tuple(pos)}")
            if piece.id in seen_ids:
                raise BoardFormatError(f"Duplicate piece id {piece.id!r}")
            seen_ids.add(piece.id)
            cells[_index(pos)] = piece.moved_to(pos)
        return cls(cells)

    @classmethod
    def from_rows(cls, rows: Any) -> Board:
        """
        Build a board from its serialized 8x8 form.

        The `position` inside each record is ignored in favour of the cell
        the record sits in.

        Raises:
            BoardFormatError: wrong shape, unknown type/color, piece on a
                light square, or duplicate ids.
        """
        if not isinstance(rows, (list, tuple)) or len(rows) != BOARD_SIZE:
            raise BoardFormatError("Board must have 8 rows")
        pieces = []
        for row_idx, row in enumerate(rows):
            if not isinstance(row, (list, tuple)) or len(row) != BOARD_SIZE:
                raise BoardFormatError(f"Row {row_idx} must have 8 cells")
            for col_idx, cell in enumerate(row):
                if cell is None:
                    continue
                try:
                    pieces.append(
                        Piece(
                            id=str(cell["id"]),
                            type=PieceType(cell["type"]),
                            color=Color(cell["color"]),
                            position=Position(row_idx, col_idx),
                        )
                    )
                except (KeyError, TypeError, ValueError) as exc:
                    raise BoardFormatError(f"Bad piece at ({row_idx}, {col_idx}): {exc}") from exc
        return cls.from_pieces(pieces)

    def to_rows(self) -> list[list[dict[str, Any] | None]]:
        return [
            [None if piece is None else piece.to_dict() for piece in self._cells[r * BOARD_SIZE:(r + 1) * BOARD_SIZE]]
            for r in range(BOARD_SIZE)
        ]

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def piece_at(self, pos: Position) -> Piece | None:
        if not (0 <= pos[0] < BOARD_SIZE and 0 <= pos[1] < BOARD_SIZE):
            return None
        return self._cells[pos[0] * BOARD_SIZE + pos[1]]

    def is_empty(self, pos: Position) -> bool:
        return self._cells[pos[0] * BOARD_SIZE + pos[1]] is None

    def __iter__(self) -> Iterator[Piece]:
        """Iterate over pieces in row-major order."""
        return (piece for piece in self._cells if piece is not None)

    def pieces(self, color: Color) -> list[Piece]:
        return [piece for piece in self._cells if piece is not None and piece.color is color]

    def count(self, color: Color) -> int:
        return sum(1 for piece in self._cells if piece is not None and piece.color is color)

    @property
    def total_pieces(self) -> int:
        return sum(1 for piece in self._cells if piece is not None)

    # -----------------------------------------------------------------------
    # Copy-on-write updates
    # -----------------------------------------------------------------------

    def with_move(self, from_pos: Position, to_pos: Position, piece: Piece | None = None) -> Board:
        """
        Return a new board with the piece at from_pos relocated to to_pos.

        `piece` replaces the moving piece (e.g. its promoted form); its
        position is overwritten with to_pos either way.
        """
        cells = list(self._cells)
        mover = piece if piece is not None else cells[_index(from_pos)]
        cells[_index(from_pos)] = None
        cells[_index(to_pos)] = None if mover is None else mover.moved_to(to_pos)
        return Board(cells)

    def without(self, positions: Iterable[Position]) -> Board:
        cells = list(self._cells)
        for pos in positions:
            cells[_index(pos)] = None
        return Board(cells)

    # -----------------------------------------------------------------------
    # Dunder helpers
    # -----------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Board) and self._cells == other._cells

    def __hash__(self) -> int:
        return hash(self._cells)

    def __str__(self) -> str:
        symbols = {
            (Color.WHITE, PieceType.REGULAR): "w",
            (Color.WHITE, PieceType.KING): "W",
            (Color.BLACK, PieceType.REGULAR): "b",
            (Color.BLACK, PieceType.KING): "B",
        }
        lines = []
        for r in range(BOARD_SIZE):
            cells = []
            for c in range(BOARD_SIZE):
                piece = self._cells[r * BOARD_SIZE + c]
                if piece is not None:
                    cells.append(symbols[(piece.color, piece.type)])
                else:
                    cells.append("." if (r + c) % 2 else " ")
            lines.append(f"{BOARD_SIZE - r} " + " ".join(cells))
        lines.append("  " + " ".join("abcdefgh"))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Board(white={self.count(Color.WHITE)}, black={self.count(Color.BLACK)})"


@dataclass(frozen=True)
class GameState:
    """
    Full position: board, side to move, status, and a pending capture chain.

    When `selected_piece` is set the turn is mid-chain and `valid_moves`
    lists that piece's follow-up captures; the same player must continue
    with it.
    """

    board: Board
    current_player: Color = Color.WHITE
    status: GameStatus = GameStatus.PLAYING
    selected_piece: Piece | None = None
    valid_moves: tuple[Position, ...] = ()
    captured_pieces: tuple[Piece, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": self.board.to_rows(),
            "current_player": self.current_player.value,
            "game_status": self.status.value,
            "selected_piece": None if self.selected_piece is None else self.selected_piece.to_dict(),
            "valid_moves": [p.to_dict() for p in self.valid_moves],
            "captured_pieces": [p.to_dict() for p in self.captured_pieces],
        }
