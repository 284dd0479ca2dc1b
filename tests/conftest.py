import random

import pytest

from engine.board import Board, Color, Piece, PieceType, Position


def piece(row: int, col: int, color: str, kind: str = "regular", pid: str | None = None) -> Piece:
    return Piece(
        id=pid or f"{color}-{row}-{col}",
        type=PieceType(kind),
        color=Color(color),
        position=Position(row, col),
    )


@pytest.fixture
def make_board():
    """Build a board from (row, col, color[, kind]) tuples."""

    def _make(*specs) -> Board:
        return Board.from_pieces(piece(*spec) for spec in specs)

    return _make


class FakeClock:
    """Clock that advances by `step` seconds on every reading."""

    def __init__(self, start: float = 0.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_piece():
    return piece


@pytest.fixture
def clock_factory():
    return FakeClock
