"""
FastAPI web application for the checkers engine.

Two groups of routes:

- Stateless engine routes (/api/valid-moves, /api/move, /api/ai-move): the
  client sends the full serialized board each time, the server applies the
  rules or runs the search and returns the result. No server-side state.
- Room routes (/api/rooms...): the synchronization layer for online play.
  A RoomStore holds one authoritative Game per room; both peers send their
  moves here and poll the room to pick up the opponent's.

Architecture notes:
- Sync endpoints (not async): FastAPI runs sync handlers in a thread pool,
  which is the right place for the CPU-bound search.
- The room store is reached through a dependency so tests can swap in one
  with a fake clock via app.dependency_overrides.

Run with: uvicorn web.app:app
"""

import logging
from typing import Literal, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.board import Board, BoardFormatError, Color, Position
from engine.game import IllegalMoveError
from engine.rules import MoveResult, get_valid_moves, make_move
from engine.search import get_best_move
from web.rooms import NotYourTurnError, RoomFullError, RoomNotFoundError, RoomStore

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

app = FastAPI(title="Checkers AI", version="1.0.0")

_room_store = RoomStore()


def get_room_store() -> RoomStore:
    return _room_store


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class PositionModel(BaseModel):
    row: int = Field(ge=0, le=7)
    col: int = Field(ge=0, le=7)

    def to_position(self) -> Position:
        return Position(self.row, self.col)


class PieceModel(BaseModel):
    id: str
    type: Literal["regular", "king"]
    color: Literal["white", "black"]
    position: Optional[PositionModel] = None


BoardRows = list[list[Optional[PieceModel]]]


def _to_board(rows: BoardRows) -> Board:
    try:
        return Board.from_rows(
            [[None if cell is None else cell.model_dump() for cell in row] for row in rows]
        )
    except BoardFormatError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid board: {exc}") from exc


class ValidMovesRequest(BaseModel):
    board: BoardRows
    position: PositionModel


class ValidMovesResponse(BaseModel):
    moves: list[PositionModel]


class MoveRequest(BaseModel):
    """
    A move to apply to a client-held board.

    `from` is a Python keyword, hence the alias.
    """

    board: BoardRows
    from_pos: PositionModel = Field(alias="from")
    to_pos: PositionModel = Field(alias="to")


class MoveResponse(BaseModel):
    success: bool
    captured_pieces: list[dict] = []
    has_more_captures: bool = False
    state: Optional[dict] = None


class AIMoveRequest(BaseModel):
    """
    Fields:
        board:      Serialized 8x8 board.
        difficulty: Tier of the computer opponent.
        color:      Side the computer plays (black by default).
        continuing: Square of a piece that must continue a capture chain.
        time_limit: Optional seconds budget overriding the tier's default,
                    clamped to [0.1, 30.0].
    """

    board: BoardRows
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    color: Literal["white", "black"] = "black"
    continuing: Optional[PositionModel] = None
    time_limit: Optional[float] = None

    @field_validator("time_limit")
    @classmethod
    def clamp_time_limit(cls, v: Optional[float]) -> Optional[float]:
        """Clamp time_limit to a safe operating range."""
        if v is None:
            return v
        return max(0.1, min(v, 30.0))


class AIMoveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_pos: PositionModel = Field(alias="from")
    to_pos: PositionModel = Field(alias="to")
    score: float
    depth: int
    nodes: int
    has_more_captures: bool
    state: dict


class PlayerRequest(BaseModel):
    player_id: int


class RoomMoveRequest(BaseModel):
    player_id: int
    from_pos: PositionModel = Field(alias="from")
    to_pos: PositionModel = Field(alias="to")


def _move_response(result: MoveResult) -> MoveResponse:
    return MoveResponse(
        success=result.success,
        captured_pieces=[p.to_dict() for p in result.captured_pieces],
        has_more_captures=result.has_more_captures,
        state=None if result.new_state is None else result.new_state.to_dict(),
    )


def _position_model(pos: Position) -> PositionModel:
    return PositionModel(row=pos.row, col=pos.col)


# ---------------------------------------------------------------------------
# Engine routes
# ---------------------------------------------------------------------------


@app.get("/api/health")
def api_health(store: RoomStore = Depends(get_room_store)) -> dict:
    return {"ok": True, "rooms": len(store)}


@app.post("/api/valid-moves", response_model=ValidMovesResponse)
def api_valid_moves(request: ValidMovesRequest) -> ValidMovesResponse:
    """Legal destinations for the piece on `position` (empty if the square is empty)."""
    board = _to_board(request.board)
    piece = board.piece_at(request.position.to_position())
    if piece is None:
        return ValidMovesResponse(moves=[])
    return ValidMovesResponse(moves=[_position_model(p) for p in get_valid_moves(board, piece)])


@app.post("/api/move", response_model=MoveResponse)
def api_move(request: MoveRequest) -> MoveResponse:
    """
    Apply a move to the client's board.

    Mirrors the rules module: a rejected request is a normal response with
    success=false, not an HTTP error.
    """
    board = _to_board(request.board)
    result = make_move(board, request.from_pos.to_position(), request.to_pos.to_position())
    return _move_response(result)


@app.post("/api/ai-move", response_model=AIMoveResponse, response_model_by_alias=True)
def api_ai_move(request: AIMoveRequest) -> AIMoveResponse:
    """
    Compute and apply the computer's next step.

    Raises:
        HTTPException 400: malformed board or continuing square without a
                           piece of the computer's color.
        HTTPException 409: the computer side has no legal move.
        HTTPException 500: unexpected engine failure.
    """
    board = _to_board(request.board)
    color = Color(request.color)

    continuing = None
    if request.continuing is not None:
        continuing = board.piece_at(request.continuing.to_position())
        if continuing is None or continuing.color is not color:
            raise HTTPException(status_code=400, detail="No piece of the computer's color on the continuing square")

    time_budget_ms = None if request.time_limit is None else int(request.time_limit * 1000)
    try:
        move = get_best_move(
            board,
            request.difficulty,
            color=color,
            continuing=continuing,
            time_budget_ms=time_budget_ms,
        )
    except Exception as exc:
        _log.exception("Engine search failed")
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    if move is None:
        raise HTTPException(status_code=409, detail=f"No legal move for {color.value}")

    result = make_move(board, move.from_pos, move.to_pos)
    _log.info(
        "difficulty=%s move=%s%s score=%.1f depth=%d nodes=%d",
        request.difficulty,
        move.from_pos.to_notation(),
        move.to_pos.to_notation(),
        move.score,
        move.depth,
        move.nodes,
    )
    return AIMoveResponse(
        from_pos=_position_model(move.from_pos),
        to_pos=_position_model(move.to_pos),
        score=move.score,
        depth=move.depth,
        nodes=move.nodes,
        has_more_captures=result.has_more_captures,
        state=result.new_state.to_dict(),
    )


# ---------------------------------------------------------------------------
# Room routes
# ---------------------------------------------------------------------------


@app.post("/api/rooms")
def api_create_room(request: PlayerRequest, store: RoomStore = Depends(get_room_store)) -> dict:
    room = store.create(request.player_id)
    return {"room_id": room.code, "color": room.players[0].color.value}


@app.post("/api/rooms/{code}/join")
def api_join_room(code: str, request: PlayerRequest, store: RoomStore = Depends(get_room_store)) -> dict:
    try:
        room = store.join(code, request.player_id)
    except RoomNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RoomFullError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"room_id": room.code, "color": room.player(request.player_id).color.value}


@app.get("/api/rooms/{code}")
def api_get_room(code: str, store: RoomStore = Depends(get_room_store)) -> dict:
    try:
        return store.get(code).to_dict()
    except RoomNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/rooms/{code}/move", response_model=MoveResponse)
def api_room_move(code: str, request: RoomMoveRequest, store: RoomStore = Depends(get_room_store)) -> MoveResponse:
    try:
        result = store.play(code, request.player_id, request.from_pos.to_position(), request.to_pos.to_position())
    except RoomNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NotYourTurnError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except IllegalMoveError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    state = result.new_state
    _log.info(
        "room=%s player=%s move=%s%s status=%s",
        code,
        request.player_id,
        request.from_pos.to_position().to_notation(),
        request.to_pos.to_position().to_notation(),
        state.status.value,
    )
    return _move_response(result)
