"""
In-memory registry of online game rooms.

A room pairs two players and owns the authoritative Game for their match.
The store is an explicit object with its own lock and an injected clock, so
it can be unit-tested with a fake clock and swapped for a persistent backend
without touching the routes.

Rooms expire ROOM_TTL_SECONDS after their last access; expired rooms are
purged lazily on every store operation.
"""

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from engine.board import Color, Position
from engine.constants import ROOM_CODE_LENGTH, ROOM_TTL_SECONDS
from engine.game import Game
from engine.rules import MoveResult

_log = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_lowercase + string.digits


class RoomError(Exception):
    """Base class for room errors."""


class RoomNotFoundError(RoomError):
    pass


class RoomFullError(RoomError):
    pass


class NotYourTurnError(RoomError):
    pass


@dataclass
class Player:
    id: int
    color: Color


@dataclass
class Room:
    code: str
    players: list[Player]
    game: Game = field(default_factory=Game)
    last_seen: float = 0.0

    @property
    def is_full(self) -> bool:
        return len(self.players) >= 2

    def player(self, player_id: int) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "players": [{"id": p.id, "color": p.color.value} for p in self.players],
            "state": self.game.snapshot(),
        }


class RoomStore:
    """
    Thread-safe room registry with TTL eviction.

    Args:
        ttl_seconds: Idle time after which a room is dropped.
        clock:       Returns seconds; time.monotonic by default.
    """

    def __init__(
        self,
        ttl_seconds: float = ROOM_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._rooms: dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_locked()
            return len(self._rooms)

    def purge(self) -> int:
        """Drop expired rooms; returns how many were removed."""
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [code for code, room in self._rooms.items() if now - room.last_seen >= self._ttl]
        for code in expired:
            del self._rooms[code]
            _log.info("room %s expired", code)
        return len(expired)

    def _new_code(self) -> str:
        while True:
            code = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self._rooms:
                return code

    def create(self, player_id: int) -> Room:
        """Open a room; the creator plays white for an even id, black otherwise."""
        color = Color.WHITE if player_id % 2 == 0 else Color.BLACK
        with self._lock:
            self._purge_locked()
            room = Room(code=self._new_code(), players=[Player(player_id, color)], last_seen=self._clock())
            self._rooms[room.code] = room
        _log.info("room %s created by player %s (%s)", room.code, player_id, color.value)
        return room

    def _get_locked(self, code: str) -> Room:
        self._purge_locked()
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFoundError(f"Room {code!r} not found")
        room.last_seen = self._clock()
        return room

    def get(self, code: str) -> Room:
        with self._lock:
            return self._get_locked(code)

    def join(self, code: str, player_id: int) -> Room:
        """
        Add the second player, who always gets the color the creator did not.

        Rejoining with an id already in the room is a no-op.

        Raises:
            RoomNotFoundError: unknown or expired code.
            RoomFullError:     two other players are already seated.
        """
        with self._lock:
            room = self._get_locked(code)
            if room.player(player_id) is not None:
                return room
            if room.is_full:
                raise RoomFullError(f"Room {code!r} is full")
            room.players.append(Player(player_id, room.players[0].color.opponent))
        _log.info("player %s joined room %s", player_id, code)
        return room

    def play(self, code: str, player_id: int, from_pos: Position, to_pos: Position) -> MoveResult:
        """
        Play a move in a room on behalf of `player_id`.

        Raises:
            RoomNotFoundError: unknown or expired code.
            NotYourTurnError:  not seated in the room, or not their turn.
            engine.game.IllegalMoveError: the move itself is illegal.
        """
        with self._lock:
            room = self._get_locked(code)
            player = room.player(player_id)
            if player is None:
                raise NotYourTurnError(f"Player {player_id} is not in room {code!r}")
            if player.color is not room.game.current_player:
                raise NotYourTurnError(f"It is {room.game.current_player.value}'s turn")
            return room.game.play(from_pos, to_pos)
