import pytest

from engine.board import Color, Position
from engine.game import IllegalMoveError
from web.rooms import NotYourTurnError, RoomFullError, RoomNotFoundError, RoomStore


@pytest.fixture
def clock(clock_factory):
    return clock_factory(start=100.0)


@pytest.fixture
def store(clock):
    return RoomStore(ttl_seconds=60, clock=clock)


def test_create_assigns_color_by_parity(store):
    assert store.create(4).players[0].color is Color.WHITE
    assert store.create(7).players[0].color is Color.BLACK
    assert len(store) == 2


def test_codes_are_short_and_unique(store):
    codes = {store.create(i).code for i in range(20)}
    assert len(codes) == 20
    assert all(len(c) == 6 and c.isalnum() for c in codes)


def test_joiner_gets_opposite_color(store):
    room = store.create(2)
    # Both ids are even; the joiner still takes the free color.
    store.join(room.code, 8)
    assert [p.color for p in room.players] == [Color.WHITE, Color.BLACK]


def test_rejoin_is_noop_and_third_player_rejected(store):
    room = store.create(1)
    store.join(room.code, 2)
    store.join(room.code, 2)

    assert len(room.players) == 2
    with pytest.raises(RoomFullError):
        store.join(room.code, 3)


def test_rooms_expire_after_ttl(store, clock):
    room = store.create(1)

    clock.advance(59)
    assert store.get(room.code) is room

    # Access refreshed last_seen, so the clock restarts from here.
    clock.advance(59)
    assert store.get(room.code) is room

    clock.advance(60)
    with pytest.raises(RoomNotFoundError):
        store.get(room.code)
    assert len(store) == 0


def test_purge_counts_removed_rooms(store, clock):
    store.create(1)
    store.create(2)
    clock.advance(61)
    assert store.purge() == 2


def test_play_enforces_seat_and_turn(store):
    room = store.create(2)
    store.join(room.code, 3)

    with pytest.raises(NotYourTurnError):
        store.play(room.code, 99, Position(5, 2), Position(4, 3))
    with pytest.raises(NotYourTurnError):
        store.play(room.code, 3, Position(2, 1), Position(3, 0))
    with pytest.raises(IllegalMoveError):
        store.play(room.code, 2, Position(5, 2), Position(3, 4))

    result = store.play(room.code, 2, Position(5, 2), Position(4, 3))
    assert result.success
    assert room.game.current_player is Color.BLACK
    store.play(room.code, 3, Position(2, 1), Position(3, 0))
    assert room.game.current_player is Color.WHITE


def test_unknown_room(store):
    with pytest.raises(RoomNotFoundError):
        store.play("zzzzzz", 1, Position(5, 2), Position(4, 3))
