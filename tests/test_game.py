import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import config
from blocks import ALIVE_BLOCK
from events import DigEvent, MoveEvent
from game import Accept, LifeGame, Reject
from world import MissingTileError, TileWorld

BOARD_Y = 5


@pytest.fixture
def game():
    g = LifeGame(size_x=20, size_z=20, board_y=BOARD_Y, max_players=2,
                 step_every=4, workers=2, world=TileWorld(sector_height=8))
    g.on_init()
    yield g
    g.close()


def _messages(session, name):
    return [m for m in session.comms_queue if m[0] == name]


def test_join_accepts_until_full(game):
    a = game.on_join_attempt("a")
    b = game.on_join_attempt("b")
    c = game.on_join_attempt("c")
    assert isinstance(a, Accept) and a.world is game.world
    assert isinstance(b, Accept)
    assert c == Reject(config.FULL_MESSAGE)
    assert game.server_list_ping() == {
        'online_players': 2,
        'max_players': 2,
        'description': config.SERVER_DESCRIPTION,
    }
    assert game.max_connections() == 2 + config.CONNECTION_HEADROOM


def test_onboarding_happens_once(game):
    session = game.on_join_attempt("a").session
    assert session.joined_tick == 1
    game.on_tick(1)
    assert session.onboarded
    assert session.game_mode == 'survival'
    assert session.position == game.spawn_pos == (10.0, BOARD_Y + 1.0, 10.0)
    assert game.world.player_list == {session.id: ("a", 'survival')}
    assert [m[2][0] for m in _messages(session, 'message')] == list(config.WELCOME_MESSAGES)
    session.comms_queue = []
    game.on_tick(2)
    game.on_tick(3)
    assert session.comms_queue == []
    assert len(game.world.player_list) == 1


def test_late_session_is_still_onboarded(game):
    session = game.on_join_attempt("a").session
    game.on_tick(5)
    assert session.onboarded


def test_disconnect_releases_slot(game):
    session = game.on_join_attempt("a").session
    game.on_tick(1)
    session.disconnect()
    game.on_tick(2)
    assert game.registry.count == 0
    assert session not in game.registry
    assert game.world.player_list == {}
    game.on_tick(3)
    assert game.registry.count == 0


def test_disconnect_before_onboarding_is_released_once(game):
    session = game.on_join_attempt("a").session
    session.disconnect()
    game.on_tick(1)
    assert not session.onboarded
    assert session.comms_queue == []
    assert game.world.player_list == {}
    assert game.registry.count == 0
    game.on_tick(2)
    assert game.registry.count == 0
    assert isinstance(game.on_join_attempt("b"), Accept)
    assert isinstance(game.on_join_attempt("c"), Accept)
    assert game.registry.count == 2


def test_steps_only_on_cadence(game):
    session = game.on_join_attempt("a").session
    for x in (4, 5, 6):
        session.push_event(DigEvent((x, BOARD_Y, 5)))
    game.on_tick(1)
    assert game.board.generation == 0
    assert game.on_tick(2) == set()
    game.on_tick(3)
    assert game.board.generation == 0
    changed = game.on_tick(4)
    assert game.board.generation == 1
    assert changed == {(0, 0), (1, 0), (0, 1), (1, 1)}
    cells = game.board.snapshot()
    assert set(zip(*np.nonzero(cells))) == {(4, 5), (5, 5), (6, 5)}
    tile = game.world.get((0, 0))
    assert [tile.get_block(5, BOARD_Y, z) == ALIVE_BLOCK for z in (4, 5, 6)] == [True] * 3


def test_step_ticks_replicate_changed_sectors(game):
    session = game.on_join_attempt("a").session
    game.on_tick(1)
    session.comms_queue = []
    game.on_tick(4)
    sent = _messages(session, 'sector_blocks_changed')
    assert [m[2][0] for m in sent] == [(0, 0), (0, 1), (1, 0), (1, 1)]
    pos, y, plane = sent[0][2]
    assert y == BOARD_Y and plane.shape == (16, 16)
    session.comms_queue = []
    game.on_tick(8)
    assert _messages(session, 'sector_blocks_changed') == []


def test_fall_through_is_handled_every_tick(game):
    session = game.on_join_attempt("a").session
    game.on_tick(1)
    session.comms_queue = []
    session.push_event(MoveEvent((99.0, -5.0, -40.0), 30.0, 2.0))
    game.on_tick(2)
    assert session.position == game.spawn_pos
    assert _messages(session, 'teleport') == [['teleport', session.id, (game.spawn_pos, 30.0, 2.0)]]


def test_events_from_reaped_sessions_are_dropped(game):
    session = game.on_join_attempt("a").session
    session.push_event(DigEvent((1, BOARD_Y, 1)))
    session.disconnect()
    game.on_tick(4)
    assert game.board.snapshot().sum() == 0


def test_on_init_runs_once(game):
    tile = game.world.get((0, 0))
    game.on_init()
    assert game.world.get((0, 0)) is tile


def test_tick_without_init_is_fatal():
    g = LifeGame(size_x=20, size_z=20, board_y=BOARD_Y, max_players=1,
                 workers=1, world=TileWorld(sector_height=8))
    try:
        with pytest.raises(MissingTileError):
            g.on_tick(4)
    finally:
        g.close()


def test_non_finite_dig_does_not_stop_the_tick(game):
    session = game.on_join_attempt("a").session
    session.push_event(DigEvent((float("inf"), BOARD_Y, 3)))
    session.push_event(DigEvent((3, BOARD_Y, 3)))
    game.on_tick(1)
    assert game.board.snapshot()[3, 3]
    assert session.pop_event() is None
