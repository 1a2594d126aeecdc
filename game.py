'''
game.py -- Conway's game of life played on a shared board

LifeGame is driven by the host: `on_init` once, `on_join_attempt` whenever a
player connects, and `on_tick` once per tick. Each tick runs, in order:

    onboarding   new players get their game mode, spawn and welcome
    reaping      disconnected players are removed and their slot freed
    event drain  digging brings cells to life, falling players respawn
    step         every STEP_EVERY_N_TICKS ticks the board advances one
                 generation and is drawn into the world
'''

# standard library imports
import threading
import time
from collections import namedtuple

# local imports
import config
import logutil
from board import Board
from events import drain_events
from players import SessionRegistry, ServerFull
from world import TileWorld, materialize

Accept = namedtuple('Accept', ['world', 'session'])
Reject = namedtuple('Reject', ['reason'])

GAME_MODE = 'survival'


class LifeGame(object):
    def __init__(self, size_x=None, size_z=None, board_y=None, max_players=None,
                 step_every=None, spawn_pos=None, fall_threshold=None,
                 workers=None, world=None):
        self.board = Board(size_x, size_z, workers)
        self.size_x = self.board.size_x
        self.size_z = self.board.size_z
        self.board_y = board_y if board_y is not None else config.BOARD_Y
        self.step_every = step_every or config.STEP_EVERY_N_TICKS
        if spawn_pos is None:
            if (self.size_x, self.size_z, self.board_y) == (config.SIZE_X, config.SIZE_Z, config.BOARD_Y):
                spawn_pos = config.SPAWN_POS
            else:
                # above the center of a custom sized board
                spawn_pos = (self.size_x / 2.0, self.board_y + 1.0, self.size_z / 2.0)
        self.spawn_pos = tuple(spawn_pos)
        self.fall_threshold = fall_threshold if fall_threshold is not None else config.FALL_THRESHOLD
        self.registry = SessionRegistry(max_players)
        self.world = world if world is not None else TileWorld()
        # last tick started; read without the tick lock by on_join_attempt,
        # a stale value only delays onboarding to a later tick
        self.current_tick = 0
        self.changed_sectors = set()
        self._initialized = False
        self._tick_lock = threading.Lock()

    def close(self):
        self.board.close()

    def max_connections(self):
        return self.registry.max_players + getattr(config, "CONNECTION_HEADROOM", 64)

    def server_list_ping(self):
        return {
            'online_players': self.registry.count,
            'max_players': self.registry.max_players,
            'description': config.SERVER_DESCRIPTION,
        }

    def on_init(self):
        '''
        creates the sectors covering the board plus a margin; only the first
        call has any effect
        '''
        if self._initialized:
            return
        margin = getattr(config, "TILE_MARGIN", 2)
        self.world.create_range(self.size_x, self.size_z, margin)
        self._initialized = True

    def on_join_attempt(self, name, conn=None):
        '''
        admits a player if a slot is free; the player is onboarded on the
        next tick
        '''
        try:
            session = self.registry.join(name, self.current_tick + 1, conn)
        except ServerFull as ex:
            logutil.log("GAME", f"rejected {name}: {ex.reason}")
            return Reject(ex.reason)
        return Accept(self.world, session)

    def on_tick(self, tick):
        '''
        Runs one tick. Returns the sector positions redrawn by this tick
        (empty on ticks that don't step).
        '''
        with self._tick_lock:
            t0 = time.perf_counter()
            self.current_tick = tick
            logutil.set_tick(tick)

            self._onboard(tick)
            self._reap()
            t_sessions = time.perf_counter()

            changed = set()
            stepped = tick % self.step_every == 0
            with self.board.access() as board:
                drained = 0
                for session in self.registry.sessions():
                    drained += drain_events(session, board,
                                            spawn_pos=self.spawn_pos,
                                            board_y=self.board_y,
                                            fall_threshold=self.fall_threshold)
                t_events = time.perf_counter()
                if stepped:
                    board.step()
                    changed = materialize(self.world, board.cells(), self.board_y)
            t_step = time.perf_counter()

            if changed:
                self._replicate(changed)
            self.changed_sectors = changed

            total_ms = (t_step - t0) * 1000.0
            logutil.log(
                "TICK",
                f"sessions={(t_sessions - t0) * 1000.0:.2f}ms events={drained} "
                f"({(t_events - t_sessions) * 1000.0:.2f}ms) "
                f"step={(t_step - t_events) * 1000.0:.2f}ms dirty={len(changed)}",
                level="DEBUG",
            )
            if total_ms > getattr(config, "UPDATE_SLOW_LOG_MS", 50.0):
                logutil.log("GAME", f"slow tick {total_ms:.1f}ms", level="WARN")
            return changed

    def _onboard(self, tick):
        for session in self.registry.sessions():
            if session.onboarded or session.joined_tick > tick:
                continue
            if session.is_disconnected():
                # never shown to anyone; reaping frees the slot
                continue
            session.onboarded = True
            session.set_game_mode(GAME_MODE)
            session.teleport(self.spawn_pos, 0.0, 0.0)
            self.world.insert_player(session.id, session.name, session.game_mode)
            for text in config.WELCOME_MESSAGES:
                session.send_message(text)
            logutil.log("GAME", f"player {session.id} ({session.name}) joined")

    def _reap(self):
        for session in self.registry.reap():
            self.world.remove_player(session.id)
            logutil.log("GAME", f"player {session.id} ({session.name}) left")

    def _replicate(self, changed):
        y = self.board_y - self.world.min_y
        planes = [(pos, self.world.get(pos).blocks[:, y, :].copy()) for pos in sorted(changed)]
        for session in self.registry.sessions():
            if not session.onboarded:
                continue
            for pos, plane in planes:
                session.queue_message('sector_blocks_changed', pos, self.board_y, plane)
