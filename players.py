import itertools
import threading
from collections import deque

import config
import logutil

_ids = itertools.count()


class ServerFull(Exception):
    '''
    raised by `SessionRegistry.join` when every gameplay slot is taken
    '''
    def __init__(self, reason=None):
        self.reason = reason or config.FULL_MESSAGE
        Exception.__init__(self, self.reason)


class Session(object):
    '''
    A connected player: identity, position, liveness and the queue of input
    events received since the last tick. Outgoing messages for the host to
    deliver accumulate in `comms_queue`.
    '''
    def __init__(self, name, joined_tick, conn=None):
        self.id = next(_ids)
        self.conn = conn
        self.name = name
        self.position = (0.0, 0.0, 0.0)
        self.yaw = 0.0
        self.pitch = 0.0
        self.game_mode = None
        self.joined_tick = joined_tick
        self.onboarded = False
        self.connected = True
        self.events = deque()
        self.comms_queue = []

    def __repr__(self):
        return self.name

    def __str__(self):
        return self.name

    def is_disconnected(self):
        return not self.connected

    def disconnect(self):
        self.connected = False

    def push_event(self, event):
        self.events.append(event)

    def pop_event(self):
        try:
            return self.events.popleft()
        except IndexError:
            return None

    def queue_message(self, message, *data):
        self.comms_queue.append([message, self.id, data])

    def set_game_mode(self, mode):
        self.game_mode = mode
        self.queue_message('game_mode', mode)

    def teleport(self, position, yaw, pitch):
        self.position = tuple(position)
        self.yaw = yaw
        self.pitch = pitch
        self.queue_message('teleport', self.position, yaw, pitch)

    def send_message(self, text):
        self.queue_message('message', text)


class ClientSession(object):
    '''
    the public view of a session sent to other players
    '''
    def __init__(self, session):
        self.id = session.id
        self.name = session.name
        self.position = session.position

    def __repr__(self):
        return self.name


class AdmissionCounter(object):
    '''
    Count of admitted sessions, bounded by `maximum`.

    Updates are compare-and-retry: a new value is only committed if the count
    is still the one it was computed from.
    '''
    def __init__(self, maximum):
        self.maximum = maximum
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self):
        return self._count

    def _compare_and_set(self, expected, value):
        with self._lock:
            if self._count != expected:
                return False
            self._count = value
            return True

    def try_acquire(self):
        while True:
            count = self._count
            if count >= self.maximum:
                return False
            if self._compare_and_set(count, count + 1):
                return True

    def release(self):
        while True:
            count = self._count
            if count <= 0:
                raise RuntimeError("admission counter released below zero")
            if self._compare_and_set(count, count - 1):
                return


class SessionRegistry(object):
    '''
    Sessions keyed by id plus the admission counter guarding their number.

    Every session returned by `join` holds one slot until `release` removes it;
    releasing a session that is no longer registered does nothing.
    '''
    def __init__(self, max_players=None):
        if max_players is None:
            max_players = config.MAX_PLAYERS
        self.admission = AdmissionCounter(max_players)
        self._sessions = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._sessions)

    def __contains__(self, session):
        return session.id in self._sessions

    @property
    def count(self):
        return self.admission.count

    @property
    def max_players(self):
        return self.admission.maximum

    def sessions(self):
        with self._lock:
            return list(self._sessions.values())

    def join(self, name, joined_tick, conn=None):
        if not self.admission.try_acquire():
            raise ServerFull()
        session = Session(name, joined_tick, conn)
        with self._lock:
            self._sessions[session.id] = session
        logutil.log("GAME", f"admitted {session.id} ({session.name}) "
                    f"{self.count}/{self.max_players}")
        return session

    def release(self, session):
        with self._lock:
            removed = self._sessions.pop(session.id, None)
        if removed is None:
            return False
        self.admission.release()
        logutil.log("GAME", f"released {session.id} ({session.name}) "
                    f"{self.count}/{self.max_players}")
        return True

    def reap(self):
        '''
        removes and releases every disconnected session, returns them
        '''
        reaped = []
        for session in self.sessions():
            if session.is_disconnected() and self.release(session):
                reaped.append(session)
        return reaped
