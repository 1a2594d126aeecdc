'''
events.py -- player input events and the per-tick drain that applies them
'''
import math
from collections import namedtuple

import config
from util import normalize

# player started breaking the block at integer `position`
DigEvent = namedtuple('DigEvent', ['position'])
# player moved; `position` is the player's feet
MoveEvent = namedtuple('MoveEvent', ['position', 'yaw', 'pitch'])


def apply_event(session, event, board, spawn_pos=None, board_y=None, fall_threshold=None):
    '''
    Applies one input `event` from `session` to `board` (a `BoardAccess`).
    Returns True if the event changed the board or moved the player.
    '''
    if board_y is None:
        board_y = config.BOARD_Y
    if isinstance(event, DigEvent):
        try:
            x, y, z = normalize(event.position)
        except (TypeError, ValueError, OverflowError):
            return False
        size_x, size_z = board.size
        if 0 <= x < size_x and 0 <= z < size_z and y == board_y:
            return board.mutate(x, z, True)
        return False
    if isinstance(event, MoveEvent):
        if fall_threshold is None:
            fall_threshold = config.FALL_THRESHOLD
        if spawn_pos is None:
            spawn_pos = config.SPAWN_POS
        try:
            position = tuple(float(c) for c in event.position)
        except (TypeError, ValueError):
            return False
        if len(position) != 3 or not all(math.isfinite(c) for c in position):
            return False
        session.position = position
        if event.yaw is not None:
            session.yaw = event.yaw
        if event.pitch is not None:
            session.pitch = event.pitch
        if position[1] <= fall_threshold:
            session.teleport(spawn_pos, session.yaw, session.pitch)
            return True
        return False
    return False


def drain_events(session, board, **kwargs):
    '''
    Pops every event queued on `session` when the drain starts and applies it.
    Events arriving while draining wait for the next tick. Returns the number
    drained.
    '''
    pending = len(session.events)
    count = 0
    while count < pending:
        event = session.pop_event()
        if event is None:
            break
        apply_event(session, event, board, **kwargs)
        count += 1
    return count
