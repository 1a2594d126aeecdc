'''
board.py -- the life board: two generation buffers and the step that moves
between them.

The board is only touched through `Board.access()`, which holds the board lock
for the whole scope (event drain, step, swap and materialize of a tick), or
through `Board.snapshot()` which copies the current generation under the lock.
'''

# standard library imports
import os
import threading
import concurrent.futures
import contextlib
import time

import numpy

# local imports
import config
import logutil


class Board(object):
    '''
    Toroidal Game of Life board of `size_x` by `size_z` cells.

    Buffers are indexed [z, x]. `current` is the authoritative generation,
    `scratch` is only written during a step and then swapped in.
    '''
    def __init__(self, size_x=None, size_z=None, workers=None):
        self.size_x = size_x if size_x is not None else config.SIZE_X
        self.size_z = size_z if size_z is not None else config.SIZE_Z
        if workers is None:
            workers = getattr(config, "STEP_WORKERS", None) or os.cpu_count() or 1
        self._current = numpy.zeros((self.size_z, self.size_x), dtype=bool)
        self._scratch = numpy.zeros((self.size_z, self.size_x), dtype=bool)
        self._lock = threading.Lock()
        self.generation = 0
        self.step_executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="step")
        self.bands = max(1, min(self.size_z, workers))

    @contextlib.contextmanager
    def access(self):
        '''
        exclusive access scope; yields a `BoardAccess` that is only valid
        inside the `with` block
        '''
        with self._lock:
            view = BoardAccess(self)
            try:
                yield view
            finally:
                view._board = None

    def snapshot(self):
        with self._lock:
            return self._current.copy()

    def close(self):
        self.step_executor.shutdown(wait=True)

    def in_bounds(self, x, z):
        return 0 <= x < self.size_x and 0 <= z < self.size_z

    def _mutate(self, x, z, alive):
        if not self.in_bounds(x, z):
            return False
        self._current[z, x] = alive
        return True

    def _step(self):
        t0 = time.perf_counter()
        current = self._current
        scratch = self._scratch
        # One cell of wraparound on every edge, read-only for all bands.
        padded = numpy.pad(current, 1, mode='wrap').astype(numpy.uint8)
        edges = numpy.linspace(0, self.size_z, self.bands + 1).astype(int)
        futures = [
            self.step_executor.submit(_step_band, padded, current, scratch, z0, z1)
            for z0, z1 in zip(edges[:-1], edges[1:]) if z1 > z0
        ]
        for future in futures:
            # re-raises a failed band before the swap
            future.result()
        self._current, self._scratch = scratch, current
        self.generation += 1
        logutil.log("BOARD", f"generation {self.generation} population {int(self._current.sum())} "
                    f"in {(time.perf_counter() - t0) * 1000.0:.2f}ms", level="DEBUG")


def _step_band(padded, current, scratch, z0, z1):
    '''
    Writes rows [z0, z1) of the next generation into `scratch`.
    `padded` is `current` wrapped by one cell, so padded[z + 1, x + 1] == current[z, x].
    '''
    p = padded[z0:z1 + 2]
    counts = (p[:-2, :-2] + p[:-2, 1:-1] + p[:-2, 2:]
              + p[1:-1, :-2] + p[1:-1, 2:]
              + p[2:, :-2] + p[2:, 1:-1] + p[2:, 2:])
    alive = current[z0:z1]
    scratch[z0:z1] = (counts == 3) | (alive & (counts == 2))


class BoardAccess(object):
    '''
    Handle on the board while its lock is held.
    '''
    def __init__(self, board):
        self._board = board

    def _checked(self):
        if self._board is None:
            raise RuntimeError("board access used outside of its scope")
        return self._board

    @property
    def size(self):
        board = self._checked()
        return board.size_x, board.size_z

    def mutate(self, x, z, alive=True):
        '''
        sets the cell at (`x`, `z`); coordinates off the board are ignored
        and False is returned
        '''
        return self._checked()._mutate(x, z, alive)

    def step(self):
        self._checked()._step()

    def alive(self, x, z):
        board = self._checked()
        return bool(board._current[z % board.size_z, x % board.size_x])

    def population(self):
        return int(self._checked()._current.sum())

    def cells(self):
        '''
        read-only view of the current generation, valid until the scope ends
        or the next step
        '''
        view = self._checked()._current.view()
        view.flags.writeable = False
        return view
