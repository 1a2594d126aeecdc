import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from board import Board


@pytest.fixture
def board():
    b = Board(12, 10, workers=3)
    yield b
    b.close()


def _alive_set(cells):
    zs, xs = np.nonzero(cells)
    return set(zip(xs.tolist(), zs.tolist()))


def _reference_step(cells):
    counts = sum(
        np.roll(np.roll(cells.astype(int), dz, axis=0), dx, axis=1)
        for dz in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dz) != (0, 0)
    )
    return (counts == 3) | (cells & (counts == 2))


def test_blinker_rotates_and_returns():
    b = Board(12, 12, workers=2)
    try:
        horizontal = {(4, 5), (5, 5), (6, 5)}
        with b.access() as view:
            for x, z in horizontal:
                view.mutate(x, z, True)
            view.step()
            assert _alive_set(view.cells()) == {(5, 4), (5, 5), (5, 6)}
            view.step()
            assert _alive_set(view.cells()) == horizontal
        assert b.generation == 2
    finally:
        b.close()


def test_wraparound_in_x(board):
    # (0, 4) sees (11, 3), (11, 4), (11, 5) across the left edge: birth with 3
    with board.access() as view:
        for z in (3, 4, 5):
            view.mutate(11, z, True)
        view.step()
        assert view.alive(0, 4)
        assert view.alive(10, 4)


def test_wraparound_in_z(board):
    with board.access() as view:
        for x in (3, 4, 5):
            view.mutate(x, 9, True)
        view.step()
        assert view.alive(4, 0)
        assert view.alive(4, 8)


def test_corner_wraps_both_axes(board):
    # a block straddling all four corners is a still life
    corners = {(0, 0), (11, 0), (0, 9), (11, 9)}
    with board.access() as view:
        for x, z in corners:
            view.mutate(x, z, True)
        view.step()
        assert _alive_set(view.cells()) == corners


def test_mutate_out_of_range_is_ignored(board):
    with board.access() as view:
        assert not view.mutate(-1, 5, True)
        assert not view.mutate(12, 0, True)
        assert not view.mutate(0, 10, True)
        assert view.mutate(11, 9, True)
        assert view.population() == 1


def test_step_matches_reference_rule():
    rng = np.random.default_rng(7)
    start = rng.random((17, 23)) < 0.35
    results = []
    for workers in (1, 4):
        b = Board(23, 17, workers=workers)
        try:
            with b.access() as view:
                for z, x in zip(*np.nonzero(start)):
                    view.mutate(int(x), int(z), True)
                for _ in range(3):
                    view.step()
            results.append(b.snapshot())
        finally:
            b.close()
    expected = start
    for _ in range(3):
        expected = _reference_step(expected)
    assert np.array_equal(results[0], expected)
    assert np.array_equal(results[1], expected)


def test_lonely_and_crowded_cells_die(board):
    with board.access() as view:
        view.mutate(2, 2, True)
        for x, z in [(6, 6), (5, 5), (7, 5), (5, 7), (7, 7)]:
            view.mutate(x, z, True)
        view.step()
        assert not view.alive(2, 2)
        assert not view.alive(6, 6)


def test_snapshot_is_a_copy(board):
    with board.access() as view:
        view.mutate(1, 1, True)
    snap = board.snapshot()
    snap[1, 1] = False
    assert board.snapshot()[1, 1]


def test_access_is_invalid_after_scope(board):
    with board.access() as view:
        pass
    with pytest.raises(RuntimeError):
        view.mutate(0, 0, True)


def test_cells_view_is_read_only(board):
    with board.access() as view:
        cells = view.cells()
        with pytest.raises(ValueError):
            cells[0, 0] = True
