import math

from config import SECTOR_SIZE


def div_ceil(a, b):
    return -(-a // b)


def normalize(position):
    """ Accepts `position` of arbitrary precision and returns the block
    containing that position.

    Parameters
    ----------
    position : tuple of len 3

    Returns
    -------
    block_position : tuple of ints of len 3

    """
    x, y, z = position
    return int(math.floor(x)), int(math.floor(y)), int(math.floor(z))


def tile_range(size_x, size_z, margin=0, sector_size=SECTOR_SIZE):
    """ Yields (tx, tz) for every tile covering [0,size_x)x[0,size_z),
    grown by `margin` tiles on each side.
    """
    for tz in range(-margin, div_ceil(size_z, sector_size) + margin):
        for tx in range(-margin, div_ceil(size_x, sector_size) + margin):
            yield tx, tz
