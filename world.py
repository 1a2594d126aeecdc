'''
world.py -- the sectorized block world the board is drawn into, and the
materializer that writes a generation into it
'''

import numpy

import config
import logutil
from blocks import ALIVE_BLOCK, DEAD_BLOCK
from util import tile_range


class MissingTileError(LookupError):
    '''
    a sector the board needs was never created; the world was set up for a
    smaller board than the one being drawn
    '''


class Tile(object):
    '''
    One SECTOR_SIZE x SECTOR_HEIGHT x SECTOR_SIZE column of blocks, indexed
    [x, y, z] in tile-local coordinates.
    '''
    def __init__(self, position, sector_size=None, sector_height=None):
        self.position = position
        self.size = sector_size or config.SECTOR_SIZE
        self.height = sector_height or config.SECTOR_HEIGHT
        self.blocks = numpy.zeros((self.size, self.height, self.size), dtype='u2')

    def set_block(self, x, y, z, block):
        self.blocks[x, y, z] = block

    def get_block(self, x, y, z):
        return int(self.blocks[x, y, z])


class TileWorld(object):
    '''
    The single world: pre-created tiles plus the player list shown to clients.
    '''
    def __init__(self, sector_size=None, sector_height=None, min_y=0):
        self.sector_size = sector_size or config.SECTOR_SIZE
        self.sector_height = sector_height or config.SECTOR_HEIGHT
        self.min_y = min_y
        self.tiles = {}
        self.player_list = {}

    def __len__(self):
        return len(self.tiles)

    def create(self, position):
        tile = Tile(position, self.sector_size, self.sector_height)
        self.tiles[position] = tile
        return tile

    def create_range(self, size_x, size_z, margin=0):
        '''
        creates (or clears) every tile covering the board plus `margin` tiles
        '''
        for pos in tile_range(size_x, size_z, margin, self.sector_size):
            self.create(pos)
        logutil.log("GAME", f"created {len(self.tiles)} sectors for {size_x}x{size_z} board")

    def get(self, position):
        try:
            return self.tiles[position]
        except KeyError:
            raise MissingTileError(f"sector {position} was not created") from None

    def insert_player(self, session_id, name, game_mode):
        '''
        adds a player list entry, returns False if one already exists
        '''
        if session_id in self.player_list:
            return False
        self.player_list[session_id] = (name, game_mode)
        return True

    def remove_player(self, session_id):
        return self.player_list.pop(session_id, None) is not None


def materialize(world, cells, board_y=None):
    '''
    Draws generation `cells` (bool array indexed [z, x]) into `world` at height
    `board_y`, grass for live cells and dirt for dead ones. Blocks of a sector
    outside the board are left alone.

    Returns the set of sector positions whose blocks changed.
    '''
    if board_y is None:
        board_y = config.BOARD_Y
    y = board_y - world.min_y
    if not 0 <= y < world.sector_height:
        raise MissingTileError(f"board height {board_y} is outside the world")
    size_z, size_x = cells.shape
    n = world.sector_size
    changed = set()
    for tx, tz in tile_range(size_x, size_z, 0, n):
        tile = world.get((tx, tz))
        x0 = tx * n
        z0 = tz * n
        region = cells[z0:z0 + n, x0:x0 + n].T
        w, d = region.shape
        markers = numpy.where(region, ALIVE_BLOCK, DEAD_BLOCK).astype('u2')
        if not numpy.array_equal(tile.blocks[:w, y, :d], markers):
            tile.blocks[:w, y, :d] = markers
            changed.add((tx, tz))
    return changed
