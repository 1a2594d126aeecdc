class Block(object):
    name = None


class Air(Block):
    name = 'Air'


class Grass(Block):
    name = 'Grass'


class Dirt(Block):
    name = 'Dirt'


BLOCKS = [Air, Grass, Dirt]

BLOCK_ID = {}
i = 0
for x in BLOCKS:
    BLOCK_ID[x.name] = i
    i += 1

# Visual markers for live and dead cells on the board plane.
ALIVE_BLOCK = BLOCK_ID['Grass']
DEAD_BLOCK = BLOCK_ID['Dirt']
