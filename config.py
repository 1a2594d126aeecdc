TICKS_PER_SEC = 20
# Update slower than this is logged as an overrun.
UPDATE_SLOW_LOG_MS = 1000.0 / TICKS_PER_SEC

# Size of the life board in cells (x and z).
SIZE_X = 100
SIZE_Z = 100
# Height of the plane the board is drawn on and players dig into.
BOARD_Y = 50

# Step the automaton once every N ticks.
STEP_EVERY_N_TICKS = 4
# Row bands computed in parallel during a step (None for cpu count).
STEP_WORKERS = 4

MAX_PLAYERS = 10
# Raw connections accepted beyond MAX_PLAYERS. The headroom lets status pings
# succeed even when the game itself is full.
CONNECTION_HEADROOM = 64

# Players spawn above the center of the board.
SPAWN_POS = (SIZE_X / 2.0, BOARD_Y + 1.0, SIZE_Z / 2.0)
# Players at or below this height have fallen out of the world.
FALL_THRESHOLD = 0.0

# Size of sectors (tiles) the world is split into.
SECTOR_SIZE = 16 #width and depth (x and z)
SECTOR_HEIGHT = 256 #height of world (y)
# Extra sectors created around the board on every side.
TILE_MARGIN = 2

SERVER_IP = 'localhost'
SERVER_PORT = 20226
SERVER_AUTHKEY = b'password'
SERVER_DESCRIPTION = "Conway's game of life"

WELCOME_MESSAGES = (
    "Welcome to Conway's game of life!",
    "Hold the left mouse button to bring blocks to life.",
)
FULL_MESSAGE = "The server is full!"

# Enable ANSI colors in logs.
LOG_COLOR = True

# Minimum level printed (DEBUG, INFO, WARN, ERROR).
LOG_LEVEL = "INFO"

# Log per-tick phase timings.
LOG_TICK_LOOP = False
