GRID_ROWS = 8
GRID_COLS = 8

# Exponent indices: 1 = 2, 2 = 4, 3 = 8, 4 = 16.
DEFAULT_TILE_VALUES = [1, 2, 3, 4]

# Power-up charges granted per level.
MAX_POWER_UP_USES = 2

# Moves a cursed tile survives when its goal does not set a strength.
DEFAULT_CURSED_STRENGTH = 10

# Safety stop for the cascade loop; a legitimate cascade settles long before this.
MAX_CASCADE_PASSES = 1000

# Restarts allowed when a match-free fill paints itself into a corner.
MAX_FILL_ATTEMPTS = 100

# Display base for score and blocked-tile damage (2 -> 2, 4, 8, ...).
DISPLAY_BASE = 2

# Hint scoring weights.
HINT_FORMATION_WEIGHTS = {
    "line_5": 1000,
    "t_formation": 800,
    "l_formation": 800,
    "line_4": 600,
    "block_4": 500,
    "line_3": 300,
}
HINT_TILE_WEIGHT = 50
HINT_GOAL_WEIGHT = 100
HINT_BLOCKED_WEIGHT = 200
HINT_BLOCKED_ONLY_BASE = 10000
HINT_BLOCKED_ONLY_WEIGHT = 500
HINT_SPECIAL_BONUS = 200
HINT_VALUE_WEIGHT = 5
HINT_ROW_BONUS = 50
