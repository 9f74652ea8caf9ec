import logging
import random
from dataclasses import replace
from typing import Any, Mapping

from esper import World

from match2048.components.level_state import LevelState
from match2048.components.power_ups import PowerUpInventory
from match2048.components.spawn_table import SpawnTable
from match2048.components.special_tile_config import SpecialTileConfig
from match2048.components.turn_state import TurnState
from match2048.config import LevelConfig
from match2048.constants import MAX_POWER_UP_USES
from match2048.systems.board_ops import count_blocked_tiles
from match2048.systems.board_setup import build_board
from match2048.systems.goals import refresh_board_goals

logger = logging.getLogger(__name__)


def create_world(
    level: LevelConfig | Mapping[str, Any] | None = None,
    *,
    rng: random.Random | None = None,
    special_tile_config: SpecialTileConfig | Mapping[str, str] | None = None,
    power_up_uses: int = MAX_POWER_UP_USES,
) -> World:
    """Build a world holding the opening board and per-level state for ``level``.

    ``level`` may be a parsed ``LevelConfig`` or the raw level mapping.
    Every random draw made by the engine goes through ``world.random``.
    """
    if level is None:
        level = LevelConfig()
    elif not isinstance(level, LevelConfig):
        level = LevelConfig.from_dict(level)
    if special_tile_config is None:
        special_tile_config = SpecialTileConfig()
    elif not isinstance(special_tile_config, SpecialTileConfig):
        special_tile_config = SpecialTileConfig.from_dict(special_tile_config)

    world = World()
    setattr(world, "random", rng or random.Random())

    board = build_board(level, world.random)
    world.create_entity(board)
    world.create_entity(
        SpawnTable(
            values=list(level.spawnable_tiles),
            max_tile_levels=level.max_tile_levels,
            smallest_tile_action=level.smallest_tile_action,
        )
    )
    # Goals are copied so one LevelConfig can seed several worlds.
    state = LevelState(
        goals=[replace(goal) for goal in level.goals],
        max_moves=level.max_moves,
        initial_blocked_count=count_blocked_tiles(board),
    )
    refresh_board_goals(state, board)
    world.create_entity(state)
    world.create_entity(TurnState())
    world.create_entity(special_tile_config)
    world.create_entity(PowerUpInventory(hammer=power_up_uses, halve=power_up_uses, swap=power_up_uses))
    logger.debug(
        "Created %dx%d world with %d goal(s) and %d move(s)",
        board.cols, board.rows, len(state.goals), state.max_moves,
    )
    return world
