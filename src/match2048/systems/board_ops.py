from __future__ import annotations

import random
from typing import List, Sequence, Tuple

from esper import World

from match2048.components.board import Board
from match2048.components.level_state import LevelState
from match2048.components.power_ups import PowerUpInventory
from match2048.components.spawn_table import SpawnTable
from match2048.components.special_tile_config import SpecialTileConfig
from match2048.components.tile import (
    NormalTile,
    is_any_blocked,
    is_normal,
    is_power_tile,
    value_of,
)

Position = Tuple[int, int]


def _singleton(world: World, component_type):
    for _, component in world.get_component(component_type):
        return component
    raise RuntimeError(f"{component_type.__name__} not found")


def get_board(world: World) -> Board:
    return _singleton(world, Board)


def get_level_state(world: World) -> LevelState:
    return _singleton(world, LevelState)


def get_spawn_table(world: World) -> SpawnTable:
    return _singleton(world, SpawnTable)


def get_special_tile_config(world: World) -> SpecialTileConfig:
    return _singleton(world, SpecialTileConfig)


def get_power_ups(world: World) -> PowerUpInventory:
    return _singleton(world, PowerUpInventory)


def can_match(a, b) -> bool:
    """Equal values match; a power tile also absorbs any tile of equal or higher value."""
    va = value_of(a)
    vb = value_of(b)
    if va is None or vb is None:
        return False
    if va == vb:
        return True
    if is_power_tile(a) and vb >= va:
        return True
    if is_power_tile(b) and va >= vb:
        return True
    return False


def random_spawn_value(values: Sequence[int], rng: random.Random | None = None) -> int:
    if not values:
        raise ValueError("No spawnable values")
    return (rng or random).choice(list(values))


def spawn_tile(values: Sequence[int], rng: random.Random | None = None) -> NormalTile:
    return NormalTile(value=random_spawn_value(values, rng))


def is_adjacent(a: Position, b: Position) -> bool:
    ar, ac = a
    br, bc = b
    return (abs(ar - br) == 1 and ac == bc) or (abs(ac - bc) == 1 and ar == br)


def swap_cells(board: Board, a: Position, b: Position) -> None:
    tile_a = board.get(*a)
    tile_b = board.get(*b)
    board.set(a[0], a[1], tile_b)
    board.set(b[0], b[1], tile_a)


def count_blocked_tiles(board: Board) -> int:
    return sum(1 for row, col in board.positions() if is_any_blocked(board.get(row, col)))


def count_normal_tiles(board: Board, value: int) -> int:
    total = 0
    for row, col in board.positions():
        tile = board.get(row, col)
        if is_normal(tile) and tile.value == value:
            total += 1
    return total


def board_values(board: Board) -> List[int]:
    """Distinct values of normal tiles currently on the board."""
    seen = set()
    for row, col in board.positions():
        tile = board.get(row, col)
        if is_normal(tile):
            seen.add(tile.value)
    return sorted(seen)


def manhattan(a: Position, b: Position) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])
