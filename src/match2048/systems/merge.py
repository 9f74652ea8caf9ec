"""Turn match groups into merged tiles.

Every group collapses onto one or two target cells. The merged value jumps one
tier (line-3, line-4, block) or two tiers (T, L, line-5), plus one more when a
golden tile took part. Formations configured in ``SpecialTileConfig`` place a
special tile on one target, or with ``random_powerup`` place plain tiles and
grant a random power-up. Obstacles next to any matched tile are cleared or
damaged, and goal counters for created, cursed and score goals are credited
as tiles are placed.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from match2048.components.board import Board
from match2048.components.goal import Goal
from match2048.components.power_ups import PowerUpInventory, PowerUpKind
from match2048.components.special_tile_config import SpecialTileConfig
from match2048.components.tile import (
    BlockedWithLifeTile,
    CursedTile,
    JokerTile,
    NormalTile,
    RectBlockedTile,
    display_value,
    is_any_blocked,
    is_cursed,
    is_sticky_free_swap_tile,
)
from match2048.components.turn_state import SwapContext
from match2048.constants import DEFAULT_CURSED_STRENGTH, DISPLAY_BASE
from match2048.errors import MergeGeometryError
from match2048.systems.board_ops import Position, is_adjacent, manhattan
from match2048.systems.goals import credit_created, credit_cursed, credit_score, cursed_goal_for
from match2048.systems.match_detection import FormationKind, MatchGroup

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeContext:
    special_config: SpecialTileConfig = field(default_factory=SpecialTileConfig)
    goals: List[Goal] = field(default_factory=list)
    last_swap: Optional[SwapContext] = None
    was_user_swap: bool = False
    cursed_created_count: Dict[int, int] = field(default_factory=dict)
    cursed_created_this_turn: Dict[int, bool] = field(default_factory=dict)
    # Receives charges from "random_powerup" formations.
    power_ups: Optional[PowerUpInventory] = None
    rng: Optional[random.Random] = None


@dataclass(slots=True)
class PlacedTile:
    position: Position
    tile: object
    special: Optional[str] = None


@dataclass(slots=True)
class MergeResult:
    new_tiles: List[PlacedTile] = field(default_factory=list)
    cleared_blocked: List[Position] = field(default_factory=list)
    # (position, life left) for obstacles that took damage but survived; a
    # rectangle reports its top-left cell.
    damaged_blocked: List[Tuple[Position, int]] = field(default_factory=list)
    # value -> number of tiles credited to "created" goals.
    created: Dict[int, int] = field(default_factory=dict)
    merged_cursed: List[Position] = field(default_factory=list)
    cursed_spawned: List[Position] = field(default_factory=list)
    granted_power_ups: List[PowerUpKind] = field(default_factory=list)
    score_delta: int = 0
    max_created_value: int = 0

    @property
    def goal_delta(self) -> Dict[int, int]:
        return dict(self.created)

    def credit(self, goals: Sequence[Goal], value: int, count: int) -> None:
        if count <= 0:
            return
        credit_created(goals, value, count)
        self.created[value] = self.created.get(value, 0) + count


def target_positions(group: MatchGroup) -> List[Position]:
    kind = group.kind
    if kind in (FormationKind.T_FORMATION, FormationKind.L_FORMATION):
        targets = [group.intersection] if group.intersection is not None else []
    elif kind is FormationKind.BLOCK_4:
        targets = list(group.intersections)
    elif kind.is_line_5:
        targets = [group.tiles[len(group.tiles) // 2]] if group.tiles else []
    elif kind.is_line_4:
        targets = [group.tiles[1], group.tiles[2]] if len(group.tiles) >= 4 else []
    else:
        targets = [group.tiles[1]] if len(group.tiles) >= 3 else []
    if not targets:
        raise MergeGeometryError(f"No target cell for {kind.value} match at {group.tiles}")
    return targets


def merged_value(group: MatchGroup) -> int:
    increment = 2 if group.kind.is_big else 1
    golden_bonus = 1 if group.has_golden_tile else 0
    return group.value + increment + golden_bonus


def choose_special_position(
    group: MatchGroup,
    targets: Sequence[Position],
    last_swap: Optional[SwapContext],
) -> Position:
    """Pick which target receives the special tile: the swapped cell, else the closest one."""
    if last_swap is None or len(targets) == 1:
        return targets[0]
    swap_pos = (last_swap.row, last_swap.col)
    if swap_pos in targets:
        return swap_pos
    if group.kind is FormationKind.BLOCK_4:
        for pos in targets:
            if is_adjacent(pos, swap_pos):
                return pos
    return min(targets, key=lambda pos: manhattan(pos, swap_pos))


def make_special_tile(mode: str, value: int, last_swap: Optional[SwapContext]):
    if mode == "joker":
        return JokerTile()
    if mode == "power":
        return NormalTile(value=value, is_power=True)
    if mode == "golden":
        return NormalTile(value=value, is_golden=True)
    if mode == "freeswap":
        return NormalTile(value=value, is_free_swap=True)
    if mode == "sticky_freeswap":
        return NormalTile(value=value, is_sticky_free_swap=True)
    if mode in ("freeswap_horizontal", "freeswap_vertical"):
        if last_swap is not None:
            axis = last_swap.axis
        else:
            axis = "horizontal" if mode == "freeswap_horizontal" else "vertical"
        return NormalTile(value=value, is_free_swap=True, free_swap_axis=axis)
    raise ValueError(f"Unknown special tile mode {mode!r}")


def _cells_holding(board: Board, tile) -> List[Position]:
    return [(row, col) for row, col in board.positions() if board.get(row, col) is tile]


def _collect_blocked_hits(board: Board, groups: Sequence[MatchGroup], result: MergeResult) -> None:
    """Clear or damage obstacles next to the matched tiles.

    Each obstacle is hit at most once per group. Hits are keyed by tile
    instance, so a rectangle covering several cells counts as one obstacle.
    """
    to_remove: List[Position] = []
    damage: Dict[BlockedWithLifeTile, int] = {}
    chips: Dict[RectBlockedTile, int] = {}
    for group in groups:
        hit_this_group: set = set()
        damage_value = display_value(group.value, DISPLAY_BASE)
        for row, col in group.tiles:
            for pos in board.neighbors(row, col):
                tile = board.get(*pos)
                if not is_any_blocked(tile) or tile in hit_this_group:
                    continue
                hit_this_group.add(tile)
                if isinstance(tile, BlockedWithLifeTile):
                    damage[tile] = damage.get(tile, 0) + damage_value
                elif isinstance(tile, RectBlockedTile):
                    chips[tile] = chips.get(tile, 0) + 1
                elif pos not in to_remove:
                    to_remove.append(pos)
    for tile, amount in damage.items():
        cells = _cells_holding(board, tile)
        tile.life -= amount
        if tile.life <= 0:
            to_remove.extend(cells)
        else:
            result.damaged_blocked.append((cells[0], tile.life))
    for tile, hits in chips.items():
        # One cell per hit, top-left first.
        to_remove.extend(_cells_holding(board, tile)[:hits])
    for pos in to_remove:
        board.set(pos[0], pos[1], None)
        result.cleared_blocked.append(pos)


def _maybe_curse(board: Board, pos: Position, value: int, context: MergeContext, result: MergeResult) -> None:
    goal = cursed_goal_for(context.goals, value)
    if goal is None or goal.is_complete or goal.frequency is None:
        return
    tile = board.get(*pos)
    if not isinstance(tile, NormalTile) or tile.value != value:
        return
    strength = goal.strength if goal.strength is not None else DEFAULT_CURSED_STRENGTH
    if goal.frequency == 0:
        if context.cursed_created_this_turn.get(value):
            return
        on_board = sum(
            1 for r, c in board.positions() if is_cursed(board.get(r, c)) and board.get(r, c).value == value
        )
        if on_board:
            return
        context.cursed_created_this_turn[value] = True
    else:
        count = context.cursed_created_count.get(value, 0) + 1
        context.cursed_created_count[value] = count
        if count % goal.frequency != 0:
            return
    board.set(pos[0], pos[1], CursedTile(value=value, moves_remaining=strength, created_this_turn=True))
    result.cursed_spawned.append(pos)


def grant_random_power_up(context: MergeContext, result: MergeResult) -> PowerUpKind:
    rng = context.rng if context.rng is not None else random.Random()
    kind = rng.choice(list(PowerUpKind))
    if context.power_ups is not None:
        context.power_ups.grant(kind)
    result.granted_power_ups.append(kind)
    return kind


def _place_group(board: Board, group: MatchGroup, sticky: bool, context: MergeContext, result: MergeResult) -> None:
    targets = target_positions(group)
    new_value = merged_value(group)
    goals = context.goals
    transfer_sticky = sticky and not context.was_user_swap

    if group.kind.is_big:
        result.credit(goals, group.value + 1, 3)
    if group.has_golden_tile:
        result.credit(goals, new_value - 1, 1)

    key = group.kind.config_key
    mode = context.special_config.mode_for(key) if key else "none"
    if mode == "random_powerup":
        # Plain tiles on the board; the reward goes to the inventory.
        grant_random_power_up(context, result)
        mode = "none"
    special_pos = choose_special_position(group, targets, context.last_swap) if mode != "none" else None
    plain_count = 0
    for pos in targets:
        if pos == special_pos:
            tile = make_special_tile(mode, new_value, context.last_swap)
            result.new_tiles.append(PlacedTile(position=pos, tile=tile, special=mode))
            if mode != "joker":
                plain_count += 1
        else:
            tile = NormalTile(value=new_value, is_sticky_free_swap=transfer_sticky)
            result.new_tiles.append(PlacedTile(position=pos, tile=tile))
            plain_count += 1
        board.set(pos[0], pos[1], tile)
    result.credit(goals, new_value, plain_count)
    result.max_created_value = max(result.max_created_value, new_value)

    for pos in targets:
        _maybe_curse(board, pos, new_value, context, result)


def resolve_merge(board: Board, groups: Sequence[MatchGroup], context: MergeContext) -> MergeResult:
    result = MergeResult()
    if not groups:
        return result

    result.score_delta = sum(display_value(g.value, DISPLAY_BASE) * len(g.tiles) for g in groups)
    credit_score(context.goals, result.score_delta)

    _collect_blocked_hits(board, groups, result)

    sticky_flags = [any(is_sticky_free_swap_tile(board.get(*pos)) for pos in g.tiles) for g in groups]
    for group in groups:
        for pos in group.tiles:
            tile = board.get(*pos)
            if is_cursed(tile):
                credit_cursed(context.goals, tile.value)
                result.merged_cursed.append(pos)

    for group in groups:
        for row, col in group.tiles:
            board.set(row, col, None)

    for group, sticky in zip(groups, sticky_flags):
        _place_group(board, group, sticky, context, result)

    logger.debug(
        "Merged %d group(s): score +%d, cleared %d obstacle(s)",
        len(groups), result.score_delta, len(result.cleared_blocked),
    )
    return result
