"""Match -> merge -> gravity loop run after every board-changing action.

Each pass walks ``MATCHES_PENDING -> RESOLVING -> GRAVITY_REFILL`` and emits an
event at every boundary so a renderer can animate between phases. Once the
board is stable the turn boundary (cursed countdown) is processed; expired
cursed tiles leave holes that feed another gravity pass and another round of
detection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from esper import World

from match2048.components.board import Board
from match2048.components.spawn_table import SpawnTable
from match2048.components.tile import BlockedMovableTile, BlockedTile, is_normal
from match2048.components.turn_state import CascadePhase
from match2048.constants import MAX_CASCADE_PASSES
from match2048.errors import CascadeInProgressError
from match2048.events.bus import (
    EventBus,
    EVENT_BLOCKED_CLEARED,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_CURSED_EXPIRED,
    EVENT_GOALS_UPDATED,
    EVENT_GRAVITY_APPLIED,
    EVENT_JOKER_RESOLVED,
    EVENT_MATCH_FOUND,
    EVENT_MERGE_RESOLVED,
    EVENT_POWER_UP_GRANTED,
    EVENT_REFILL_COMPLETED,
    EVENT_TILE_LEVELS_SHIFTED,
)
from match2048.systems.board_ops import (
    Position,
    get_board,
    get_level_state,
    get_power_ups,
    get_spawn_table,
    get_special_tile_config,
)
from match2048.systems.goals import refresh_board_goals
from match2048.systems.gravity import (
    CursedExpiry,
    GravityResult,
    apply_gravity_and_refill,
    decrement_cursed_timers,
)
from match2048.systems.match_detection import MatchGroup, find_matches, matched_positions, resolve_jokers
from match2048.systems.merge import MergeContext, MergeResult, resolve_merge
from match2048.systems.turn_state_utils import get_or_create_turn_state

logger = logging.getLogger(__name__)

SHIFT_ACTIONS = ("disappear", "blocked", "blocked_movable", "double")


@dataclass(slots=True)
class TileLevelShift:
    retired: int
    action: str
    positions: List[Position] = field(default_factory=list)


@dataclass(slots=True)
class CascadeReport:
    """Everything one cascade did, in the order it happened."""

    depth: int = 0
    matches: List[List[MatchGroup]] = field(default_factory=list)
    merges: List[MergeResult] = field(default_factory=list)
    gravity: List[GravityResult] = field(default_factory=list)
    jokers: List[Tuple[Position, int]] = field(default_factory=list)
    cursed: List[CursedExpiry] = field(default_factory=list)
    shifts: List[TileLevelShift] = field(default_factory=list)

    @property
    def score_delta(self) -> int:
        return sum(result.score_delta for result in self.merges)

    @property
    def cleared_blocked(self) -> List[Position]:
        return [pos for result in self.merges for pos in result.cleared_blocked]

    @property
    def granted_power_ups(self) -> list:
        return [kind for result in self.merges for kind in result.granted_power_ups]

    @property
    def goal_delta(self) -> dict:
        delta: dict = {}
        for result in self.merges:
            for value, count in result.created.items():
                delta[value] = delta.get(value, 0) + count
        return delta


def shift_tile_levels(board: Board, table: SpawnTable) -> TileLevelShift:
    """Retire the smallest spawnable value and apply the level's action to its tiles."""
    action = table.smallest_tile_action if table.smallest_tile_action in SHIFT_ACTIONS else "disappear"
    retired = table.shift_up()
    shift = TileLevelShift(retired=retired, action=action)
    for row, col in board.positions():
        tile = board.get(row, col)
        if not is_normal(tile) or tile.value != retired:
            continue
        if action == "blocked":
            board.set(row, col, BlockedTile())
        elif action == "blocked_movable":
            board.set(row, col, BlockedMovableTile())
        elif action == "double":
            # Promoted in place; special flags stay with the tile.
            tile.value = retired + 1
        else:
            board.set(row, col, None)
        shift.positions.append((row, col))
    return shift


def _has_holes(board: Board) -> bool:
    return any(board.get(row, col) is None for row, col in board.positions())


class CascadeSystem:
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus

    def run(self, source: str = "swap", *, settle_first: bool = False) -> CascadeReport:
        """Resolve matches until the board is stable and return what happened.

        ``settle_first`` applies gravity before the first detection, for actions
        that punch a hole into the board.

        Raises ``CascadeInProgressError`` if called while another cascade on the
        same world is still running.
        """
        state = get_or_create_turn_state(self.world)
        if state.cascade_active:
            raise CascadeInProgressError(f"Cascade already running ({state.action_source})")
        state.cascade_active = True
        state.action_source = source
        state.cascade_depth = 0
        report = CascadeReport()
        try:
            self._loop(report, settle_first)
        finally:
            state.cascade_active = False
            state.phase = CascadePhase.IDLE
            state.last_swap = None
            state.is_user_swap = False
        report.depth = state.cascade_depth
        self.event_bus.emit(EVENT_CASCADE_COMPLETE, depth=report.depth, report=report)
        return report

    def _loop(self, report: CascadeReport, settle_first: bool) -> None:
        state = get_or_create_turn_state(self.world)
        board = get_board(self.world)
        table = get_spawn_table(self.world)
        if settle_first and _has_holes(board):
            self._gravity(board, table, report)
        passes = 0
        while True:
            state.phase = CascadePhase.MATCHES_PENDING
            if state.is_user_swap:
                self._resolve_jokers(board, table, report)
            groups = find_matches(board)
            if not groups:
                if self._turn_boundary(board, table, report):
                    continue
                break
            passes += 1
            if passes > MAX_CASCADE_PASSES:
                logger.error("Cascade exceeded %d passes; stopping with matches on the board", MAX_CASCADE_PASSES)
                break
            state.cascade_depth = passes
            positions = matched_positions(groups)
            report.matches.append(groups)
            self.event_bus.emit(EVENT_MATCH_FOUND, groups=groups, positions=positions, depth=passes)
            self.event_bus.emit(EVENT_CASCADE_STEP, depth=passes, positions=positions)

            state.phase = CascadePhase.RESOLVING
            result = self._merge(board, groups)
            report.merges.append(result)
            # Only the first pass of a swap counts as the user's merge.
            state.last_swap = None
            state.is_user_swap = False

            state.phase = CascadePhase.GRAVITY_REFILL
            threshold = table.shift_threshold()
            if threshold is not None and result.max_created_value >= threshold:
                # Before the refill, so new tiles come from the shifted spawn set.
                self._shift_levels(board, table, report)
            self._gravity(board, table, report)
            self._publish_goals()

    def _resolve_jokers(self, board: Board, table: SpawnTable, report: CascadeReport) -> None:
        for position, value in resolve_jokers(board, table.spawnable_values()):
            report.jokers.append((position, value))
            self.event_bus.emit(EVENT_JOKER_RESOLVED, position=position, value=value)

    def _merge(self, board: Board, groups: List[MatchGroup]) -> MergeResult:
        state = get_or_create_turn_state(self.world)
        level = get_level_state(self.world)
        context = MergeContext(
            special_config=get_special_tile_config(self.world),
            goals=level.goals,
            last_swap=state.last_swap,
            was_user_swap=state.is_user_swap,
            cursed_created_count=level.cursed_created_count,
            cursed_created_this_turn=state.cursed_created_this_turn,
            power_ups=get_power_ups(self.world),
            rng=getattr(self.world, "random", None),
        )
        result = resolve_merge(board, groups, context)
        level.score += result.score_delta
        self.event_bus.emit(EVENT_MERGE_RESOLVED, result=result, depth=state.cascade_depth)
        for kind in result.granted_power_ups:
            self.event_bus.emit(EVENT_POWER_UP_GRANTED, kind=kind, remaining=context.power_ups.remaining(kind))
        if result.cleared_blocked or result.damaged_blocked:
            self.event_bus.emit(
                EVENT_BLOCKED_CLEARED,
                positions=list(result.cleared_blocked),
                damaged=[(pos[0], pos[1], life) for pos, life in result.damaged_blocked],
            )
        refresh_board_goals(level, board)
        return result

    def _gravity(self, board: Board, table: SpawnTable, report: CascadeReport) -> GravityResult:
        state = get_or_create_turn_state(self.world)
        result = apply_gravity_and_refill(board, table.spawnable_values(), getattr(self.world, "random", None))
        report.gravity.append(result)
        self.event_bus.emit(EVENT_GRAVITY_APPLIED, moved=result.moved, depth=state.cascade_depth)
        self.event_bus.emit(EVENT_REFILL_COMPLETED, new_tiles=result.spawned, depth=state.cascade_depth)
        refresh_board_goals(get_level_state(self.world), board)
        return result

    def _shift_levels(self, board: Board, table: SpawnTable, report: CascadeReport) -> None:
        shift = shift_tile_levels(board, table)
        report.shifts.append(shift)
        if shift.action in ("blocked", "blocked_movable"):
            get_level_state(self.world).initial_blocked_count += len(shift.positions)
        logger.info("Tile levels shifted: retired %d (%s), spawning %s", shift.retired, shift.action, table.values)
        self.event_bus.emit(
            EVENT_TILE_LEVELS_SHIFTED,
            retired=shift.retired,
            action=shift.action,
            positions=list(shift.positions),
            spawnable=table.spawnable_values(),
        )

    def _turn_boundary(self, board: Board, table: SpawnTable, report: CascadeReport) -> bool:
        """Advance cursed timers once per turn; True when expiries changed the board."""
        state = get_or_create_turn_state(self.world)
        if not state.turn_boundary_pending:
            return False
        state.turn_boundary_pending = False
        level = get_level_state(self.world)
        expiry = decrement_cursed_timers(board, level.goals)
        if not expiry.decremented:
            return False
        report.cursed.append(expiry)
        if not expiry.board_changed:
            return False
        logger.debug("Cursed tiles expired: %s removed, %s imploded", expiry.removed, expiry.imploded)
        self.event_bus.emit(
            EVENT_CURSED_EXPIRED,
            removed=list(expiry.removed),
            destroyed=list(expiry.destroyed),
            imploded=list(expiry.imploded),
        )
        self._gravity(board, table, report)
        self._publish_goals()
        return True

    def _publish_goals(self) -> None:
        level = get_level_state(self.world)
        self.event_bus.emit(EVENT_GOALS_UPDATED, goals=level.goals, score=level.score, moves_left=level.moves_left)

    @property
    def active(self) -> bool:
        return get_or_create_turn_state(self.world).cascade_active
