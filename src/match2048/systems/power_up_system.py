from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from esper import World

from match2048.components.power_ups import PowerUpKind
from match2048.components.tile import CursedTile, NormalTile, is_immovable, is_valued
from match2048.components.turn_state import SwapContext
from match2048.errors import RejectReason
from match2048.events.bus import EventBus, EVENT_POWER_UP_REQUEST, EVENT_POWER_UP_USED
from match2048.systems.board_ops import Position, get_board, get_level_state, get_power_ups, swap_cells
from match2048.systems.cascade import CascadeReport, CascadeSystem
from match2048.systems.goals import credit_created, refresh_board_goals
from match2048.systems.swap_system import validate_swap
from match2048.systems.turn_state_utils import get_or_create_turn_state

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PowerUpOutcome:
    kind: PowerUpKind
    accepted: bool
    reason: Optional[RejectReason] = None
    positions: List[Position] = field(default_factory=list)
    # Tile values written by the power-up, keyed by position.
    new_values: Dict[Position, int] = field(default_factory=dict)
    remaining: int = 0
    cascade: Optional[CascadeReport] = None


class PowerUpSystem:
    """Hammer, halve and power swap, each limited by the level's inventory."""

    def __init__(self, world: World, event_bus: EventBus, cascade: CascadeSystem):
        self.world = world
        self.event_bus = event_bus
        self.cascade = cascade
        self.event_bus.subscribe(EVENT_POWER_UP_REQUEST, self.on_power_up_request)

    def on_power_up_request(self, sender, **kwargs):
        kind = kwargs.get("kind")
        src = kwargs.get("src")
        if kind is None or src is None:
            return
        kind = PowerUpKind(kind)
        if kind is PowerUpKind.HAMMER:
            self.use_hammer(tuple(src))
        elif kind is PowerUpKind.HALVE:
            self.use_halve(tuple(src))
        else:
            dst = kwargs.get("dst")
            if dst is None:
                return
            self.use_power_swap(tuple(src), tuple(dst))

    def _precheck(self, kind: PowerUpKind, pos: Position) -> Optional[RejectReason]:
        if not get_level_state(self.world).is_active:
            return RejectReason.LEVEL_NOT_ACTIVE
        if get_or_create_turn_state(self.world).cascade_active:
            return RejectReason.CASCADE_ACTIVE
        if not get_board(self.world).in_bounds(*pos):
            return RejectReason.OUT_OF_BOUNDS
        if get_power_ups(self.world).remaining(kind) <= 0:
            return RejectReason.NO_CHARGES
        return None

    def use_hammer(self, pos: Position) -> PowerUpOutcome:
        """Smash any tile except a fixed obstacle, then let the board settle."""
        reason = self._precheck(PowerUpKind.HAMMER, pos)
        board = get_board(self.world)
        if reason is None:
            tile = board.get(*pos)
            if tile is None:
                reason = RejectReason.EMPTY_CELL
            elif is_immovable(tile):
                reason = RejectReason.IMMOVABLE_TILE
        if reason is not None:
            return self._reject(PowerUpKind.HAMMER, reason)

        board.set(pos[0], pos[1], None)
        outcome = self._consume(PowerUpKind.HAMMER, [pos])
        outcome.cascade = self.cascade.run("hammer", settle_first=True)
        return outcome

    def use_halve(self, pos: Position) -> PowerUpOutcome:
        """Drop a valued tile one tier; a cursed tile keeps its timer."""
        reason = self._precheck(PowerUpKind.HALVE, pos)
        board = get_board(self.world)
        if reason is None:
            tile = board.get(*pos)
            if not is_valued(tile) or tile.value <= 1:
                reason = RejectReason.INVALID_TARGET
        if reason is not None:
            return self._reject(PowerUpKind.HALVE, reason)

        tile = board.get(*pos)
        value = tile.value - 1
        if isinstance(tile, CursedTile):
            board.set(pos[0], pos[1], CursedTile(value=value, moves_remaining=tile.moves_remaining,
                                                 created_this_turn=tile.created_this_turn))
        else:
            board.set(pos[0], pos[1], NormalTile(value=value))
        level = get_level_state(self.world)
        credit_created(level.goals, value, 1)
        refresh_board_goals(level, board)
        outcome = self._consume(PowerUpKind.HALVE, [pos], {pos: value})
        outcome.cascade = self.cascade.run("halve")
        return outcome

    def use_power_swap(self, src: Position, dst: Position) -> PowerUpOutcome:
        """Swap two adjacent tiles without needing a match or spending a move."""
        reason = validate_swap(self.world, src, dst)
        if reason is None:
            reason = self._precheck(PowerUpKind.SWAP, src)
        if reason is not None:
            return self._reject(PowerUpKind.SWAP, reason)

        board = get_board(self.world)
        swap_cells(board, src, dst)
        state = get_or_create_turn_state(self.world)
        state.last_swap = SwapContext(row=dst[0], col=dst[1], from_row=src[0], from_col=src[1])
        state.is_user_swap = True
        state.turn_boundary_pending = True
        state.cursed_created_this_turn.clear()
        outcome = self._consume(PowerUpKind.SWAP, [src, dst])
        outcome.cascade = self.cascade.run("power_swap")
        return outcome

    def _consume(
        self,
        kind: PowerUpKind,
        positions: List[Position],
        new_values: Optional[Dict[Position, int]] = None,
    ) -> PowerUpOutcome:
        inventory = get_power_ups(self.world)
        inventory.consume(kind)
        outcome = PowerUpOutcome(
            kind=kind,
            accepted=True,
            positions=list(positions),
            new_values=dict(new_values or {}),
            remaining=inventory.remaining(kind),
        )
        logger.debug("Power-up %s used at %s (%d left)", kind.value, positions, outcome.remaining)
        self.event_bus.emit(EVENT_POWER_UP_USED, outcome=outcome)
        return outcome

    def _reject(self, kind: PowerUpKind, reason: RejectReason) -> PowerUpOutcome:
        logger.debug("Power-up %s rejected: %s", kind.value, reason.value)
        return PowerUpOutcome(
            kind=kind, accepted=False, reason=reason, remaining=get_power_ups(self.world).remaining(kind)
        )
