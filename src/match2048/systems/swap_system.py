from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from esper import World

from match2048.components.board import Board
from match2048.components.tile import is_free_swap_tile, is_immovable, is_sticky_free_swap_tile
from match2048.components.turn_state import PendingSwap, SwapContext
from match2048.errors import RejectReason
from match2048.events.bus import (
    EventBus,
    EVENT_SWAP_ACCEPTED,
    EVENT_SWAP_DISCARDED,
    EVENT_SWAP_QUEUED,
    EVENT_SWAP_REJECTED,
    EVENT_SWAP_REQUEST,
    EVENT_TURN_SETTLED,
)
from match2048.systems.board_ops import Position, get_board, get_level_state, get_spawn_table, is_adjacent, swap_cells
from match2048.systems.cascade import CascadeReport, CascadeSystem
from match2048.systems.hint import matches_for_swap
from match2048.systems.turn_state_utils import get_or_create_turn_state

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SwapOutcome:
    accepted: bool
    src: Position
    dst: Position
    reason: Optional[RejectReason] = None
    consumed_move: bool = False
    free_swap: bool = False
    cascade: Optional[CascadeReport] = None


def free_swap_allowed(tile, axis: str) -> bool:
    """Whether ``tile`` lets a swap along ``axis`` through without a match."""
    if not (is_free_swap_tile(tile) or is_sticky_free_swap_tile(tile)):
        return False
    if tile.has_been_swapped:
        return False
    return tile.free_swap_axis is None or tile.free_swap_axis == axis


def swap_creates_match(board: Board, src: Position, dst: Position, spawnable) -> bool:
    """True when swapping ``src`` and ``dst`` yields a match touching either cell.

    Jokers are resolved the way a user swap resolves them. Runs on a copy.
    """
    return bool(matches_for_swap(board, src, dst, spawnable))


def validate_swap(world: World, src: Position, dst: Position) -> Optional[RejectReason]:
    """Checks shared by regular and power swaps; ``None`` means the cells are swappable."""
    if not get_level_state(world).is_active:
        return RejectReason.LEVEL_NOT_ACTIVE
    board = get_board(world)
    if not board.in_bounds(*src) or not board.in_bounds(*dst):
        return RejectReason.OUT_OF_BOUNDS
    if not is_adjacent(src, dst):
        return RejectReason.NOT_ADJACENT
    first = board.get(*src)
    second = board.get(*dst)
    if first is None and second is None:
        return RejectReason.EMPTY_CELL
    if is_immovable(first) or is_immovable(second):
        return RejectReason.IMMOVABLE_TILE
    return None


class SwapSystem:
    def __init__(self, world: World, event_bus: EventBus, cascade: CascadeSystem):
        self.world = world
        self.event_bus = event_bus
        self.cascade = cascade
        self.event_bus.subscribe(EVENT_SWAP_REQUEST, self.on_swap_request)
        self.event_bus.subscribe(EVENT_TURN_SETTLED, self.on_turn_settled)

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get("src")
        dst = kwargs.get("dst")
        if src is None or dst is None:
            return
        self.attempt_swap(tuple(src), tuple(dst))

    def attempt_swap(self, src: Position, dst: Position) -> SwapOutcome:
        reason = validate_swap(self.world, src, dst)
        if reason is not None:
            return self._reject(src, dst, reason)

        board = get_board(self.world)
        state = get_or_create_turn_state(self.world)
        if state.cascade_active:
            # Replayed after the cascade only if both tiles are still in place.
            state.pending_swap = PendingSwap(src=src, dst=dst, src_tile=board.get(*src), dst_tile=board.get(*dst))
            self.event_bus.emit(EVENT_SWAP_QUEUED, src=src, dst=dst)
            return SwapOutcome(accepted=False, src=src, dst=dst, reason=RejectReason.QUEUED)

        context = SwapContext(row=dst[0], col=dst[1], from_row=src[0], from_col=src[1])
        free_tiles = [
            tile for tile in (board.get(*src), board.get(*dst))
            if free_swap_allowed(tile, context.axis)
        ]
        matched = swap_creates_match(board, src, dst, get_spawn_table(self.world).spawnable_values())
        if not matched and not free_tiles:
            return self._reject(src, dst, RejectReason.NO_MATCH)

        swap_cells(board, src, dst)
        for tile in free_tiles:
            tile.has_been_swapped = True
        level = get_level_state(self.world)
        # A swap carried only by a free-swap tile is free.
        consumed = matched
        if consumed:
            level.moves_used += 1
        state.last_swap = context
        state.is_user_swap = True
        state.turn_boundary_pending = True
        state.cursed_created_this_turn.clear()
        logger.debug("Swap %s <-> %s accepted (move consumed: %s)", src, dst, consumed)
        self.event_bus.emit(
            EVENT_SWAP_ACCEPTED, src=src, dst=dst, consumed_move=consumed, free_swap=bool(free_tiles)
        )
        report = self.cascade.run("swap")
        return SwapOutcome(
            accepted=True,
            src=src,
            dst=dst,
            consumed_move=consumed,
            free_swap=bool(free_tiles),
            cascade=report,
        )

    def on_turn_settled(self, sender, **kwargs):
        state = get_or_create_turn_state(self.world)
        pending = state.pending_swap
        if pending is None:
            return
        state.pending_swap = None
        board = get_board(self.world)
        if board.get(*pending.src) is not pending.src_tile or board.get(*pending.dst) is not pending.dst_tile:
            logger.debug("Queued swap %s <-> %s discarded: tiles changed", pending.src, pending.dst)
            self.event_bus.emit(EVENT_SWAP_DISCARDED, src=pending.src, dst=pending.dst)
            return
        self.attempt_swap(pending.src, pending.dst)

    def _reject(self, src: Position, dst: Position, reason: RejectReason) -> SwapOutcome:
        logger.debug("Swap %s <-> %s rejected: %s", src, dst, reason.value)
        self.event_bus.emit(EVENT_SWAP_REJECTED, src=src, dst=dst, reason=reason)
        return SwapOutcome(accepted=False, src=src, dst=dst, reason=reason)
