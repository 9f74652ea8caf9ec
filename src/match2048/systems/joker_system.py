from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from esper import World

from match2048.components.tile import NormalTile, is_joker
from match2048.errors import RejectReason
from match2048.events.bus import EventBus, EVENT_JOKER_RESOLVED, EVENT_SPECIAL_TILE_TAP
from match2048.systems.board_ops import Position, board_values, get_board, get_level_state, get_spawn_table
from match2048.systems.cascade import CascadeReport, CascadeSystem
from match2048.systems.match_detection import find_best_joker_value
from match2048.systems.turn_state_utils import get_or_create_turn_state

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JokerActivation:
    position: Position
    value: Optional[int] = None
    reason: Optional[RejectReason] = None
    cascade: Optional[CascadeReport] = None


class JokerSystem:
    """Resolves a tapped joker to the best value that completes a match."""

    def __init__(self, world: World, event_bus: EventBus, cascade: CascadeSystem):
        self.world = world
        self.event_bus = event_bus
        self.cascade = cascade
        self.event_bus.subscribe(EVENT_SPECIAL_TILE_TAP, self.on_special_tile_tap)

    def on_special_tile_tap(self, sender, **kwargs):
        row = kwargs.get("row")
        col = kwargs.get("col")
        if row is None or col is None:
            return
        self.activate(row, col)

    def activate(self, row: int, col: int) -> JokerActivation:
        position = (row, col)
        board = get_board(self.world)
        state = get_or_create_turn_state(self.world)
        if not get_level_state(self.world).is_active:
            return JokerActivation(position=position, reason=RejectReason.LEVEL_NOT_ACTIVE)
        if state.cascade_active:
            return JokerActivation(position=position, reason=RejectReason.CASCADE_ACTIVE)
        if not board.in_bounds(row, col):
            return JokerActivation(position=position, reason=RejectReason.OUT_OF_BOUNDS)
        if not is_joker(board.get(row, col)):
            return JokerActivation(position=position, reason=RejectReason.NOT_A_JOKER)

        candidates = set(get_spawn_table(self.world).spawnable_values()) | set(board_values(board))
        value = find_best_joker_value(board, row, col, candidates)
        if value is None:
            logger.debug("Joker at %s has no value that completes a match", position)
            return JokerActivation(position=position, reason=RejectReason.NO_MATCH)

        board.set(row, col, NormalTile(value=value))
        self.event_bus.emit(EVENT_JOKER_RESOLVED, position=position, value=value)
        # A tap resolves the way a swap does, including any other joker it lines up with.
        state.is_user_swap = True
        report = self.cascade.run("joker")
        return JokerActivation(position=position, value=value, cascade=report)
