from __future__ import annotations

import logging

from esper import World

from match2048.components.level_state import LevelStatus
from match2048.events.bus import (
    EventBus,
    EVENT_CASCADE_COMPLETE,
    EVENT_GOALS_UPDATED,
    EVENT_LEVEL_LOST,
    EVENT_LEVEL_WON,
    EVENT_TURN_SETTLED,
)
from match2048.systems.board_ops import get_board, get_level_state, get_spawn_table
from match2048.systems.goals import all_goals_complete, evaluate_status, refresh_board_goals
from match2048.systems.hint import has_valid_move
from match2048.systems.match_detection import has_matches

logger = logging.getLogger(__name__)


class GoalSystem:
    """Decides win or loss once a cascade has settled."""

    def __init__(self, world: World, event_bus: EventBus) -> None:
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_CASCADE_COMPLETE, self._on_cascade_complete)

    def _on_cascade_complete(self, sender, **payload) -> None:
        self.evaluate_level()

    def evaluate_level(self) -> LevelStatus:
        level = get_level_state(self.world)
        board = get_board(self.world)
        refresh_board_goals(level, board)
        previous = level.status
        pending = has_matches(board)
        # The full swap search only matters while the level could still be lost to it.
        check_moves = (
            level.is_active
            and not pending
            and level.moves_used < level.max_moves
            and not all_goals_complete(level.goals)
        )
        spawnable = get_spawn_table(self.world).spawnable_values()
        status = evaluate_status(
            level,
            matches_pending=pending,
            has_valid_move=has_valid_move(board, spawnable) if check_moves else True,
        )
        if status is not previous:
            if status is LevelStatus.WON:
                logger.info("Level won with score %d in %d move(s)", level.score, level.moves_used)
                self.event_bus.emit(EVENT_LEVEL_WON, score=level.score, moves_used=level.moves_used)
            elif status is LevelStatus.LOST:
                logger.info("Level lost (%s) with score %d", level.loss_reason, level.score)
                self.event_bus.emit(EVENT_LEVEL_LOST, reason=level.loss_reason, score=level.score)
        self.event_bus.emit(EVENT_TURN_SETTLED, status=status)
        return status

    def grant_extra_moves(self, count: int) -> None:
        """Extend the move budget, reopening a level that was lost to it."""
        if count <= 0:
            raise ValueError("Extra moves must be positive")
        level = get_level_state(self.world)
        level.max_moves += count
        if level.status is LevelStatus.LOST and level.loss_reason == "out_of_moves":
            level.status = LevelStatus.ACTIVE
            level.loss_reason = None
        self.event_bus.emit(EVENT_GOALS_UPDATED, goals=level.goals, score=level.score, moves_left=level.moves_left)
