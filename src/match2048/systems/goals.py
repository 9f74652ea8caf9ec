from __future__ import annotations

from typing import Iterable, List, Optional

from match2048.components.board import Board
from match2048.components.goal import Goal, GoalType
from match2048.components.level_state import LevelState, LevelStatus
from match2048.systems.board_ops import count_blocked_tiles, count_normal_tiles


def credit_created(goals: Iterable[Goal], value: int, count: int = 1) -> None:
    if count <= 0:
        return
    for goal in goals:
        if goal.tile_value == value:
            goal.created += count


def credit_cursed(goals: Iterable[Goal], value: int, count: int = 1) -> None:
    for goal in goals:
        if goal.goal_type is GoalType.CURSED and goal.tile_value == value:
            goal.current += count


def credit_score(goals: Iterable[Goal], amount: int) -> None:
    for goal in goals:
        if goal.goal_type is GoalType.SCORE:
            goal.current += amount


def cursed_goal_for(goals: Iterable[Goal], value: int) -> Optional[Goal]:
    for goal in goals:
        if goal.goal_type is GoalType.CURSED and goal.tile_value == value:
            return goal
    return None


def refresh_board_goals(state: LevelState, board: Board) -> None:
    """Recount goals that mirror live board population."""
    blocked_now = count_blocked_tiles(board)
    for goal in state.goals:
        if goal.goal_type is GoalType.CURRENT and goal.tile_value is not None:
            goal.current = count_normal_tiles(board, goal.tile_value)
        elif goal.goal_type is GoalType.BLOCKED:
            goal.target = state.initial_blocked_count
            goal.current = state.initial_blocked_count - blocked_now


def all_goals_complete(goals: Iterable[Goal]) -> bool:
    return all(goal.is_complete for goal in goals)


def incomplete_goals(goals: Iterable[Goal]) -> List[Goal]:
    return [goal for goal in goals if not goal.is_complete]


def evaluate_status(
    state: LevelState,
    *,
    matches_pending: bool,
    has_valid_move: bool = True,
) -> LevelStatus:
    """Decide the level status after a turn has fully settled.

    Only transitions out of ACTIVE; a finished level keeps its status.
    """
    if state.status is not LevelStatus.ACTIVE:
        return state.status
    if all_goals_complete(state.goals):
        state.status = LevelStatus.WON
        state.loss_reason = None
    elif state.moves_used >= state.max_moves and not matches_pending:
        state.status = LevelStatus.LOST
        state.loss_reason = "out_of_moves"
    elif not has_valid_move and not matches_pending:
        state.status = LevelStatus.LOST
        state.loss_reason = "no_moves"
    return state.status
