import logging
import random

import pytest

from match2048.components.board import Board
from match2048.components.goal import Goal, GoalType
from match2048.components.tile import (
    BlockedMovableTile,
    BlockedTile,
    BlockedWithLifeTile,
    NormalTile,
    RectBlockedTile,
    RectBlockedWithLifeTile,
)
from match2048.config import LevelConfig
from match2048.systems.board_ops import get_board, get_level_state
from match2048.systems.board_setup import build_board, fill_without_matches, region_cells, stamp_blocked_regions
from match2048.systems.match_detection import has_matches
from match2048.world import create_world


def test_initial_board_has_no_matches():
    rng = random.Random(7)
    for _ in range(50):
        level = LevelConfig(
            board_width=rng.randint(3, 10),
            board_height=rng.randint(3, 10),
            spawnable_tiles=rng.sample(range(1, 8), rng.randint(3, 5)),
        )
        board = build_board(level, rng)
        assert not has_matches(board)
        assert all(isinstance(board.get(r, c), NormalTile) for r, c in board.positions())


def test_match_free_fill_needs_two_values():
    with pytest.raises(ValueError):
        fill_without_matches(Board(rows=3, cols=3), [2])
    with pytest.raises(ValueError):
        create_world({"spawnableTiles": [3, 3]}, rng=random.Random(0))


def test_blocked_regions_are_stamped():
    level = LevelConfig(
        board_width=5,
        board_height=4,
        spawnable_tiles=[1, 2, 3],
        blocked_tiles=[
            {"row": 0},
            {"col": 4, "movable": True},
            {"row": 3, "col": [0, 1], "lifeValue": 3},
            {"row": 1, "col": 1, "width": 2, "height": 2},
        ],
    )
    board = build_board(level, random.Random(1))
    assert all(isinstance(board.get(0, c), BlockedTile) for c in range(4))
    assert all(isinstance(board.get(r, 4), BlockedMovableTile) for r in range(4))
    assert isinstance(board.get(3, 0), BlockedWithLifeTile) and board.get(3, 0).life == 3
    assert all(isinstance(board.get(r, c), BlockedTile) for r in (1, 2) for c in (1, 2))
    assert isinstance(board.get(1, 1), RectBlockedTile)
    assert all(board.get(r, c) is board.get(1, 1) for r in (1, 2) for c in (1, 2))
    assert isinstance(board.get(2, 0), NormalTile)


def test_region_outside_board_is_skipped_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        assert region_cells({"row": 2, "col": 1, "width": 5, "height": 5}, 4, 4) == []
        assert region_cells({"row": 9}, 4, 4) == []
        assert region_cells({"row": 1, "col": [2, 7]}, 4, 4) == [(1, 2)]
    assert len(caplog.records) == 3


def test_preset_is_placed_literally_and_rest_is_drawn():
    level = LevelConfig(
        board_width=3,
        board_height=3,
        spawnable_tiles=[1],
        board_preset=[[2, 2, 2], ["B", 0]],
    )
    board = build_board(level, random.Random(0))
    # Presets are not cleared of matches.
    assert [board.get(0, c).value for c in range(3)] == [2, 2, 2]
    assert isinstance(board.get(1, 0), BlockedTile)
    assert board.get(1, 1) is None
    assert board.get(1, 2).value == 1
    assert [board.get(2, c).value for c in range(3)] == [1, 1, 1]


def test_blocked_goal_tracks_initial_obstacles():
    world = create_world(
        {
            "boardWidth": 4,
            "boardHeight": 4,
            "spawnableTiles": [1, 2, 3],
            "blockedTiles": [{"row": 3}, {"row": 0, "col": 0, "lifeValue": 2}],
            "goals": [{"goalType": "blocked", "target": 0}],
        },
        rng=random.Random(3),
    )
    state = get_level_state(world)
    assert state.initial_blocked_count == 5
    assert state.goals[0].goal_type is GoalType.BLOCKED
    assert state.goals[0].target == 5
    assert state.goals[0].current == 0
    assert get_board(world).cols == 4


def test_level_goals_are_copied_per_world():
    goal = Goal(goal_type=GoalType.CREATED, target=3, tile_value=5)
    level = LevelConfig(board_width=4, board_height=4, spawnable_tiles=[1, 2], goals=[goal])
    world = create_world(level, rng=random.Random(0))
    get_level_state(world).goals[0].created = 2
    assert goal.created == 0


def test_rectangle_with_life_is_one_obstacle():
    board = Board(rows=3, cols=3)
    stamped = stamp_blocked_regions(board, [{"row": 0, "col": 1, "width": 2, "height": 3, "lifeValue": 16}])
    assert len(stamped) == 6
    shared = board.get(0, 1)
    assert isinstance(shared, RectBlockedWithLifeTile)
    assert (shared.row, shared.col, shared.width, shared.height, shared.life) == (0, 1, 2, 3, 16)
    assert all(board.get(r, c) is shared for r in range(3) for c in (1, 2))
    assert all(board.get(r, 0) is None for r in range(3))
