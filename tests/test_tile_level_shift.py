import pytest

from match2048.components.spawn_table import SpawnTable
from match2048.components.tile import BlockedMovableTile, BlockedTile
from match2048.events.bus import EVENT_TILE_LEVELS_SHIFTED
from match2048.systems.board_ops import get_level_state, get_spawn_table
from match2048.systems.cascade import shift_tile_levels
from tests.helpers import board_from_rows, make_session, record

ROWS = [
    [5, 6, 5, 7, 8],
    [6, 5, 8, 9, 7],
    [7, 8, 9, 6, 5],
    [9, 9, 6, 9, 8],
]


def test_spawn_table_shift():
    table = SpawnTable(values=[3, 1, 2, 2, 4], max_tile_levels=4)
    assert table.values == [1, 2, 3, 4]
    assert table.shift_threshold() == 5
    assert table.shift_up() == 1
    assert table.values == [2, 3, 4, 5]
    assert table.shift_threshold() == 6
    assert SpawnTable(values=[1, 2]).shift_threshold() is None


def test_spawn_table_needs_a_positive_value():
    with pytest.raises(ValueError):
        SpawnTable(values=[0, -1])


@pytest.mark.parametrize(
    "action,check",
    [
        ("disappear", lambda tile: tile is None),
        ("blocked", lambda tile: isinstance(tile, BlockedTile)),
        ("blocked_movable", lambda tile: isinstance(tile, BlockedMovableTile)),
        ("double", lambda tile: tile.value == 2),
        ("explode", lambda tile: tile is None),
    ],
)
def test_retired_tiles_follow_the_action(action, check):
    board = board_from_rows([[1, 2], [1, 3]])
    table = SpawnTable(values=[1, 2, 3], max_tile_levels=2, smallest_tile_action=action)
    shift = shift_tile_levels(board, table)
    assert shift.retired == 1
    assert shift.positions == [(0, 0), (1, 0)]
    assert check(board.get(0, 0)) and check(board.get(1, 0))
    assert board.get(0, 1).value == 2 and board.get(1, 1).value == 3


def test_merge_past_threshold_shifts_spawn_values():
    session = make_session(ROWS, max_tile_levels=8, smallest_tile_action="blocked")
    seen = record(session.event_bus, EVENT_TILE_LEVELS_SHIFTED)
    before = get_level_state(session.world).initial_blocked_count
    session.attempt_swap(2, 2, 3, 2)
    assert len(seen[EVENT_TILE_LEVELS_SHIFTED]) == 1
    event = seen[EVENT_TILE_LEVELS_SHIFTED][0]
    assert event["retired"] == 1
    assert event["spawnable"] == [2, 3, 4, 5]
    assert get_spawn_table(session.world).values == [2, 3, 4, 5]
    assert get_level_state(session.world).initial_blocked_count == before + len(event["positions"])


def test_no_shift_below_threshold():
    session = make_session(ROWS, max_tile_levels=10)
    seen = record(session.event_bus, EVENT_TILE_LEVELS_SHIFTED)
    session.attempt_swap(2, 2, 3, 2)
    assert seen[EVENT_TILE_LEVELS_SHIFTED] == []


@pytest.mark.parametrize("seed", range(20))
def test_refilled_cells_come_from_the_shifted_set(seed):
    rows = [[4, 5, 6], [5, 6, 4], [2, 2, 2]]
    session = make_session(rows, seed=seed, spawnable=(1, 2), max_tile_levels=2, smallest_tile_action="blocked")
    report = session.cascade_system.run()
    assert report.shifts[0].retired == 1
    assert report.shifts[0].positions == []
    board = session.board
    assert not any(isinstance(board.get(r, c), BlockedTile) for r, c in board.positions())
    spawned = [pos for result in report.gravity for pos in result.spawned]
    assert sorted(spawned) == [(0, 0), (0, 2)]
    assert all(board.get(*pos).value in (2, 3) for pos in spawned)


@pytest.mark.parametrize("seed", range(5))
def test_disappearing_tiles_are_refilled_in_the_same_pass(seed):
    rows = [[1, 5, 6], [5, 6, 1], [2, 2, 2]]
    session = make_session(rows, seed=seed, spawnable=(1, 2), max_tile_levels=2, smallest_tile_action="disappear")
    report = session.cascade_system.run()
    assert sorted(report.shifts[0].positions) == [(0, 0), (1, 2)]
    board = session.board
    assert all(board.get(r, c) is not None for r, c in board.positions())
    assert all(board.get(r, c).value != 1 for r, c in board.positions())


def test_doubled_tiles_keep_their_special_flags():
    board = board_from_rows([["1P", "1G"], ["1H", "1K"]])
    table = SpawnTable(values=[1, 2, 3], max_tile_levels=2, smallest_tile_action="double")
    power = board.get(0, 0)
    shift_tile_levels(board, table)
    assert board.get(0, 0) is power
    assert [board.get(r, c).value for r, c in board.positions()] == [2, 2, 2, 2]
    assert board.get(0, 0).is_power
    assert board.get(0, 1).is_golden
    assert board.get(1, 0).is_free_swap and board.get(1, 0).free_swap_axis == "horizontal"
    assert board.get(1, 1).is_sticky_free_swap
