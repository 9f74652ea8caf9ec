import random

from match2048.components.board import Board
from match2048.components.tile import JokerTile, NormalTile
from match2048.systems.match_detection import (
    FormationKind,
    find_best_joker_value,
    find_matches,
    has_matches,
    has_matches_for_swap,
)
from tests.helpers import board_from_rows


def test_horizontal_line_three():
    board = board_from_rows([
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0],
        [2, 2, 2, 0, 0],
    ])
    groups = find_matches(board)
    assert len(groups) == 1
    group = groups[0]
    assert group.kind is FormationKind.HORIZONTAL
    assert group.direction == "horizontal"
    assert group.tiles == [(2, 0), (2, 1), (2, 2)]
    assert group.value == 2


def test_vertical_line_four():
    board = board_from_rows([
        [0, 3, 0],
        [0, 3, 0],
        [0, 3, 0],
        [0, 3, 0],
        [0, 1, 0],
    ])
    groups = find_matches(board)
    assert [g.kind for g in groups] == [FormationKind.LINE_4_VERTICAL]
    assert groups[0].tiles == [(0, 1), (1, 1), (2, 1), (3, 1)]


def test_run_longer_than_five_is_one_line_five():
    board = board_from_rows([[1, 1, 1, 1, 1, 1]])
    groups = find_matches(board)
    assert len(groups) == 1
    assert groups[0].kind is FormationKind.LINE_5_HORIZONTAL
    assert len(groups[0].tiles) == 6


def test_t_formation_claims_its_lines():
    board = board_from_rows([
        [0, 0, 0, 0, 0],
        [0, 4, 4, 4, 0],
        [0, 0, 4, 0, 0],
        [0, 0, 4, 0, 0],
        [0, 0, 0, 0, 0],
    ])
    groups = find_matches(board)
    assert len(groups) == 1
    assert groups[0].kind is FormationKind.T_FORMATION
    assert groups[0].intersection == (1, 2)
    assert sorted(groups[0].tiles) == [(1, 1), (1, 2), (1, 3), (2, 2), (3, 2)]


def test_l_formation_and_separate_line_three_both_survive():
    board = board_from_rows([
        [3, 3, 3, 0, 0, 0],
        [3, 0, 0, 0, 0, 0],
        [3, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0],
        [0, 0, 0, 3, 3, 3],
        [0, 0, 0, 0, 0, 0],
    ])
    groups = find_matches(board)
    assert [g.kind for g in groups] == [FormationKind.L_FORMATION, FormationKind.HORIZONTAL]
    assert groups[0].intersection == (0, 0)
    assert groups[1].tiles == [(4, 3), (4, 4), (4, 5)]


def test_block_beats_overlapping_line_three():
    board = board_from_rows([
        [0, 0, 0, 0, 0],
        [0, 5, 5, 5, 0],
        [0, 5, 5, 0, 0],
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0],
    ])
    groups = find_matches(board)
    assert len(groups) == 1
    block = groups[0]
    assert block.kind is FormationKind.BLOCK_4
    assert block.intersections == [(2, 1), (2, 2)]
    # The crossing line is absorbed into the block.
    assert (1, 3) in block.tiles
    assert len(block.tiles) == 5


def test_single_claim_on_random_boards():
    rng = random.Random(7)
    for _ in range(200):
        board = Board(rows=8, cols=8)
        for row, col in board.positions():
            board.set(row, col, NormalTile(value=rng.randint(1, 3)))
        seen = set()
        for group in find_matches(board):
            for pos in group.tiles:
                assert pos not in seen
                seen.add(pos)


def test_power_tile_absorbs_equal_or_higher_values():
    board = board_from_rows([["2P", 3, 3]])
    groups = find_matches(board)
    assert len(groups) == 1
    assert groups[0].value == 3

    assert not has_matches(board_from_rows([["4P", 3, 3]]))


def test_cursed_tiles_join_line_matches():
    board = board_from_rows([[2, "2C3", 2]])
    groups = find_matches(board)
    assert len(groups) == 1
    assert groups[0].tiles == [(0, 0), (0, 1), (0, 2)]


def test_empty_and_blocked_cells_break_runs():
    assert not has_matches(board_from_rows([[2, 2, 0, 2, 2]]))
    assert not has_matches(board_from_rows([[2, 2, "B", 2, 2]]))
    assert not has_matches(board_from_rows([[2, 2, "J", 2, 2]]))


def test_golden_tile_flags_group():
    groups = find_matches(board_from_rows([[1, "1G", 1]]))
    assert groups[0].has_golden_tile


def test_has_matches_for_swap_requires_a_swapped_cell():
    board = board_from_rows([
        [1, 1, 1],
        [2, 3, 2],
    ])
    assert has_matches_for_swap(board, (0, 0), (1, 0))
    assert not has_matches_for_swap(board, (1, 1), (1, 2))


def test_best_joker_value_prefers_highest_completing_value():
    board = board_from_rows([
        [3, 3, "J", 8],
        [5, 6, 7, 9],
        [6, 7, 9, 5],
    ])
    assert find_best_joker_value(board, 0, 2, [1, 2, 3, 4, 7, 9]) == 3
    assert isinstance(board.get(0, 2), JokerTile)


def test_joker_without_a_match_stays_a_joker():
    board = board_from_rows([[1, "J", 2]])
    assert find_best_joker_value(board, 0, 1, [1, 2, 3]) is None
    assert find_matches(board, resolve_joker_tiles=True, spawnable=[1, 2, 3]) == []
    assert isinstance(board.get(0, 1), JokerTile)


def test_jokers_resolve_during_user_swap_detection():
    board = board_from_rows([[2, "J", 2, 0]])
    groups = find_matches(board, resolve_joker_tiles=True, spawnable=[1, 2, 3])
    assert board.get(0, 1).value == 2
    assert groups[0].tiles == [(0, 0), (0, 1), (0, 2)]
