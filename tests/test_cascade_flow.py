import random

import pytest

from match2048.components.board import Board
from match2048.components.goal import Goal, GoalType
from match2048.components.level_state import LevelStatus
from match2048.components.tile import NormalTile
from match2048.errors import CascadeInProgressError, RejectReason
from match2048.events.bus import (
    EventBus,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_CURSED_EXPIRED,
    EVENT_GOALS_UPDATED,
    EVENT_GRAVITY_APPLIED,
    EVENT_LEVEL_LOST,
    EVENT_LEVEL_WON,
    EVENT_MATCH_FOUND,
    EVENT_MERGE_RESOLVED,
    EVENT_REFILL_COMPLETED,
    EVENT_SWAP_ACCEPTED,
    EVENT_SWAP_DISCARDED,
    EVENT_SWAP_QUEUED,
    EVENT_TURN_SETTLED,
)
from match2048.systems.board_ops import get_board
from match2048.systems.cascade import CascadeSystem
from match2048.systems.match_detection import FormationKind, has_matches
from tests.helpers import make_session, make_world, record, values

# Swapping (2,2) and (3,2) lines up four 9s on the bottom row and nothing else.
ROWS = [
    [5, 6, 5, 7, 8],
    [6, 5, 8, 9, 7],
    [7, 8, 9, 6, 5],
    [9, 9, 6, 9, 8],
]

ORDERED = (
    EVENT_SWAP_ACCEPTED,
    EVENT_MATCH_FOUND,
    EVENT_CASCADE_STEP,
    EVENT_MERGE_RESOLVED,
    EVENT_GRAVITY_APPLIED,
    EVENT_REFILL_COMPLETED,
    EVENT_GOALS_UPDATED,
    EVENT_CURSED_EXPIRED,
    EVENT_CASCADE_COMPLETE,
    EVENT_TURN_SETTLED,
)


def trace(bus, names=ORDERED):
    seen = []
    for name in names:
        bus.subscribe(name, lambda sender, _name=name, **payload: seen.append(_name))
    return seen


def test_swap_emits_phases_in_order():
    session = make_session(ROWS)
    seen = trace(session.event_bus)
    outcome = session.attempt_swap(2, 2, 3, 2)
    assert outcome.accepted and outcome.consumed_move
    assert seen == [
        EVENT_SWAP_ACCEPTED,
        EVENT_MATCH_FOUND,
        EVENT_CASCADE_STEP,
        EVENT_MERGE_RESOLVED,
        EVENT_GRAVITY_APPLIED,
        EVENT_REFILL_COMPLETED,
        EVENT_GOALS_UPDATED,
        EVENT_CASCADE_COMPLETE,
        EVENT_TURN_SETTLED,
    ]


def test_line_of_four_settles_into_two_promoted_tiles():
    session = make_session(ROWS)
    outcome = session.attempt_swap(2, 2, 3, 2)
    report = outcome.cascade
    assert report.depth == 1
    assert report.matches[0][0].kind is FormationKind.LINE_4_HORIZONTAL
    assert [placed.position for placed in report.merges[0].new_tiles] == [(3, 1), (3, 2)]
    grid = values(session.board)
    assert grid[1] == [5, 5, 8, 7, 7]
    assert grid[2] == [6, 8, 6, 9, 5]
    assert grid[3] == [7, 10, 10, 6, 8]
    assert grid[0][1:3] == [6, 5]
    assert session.moves_left == 19
    assert session.score == 2 ** 9 * 4


def test_concrete_swap_into_empty_cell():
    rows = [
        [0, 0, 0, 0, 0],
        [0, 0, 6, 0, 0],
        [0, 6, 0, 6, 0],
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0],
    ]
    session = make_session(rows)
    seen = record(session.event_bus, EVENT_MATCH_FOUND, EVENT_MERGE_RESOLVED)
    outcome = session.attempt_swap(1, 2, 2, 2)
    assert outcome.accepted
    groups = seen[EVENT_MATCH_FOUND][0]["groups"]
    assert len(groups) == 1
    assert groups[0].kind is FormationKind.HORIZONTAL
    assert groups[0].tiles == [(2, 1), (2, 2), (2, 3)]
    assert groups[0].value == 6
    placed = seen[EVENT_MERGE_RESOLVED][0]["result"].new_tiles[0]
    assert placed.position == (2, 2)
    assert placed.tile.value == 7


def test_cursed_timer_runs_down_after_board_settles():
    rows = [list(row) for row in ROWS]
    rows[0][4] = "8C1"
    session = make_session(rows)
    seen = trace(session.event_bus)
    expired = record(session.event_bus, EVENT_CURSED_EXPIRED)
    session.attempt_swap(2, 2, 3, 2)
    assert expired[EVENT_CURSED_EXPIRED] == [{"removed": [(0, 4)], "destroyed": [], "imploded": []}]
    # The countdown runs once the first pass has settled.
    first_goals = seen.index(EVENT_GOALS_UPDATED)
    assert seen.index(EVENT_CURSED_EXPIRED) > first_goals
    assert seen[-2:] == [EVENT_CASCADE_COMPLETE, EVENT_TURN_SETTLED]
    refill = session.board.get(0, 4)
    assert isinstance(refill, NormalTile) and refill.value in (1, 2, 3, 4)


def test_queued_swap_replays_after_cascade():
    session = make_session(ROWS)
    queued = []

    def queue_during_cascade(sender, **payload):
        if not queued:
            queued.append(session.attempt_swap(0, 2, 1, 2))

    session.event_bus.subscribe(EVENT_MATCH_FOUND, queue_during_cascade)
    seen = record(session.event_bus, EVENT_SWAP_QUEUED, EVENT_SWAP_ACCEPTED)
    session.attempt_swap(2, 2, 3, 2)
    assert queued[0].reason is RejectReason.QUEUED
    assert len(seen[EVENT_SWAP_QUEUED]) == 1
    assert [p["src"] for p in seen[EVENT_SWAP_ACCEPTED]] == [(2, 2), (0, 2)]
    assert session.moves_left == 18


def test_queued_swap_discarded_when_tiles_moved():
    session = make_session(ROWS)
    queued = []

    def queue_during_cascade(sender, **payload):
        if not queued:
            queued.append(session.attempt_swap(3, 0, 2, 0))

    session.event_bus.subscribe(EVENT_MATCH_FOUND, queue_during_cascade)
    seen = record(session.event_bus, EVENT_SWAP_DISCARDED)
    session.attempt_swap(2, 2, 3, 2)
    assert queued[0].reason is RejectReason.QUEUED
    assert seen[EVENT_SWAP_DISCARDED] == [{"src": (3, 0), "dst": (2, 0)}]
    assert session.moves_left == 19


def test_nested_cascade_is_rejected():
    session = make_session(ROWS)
    errors = []

    def reenter(sender, **payload):
        with pytest.raises(CascadeInProgressError) as excinfo:
            session.cascade_system.run("test")
        errors.append(excinfo.value)

    session.event_bus.subscribe(EVENT_MATCH_FOUND, reenter)
    outcome = session.attempt_swap(2, 2, 3, 2)
    assert outcome.accepted
    assert len(errors) == 1
    assert not session.cascade_system.active


def test_reaching_goal_wins_and_locks_the_level():
    goal = Goal(goal_type=GoalType.CREATED, target=2, tile_value=10)
    session = make_session(ROWS, goals=[goal])
    seen = record(session.event_bus, EVENT_LEVEL_WON, EVENT_TURN_SETTLED)
    session.attempt_swap(2, 2, 3, 2)
    assert session.status is LevelStatus.WON
    assert seen[EVENT_LEVEL_WON] == [{"score": session.score, "moves_used": 1}]
    assert seen[EVENT_TURN_SETTLED] == [{"status": LevelStatus.WON}]
    assert session.attempt_swap(0, 2, 1, 2).reason is RejectReason.LEVEL_NOT_ACTIVE


def test_running_out_of_moves_loses_until_extra_moves_granted():
    session = make_session(ROWS, max_moves=1)
    seen = record(session.event_bus, EVENT_LEVEL_LOST)
    session.attempt_swap(2, 2, 3, 2)
    assert session.status is LevelStatus.LOST
    assert session.loss_reason == "out_of_moves"
    assert seen[EVENT_LEVEL_LOST][0]["reason"] == "out_of_moves"
    session.grant_extra_moves(2)
    assert session.status is LevelStatus.ACTIVE
    assert session.moves_left == 2
    with pytest.raises(ValueError):
        session.grant_extra_moves(0)


@pytest.mark.parametrize("size,spawn", [((6, 6), (1, 2, 3)), ((8, 8), (1, 2, 3, 4)), ((12, 12), (1, 2, 3, 4, 5, 6))])
def test_cascade_always_terminates_on_random_boards(size, spawn):
    rng = random.Random(2048)
    for _ in range(60):
        world = make_world(seed=rng.randint(0, 10_000), width=size[1], height=size[0], spawnable=spawn)
        board: Board = get_board(world)
        for row, col in board.positions():
            board.set(row, col, NormalTile(value=rng.choice(spawn)))
        report = CascadeSystem(world, EventBus()).run("test")
        assert not has_matches(board)
        assert all(board.get(r, c) is not None for r, c in board.positions())
        assert report.depth == len(report.merges)


@pytest.mark.slow
def test_cascade_terminates_on_ten_thousand_large_boards():
    spawn = (1, 2, 3, 4, 5, 6)
    rng = random.Random(12)
    for _ in range(10_000):
        world = make_world(seed=rng.randint(0, 1_000_000), width=12, height=12, spawnable=spawn)
        board: Board = get_board(world)
        for row, col in board.positions():
            board.set(row, col, NormalTile(value=rng.choice(spawn)))
        report = CascadeSystem(world, EventBus()).run("test")
        assert not has_matches(board)
        assert report.depth == len(report.merges)
