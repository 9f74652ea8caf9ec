from __future__ import annotations

import random
from typing import Any, Dict, Iterable, List, Optional, Sequence

from esper import World

from match2048.components.board import Board
from match2048.components.goal import Goal, GoalType
from match2048.config import LevelConfig
from match2048.events.bus import EventBus
from match2048.session import GameSession
from match2048.utils.serializer import parse_tile_notation
from match2048.world import create_world


def unreachable_goal() -> Goal:
    """A goal no test board completes, so the level stays active."""
    return Goal(goal_type=GoalType.CREATED, target=1, tile_value=30)


def board_from_rows(rows: Sequence[Sequence[Any]]) -> Board:
    """Build a board from preset notation; ``0`` leaves the cell empty."""
    board = Board(rows=len(rows), cols=max(len(row) for row in rows))
    for r, cells in enumerate(rows):
        for c, token in enumerate(cells):
            board.set(r, c, parse_tile_notation(token))
    return board


def level_for(
    rows: Optional[Sequence[Sequence[Any]]] = None,
    *,
    goals: Optional[Iterable[Goal]] = None,
    spawnable: Sequence[int] = (1, 2, 3, 4),
    max_moves: int = 20,
    width: int = 8,
    height: int = 8,
    blocked: Sequence[dict] = (),
    **extra,
) -> LevelConfig:
    if rows is not None:
        height = len(rows)
        width = max(len(row) for row in rows)
    return LevelConfig(
        board_width=width,
        board_height=height,
        max_moves=max_moves,
        blocked_tiles=list(blocked),
        goals=list(goals) if goals is not None else [unreachable_goal()],
        spawnable_tiles=list(spawnable),
        board_preset=[list(row) for row in rows] if rows is not None else None,
        **extra,
    )


def make_world(rows=None, *, seed: int = 0, special: Optional[dict] = None, **level_kwargs) -> World:
    return create_world(level_for(rows, **level_kwargs), rng=random.Random(seed), special_tile_config=special)


def make_session(rows=None, *, seed: int = 0, special: Optional[dict] = None, **level_kwargs) -> GameSession:
    return GameSession(level_for(rows, **level_kwargs), rng=random.Random(seed), special_tile_config=special)


def record(bus: EventBus, *names: str) -> Dict[str, List[dict]]:
    """Collect payloads of the named events, in emission order."""
    seen: Dict[str, List[dict]] = {name: [] for name in names}
    for name in names:
        bus.subscribe(name, lambda sender, _name=name, **payload: seen[_name].append(payload))
    return seen


def values(board: Board) -> List[List[Optional[int]]]:
    return [[getattr(tile, "value", None) for tile in row] for row in board.grid]
