from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from match2048.components.board import Board
from match2048.components.goal import Goal
from match2048.components.tile import CursedTile, is_valued
from match2048.systems.board_ops import Position, spawn_tile
from match2048.systems.goals import cursed_goal_for


@dataclass(slots=True)
class GravityMove:
    source: Position
    target: Position
    tile: object


@dataclass(slots=True)
class GravityResult:
    moved: List[GravityMove] = field(default_factory=list)
    spawned: List[Position] = field(default_factory=list)


@dataclass(slots=True)
class CursedExpiry:
    removed: List[Position] = field(default_factory=list)
    imploded: List[Position] = field(default_factory=list)
    # Neighbours destroyed by implosions.
    destroyed: List[Position] = field(default_factory=list)
    decremented: List[Position] = field(default_factory=list)

    @property
    def board_changed(self) -> bool:
        return bool(self.removed or self.imploded)


def compute_gravity_moves(board: Board) -> List[GravityMove]:
    moves: List[GravityMove] = []
    for col in range(board.cols):
        filled_rows = [row for row in range(board.rows) if board.get(row, col) is not None]
        # Bottom-most tile lands on the last row; relative order is kept.
        target_row = board.rows - 1
        for source_row in reversed(filled_rows):
            if source_row != target_row:
                moves.append(GravityMove(source=(source_row, col), target=(target_row, col), tile=board.get(source_row, col)))
            target_row -= 1
    return moves


def apply_gravity_moves(board: Board, moves: Iterable[GravityMove]) -> None:
    # Moves are ordered bottom-up per column so a target is always vacated first.
    for move in moves:
        board.set(move.source[0], move.source[1], None)
        board.set(move.target[0], move.target[1], move.tile)


def refill_empty_cells(board: Board, values: Sequence[int], rng: random.Random | None = None) -> List[Position]:
    spawned: List[Position] = []
    for row, col in board.positions():
        if board.get(row, col) is None:
            board.set(row, col, spawn_tile(values, rng))
            spawned.append((row, col))
    return spawned


def apply_gravity_and_refill(board: Board, values: Sequence[int], rng: random.Random | None = None) -> GravityResult:
    """Drop every tile to the bottom of its column, then fill the gaps from the top."""
    moves = compute_gravity_moves(board)
    apply_gravity_moves(board, moves)
    spawned = refill_empty_cells(board, values, rng)
    return GravityResult(moved=moves, spawned=spawned)


def decrement_cursed_timers(board: Board, goals: Sequence[Goal]) -> CursedExpiry:
    """Advance every cursed tile by one turn and remove the ones that ran out."""
    expiry = CursedExpiry()
    for row, col in board.positions():
        tile = board.get(row, col)
        if not isinstance(tile, CursedTile):
            continue
        if tile.created_this_turn:
            tile.created_this_turn = False
            continue
        tile.moves_remaining -= 1
        expiry.decremented.append((row, col))
        if tile.moves_remaining > 0:
            continue
        goal = cursed_goal_for(goals, tile.value)
        if goal is not None and goal.implode:
            expiry.imploded.append((row, col))
        else:
            expiry.removed.append((row, col))

    for row, col in expiry.removed:
        board.set(row, col, None)
    for row, col in expiry.imploded:
        for pos in board.neighbors(row, col):
            if pos in expiry.imploded or pos in expiry.destroyed:
                continue
            if is_valued(board.get(*pos)):
                expiry.destroyed.append(pos)
        board.set(row, col, None)
    for row, col in expiry.destroyed:
        board.set(row, col, None)
    return expiry
