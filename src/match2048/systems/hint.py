from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from match2048.components.board import Board
from match2048.components.goal import Goal, GoalType
from match2048.components.tile import (
    BlockedWithLifeTile,
    is_free_swap_tile,
    is_immovable,
    is_joker,
    is_sticky_free_swap_tile,
)
from match2048.constants import (
    HINT_BLOCKED_ONLY_BASE,
    HINT_BLOCKED_ONLY_WEIGHT,
    HINT_BLOCKED_WEIGHT,
    HINT_FORMATION_WEIGHTS,
    HINT_GOAL_WEIGHT,
    HINT_ROW_BONUS,
    HINT_SPECIAL_BONUS,
    HINT_TILE_WEIGHT,
    HINT_VALUE_WEIGHT,
)
from match2048.systems.board_ops import Position, board_values, swap_cells
from match2048.systems.match_detection import MatchGroup, find_best_joker_value, find_matches, resolve_jokers

SwapPair = Tuple[Position, Position]


@dataclass(slots=True)
class SwapHint:
    row1: int
    col1: int
    row2: int
    col2: int
    score: int
    matches: List[MatchGroup] = field(default_factory=list)

    @property
    def src(self) -> Position:
        return (self.row1, self.col1)

    @property
    def dst(self) -> Position:
        return (self.row2, self.col2)


def _swappable(tile) -> bool:
    return tile is not None and not is_immovable(tile)


def candidate_swaps(board: Board) -> List[SwapPair]:
    """Right and down neighbours of every movable tile, top-left first."""
    pairs: List[SwapPair] = []
    for row, col in board.positions():
        if not _swappable(board.get(row, col)):
            continue
        for other in ((row, col + 1), (row + 1, col)):
            if board.in_bounds(*other) and _swappable(board.get(*other)):
                pairs.append(((row, col), other))
    return pairs


def swapped_board(board: Board, a: Position, b: Position, spawnable: Iterable[int] = ()) -> Board:
    """Copy of ``board`` with ``a`` and ``b`` swapped and jokers resolved as a user swap resolves them."""
    scratch = board.copy()
    swap_cells(scratch, a, b)
    resolve_jokers(scratch, spawnable)
    return scratch


def _touching(board: Board, a: Position, b: Position) -> List[MatchGroup]:
    return [g for g in find_matches(board) if a in g.tiles or b in g.tiles]


def matches_for_swap(board: Board, a: Position, b: Position, spawnable: Iterable[int] = ()) -> List[MatchGroup]:
    """Matches a swap would create that include a swapped cell. ``board`` is left untouched."""
    return _touching(swapped_board(board, a, b, spawnable), a, b)


def find_valid_swaps(board: Board, spawnable: Iterable[int] = ()) -> List[SwapPair]:
    spawnable = list(spawnable)
    return [(a, b) for a, b in candidate_swaps(board) if matches_for_swap(board, a, b, spawnable)]


def tappable_jokers(board: Board, spawnable: Iterable[int] = ()) -> List[Position]:
    """Jokers that a tap would resolve into a match."""
    candidates = set(spawnable) | set(board_values(board))
    return [
        (row, col)
        for row, col in board.positions()
        if is_joker(board.get(row, col)) and find_best_joker_value(board, row, col, candidates) is not None
    ]


def has_valid_move(board: Board, spawnable: Iterable[int] = ()) -> bool:
    spawnable = list(spawnable)
    for row, col in board.positions():
        tile = board.get(row, col)
        if (is_sticky_free_swap_tile(tile) or is_free_swap_tile(tile)) and not tile.has_been_swapped:
            return True
    if tappable_jokers(board, spawnable):
        return True
    return any(matches_for_swap(board, a, b, spawnable) for a, b in candidate_swaps(board))


def preview_swap(board: Board, a: Position, b: Position, spawnable: Iterable[int] = ()) -> List[Position]:
    """Cells that would merge after swapping ``a`` and ``b``, in pre-swap coordinates."""
    cells: List[Position] = []
    for group in matches_for_swap(board, a, b, spawnable):
        for pos in group.tiles:
            if pos == a:
                pos = b
            elif pos == b:
                pos = a
            if pos not in cells:
                cells.append(pos)
    return cells


def _blocked_only_remaining(goals: Sequence[Goal]) -> bool:
    blocked = [g for g in goals if g.goal_type is GoalType.BLOCKED]
    others = [g for g in goals if g.goal_type is not GoalType.BLOCKED]
    return bool(blocked) and all(g.is_complete for g in others) and any(not g.is_complete for g in blocked)


def score_matches(board: Board, matches: Sequence[MatchGroup], goals: Sequence[Goal] = ()) -> int:
    """Composite desirability of a set of matches on a board already showing the swap."""
    if not matches:
        return 0
    formation = max(HINT_FORMATION_WEIGHTS[g.kind.hint_key] for g in matches)
    tiles = sum(len(g.tiles) for g in matches)
    max_value = max(g.value for g in matches)
    special = any(g.kind.is_big for g in matches)

    progress = 0
    for group in matches:
        for goal in goals:
            if goal.tile_value != group.value:
                continue
            if goal.goal_type is GoalType.CREATED:
                progress += len(group.tiles)
            elif goal.goal_type is GoalType.CURRENT:
                progress += 1

    blocked_hits = 0
    for group in matches:
        for row, col in group.tiles:
            for pos in board.neighbors(row, col):
                if isinstance(board.get(*pos), BlockedWithLifeTile):
                    blocked_hits += 1

    total_row = sum(row for g in matches for row, _ in g.tiles)
    avg_row = total_row / tiles
    row_bonus = round(avg_row / (board.rows - 1) * HINT_ROW_BONUS) if board.rows > 1 else 0

    score = formation + tiles * HINT_TILE_WEIGHT + progress * HINT_GOAL_WEIGHT
    if blocked_hits and any(g.goal_type is GoalType.BLOCKED for g in goals):
        if _blocked_only_remaining(goals):
            score += HINT_BLOCKED_ONLY_BASE + blocked_hits * HINT_BLOCKED_ONLY_WEIGHT
        else:
            score += blocked_hits * HINT_BLOCKED_WEIGHT
    if special:
        score += HINT_SPECIAL_BONUS
    score += max_value * HINT_VALUE_WEIGHT
    score += row_bonus
    return score


def find_best_swap(
    board: Board,
    goals: Iterable[Goal] = (),
    spawnable: Iterable[int] = (),
) -> Optional[SwapHint]:
    """Best-scoring swap, each candidate judged on a scratch copy; ``None`` when no swap matches."""
    goals = list(goals)
    spawnable = list(spawnable)
    best: Optional[SwapHint] = None
    for a, b in candidate_swaps(board):
        scratch = swapped_board(board, a, b, spawnable)
        matches = _touching(scratch, a, b)
        if not matches:
            continue
        score = score_matches(scratch, matches, goals)
        hint = SwapHint(row1=a[0], col1=a[1], row2=b[0], col2=b[1], score=score, matches=matches)
        if best is None or hint.score > best.score or (
            hint.score == best.score and (hint.row1 + hint.col1) < (best.row1 + best.col1)
        ):
            best = hint
    return best
