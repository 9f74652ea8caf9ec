from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from match2048.components.board import Board
from match2048.components.tile import (
    JokerTile,
    NormalTile,
    is_golden_tile,
    is_joker,
    is_normal,
    is_power_tile,
    is_valued,
)
from match2048.systems.board_ops import Position, board_values, can_match

logger = logging.getLogger(__name__)


class FormationKind(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    LINE_4_HORIZONTAL = "line_4_horizontal"
    LINE_4_VERTICAL = "line_4_vertical"
    LINE_5_HORIZONTAL = "line_5_horizontal"
    LINE_5_VERTICAL = "line_5_vertical"
    T_FORMATION = "T-formation"
    L_FORMATION = "L-formation"
    BLOCK_4 = "block_4_formation"

    @property
    def is_line_3(self) -> bool:
        return self in (FormationKind.HORIZONTAL, FormationKind.VERTICAL)

    @property
    def is_line_4(self) -> bool:
        return self in (FormationKind.LINE_4_HORIZONTAL, FormationKind.LINE_4_VERTICAL)

    @property
    def is_line_5(self) -> bool:
        return self in (FormationKind.LINE_5_HORIZONTAL, FormationKind.LINE_5_VERTICAL)

    @property
    def config_key(self) -> Optional[str]:
        """Key into SpecialTileConfig; line-3 never produces a special tile."""
        if self.is_line_4:
            return "line_4"
        if self.is_line_5:
            return "line_5"
        if self is FormationKind.T_FORMATION:
            return "t_formation"
        if self is FormationKind.L_FORMATION:
            return "l_formation"
        if self is FormationKind.BLOCK_4:
            return "block_4"
        return None

    @property
    def hint_key(self) -> str:
        return self.config_key or "line_3"

    @property
    def is_big(self) -> bool:
        """Formations that jump two tiers."""
        return self.is_line_5 or self in (FormationKind.T_FORMATION, FormationKind.L_FORMATION)


@dataclass(slots=True)
class MatchGroup:
    tiles: List[Position]
    value: int
    kind: FormationKind
    has_golden_tile: bool = False
    intersection: Optional[Position] = None
    intersections: List[Position] = field(default_factory=list)

    @property
    def direction(self) -> str:
        return self.kind.value


# T: a bar of three through the anchor plus a two-tile stem; the anchor is the intersection.
T_PATTERNS: Tuple[Tuple[Tuple[int, ...], Tuple[int, ...]], ...] = (
    ((-1, 0, 1), (1, 2)),
    ((1, 2), (-1, 0, 1)),
    ((-1, 0, 1), (-2, -1)),
    ((-2, -1), (-1, 0, 1)),
)
# L: two arms of three sharing the anchor corner.
L_PATTERNS: Tuple[Tuple[Tuple[int, ...], Tuple[int, ...]], ...] = (
    ((0, 1, 2), (1, 2)),
    ((0, -1, -2), (1, 2)),
    ((0, 1, 2), (-1, -2)),
    ((0, -1, -2), (-1, -2)),
)


def _line_kind(length: int, horizontal: bool) -> FormationKind:
    if length >= 5:
        return FormationKind.LINE_5_HORIZONTAL if horizontal else FormationKind.LINE_5_VERTICAL
    if length == 4:
        return FormationKind.LINE_4_HORIZONTAL if horizontal else FormationKind.LINE_4_VERTICAL
    return FormationKind.HORIZONTAL if horizontal else FormationKind.VERTICAL


def _scan_line(board: Board, cells: Sequence[Position], horizontal: bool) -> List[MatchGroup]:
    matches: List[MatchGroup] = []
    run: List[Position] = []
    run_value = 0
    has_power = False

    def close_run() -> None:
        if len(run) >= 3:
            golden = any(is_golden_tile(board.get(r, c)) for r, c in run)
            matches.append(
                MatchGroup(
                    tiles=list(run),
                    value=run_value,
                    kind=_line_kind(len(run), horizontal),
                    has_golden_tile=golden,
                )
            )

    for row, col in cells:
        tile = board.get(row, col)
        if not is_valued(tile):
            close_run()
            run = []
            continue
        if run:
            prev = board.get(*run[-1])
            if can_match(tile, prev):
                run.append((row, col))
                if has_power or is_power_tile(tile) or is_power_tile(prev):
                    has_power = True
                    run_value = max(run_value, tile.value)
                continue
            close_run()
        run = [(row, col)]
        run_value = tile.value
        has_power = is_power_tile(tile)
    close_run()
    return matches


def find_line_matches(board: Board) -> List[MatchGroup]:
    matches: List[MatchGroup] = []
    for row in range(board.rows):
        matches.extend(_scan_line(board, [(row, c) for c in range(board.cols)], True))
    for col in range(board.cols):
        matches.extend(_scan_line(board, [(r, col) for r in range(board.rows)], False))
    return matches


def _formation_tile(board: Board, row: int, col: int, value: int) -> Optional[NormalTile]:
    tile = board.get(row, col)
    if is_normal(tile) and tile.value == value:
        return tile
    return None


def _collect(board: Board, value: int, cells: Iterable[Position]) -> Optional[List[Position]]:
    positions: List[Position] = []
    for row, col in cells:
        if _formation_tile(board, row, col, value) is None:
            return None
        positions.append((row, col))
    return positions


def _with_overlapping_lines(board: Board, positions: List[Position], value: int) -> List[Position]:
    """Append tiles of same-valued line runs (3+) that cross the formation."""
    in_formation = set(positions)
    extra: List[Position] = []
    seen_lines = set()

    def same(row: int, col: int) -> bool:
        tile = board.get(row, col)
        return is_valued(tile) and tile.value == value

    for row, col in positions:
        if ("h", row) not in seen_lines:
            seen_lines.add(("h", row))
            left, right = col, col
            while left > 0 and same(row, left - 1):
                left -= 1
            while right < board.cols - 1 and same(row, right + 1):
                right += 1
            if right - left + 1 >= 3:
                for c in range(left, right + 1):
                    if (row, c) not in in_formation and (row, c) not in extra:
                        extra.append((row, c))
        if ("v", col) not in seen_lines:
            seen_lines.add(("v", col))
            top, bottom = row, row
            while top > 0 and same(top - 1, col):
                top -= 1
            while bottom < board.rows - 1 and same(bottom + 1, col):
                bottom += 1
            if bottom - top + 1 >= 3:
                for r in range(top, bottom + 1):
                    if (r, col) not in in_formation and (r, col) not in extra:
                        extra.append((r, col))
    return positions + extra


def _golden(board: Board, positions: Iterable[Position]) -> bool:
    return any(is_golden_tile(board.get(r, c)) for r, c in positions)


def check_t_formation(board: Board, row: int, col: int, value: int) -> Optional[MatchGroup]:
    for horizontal, vertical in T_PATTERNS:
        cells = [(row, col + o) for o in horizontal] + [(row + o, col) for o in vertical]
        positions = _collect(board, value, cells)
        if positions is None:
            continue
        return MatchGroup(
            tiles=_with_overlapping_lines(board, positions, value),
            value=value,
            kind=FormationKind.T_FORMATION,
            has_golden_tile=_golden(board, positions),
            intersection=(row, col),
        )
    return None


def check_l_formation(board: Board, row: int, col: int, value: int) -> Optional[MatchGroup]:
    for horizontal, vertical in L_PATTERNS:
        cells = [(row, col + o) for o in horizontal] + [(row + o, col) for o in vertical]
        positions = _collect(board, value, cells)
        if positions is None:
            continue
        return MatchGroup(
            tiles=_with_overlapping_lines(board, positions, value),
            value=value,
            kind=FormationKind.L_FORMATION,
            has_golden_tile=_golden(board, positions),
            intersection=(row, col),
        )
    return None


def check_block_formation(board: Board, row: int, col: int, value: int) -> Optional[MatchGroup]:
    """2x2 square with ``(row, col)`` as its top-left corner."""
    cells = [(row, col), (row, col + 1), (row + 1, col), (row + 1, col + 1)]
    positions = _collect(board, value, cells)
    if positions is None:
        return None
    return MatchGroup(
        tiles=_with_overlapping_lines(board, positions, value),
        value=value,
        kind=FormationKind.BLOCK_4,
        has_golden_tile=_golden(board, positions),
        intersections=[(row + 1, col), (row + 1, col + 1)],
    )


def find_formations(board: Board, kind: FormationKind) -> List[MatchGroup]:
    checker = {
        FormationKind.T_FORMATION: check_t_formation,
        FormationKind.L_FORMATION: check_l_formation,
        FormationKind.BLOCK_4: check_block_formation,
    }[kind]
    found: List[MatchGroup] = []
    for row, col in board.positions():
        tile = board.get(row, col)
        if not is_normal(tile):
            continue
        group = checker(board, row, col, tile.value)
        if group is not None:
            found.append(group)
    return found


def completes_formation(board: Board, row: int, col: int) -> bool:
    """True when the tile at ``(row, col)`` is part of a T, L or block formation."""
    tile = board.get(row, col)
    if not is_normal(tile):
        return False
    value = tile.value
    for r in range(row - 2, row + 3):
        for c in range(col - 2, col + 3):
            for checker in (check_t_formation, check_l_formation, check_block_formation):
                group = checker(board, r, c, value) if board.in_bounds(r, c) else None
                if group is not None and (row, col) in group.tiles:
                    return True
    return False


def filter_overlapping(candidates: Iterable[MatchGroup]) -> List[MatchGroup]:
    accepted: List[MatchGroup] = []
    claimed: set[Position] = set()
    for group in candidates:
        if any(pos in claimed for pos in group.tiles):
            continue
        accepted.append(group)
        claimed.update(group.tiles)
    return accepted


def prioritized_candidates(board: Board) -> List[MatchGroup]:
    """All candidates in priority order: line-5, T, L, line-4, block, line-3."""
    lines = find_line_matches(board)
    ordered: List[MatchGroup] = []
    ordered.extend(g for g in lines if g.kind.is_line_5)
    ordered.extend(find_formations(board, FormationKind.T_FORMATION))
    ordered.extend(find_formations(board, FormationKind.L_FORMATION))
    ordered.extend(g for g in lines if g.kind.is_line_4)
    ordered.extend(find_formations(board, FormationKind.BLOCK_4))
    ordered.extend(g for g in lines if g.kind.is_line_3)
    return ordered


def find_best_joker_value(
    board: Board,
    row: int,
    col: int,
    candidates: Iterable[int],
) -> Optional[int]:
    """Highest candidate value that puts the joker at ``(row, col)`` into a match.

    Matches that contain another joker are ignored. The board is left unchanged.
    """
    original = board.get(row, col)
    try:
        for value in sorted(set(candidates), reverse=True):
            board.set(row, col, NormalTile(value=value))
            for group in filter_overlapping(prioritized_candidates(board)):
                if (row, col) not in group.tiles:
                    continue
                if any(is_joker(board.get(r, c)) for r, c in group.tiles if (r, c) != (row, col)):
                    continue
                return value
    finally:
        board.set(row, col, original)
    return None


def resolve_jokers(board: Board, spawnable: Iterable[int]) -> List[Tuple[Position, int]]:
    """Turn every joker that can complete a match into a normal tile of its best value."""
    resolved: List[Tuple[Position, int]] = []
    jokers = [(r, c) for r, c in board.positions() if isinstance(board.get(r, c), JokerTile)]
    if not jokers:
        return resolved
    candidates = set(spawnable) | set(board_values(board))
    for row, col in jokers:
        value = find_best_joker_value(board, row, col, candidates)
        if value is None:
            continue
        board.set(row, col, NormalTile(value=value))
        resolved.append(((row, col), value))
        logger.debug("Joker at %s resolved to %s", (row, col), value)
    return resolved


def find_matches(
    board: Board,
    *,
    resolve_joker_tiles: bool = False,
    spawnable: Iterable[int] = (),
) -> List[MatchGroup]:
    if resolve_joker_tiles:
        resolve_jokers(board, spawnable)
    return filter_overlapping(prioritized_candidates(board))


def has_matches(board: Board) -> bool:
    return bool(find_matches(board))


def has_matches_for_swap(board: Board, a: Position, b: Position) -> bool:
    return any(a in group.tiles or b in group.tiles for group in find_matches(board))


def matched_positions(groups: Iterable[MatchGroup]) -> List[Position]:
    return sorted({pos for group in groups for pos in group.tiles})
