from __future__ import annotations

import logging
import random
from typing import Iterable, List, Sequence

from match2048.components.board import Board
from match2048.components.tile import (
    BlockedMovableTile,
    BlockedTile,
    BlockedWithLifeTile,
    NormalTile,
    RectBlockedTile,
    RectBlockedWithLifeTile,
    value_of,
)
from match2048.config import LevelConfig
from match2048.constants import MAX_FILL_ATTEMPTS
from match2048.systems.board_ops import Position, spawn_tile
from match2048.systems.match_detection import completes_formation
from match2048.utils.serializer import parse_preset

logger = logging.getLogger(__name__)


def _blocked_factory(region: dict):
    if region.get("movable") is True:
        return BlockedMovableTile
    life = region.get("lifeValue")
    if life is not None:
        return lambda: BlockedWithLifeTile(life=int(life))
    return BlockedTile


def _is_rectangle(region: dict) -> bool:
    return region.get("width") is not None and region.get("height") is not None


def _completes_line(board: Board, row: int, col: int) -> bool:
    value = value_of(board.get(row, col))
    if value is None:
        return False
    if col >= 2 and value_of(board.get(row, col - 1)) == value and value_of(board.get(row, col - 2)) == value:
        return True
    if row >= 2 and value_of(board.get(row - 1, col)) == value and value_of(board.get(row - 2, col)) == value:
        return True
    return False


def fill_without_matches(board: Board, values: Sequence[int], rng: random.Random | None = None) -> None:
    """Fill the board row by row, drawing each tile from the values that complete no match.

    A cell with no such value restarts the fill.
    """
    distinct = sorted(set(values))
    if len(distinct) < 2:
        raise ValueError("A match-free fill needs at least two spawnable values")
    rng = rng or random.Random()
    for attempt in range(MAX_FILL_ATTEMPTS):
        if _fill_once(board, distinct, rng):
            return
        logger.debug("Match-free fill stuck on attempt %d; restarting", attempt + 1)
    raise RuntimeError(f"Could not fill a {board.cols}x{board.rows} board without matches from {distinct}")


def _fill_once(board: Board, values: Sequence[int], rng: random.Random) -> bool:
    for row, col in board.positions():
        board.set(row, col, None)
    for row in range(board.rows):
        for col in range(board.cols):
            allowed = []
            for value in values:
                board.set(row, col, NormalTile(value=value))
                if not _completes_line(board, row, col) and not completes_formation(board, row, col):
                    allowed.append(value)
            if not allowed:
                return False
            board.set(row, col, NormalTile(value=rng.choice(allowed)))
    return True


def region_cells(region: dict, rows: int, cols: int) -> List[Position]:
    """Cells covered by one blocked-tile region, or an empty list if it falls off the board."""
    row = region.get("row")
    col = region.get("col")
    if _is_rectangle(region):
        width, height = int(region["width"]), int(region["height"])
        if row is None or col is None or row < 0 or col < 0 or row + height > rows or col + width > cols:
            logger.warning("Blocked rectangle %r exceeds a %dx%d board; skipped", region, cols, rows)
            return []
        return [(r, c) for r in range(row, row + height) for c in range(col, col + width)]
    if row is not None and col is not None:
        columns = col if isinstance(col, list) else [col]
        cells = [(row, c) for c in columns if 0 <= row < rows and 0 <= c < cols]
        if len(cells) != len(columns):
            logger.warning("Blocked cell(s) %r partly outside the board", region)
        return cells
    if row is not None:
        if not 0 <= row < rows:
            logger.warning("Blocked row %r outside the board", region)
            return []
        return [(row, c) for c in range(cols)]
    if col is not None:
        if not 0 <= col < cols:
            logger.warning("Blocked column %r outside the board", region)
            return []
        return [(r, col) for r in range(rows)]
    logger.warning("Blocked region %r names no row or column; skipped", region)
    return []


def _rectangle_tile(region: dict):
    shape = {key: int(region[key]) for key in ("row", "col", "width", "height")}
    life = region.get("lifeValue")
    if life is not None:
        return RectBlockedWithLifeTile(life=int(life), **shape)
    return RectBlockedTile(**shape)


def stamp_blocked_regions(board: Board, regions: Iterable[dict]) -> List[Position]:
    """Place each region's obstacles; a rectangle is one tile shared by all of its cells."""
    stamped: List[Position] = []
    for region in regions:
        cells = region_cells(region, board.rows, board.cols)
        if not cells:
            continue
        if _is_rectangle(region):
            shared = _rectangle_tile(region)
            tiles = [shared] * len(cells)
        else:
            factory = _blocked_factory(region)
            tiles = [factory() for _ in cells]
        for (row, col), tile in zip(cells, tiles):
            board.set(row, col, tile)
            stamped.append((row, col))
    return stamped


def build_board(level: LevelConfig, rng: random.Random | None = None) -> Board:
    """Create the opening board for ``level``.

    A preset is placed literally, with any cell it leaves out drawn at random.
    Otherwise the board is drawn match-free and the level's blocked regions
    are stamped on top.
    """
    board = Board(rows=level.board_height, cols=level.board_width)
    if level.board_preset:
        board.grid = parse_preset(level.board_preset, board.rows, board.cols)
        for row, col in board.positions():
            if not _preset_covers(level.board_preset, row, col):
                board.set(row, col, spawn_tile(level.spawnable_tiles, rng))
        return board
    fill_without_matches(board, level.spawnable_tiles, rng)
    stamp_blocked_regions(board, level.blocked_tiles)
    return board


def _preset_covers(preset: Sequence[Sequence[object]], row: int, col: int) -> bool:
    return row < len(preset) and col < len(preset[row])

