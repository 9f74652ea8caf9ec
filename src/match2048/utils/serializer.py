"""Board notation used by level presets and debug dumps.

One token per cell, comma separated; rows separated by ``|``, prefixed by a
``width,height`` header::

    "5,3|2,4,B,2G,J|0,2P,BM,B64,2C5|1,1,1,1,1"

Tokens: ``0``/empty (no tile), ``N`` (normal), ``B`` (blocked), ``BM``
(blocked movable), ``B<life>``, ``J`` (joker), ``<N>P`` power, ``<N>G``
golden, ``<N>S`` free swap, ``<N>K`` sticky free swap, ``<N>H`` / ``<N>V``
directional free swap and ``<N>C<moves>`` cursed.
"""
from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence

from match2048.components.board import Board
from match2048.components.tile import (
    BlockedMovableTile,
    BlockedTile,
    BlockedWithLifeTile,
    CursedTile,
    JokerTile,
    NormalTile,
    Tile,
)

logger = logging.getLogger(__name__)

_LIFE_RE = re.compile(r"^B(\d+)$")
_CURSED_RE = re.compile(r"^(\d+)C(\d+)$")
_SPECIAL_RE = re.compile(r"^(\d+)([PGSKHV])$")


def parse_tile_notation(notation: Any) -> Optional[Tile]:
    """Parse a single cell token. Unknown tokens degrade to ``NormalTile(1)``."""
    if notation is None:
        return None
    if isinstance(notation, int) and not isinstance(notation, bool):
        return NormalTile(value=notation) if notation > 0 else None
    text = str(notation).strip()
    if text in ("", "0"):
        return None
    if text.isdigit():
        return NormalTile(value=int(text))
    if text == "B":
        return BlockedTile()
    if text == "BM":
        return BlockedMovableTile()
    if text == "J":
        return JokerTile()
    match = _LIFE_RE.match(text)
    if match:
        return BlockedWithLifeTile(life=int(match.group(1)))
    match = _CURSED_RE.match(text)
    if match:
        return CursedTile(value=int(match.group(1)), moves_remaining=int(match.group(2)))
    match = _SPECIAL_RE.match(text)
    if match:
        value = int(match.group(1))
        kind = match.group(2)
        if kind == "P":
            return NormalTile(value=value, is_power=True)
        if kind == "G":
            return NormalTile(value=value, is_golden=True)
        if kind == "S":
            return NormalTile(value=value, is_free_swap=True)
        if kind == "K":
            return NormalTile(value=value, is_sticky_free_swap=True)
        axis = "horizontal" if kind == "H" else "vertical"
        return NormalTile(value=value, is_free_swap=True, free_swap_axis=axis)
    logger.warning("Could not parse tile notation %r; using a 2 tile", notation)
    return NormalTile(value=1)


def tile_to_notation(tile: Optional[Tile]) -> str:
    if tile is None:
        return "0"
    if isinstance(tile, BlockedTile):
        return "B"
    if isinstance(tile, BlockedMovableTile):
        return "BM"
    if isinstance(tile, BlockedWithLifeTile):
        return f"B{tile.life}"
    if isinstance(tile, JokerTile):
        return "J"
    if isinstance(tile, CursedTile):
        return f"{tile.value}C{tile.moves_remaining}"
    if tile.is_power:
        return f"{tile.value}P"
    if tile.is_golden:
        return f"{tile.value}G"
    if tile.is_sticky_free_swap:
        return f"{tile.value}K"
    # A spent free swap behaves as a plain tile.
    if tile.is_free_swap and not tile.has_been_swapped:
        if tile.free_swap_axis == "horizontal":
            return f"{tile.value}H"
        if tile.free_swap_axis == "vertical":
            return f"{tile.value}V"
        return f"{tile.value}S"
    return str(tile.value)


def serialize_board(board: Board) -> str:
    rows = [",".join(tile_to_notation(tile) for tile in row) for row in board.grid]
    return "|".join([f"{board.cols},{board.rows}"] + rows)


def deserialize_board(serialized: str) -> Board:
    parts = serialized.split("|")
    header = parts[0].split(",")
    if len(header) != 2:
        raise ValueError(f"Bad board header: {parts[0]!r}")
    cols, rows = int(header[0]), int(header[1])
    board = Board(rows=rows, cols=cols)
    for row in range(rows):
        if row + 1 >= len(parts) or not parts[row + 1]:
            continue
        tokens = parts[row + 1].split(",")
        for col in range(min(cols, len(tokens))):
            board.set(row, col, parse_tile_notation(tokens[col]))
    return board


def parse_preset(preset: Sequence[Sequence[Any]], rows: int, cols: int) -> List[List[Optional[Tile]]]:
    """Parse a literal 2D preset; cells outside the preset stay empty."""
    grid: List[List[Optional[Tile]]] = [[None] * cols for _ in range(rows)]
    for row, cells in enumerate(preset[:rows]):
        for col, notation in enumerate(list(cells)[:cols]):
            grid[row][col] = parse_tile_notation(notation)
    return grid
