from dataclasses import dataclass
from typing import Optional, Union


@dataclass(slots=True, eq=False)
class NormalTile:
    """A valued tile. ``value`` is an exponent index (1 = 2, 2 = 4, ... 11 = 2048).

    Tiles compare by identity so a queued swap can tell whether the tile it
    captured is still sitting on the board.
    """

    value: int
    is_power: bool = False
    is_golden: bool = False
    is_free_swap: bool = False
    is_sticky_free_swap: bool = False
    # None for omni-directional free swaps, otherwise "horizontal" / "vertical".
    free_swap_axis: Optional[str] = None
    has_been_swapped: bool = False


@dataclass(slots=True, eq=False)
class BlockedTile:
    """Immovable obstacle."""


@dataclass(slots=True, eq=False)
class BlockedWithLifeTile:
    life: int


@dataclass(slots=True, eq=False)
class RectBlockedTile(BlockedTile):
    """Rectangular obstacle; every covered cell holds this same instance.

    Each adjacent match clears one of its cells.
    """

    row: int
    col: int
    width: int
    height: int


@dataclass(slots=True, eq=False)
class RectBlockedWithLifeTile(BlockedWithLifeTile):
    """Rectangular obstacle sharing one life pool across all of its cells."""

    row: int
    col: int
    width: int
    height: int


@dataclass(slots=True, eq=False)
class BlockedMovableTile:
    """Obstacle that falls with gravity but never matches."""


@dataclass(slots=True, eq=False)
class JokerTile:
    """Wildcard resolved to a concrete value on swap or tap."""


@dataclass(slots=True, eq=False)
class CursedTile:
    value: int
    moves_remaining: int
    created_this_turn: bool = False


Tile = Union[
    NormalTile,
    BlockedTile,
    BlockedWithLifeTile,
    RectBlockedTile,
    RectBlockedWithLifeTile,
    BlockedMovableTile,
    JokerTile,
    CursedTile,
]


def is_normal(tile) -> bool:
    return isinstance(tile, NormalTile)


def is_blocked(tile) -> bool:
    return isinstance(tile, BlockedTile)


def is_blocked_with_life(tile) -> bool:
    return isinstance(tile, BlockedWithLifeTile)


def is_blocked_movable(tile) -> bool:
    return isinstance(tile, BlockedMovableTile)


def is_any_blocked(tile) -> bool:
    return isinstance(tile, (BlockedTile, BlockedWithLifeTile, BlockedMovableTile))


def is_immovable(tile) -> bool:
    return isinstance(tile, (BlockedTile, BlockedWithLifeTile))


def is_rectangular(tile) -> bool:
    return isinstance(tile, (RectBlockedTile, RectBlockedWithLifeTile))


def is_joker(tile) -> bool:
    return isinstance(tile, JokerTile)


def is_cursed(tile) -> bool:
    return isinstance(tile, CursedTile)


def is_power_tile(tile) -> bool:
    return isinstance(tile, NormalTile) and tile.is_power


def is_golden_tile(tile) -> bool:
    return isinstance(tile, NormalTile) and tile.is_golden


def is_free_swap_tile(tile) -> bool:
    return isinstance(tile, NormalTile) and tile.is_free_swap


def is_sticky_free_swap_tile(tile) -> bool:
    return isinstance(tile, NormalTile) and tile.is_sticky_free_swap


def is_valued(tile) -> bool:
    """Normal and cursed tiles carry a value and can take part in line matches."""
    return isinstance(tile, (NormalTile, CursedTile))


def value_of(tile) -> Optional[int]:
    if isinstance(tile, (NormalTile, CursedTile)):
        return tile.value
    return None


def display_value(value: int, base: int = 2) -> int:
    return base ** value


def clone_tile(tile):
    """Return a detached copy of ``tile`` (``None`` passes through)."""
    if tile is None:
        return None
    if isinstance(tile, NormalTile):
        return NormalTile(
            value=tile.value,
            is_power=tile.is_power,
            is_golden=tile.is_golden,
            is_free_swap=tile.is_free_swap,
            is_sticky_free_swap=tile.is_sticky_free_swap,
            free_swap_axis=tile.free_swap_axis,
            has_been_swapped=tile.has_been_swapped,
        )
    if isinstance(tile, RectBlockedWithLifeTile):
        return RectBlockedWithLifeTile(life=tile.life, row=tile.row, col=tile.col, width=tile.width, height=tile.height)
    if isinstance(tile, RectBlockedTile):
        return RectBlockedTile(row=tile.row, col=tile.col, width=tile.width, height=tile.height)
    if isinstance(tile, BlockedWithLifeTile):
        return BlockedWithLifeTile(life=tile.life)
    if isinstance(tile, CursedTile):
        return CursedTile(
            value=tile.value,
            moves_remaining=tile.moves_remaining,
            created_this_turn=tile.created_this_turn,
        )
    return type(tile)()


def tiles_equal(a, b) -> bool:
    """Structural comparison, ignoring the transient ``created_this_turn`` marker."""
    if a is None or b is None:
        return a is b
    if type(a) is not type(b):
        return False
    if is_rectangular(a) and (a.row, a.col, a.width, a.height) != (b.row, b.col, b.width, b.height):
        return False
    if isinstance(a, NormalTile):
        return (
            a.value == b.value
            and a.is_power == b.is_power
            and a.is_golden == b.is_golden
            and a.is_free_swap == b.is_free_swap
            and a.is_sticky_free_swap == b.is_sticky_free_swap
            and a.free_swap_axis == b.free_swap_axis
            and a.has_been_swapped == b.has_been_swapped
        )
    if isinstance(a, BlockedWithLifeTile):
        return a.life == b.life
    if isinstance(a, CursedTile):
        return a.value == b.value and a.moves_remaining == b.moves_remaining
    return True
