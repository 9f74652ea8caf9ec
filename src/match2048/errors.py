from enum import Enum


class MergeGeometryError(RuntimeError):
    """A match group whose shape yields no placement cell."""


class CascadeInProgressError(RuntimeError):
    """A second cascade was started on a world that is already resolving one."""


class RejectReason(Enum):
    LEVEL_NOT_ACTIVE = "level_not_active"
    OUT_OF_BOUNDS = "out_of_bounds"
    NOT_ADJACENT = "not_adjacent"
    EMPTY_CELL = "empty_cell"
    IMMOVABLE_TILE = "immovable_tile"
    NO_MATCH = "no_match"
    NOT_A_JOKER = "not_a_joker"
    NO_CHARGES = "no_charges"
    INVALID_TARGET = "invalid_target"
    QUEUED = "queued"
    CASCADE_ACTIVE = "cascade_active"
