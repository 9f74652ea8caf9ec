from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class CascadePhase(Enum):
    IDLE = "idle"
    MATCHES_PENDING = "matches_pending"
    RESOLVING = "resolving"
    GRAVITY_REFILL = "gravity_refill"


@dataclass(slots=True)
class SwapContext:
    """Where the last swap landed; merge placement prefers this cell."""

    row: int
    col: int
    from_row: int
    from_col: int

    @property
    def axis(self) -> str:
        return "horizontal" if self.row == self.from_row else "vertical"


@dataclass(slots=True)
class PendingSwap:
    src: Tuple[int, int]
    dst: Tuple[int, int]
    # Tile objects captured when the swap was queued; compared by identity on replay.
    src_tile: object = None
    dst_tile: object = None


@dataclass(slots=True)
class TurnState:
    """Tracks current turn-level state shared across systems."""

    action_source: Optional[str] = None
    cascade_active: bool = False
    cascade_depth: int = 0
    phase: CascadePhase = CascadePhase.IDLE
    last_swap: Optional[SwapContext] = None
    is_user_swap: bool = False
    turn_boundary_pending: bool = False
    pending_swap: Optional[PendingSwap] = None
    # Per-turn marker for cursed goals that keep exactly one cursed tile alive.
    cursed_created_this_turn: Dict[int, bool] = field(default_factory=dict)
