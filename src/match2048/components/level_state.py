from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from match2048.components.goal import Goal


class LevelStatus(Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"


@dataclass(slots=True)
class LevelState:
    """Goals, move budget and score for the level currently on the board."""

    goals: List[Goal] = field(default_factory=list)
    max_moves: int = 0
    moves_used: int = 0
    score: int = 0
    status: LevelStatus = LevelStatus.ACTIVE
    loss_reason: Optional[str] = None
    initial_blocked_count: int = 0
    # Tiles created per value, for cursed goals that curse every n-th tile.
    cursed_created_count: Dict[int, int] = field(default_factory=dict)

    @property
    def moves_left(self) -> int:
        return max(0, self.max_moves - self.moves_used)

    @property
    def is_active(self) -> bool:
        return self.status is LevelStatus.ACTIVE
