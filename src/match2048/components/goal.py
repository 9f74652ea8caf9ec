from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GoalType(Enum):
    CREATED = "created"
    CURRENT = "current"
    BLOCKED = "blocked"
    CURSED = "cursed"
    SCORE = "score"


@dataclass(slots=True)
class Goal:
    goal_type: GoalType
    target: int
    tile_value: Optional[int] = None
    current: int = 0
    created: int = 0
    # Cursed goals only.
    frequency: Optional[int] = None
    strength: Optional[int] = None
    implode: bool = False

    @property
    def counter(self) -> int:
        if self.goal_type is GoalType.CREATED:
            return self.created
        return self.current

    @property
    def is_complete(self) -> bool:
        return self.counter >= self.target

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        goal_type = GoalType(data.get("goalType", "created"))
        return cls(
            goal_type=goal_type,
            target=int(data.get("target", 0)),
            tile_value=data.get("tileValue"),
            frequency=data.get("frequency"),
            strength=data.get("strength"),
            implode=bool(data.get("implode", False)),
        )
