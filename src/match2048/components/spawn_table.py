from dataclasses import dataclass, field
from typing import Iterable, List, Optional


@dataclass(slots=True)
class SpawnTable:
    """Values new tiles are drawn from, stored on a single entity.

    ``max_tile_levels`` enables the level shift: once a merge reaches
    ``min(values) + max_tile_levels`` the smallest value is retired and the
    next value above the current maximum becomes spawnable.
    """

    values: List[int] = field(default_factory=list)
    max_tile_levels: Optional[int] = None
    smallest_tile_action: str = "disappear"

    def __post_init__(self) -> None:
        self.set_spawnable(self.values)

    def spawnable_values(self) -> List[int]:
        return list(self.values)

    def set_spawnable(self, values: Iterable[int]) -> None:
        seen: set[int] = set()
        filtered: List[int] = []
        for value in values:
            value = int(value)
            if value > 0 and value not in seen:
                filtered.append(value)
                seen.add(value)
        if not filtered:
            raise ValueError("Spawn table needs at least one positive value")
        self.values = sorted(filtered)

    def shift_threshold(self) -> Optional[int]:
        if self.max_tile_levels is None:
            return None
        return min(self.values) + self.max_tile_levels

    def shift_up(self) -> int:
        """Drop the smallest value, add ``max + 1`` and return the retired value."""
        smallest = min(self.values)
        largest = max(self.values)
        self.values = sorted([v for v in self.values if v != smallest] + [largest + 1])
        return smallest
