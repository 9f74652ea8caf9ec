from dataclasses import dataclass
from enum import Enum


class PowerUpKind(Enum):
    HAMMER = "hammer"
    HALVE = "halve"
    SWAP = "swap"


@dataclass(slots=True)
class PowerUpInventory:
    hammer: int = 2
    halve: int = 2
    swap: int = 2

    def remaining(self, kind: PowerUpKind) -> int:
        return getattr(self, kind.value)

    def consume(self, kind: PowerUpKind) -> bool:
        left = self.remaining(kind)
        if left <= 0:
            return False
        setattr(self, kind.value, left - 1)
        return True

    def grant(self, kind: PowerUpKind) -> int:
        left = self.remaining(kind) + 1
        setattr(self, kind.value, left)
        return left
