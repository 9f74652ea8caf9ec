from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from match2048.components.tile import Tile, clone_tile

Position = Tuple[int, int]


@dataclass(slots=True)
class Board:
    """Row-major grid of optional tiles. Row 0 is the top; gravity pulls toward higher rows."""

    rows: int
    cols: int
    grid: List[List[Optional[Tile]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.grid:
            self.grid = [[None for _ in range(self.cols)] for _ in range(self.rows)]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get(self, row: int, col: int) -> Optional[Tile]:
        if not self.in_bounds(row, col):
            return None
        return self.grid[row][col]

    def set(self, row: int, col: int, tile: Optional[Tile]) -> None:
        self.grid[row][col] = tile

    def positions(self) -> Iterator[Position]:
        for row in range(self.rows):
            for col in range(self.cols):
                yield (row, col)

    def neighbors(self, row: int, col: int) -> List[Position]:
        result: List[Position] = []
        for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            r, c = row + dr, col + dc
            if self.in_bounds(r, c):
                result.append((r, c))
        return result

    def copy(self) -> "Board":
        """Detached copy; a tile shared by several cells stays shared in the copy."""
        clones: Dict[int, Optional[Tile]] = {}

        def clone(tile: Optional[Tile]) -> Optional[Tile]:
            if id(tile) not in clones:
                clones[id(tile)] = clone_tile(tile)
            return clones[id(tile)]

        return Board(
            rows=self.rows,
            cols=self.cols,
            grid=[[clone(tile) for tile in row] for row in self.grid],
        )
