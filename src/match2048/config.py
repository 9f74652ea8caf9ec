from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from match2048.components.goal import Goal
from match2048.constants import DEFAULT_TILE_VALUES, GRID_COLS, GRID_ROWS


@dataclass(slots=True)
class LevelConfig:
    """Parsed level definition handed to ``create_world``.

    Built from the camelCase mapping used by level data files:
    ``{boardWidth, boardHeight, maxMoves, blockedTiles, goals, spawnableTiles, boardPreset}``.
    """

    board_width: int = GRID_COLS
    board_height: int = GRID_ROWS
    max_moves: int = 20
    blocked_tiles: List[dict] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    spawnable_tiles: List[int] = field(default_factory=lambda: list(DEFAULT_TILE_VALUES))
    board_preset: Optional[List[List[Any]]] = None
    max_tile_levels: Optional[int] = None
    smallest_tile_action: str = "disappear"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LevelConfig":
        preset = data.get("boardPreset")
        width = data.get("boardWidth")
        height = data.get("boardHeight")
        if preset:
            height = height or len(preset)
            width = width or max(len(row) for row in preset)
        return cls(
            board_width=int(width or GRID_COLS),
            board_height=int(height or GRID_ROWS),
            max_moves=int(data.get("maxMoves", 20)),
            blocked_tiles=list(data.get("blockedTiles") or []),
            goals=[Goal.from_dict(goal) for goal in data.get("goals") or []],
            spawnable_tiles=list(data.get("spawnableTiles") or DEFAULT_TILE_VALUES),
            board_preset=preset,
            max_tile_levels=data.get("maxTileLevels"),
            smallest_tile_action=data.get("smallestTileAction", "disappear"),
        )
