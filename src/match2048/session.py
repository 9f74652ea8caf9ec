from __future__ import annotations

import random
from typing import Any, List, Mapping, Optional

from esper import World

from match2048.components.board import Board
from match2048.components.goal import Goal
from match2048.components.level_state import LevelStatus
from match2048.components.power_ups import PowerUpInventory
from match2048.components.special_tile_config import SpecialTileConfig
from match2048.config import LevelConfig
from match2048.constants import MAX_POWER_UP_USES
from match2048.events.bus import EventBus
from match2048.systems.board_ops import get_board, get_level_state, get_power_ups
from match2048.systems.cascade import CascadeSystem
from match2048.systems.goal_system import GoalSystem
from match2048.systems.hint import SwapHint
from match2048.systems.hint_system import HintSystem
from match2048.systems.joker_system import JokerSystem
from match2048.systems.power_up_system import PowerUpOutcome, PowerUpSystem
from match2048.systems.swap_system import SwapOutcome, SwapSystem
from match2048.utils.serializer import serialize_board
from match2048.world import create_world


class GameSession:
    """One level in play: the world, its event bus and the systems wired to it.

    This is the surface an input layer talks to. Every action returns a
    structured outcome, and every phase of the resulting cascade is also
    published on ``event_bus`` for renderers that animate step by step.
    """

    def __init__(
        self,
        level: LevelConfig | Mapping[str, Any] | None = None,
        *,
        event_bus: EventBus | None = None,
        rng: random.Random | None = None,
        special_tile_config: SpecialTileConfig | Mapping[str, str] | None = None,
        power_up_uses: int = MAX_POWER_UP_USES,
    ) -> None:
        self.event_bus = event_bus or EventBus()
        self.world: World = create_world(
            level,
            rng=rng,
            special_tile_config=special_tile_config,
            power_up_uses=power_up_uses,
        )
        self.cascade_system = CascadeSystem(self.world, self.event_bus)
        # Evaluates the level before a queued swap is replayed.
        self.goal_system = GoalSystem(self.world, self.event_bus)
        self.swap_system = SwapSystem(self.world, self.event_bus, self.cascade_system)
        self.power_up_system = PowerUpSystem(self.world, self.event_bus, self.cascade_system)
        self.joker_system = JokerSystem(self.world, self.event_bus, self.cascade_system)
        self.hint_system = HintSystem(self.world, self.event_bus)

    # Actions

    def attempt_swap(self, row1: int, col1: int, row2: int, col2: int) -> SwapOutcome:
        return self.swap_system.attempt_swap((row1, col1), (row2, col2))

    def activate_special_tile(self, row: int, col: int) -> Optional[int]:
        """Tap a joker; returns the value it resolved to, or ``None``."""
        return self.joker_system.activate(row, col).value

    def use_hammer(self, row: int, col: int) -> PowerUpOutcome:
        return self.power_up_system.use_hammer((row, col))

    def use_halve(self, row: int, col: int) -> PowerUpOutcome:
        return self.power_up_system.use_halve((row, col))

    def use_power_swap(self, row1: int, col1: int, row2: int, col2: int) -> PowerUpOutcome:
        return self.power_up_system.use_power_swap((row1, col1), (row2, col2))

    def grant_extra_moves(self, count: int) -> None:
        self.goal_system.grant_extra_moves(count)

    def hint(self) -> Optional[SwapHint]:
        return self.hint_system.best_swap()

    def serialize(self) -> str:
        return serialize_board(self.board)

    # State

    @property
    def board(self) -> Board:
        return get_board(self.world)

    @property
    def status(self) -> LevelStatus:
        return get_level_state(self.world).status

    @property
    def loss_reason(self) -> Optional[str]:
        return get_level_state(self.world).loss_reason

    @property
    def goals(self) -> List[Goal]:
        return get_level_state(self.world).goals

    @property
    def score(self) -> int:
        return get_level_state(self.world).score

    @property
    def moves_left(self) -> int:
        return get_level_state(self.world).moves_left

    @property
    def power_ups(self) -> PowerUpInventory:
        return get_power_ups(self.world)
