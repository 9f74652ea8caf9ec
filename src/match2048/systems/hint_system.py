from typing import Optional

from esper import World

from match2048.events.bus import EventBus, EVENT_HINT_READY, EVENT_HINT_REQUEST
from match2048.systems.board_ops import get_board, get_level_state, get_spawn_table
from match2048.systems.hint import SwapHint, find_best_swap


class HintSystem:
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_HINT_REQUEST, self.on_hint_request)

    def on_hint_request(self, sender, **kwargs):
        self.event_bus.emit(EVENT_HINT_READY, hint=self.best_swap())

    def best_swap(self) -> Optional[SwapHint]:
        return find_best_swap(
            get_board(self.world),
            get_level_state(self.world).goals,
            get_spawn_table(self.world).spawnable_values(),
        )
