from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Strong references so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# REQUESTS (UI -> engine)
# ============================================================================
EVENT_SWAP_REQUEST = "swap_request"                # payload: src=(r,c), dst=(r,c)
EVENT_SPECIAL_TILE_TAP = "special_tile_tap"        # payload: row, col
EVENT_POWER_UP_REQUEST = "power_up_request"        # payload: kind=PowerUpKind, src=(r,c), dst=(r,c)|None
EVENT_HINT_REQUEST = "hint_request"                # payload: none


# ============================================================================
# SWAP OUTCOMES
# ============================================================================
EVENT_SWAP_ACCEPTED = "swap_accepted"              # payload: src, dst, consumed_move=bool, free_swap=bool
EVENT_SWAP_REJECTED = "swap_rejected"              # payload: src, dst, reason=RejectReason
EVENT_SWAP_QUEUED = "swap_queued"                  # payload: src, dst
EVENT_SWAP_DISCARDED = "swap_discarded"            # payload: src, dst
EVENT_JOKER_RESOLVED = "joker_resolved"            # payload: position=(r,c), value=int


# ============================================================================
# CASCADE PHASES
# ============================================================================
EVENT_MATCH_FOUND = "match_found"                  # payload: groups=[MatchGroup], positions=[(r,c),...], depth=int
EVENT_MERGE_RESOLVED = "merge_resolved"            # payload: result=MergeResult, depth=int
EVENT_BLOCKED_CLEARED = "blocked_cleared"          # payload: positions=[(r,c),...], damaged=[(r,c,life),...]
EVENT_GRAVITY_APPLIED = "gravity_applied"          # payload: moved=[GravityMove], depth=int
EVENT_REFILL_COMPLETED = "refill_completed"        # payload: new_tiles=[(r,c),...], depth=int
EVENT_CASCADE_STEP = "cascade_step"                # payload: depth=int, positions=[(r,c),...]
EVENT_CASCADE_COMPLETE = "cascade_complete"        # payload: depth=int, report=CascadeReport
EVENT_CURSED_EXPIRED = "cursed_expired"            # payload: removed=[(r,c)], destroyed=[(r,c)], imploded=[(r,c)]
EVENT_TILE_LEVELS_SHIFTED = "tile_levels_shifted"  # payload: retired=int, action=str, positions=[(r,c)], spawnable=[int]


# ============================================================================
# POWER-UPS
# ============================================================================
EVENT_POWER_UP_USED = "power_up_used"              # payload: outcome=PowerUpOutcome
EVENT_POWER_UP_GRANTED = "power_up_granted"        # payload: kind=PowerUpKind, remaining


# ============================================================================
# GOALS & LEVEL
# ============================================================================
EVENT_GOALS_UPDATED = "goals_updated"              # payload: goals=[Goal], score=int, moves_left=int
EVENT_LEVEL_WON = "level_won"                      # payload: score=int, moves_used=int
EVENT_LEVEL_LOST = "level_lost"                    # payload: reason=str, score=int
EVENT_TURN_SETTLED = "turn_settled"                # payload: status=LevelStatus


# ============================================================================
# HINTS
# ============================================================================
EVENT_HINT_READY = "hint_ready"                    # payload: hint=SwapHint|None
