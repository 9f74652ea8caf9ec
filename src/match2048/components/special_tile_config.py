from dataclasses import dataclass

FORMATION_KEYS = ("line_4", "block_4", "line_5", "t_formation", "l_formation")
SPECIAL_TILE_MODES = (
    "joker",
    "power",
    "golden",
    "freeswap",
    "sticky_freeswap",
    "freeswap_horizontal",
    "freeswap_vertical",
    "random_powerup",
    "none",
)


@dataclass(slots=True)
class SpecialTileConfig:
    """Which special tile each formation produces; ``none`` means a plain tile."""

    line_4: str = "none"
    block_4: str = "none"
    line_5: str = "none"
    t_formation: str = "none"
    l_formation: str = "none"

    def __post_init__(self) -> None:
        for key in FORMATION_KEYS:
            mode = getattr(self, key)
            if mode not in SPECIAL_TILE_MODES:
                raise ValueError(f"Unknown special tile mode {mode!r} for {key}")

    def mode_for(self, formation_key: str) -> str:
        if formation_key not in FORMATION_KEYS:
            return "none"
        return getattr(self, formation_key)

    @classmethod
    def from_dict(cls, data: dict | None) -> "SpecialTileConfig":
        data = data or {}
        unknown = set(data) - set(FORMATION_KEYS)
        if unknown:
            raise ValueError(f"Unknown formation keys: {sorted(unknown)}")
        return cls(**{key: data.get(key, "none") for key in FORMATION_KEYS})
