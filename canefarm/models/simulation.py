"""
Simulation data models

Grid geometry, avatar state and the typed settings the simulator runs with.
"""

from dataclasses import dataclass
from typing import Dict, Any, Tuple
from enum import Enum


class Direction(str, Enum):
    """Cardinal movement directions"""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> Tuple[int, int]:
        """Grid offset for one step (y grows downward)"""
        return _DELTAS[self]


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


class VitalityState(str, Enum):
    """Avatar vitality states"""
    SAFE = "safe"
    EXPOSED = "exposed"
    INCAPACITATED = "incapacitated"
    RECOVERING = "recovering"


@dataclass(frozen=True)
class HazardZone:
    """
    Rectangular hazard region in normalized grid coordinates

    Attributes:
        left: Left edge as a fraction of grid width
        top: Top edge as a fraction of grid height
        width: Width as a fraction of grid width
        height: Height as a fraction of grid height
    """
    left: float
    top: float
    width: float
    height: float

    def __post_init__(self):
        for name in ("left", "top", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Hazard zone {name} must be in [0, 1], got {value}")
        if self.left + self.width > 1.0:
            raise ValueError("Hazard zone left + width must not exceed 1")
        if self.top + self.height > 1.0:
            raise ValueError("Hazard zone top + height must not exceed 1")

    def contains(self, nx: float, ny: float) -> bool:
        """Half-open membership test on normalized coordinates"""
        return (self.left <= nx < self.left + self.width
                and self.top <= ny < self.top + self.height)

    def to_dict(self) -> Dict[str, float]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass
class AvatarState:
    """
    The farmer avatar on the grid

    Attributes:
        x: Column (0 <= x < grid width)
        y: Row (0 <= y < grid height)
        facing: Direction the avatar faces
        is_moving: True only while a movement input is active
    """
    x: int
    y: int
    facing: Direction = Direction.DOWN
    is_moving: bool = False

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "position": [self.x, self.y],
            "facing": self.facing.value,
            "is_moving": self.is_moving
        }


@dataclass(frozen=True)
class SimulationSettings:
    """Typed view of the 'simulation' config section"""
    grid_width: int = 15
    grid_height: int = 10
    start_position: Tuple[int, int] = (5, 5)
    start_facing: Direction = Direction.DOWN
    hazard_zone: HazardZone = HazardZone(0.72, 0.40, 0.12, 0.25)
    exposure_delay_ms: int = 2000
    recovery_delay_ms: int = 1000
    recovery_settle_ms: int = 3000
    action_duration_ms: int = 2000
    harvest_animation_ms: int = 3000
    touch_release_ms: int = 200
    default_farmer_id: str = "KF001"

    def __post_init__(self):
        if self.grid_width < 1 or self.grid_height < 1:
            raise ValueError("Grid dimensions must be positive")
        x, y = self.start_position
        if not (0 <= x < self.grid_width and 0 <= y < self.grid_height):
            raise ValueError(f"Start position {self.start_position} is outside the grid")
        for name in ("exposure_delay_ms", "recovery_delay_ms", "recovery_settle_ms",
                     "action_duration_ms", "harvest_animation_ms", "touch_release_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SimulationSettings":
        """
        Build settings from a 'simulation' config section

        Args:
            config: Dict with any of the field names; missing keys use defaults

        Returns:
            SimulationSettings instance

        Raises:
            ValueError: If a value is out of range
        """
        config = config or {}
        defaults = cls()
        zone_cfg = config.get("hazard_zone")
        zone = defaults.hazard_zone
        if zone_cfg:
            zone = HazardZone(
                left=float(zone_cfg.get("left", zone.left)),
                top=float(zone_cfg.get("top", zone.top)),
                width=float(zone_cfg.get("width", zone.width)),
                height=float(zone_cfg.get("height", zone.height)),
            )
        start = config.get("start_position", defaults.start_position)
        if len(start) != 2:
            raise ValueError(f"start_position must be a pair, got {start!r}")
        return cls(
            grid_width=int(config.get("grid_width", defaults.grid_width)),
            grid_height=int(config.get("grid_height", defaults.grid_height)),
            start_position=(int(start[0]), int(start[1])),
            start_facing=Direction(config.get("start_facing", defaults.start_facing.value)),
            hazard_zone=zone,
            exposure_delay_ms=int(config.get("exposure_delay_ms", defaults.exposure_delay_ms)),
            recovery_delay_ms=int(config.get("recovery_delay_ms", defaults.recovery_delay_ms)),
            recovery_settle_ms=int(config.get("recovery_settle_ms", defaults.recovery_settle_ms)),
            action_duration_ms=int(config.get("action_duration_ms", defaults.action_duration_ms)),
            harvest_animation_ms=int(config.get("harvest_animation_ms", defaults.harvest_animation_ms)),
            touch_release_ms=int(config.get("touch_release_ms", defaults.touch_release_ms)),
            default_farmer_id=str(config.get("default_farmer_id", defaults.default_farmer_id)),
        )
