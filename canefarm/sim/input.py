"""
Keyboard and touch input events
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
from enum import Enum

from ..models.simulation import Direction


class InputKind(str, Enum):
    """Input event kinds"""
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    TOUCH_MOVE = "touch_move"
    TOUCH_ACTION = "touch_action"
    SELECT_TASK = "select_task"


KEY_DIRECTIONS = {
    "ArrowUp": Direction.UP,
    "ArrowDown": Direction.DOWN,
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
}

ACTION_KEYS = frozenset({"p", "P"})


@dataclass(frozen=True)
class InputEvent:
    """
    A single player input

    Attributes:
        kind: Event kind
        key: Key name for keyboard events (e.g. "ArrowUp", "p")
        repeat: True for auto-repeated key-down events
        direction: Direction for touch moves
        task_id: Task for selection events
    """
    kind: InputKind
    key: Optional[str] = None
    repeat: bool = False
    direction: Optional[Direction] = None
    task_id: Optional[str] = None

    @classmethod
    def key_down(cls, key: str, repeat: bool = False) -> "InputEvent":
        return cls(InputKind.KEY_DOWN, key=key, repeat=repeat)

    @classmethod
    def key_up(cls, key: str) -> "InputEvent":
        return cls(InputKind.KEY_UP, key=key)

    @classmethod
    def touch_move(cls, direction) -> "InputEvent":
        return cls(InputKind.TOUCH_MOVE, direction=Direction(direction))

    @classmethod
    def touch_action(cls) -> "InputEvent":
        return cls(InputKind.TOUCH_ACTION)

    @classmethod
    def select(cls, task_id: str) -> "InputEvent":
        return cls(InputKind.SELECT_TASK, task_id=task_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputEvent":
        """
        Build an event from a plain dict, e.g. {"kind": "key_down", "key": "ArrowLeft"}

        Raises:
            ValueError: If the kind or direction is not recognised
        """
        kind = InputKind(data.get("kind"))
        direction = data.get("direction")
        return cls(
            kind=kind,
            key=data.get("key"),
            repeat=bool(data.get("repeat", False)),
            direction=Direction(direction) if direction else None,
            task_id=data.get("task_id"),
        )

    @property
    def key_direction(self) -> Optional[Direction]:
        return KEY_DIRECTIONS.get(self.key) if self.key else None

    @property
    def is_action_key(self) -> bool:
        return self.key in ACTION_KEYS
