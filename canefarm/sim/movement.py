"""
Position/movement tracking on the farm grid
"""

from typing import Tuple

from ..models.simulation import AvatarState, Direction


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def step(position: Tuple[int, int], direction: Direction, width: int, height: int) -> Tuple[int, int]:
    """
    Position one step in `direction`, clamped to the grid

    Args:
        position: Current (x, y)
        direction: Direction to move
        width: Grid width
        height: Grid height

    Returns:
        New (x, y) with 0 <= x < width and 0 <= y < height
    """
    dx, dy = direction.delta
    x, y = position
    return (clamp(x + dx, 0, width - 1), clamp(y + dy, 0, height - 1))


class MovementTracker:
    """Applies movement commands to an AvatarState"""

    def __init__(self, avatar: AvatarState, width: int, height: int):
        self.avatar = avatar
        self.width = width
        self.height = height

    def move(self, direction: Direction) -> Tuple[int, int]:
        """Move one cell; facing always follows the input even when clamped"""
        self.avatar.facing = direction
        self.avatar.x, self.avatar.y = step(self.avatar.position, direction, self.width, self.height)
        return self.avatar.position

    def set_moving(self, moving: bool):
        self.avatar.is_moving = moving
