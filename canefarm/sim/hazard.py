"""
Hazard detection
"""

from typing import Tuple

from ..models.simulation import HazardZone


def in_hazard(position: Tuple[int, int], zone: HazardZone, width: int, height: int) -> bool:
    """
    Check whether a grid cell lies in the hazard zone

    The position is normalized by the grid dimensions and tested against
    half-open intervals, so a cell exactly at left+width is outside.

    Args:
        position: Grid (x, y)
        zone: Hazard rectangle in normalized coordinates
        width: Grid width
        height: Grid height

    Returns:
        True if the cell is inside the zone
    """
    x, y = position
    return zone.contains(x / width, y / height)
