"""
Farm data models

A FarmRecord is the snapshot the simulator starts from; TaskDefinitions
describe the five farm tasks and which need flags each one clears.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple
from enum import Enum


# Need flags carried on call records and farm snapshots, in display order
NEED_FIELDS = (
    "needs_fertilizer",
    "needs_seed_cane",
    "needs_harvesting",
    "needs_ploughing",
    "has_crop_issues",
    "needs_pesticide",
)

_CAMEL_KEYS = {
    "farmer_id": "farmerId",
    "farmer_name": "farmerName",
    "farm_size_acres": "farmSizeAcres",
    "needs_fertilizer": "needsFertilizer",
    "needs_seed_cane": "needsSeedCane",
    "needs_harvesting": "needsHarvesting",
    "needs_ploughing": "needsPloughing",
    "has_crop_issues": "hasCropIssues",
    "needs_pesticide": "needsPesticide",
}


class TaskId(str, Enum):
    """Farm task identifiers"""
    PLOUGH = "plough"
    PLANT = "plant"
    FERTILIZE = "fertilize"
    PESTICIDE = "pesticide"
    HARVEST = "harvest"


@dataclass(frozen=True)
class TaskDefinition:
    """
    Static description of a farm task

    Attributes:
        id: Task identifier
        name: Display name
        description: What the task does
        clears: Need flags cleared when the task completes
    """
    id: TaskId
    name: str
    description: str
    clears: Tuple[str, ...]


TASK_DEFINITIONS = (
    TaskDefinition(TaskId.PLOUGH, "Ploughing",
                   "Break up soil to improve aeration and prepare for planting.",
                   ("needs_ploughing",)),
    TaskDefinition(TaskId.PLANT, "Seed Cane",
                   "Place sugarcane cuttings with viable buds into prepared soil.",
                   ("needs_seed_cane",)),
    TaskDefinition(TaskId.FERTILIZE, "Fertilizer",
                   "Add NPK nutrients to enhance soil fertility and sugar content.",
                   ("needs_fertilizer",)),
    TaskDefinition(TaskId.PESTICIDE, "Pesticide",
                   "Treat crop to control pests, diseases and weeds.",
                   ("needs_pesticide", "has_crop_issues")),
    TaskDefinition(TaskId.HARVEST, "Harvesting",
                   "Cut mature cane at base when sugar content is highest.",
                   ("needs_harvesting",)),
)


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


@dataclass
class FarmRecord:
    """
    Farmer and farm snapshot

    Attributes:
        farmer_id: Farmer identifier (e.g. KF001)
        farmer_name: Display name
        farm_size_acres: Farm size in acres
        needs_*/has_crop_issues: Outstanding needs reported by the farmer
        details: Extra farmer details (location, gender, age, preferred_language)
    """
    farmer_id: str
    farmer_name: str
    farm_size_acres: float = 1.0
    needs_fertilizer: bool = False
    needs_seed_cane: bool = False
    needs_harvesting: bool = False
    needs_ploughing: bool = False
    has_crop_issues: bool = False
    needs_pesticide: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def needs(self) -> Dict[str, bool]:
        """Need flags as a dict keyed by field name"""
        return {name: getattr(self, name) for name in NEED_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase snapshot shape"""
        result = {camel: getattr(self, snake) for snake, camel in _CAMEL_KEYS.items()}
        result["details"] = dict(self.details)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FarmRecord":
        """
        Build a record from either camelCase snapshot keys or snake_case record keys

        Raises:
            ValueError: If the farmer id is missing or the farm size is not a number
        """
        def pick(snake: str, default=None):
            if snake in data:
                return data[snake]
            return data.get(_CAMEL_KEYS.get(snake, snake), default)

        farmer_id = pick("farmer_id")
        if not farmer_id:
            raise ValueError("Farm record requires a farmer id")

        try:
            size = float(pick("farm_size_acres", 1.0) or 1.0)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid farm size: {pick('farm_size_acres')!r}")

        return cls(
            farmer_id=str(farmer_id),
            farmer_name=str(pick("farmer_name", "") or ""),
            farm_size_acres=size,
            details=dict(data.get("details") or {}),
            **{name: as_bool(pick(name, False)) for name in NEED_FIELDS}
        )


def default_farm_record(farmer_id: Optional[str] = None) -> FarmRecord:
    """Fallback snapshot used when no call history is available: every need outstanding"""
    return FarmRecord(
        farmer_id=farmer_id or "KF001",
        farmer_name="Farmer",
        farm_size_acres=1.0,
        **{name: True for name in NEED_FIELDS}
    )
