"""Data models for CANEFARM"""

from .simulation import Direction, VitalityState, HazardZone, AvatarState, SimulationSettings
from .farm import TaskId, TaskDefinition, TASK_DEFINITIONS, NEED_FIELDS, FarmRecord, default_farm_record
from .calls import FARMING_CATEGORIES, CallAnalysis, CallRecord, Resolution

__all__ = [
    "Direction", "VitalityState", "HazardZone", "AvatarState", "SimulationSettings",
    "TaskId", "TaskDefinition", "TASK_DEFINITIONS", "NEED_FIELDS", "FarmRecord", "default_farm_record",
    "FARMING_CATEGORIES", "CallAnalysis", "CallRecord", "Resolution",
]
