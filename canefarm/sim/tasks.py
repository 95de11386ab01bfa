"""
Task selection and completion engine

Holds the farm's need flags, the selection cursor and the activity lock.
A started action completes after the action duration and clears the need
flags its task definition lists.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from ..models.farm import TaskId, TaskDefinition, TASK_DEFINITIONS, FarmRecord
from ..models.simulation import SimulationSettings
from .timers import TimerQueue, TimerHandle

logger = logging.getLogger('canefarm.sim.tasks')

# Crop stage shown on the field, checked in order
_STAGE_ORDER = (
    ("needs_ploughing", "grass"),
    ("needs_seed_cane", "ploughed"),
    ("needs_fertilizer", "seeds"),
    ("needs_pesticide", "growing"),
    ("has_crop_issues", "growing"),
    ("needs_harvesting", "mature"),
)


@dataclass
class TaskStatus:
    """A task as presented to the player"""
    id: TaskId
    name: str
    description: str
    needed: bool
    selected: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "name": self.name,
            "description": self.description,
            "needed": self.needed,
            "selected": self.selected,
        }


def parse_task_id(task_id) -> TaskId:
    """Coerce a string or TaskId; unknown ids raise ValueError"""
    try:
        return TaskId(task_id)
    except ValueError:
        raise ValueError(f"Unknown task id: {task_id!r}") from None


class TaskBoard:
    """
    Farm tasks with a single selection and a single in-flight action
    """

    def __init__(self, record: FarmRecord, timers: TimerQueue, settings: SimulationSettings):
        self.timers = timers
        self.settings = settings
        self.definitions: Dict[TaskId, TaskDefinition] = {d.id: d for d in TASK_DEFINITIONS}
        self.flags: Dict[str, bool] = record.needs()
        self.selected_task_id: Optional[TaskId] = None
        self.activity_in_progress: Optional[TaskId] = None
        self.harvest_animation = False
        self.celebrating = False
        self.completed: List[TaskId] = []
        self._activity_timer: Optional[TimerHandle] = None
        self._harvest_timer: Optional[TimerHandle] = None

    def is_needed(self, task_id: TaskId) -> bool:
        """A task is needed while any flag it clears is still set"""
        return any(self.flags[name] for name in self.definitions[task_id].clears)

    @property
    def all_complete(self) -> bool:
        return not any(self.is_needed(task_id) for task_id in self.definitions)

    @property
    def farm_stage(self) -> str:
        for flag, stage in _STAGE_ORDER:
            if self.flags[flag]:
                return stage
        return "harvested"

    def tasks(self) -> List[TaskStatus]:
        return [
            TaskStatus(d.id, d.name, d.description, self.is_needed(d.id), d.id is self.selected_task_id)
            for d in TASK_DEFINITIONS
        ]

    def select_task(self, task_id) -> Optional[TaskId]:
        """
        Toggle selection of a task

        Args:
            task_id: TaskId or its string value

        Returns:
            The selected task after the toggle (None when cleared)

        Raises:
            ValueError: If task_id is not a known task
        """
        task = parse_task_id(task_id)
        if self.selected_task_id is task:
            self.selected_task_id = None
        else:
            self.selected_task_id = task
        logger.debug("Selected task: %s", self.selected_task_id.value if self.selected_task_id else None)
        return self.selected_task_id

    def can_perform(self, blocked: bool) -> bool:
        return self.selected_task_id is not None and not blocked and self.activity_in_progress is None

    def perform_action(self, blocked: bool = False) -> bool:
        """
        Start the selected task's action

        Args:
            blocked: True while the avatar is incapacitated

        Returns:
            True if the action started; False if it was ignored (nothing
            selected, blocked, or another action in flight)
        """
        if not self.can_perform(blocked):
            logger.debug("Action ignored (selected=%s, blocked=%s, in_progress=%s)",
                         self.selected_task_id, blocked, self.activity_in_progress)
            return False

        task = self.selected_task_id
        self.activity_in_progress = task
        self._activity_timer = self.timers.schedule(
            self.settings.action_duration_ms, lambda: self._complete(task), name=f"action:{task.value}")
        logger.info("Started %s", self.definitions[task].name)
        return True

    def _complete(self, task: TaskId):
        self._activity_timer = None
        for name in self.definitions[task].clears:
            self.flags[name] = False
        self.completed.append(task)

        if task is TaskId.HARVEST:
            self._start_harvest_animation()

        if self.all_complete and not self.celebrating:
            self.celebrating = True
            logger.info("All farm tasks complete")

        self.activity_in_progress = None
        logger.info("Completed %s (remaining: %s)", self.definitions[task].name,
                    [t.value for t in self.definitions if self.is_needed(t)])

    def _start_harvest_animation(self):
        if self._harvest_timer is not None:
            self._harvest_timer.cancel()
        self.harvest_animation = True
        self._harvest_timer = self.timers.schedule(
            self.settings.harvest_animation_ms, self._end_harvest_animation, name="harvest_animation")

    def _end_harvest_animation(self):
        self._harvest_timer = None
        self.harvest_animation = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks()],
            "flags": dict(self.flags),
            "selected_task_id": self.selected_task_id.value if self.selected_task_id else None,
            "activity_in_progress": self.activity_in_progress.value if self.activity_in_progress else None,
            "all_complete": self.all_complete,
            "celebrating": self.celebrating,
            "harvest_animation": self.harvest_animation,
            "farm_stage": self.farm_stage,
        }
