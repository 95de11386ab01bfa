"""
Farm activity simulator

Owns the avatar, vitality tracker and task board for one run. A single
owner loop drives it through on_tick(elapsed_ms) and on_input(event); all
delayed behaviour lives on the context's TimerQueue.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from ..models.farm import FarmRecord, TaskId, default_farm_record
from ..models.simulation import AvatarState, Direction, SimulationSettings, VitalityState
from ..storage.kv_store import KeyValueStore, MemoryKeyValueStore
from .hazard import in_hazard
from .input import InputEvent, InputKind
from .movement import MovementTracker
from .tasks import TaskBoard, parse_task_id
from .timers import TimerQueue, TimerHandle
from .vitality import VitalityTracker

logger = logging.getLogger('canefarm.sim.simulator')

CURRENT_FARMER_KEY = "currentFarmerId"


@dataclass
class SimulationContext:
    """
    Collaborators injected into a simulator

    Attributes:
        settings: Grid, hazard and timing settings
        snapshot_source: Object with load() -> FarmRecord, or None for the default record
        kv_store: Remembers the last farmer id between runs
        timers: Clock and timer queue
    """
    settings: SimulationSettings = field(default_factory=SimulationSettings)
    snapshot_source: Optional[Any] = None
    kv_store: KeyValueStore = field(default_factory=MemoryKeyValueStore)
    timers: TimerQueue = field(default_factory=TimerQueue)


class FarmSimulator:
    """
    Interactive farm simulation for a single farmer
    """

    def __init__(self, context: Optional[SimulationContext] = None):
        self.context = context or SimulationContext()
        self.settings = self.context.settings
        self.timers = self.context.timers
        self.record: Optional[FarmRecord] = None
        self.avatar: Optional[AvatarState] = None
        self.movement: Optional[MovementTracker] = None
        self.vitality: Optional[VitalityTracker] = None
        self.board: Optional[TaskBoard] = None
        self.started = False
        self.disposed = False
        self._touch_release: Optional[TimerHandle] = None

    @property
    def active(self) -> bool:
        return self.started and not self.disposed

    @property
    def vitality_state(self) -> VitalityState:
        return self.vitality.state

    @property
    def all_complete(self) -> bool:
        return self.board.all_complete

    def start(self) -> FarmRecord:
        """
        Load the farm snapshot and build a fresh run

        Snapshot failures fall back to the default record; start never raises
        on a missing or broken snapshot source.

        Returns:
            The FarmRecord the run started from
        """
        self.timers.cancel_all()
        self._touch_release = None
        self.record = self._load_record()

        x, y = self.settings.start_position
        self.avatar = AvatarState(x, y, facing=self.settings.start_facing)
        self.movement = MovementTracker(self.avatar, self.settings.grid_width, self.settings.grid_height)
        self.vitality = VitalityTracker(self.timers, self.settings, in_hazard=self.hazard_at(self.avatar.position))
        self.board = TaskBoard(self.record, self.timers, self.settings)
        self.started = True
        self.disposed = False

        logger.info("Simulation started for farmer %s (%s), outstanding tasks: %s",
                    self.record.farmer_id, self.record.farmer_name,
                    [t.id.value for t in self.board.tasks() if t.needed])
        return self.record

    def restart(self) -> FarmRecord:
        logger.info("Restarting simulation")
        return self.start()

    def dispose(self):
        """Cancel all pending timers; later ticks and inputs are ignored"""
        self.timers.cancel_all()
        self.disposed = True
        logger.info("Simulation disposed")

    def _load_record(self) -> FarmRecord:
        kv = self.context.kv_store
        source = self.context.snapshot_source
        record = None
        if source is not None:
            try:
                record = source.load()
            except Exception as e:
                logger.warning("Farm snapshot unavailable, using default record: %s", e)
        if record is None:
            farmer_id = kv.get(CURRENT_FARMER_KEY) or self.settings.default_farmer_id
            record = default_farm_record(farmer_id)
        kv.set(CURRENT_FARMER_KEY, record.farmer_id)
        return record

    def hazard_at(self, position) -> bool:
        return in_hazard(position, self.settings.hazard_zone,
                         self.settings.grid_width, self.settings.grid_height)

    # ------------------------------------------------------------------
    # Driver entry points
    # ------------------------------------------------------------------

    def on_tick(self, elapsed_ms: int) -> int:
        """Advance the clock; returns the number of timers fired"""
        if not self.active:
            return 0
        return self.timers.advance(elapsed_ms)

    def on_input(self, event: InputEvent) -> bool:
        """
        Dispatch a player input

        Args:
            event: InputEvent

        Returns:
            True if the input changed anything
        """
        if not self.active:
            logger.debug("Input ignored, simulation not active: %s", event)
            return False

        if event.kind is InputKind.KEY_DOWN:
            direction = event.key_direction
            if direction is not None:
                return self.press_direction(direction)
            if event.is_action_key and not event.repeat:
                return self.perform_action()
            return False

        if event.kind is InputKind.KEY_UP:
            if event.key_direction is not None:
                self.release_direction()
                return True
            return False

        if event.kind is InputKind.TOUCH_MOVE:
            if event.direction is None:
                return False
            return self.tap_direction(event.direction)

        if event.kind is InputKind.TOUCH_ACTION:
            return self.perform_action()

        if event.kind is InputKind.SELECT_TASK:
            self.select_task(event.task_id)
            return True

        return False

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def press_direction(self, direction: Direction) -> bool:
        """Start a movement gesture and step one cell"""
        if self.board.activity_in_progress is not None:
            logger.debug("Movement ignored during %s", self.board.activity_in_progress.value)
            return False
        self._set_moving(True)
        self.movement.move(direction)
        self.vitality.observe_position(self.hazard_at(self.avatar.position))
        return True

    def release_direction(self):
        self._set_moving(False)

    def tap_direction(self, direction: Direction) -> bool:
        """Touch move: step, then release after the touch delay"""
        if not self.press_direction(direction):
            return False
        if self._touch_release is not None:
            self._touch_release.cancel()
        self._touch_release = self.timers.schedule(
            self.settings.touch_release_ms, self._on_touch_release, name="touch_release")
        return True

    def _on_touch_release(self):
        self._touch_release = None
        self.release_direction()

    def _set_moving(self, moving: bool):
        self.movement.set_moving(moving)
        self.vitality.set_moving(moving)

    def select_task(self, task_id) -> Optional[TaskId]:
        task = parse_task_id(task_id)
        if not self.active:
            return None
        return self.board.select_task(task)

    def perform_action(self) -> bool:
        if not self.active:
            return False
        return self.board.perform_action(blocked=self.vitality.blocks_actions)

    def snapshot(self) -> Dict[str, Any]:
        """Render-ready view of the current run"""
        if not self.started:
            return {"started": False}
        state = {
            "started": True,
            "disposed": self.disposed,
            "now_ms": self.timers.now,
            "farmer": self.record.to_dict(),
            "avatar": self.avatar.to_dict(),
            "vitality": self.vitality.to_dict(),
            "grid": {"width": self.settings.grid_width, "height": self.settings.grid_height},
            "hazard_zone": self.settings.hazard_zone.to_dict(),
        }
        state.update(self.board.to_dict())
        return state
