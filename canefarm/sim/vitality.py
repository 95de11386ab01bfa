"""
Vitality state machine

Safe -> Exposed -> Incapacitated -> Recovering -> Safe

Exposure starts when the avatar stands still inside the hazard zone and
becomes incapacitation after the exposure delay. Leaving the zone while
incapacitated starts recovery: the incapacitated flag clears after the
recovery delay and Recovering ends after the settle delay. Hazard re-entry
while Recovering is ignored until recovery completes.
"""

import logging
from typing import Optional

from ..models.simulation import VitalityState, SimulationSettings
from .timers import TimerQueue, TimerHandle

logger = logging.getLogger('canefarm.sim.vitality')


class VitalityTracker:
    """
    Tracks avatar vitality from hazard membership, movement and time

    Attributes:
        state: Current VitalityState
        in_hazard: Hazard membership flag (forced False when recovery settles)
        moving: Whether a movement input is active
        incapacitated: Functional flag that blocks task actions
        recovering: Whether a recovery sequence is running
    """

    def __init__(self, timers: TimerQueue, settings: SimulationSettings, in_hazard: bool = False):
        self.timers = timers
        self.settings = settings
        self.state = VitalityState.SAFE
        self.in_hazard = in_hazard
        self.moving = False
        self.incapacitated = False
        self.recovering = False
        self._exposure_timer: Optional[TimerHandle] = None
        self._evaluate()

    @property
    def blocks_actions(self) -> bool:
        return self.incapacitated

    def set_moving(self, moving: bool):
        """Record movement input start/stop and re-evaluate exposure"""
        if moving == self.moving:
            return
        self.moving = moving
        self._evaluate()

    def observe_position(self, now_in_hazard: bool):
        """
        Record hazard membership after a move

        Leaving the zone while incapacitated (and not already recovering)
        starts the recovery sequence.
        """
        if self.incapacitated and not self.recovering and self.in_hazard and not now_in_hazard:
            self._begin_recovery()
        self.in_hazard = now_in_hazard
        self._evaluate()

    def _evaluate(self):
        self._cancel_exposure()
        if self.incapacitated or self.recovering:
            return
        if self.in_hazard and not self.moving:
            if self.state is not VitalityState.EXPOSED:
                logger.info("Avatar exposed to hazard")
            self.state = VitalityState.EXPOSED
            self._exposure_timer = self.timers.schedule(
                self.settings.exposure_delay_ms, self._on_exposure_elapsed, name="exposure")
        else:
            if self.state is VitalityState.EXPOSED:
                logger.info("Exposure cleared")
            self.state = VitalityState.SAFE

    def _cancel_exposure(self):
        if self._exposure_timer is not None:
            self._exposure_timer.cancel()
            self._exposure_timer = None

    def _on_exposure_elapsed(self):
        self._exposure_timer = None
        self.incapacitated = True
        self.state = VitalityState.INCAPACITATED
        logger.info("Avatar incapacitated after %d ms exposure", self.settings.exposure_delay_ms)

    def _begin_recovery(self):
        self.recovering = True
        self.state = VitalityState.RECOVERING
        logger.info("Avatar left hazard, recovering")
        self.timers.schedule(self.settings.recovery_delay_ms, self._on_recovery_revived, name="recovery")

    def _on_recovery_revived(self):
        self.incapacitated = False
        logger.info("Avatar revived")
        self.timers.schedule(self.settings.recovery_settle_ms, self._on_recovery_settled, name="recovery_settle")

    def _on_recovery_settled(self):
        self.recovering = False
        self.in_hazard = False
        self.state = VitalityState.SAFE
        logger.info("Recovery complete")
        self._evaluate()

    def to_dict(self):
        return {
            "state": self.state.value,
            "incapacitated": self.incapacitated,
            "in_hazard": self.in_hazard,
        }
