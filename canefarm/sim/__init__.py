"""Farm activity simulator"""

from .timers import TimerQueue, TimerHandle
from .simulator import FarmSimulator, SimulationContext
from .input import InputEvent

__all__ = ["TimerQueue", "TimerHandle", "FarmSimulator", "SimulationContext", "InputEvent"]
