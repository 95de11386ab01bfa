"""Shared fixtures for CANEFARM tests."""

import pytest

from canefarm.calls.history import StaticSnapshotSource
from canefarm.models.farm import FarmRecord, NEED_FIELDS
from canefarm.models.simulation import SimulationSettings
from canefarm.sim.simulator import FarmSimulator, SimulationContext
from canefarm.sim.timers import TimerQueue
from canefarm.storage.call_store import CallStore
from canefarm.storage.kv_store import MemoryKeyValueStore


def make_record(farmer_id="KF100", **needs):
    """Farm record with every need outstanding unless overridden."""
    flags = {name: True for name in NEED_FIELDS}
    flags.update(needs)
    return FarmRecord(farmer_id=farmer_id, farmer_name="Test Farmer", farm_size_acres=2.5, **flags)


@pytest.fixture
def settings():
    return SimulationSettings()


@pytest.fixture
def timers():
    return TimerQueue()


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def simulator(settings, timers, kv_store):
    """Started simulator on the default 15x10 grid with every need outstanding."""
    context = SimulationContext(
        settings=settings,
        snapshot_source=StaticSnapshotSource(make_record()),
        kv_store=kv_store,
        timers=timers,
    )
    sim = FarmSimulator(context)
    sim.start()
    yield sim
    sim.dispose()


@pytest.fixture
def call_store(tmp_path):
    return CallStore(str(tmp_path / "calls.jsonl"))
