"""
Farm snapshots derived from call history

The simulator starts from the most recent call: its farmer details and need
flags become the FarmRecord. An optional FarmerDirectory fills in details
the call did not carry.
"""

import json
import logging
from typing import Dict, Any, Optional, Iterable

from ..models.calls import CallRecord, parse_timestamp
from ..models.farm import FarmRecord, NEED_FIELDS

logger = logging.getLogger('canefarm.calls.history')

_DETAIL_FIELDS = ("location", "gender", "age", "preferred_language")


class FarmSnapshotSource:
    """Anything that can produce the simulator's starting FarmRecord"""

    def load(self) -> FarmRecord:
        raise NotImplementedError


class StaticSnapshotSource(FarmSnapshotSource):
    """Returns a fixed record"""

    def __init__(self, record: FarmRecord):
        self.record = record

    def load(self) -> FarmRecord:
        return self.record


class FarmerDirectory:
    """
    Farmer profiles keyed by farmer id

    Profiles are plain dicts with any of farmer_name, farm_size_acres,
    location, gender, age and preferred_language.
    """

    def __init__(self, farmers: Optional[Iterable[Dict[str, Any]]] = None):
        self._farmers: Dict[str, Dict[str, Any]] = {}
        for farmer in farmers or []:
            self.add(farmer)

    @classmethod
    def from_file(cls, path: str) -> "FarmerDirectory":
        """Load a JSON list of farmer profiles"""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Farmer directory {path} must contain a list")
        return cls(data)

    def add(self, farmer: Dict[str, Any]):
        farmer_id = farmer.get("farmer_id") or farmer.get("id")
        if not farmer_id:
            raise ValueError("Farmer profile requires farmer_id")
        self._farmers[str(farmer_id)] = dict(farmer)

    def get(self, farmer_id: str) -> Optional[Dict[str, Any]]:
        return self._farmers.get(str(farmer_id))

    def __len__(self):
        return len(self._farmers)


def record_from_call(call: CallRecord, profile: Optional[Dict[str, Any]] = None) -> FarmRecord:
    """
    Build a FarmRecord from a call and an optional matching farmer profile

    Call values win over profile values; the profile only fills gaps.
    """
    profile = profile or {}
    details = {}
    for name in _DETAIL_FIELDS:
        value = getattr(call, name)
        if value is None:
            value = profile.get(name)
        if value is not None:
            details[name] = value

    name = call.farmer_name or profile.get("farmer_name") or "Farmer"
    size = call.farm_size_acres
    if size is None:
        size = profile.get("farm_size_acres", 1.0)

    return FarmRecord(
        farmer_id=call.farmer_id,
        farmer_name=name,
        farm_size_acres=float(size),
        details=details,
        **{flag: bool(getattr(call, flag)) for flag in NEED_FIELDS}
    )


class CallHistorySnapshotSource(FarmSnapshotSource):
    """
    Snapshot from the most recent call in a CallStore

    Raises LookupError from load() when there is no usable call, so the
    simulator falls back to its default record.
    """

    def __init__(self, call_store, directory: Optional[FarmerDirectory] = None):
        self.call_store = call_store
        self.directory = directory

    def load(self) -> FarmRecord:
        calls = [c for c in self.call_store.all() if c.farmer_id]
        if not calls:
            raise LookupError("No calls with a farmer id in history")

        latest = max(calls, key=lambda c: parse_timestamp(c.created_at))
        profile = self.directory.get(latest.farmer_id) if self.directory else None
        if profile:
            logger.debug("Merged directory profile for farmer %s", latest.farmer_id)

        record = record_from_call(latest, profile)
        logger.info("Loaded farm snapshot for %s from call %s", record.farmer_id, latest.id)
        return record
