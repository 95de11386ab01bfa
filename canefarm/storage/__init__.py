"""Persistence for CANEFARM: call records, resolutions and small key-value state"""

from .kv_store import KeyValueStore, MemoryKeyValueStore, JsonFileKeyValueStore
from .call_store import CallStore
from .resolution_store import ResolutionStore, record_resolution

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "JsonFileKeyValueStore", "CallStore",
           "ResolutionStore", "record_resolution"]
