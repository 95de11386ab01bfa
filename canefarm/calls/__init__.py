"""Call history as a source of farm snapshots"""

from .history import FarmSnapshotSource, StaticSnapshotSource, CallHistorySnapshotSource, FarmerDirectory

__all__ = ["FarmSnapshotSource", "StaticSnapshotSource", "CallHistorySnapshotSource", "FarmerDirectory"]
