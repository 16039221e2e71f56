"""Accessibility snapshots: capture, uids, rendering, and element lookup."""
from .engine import SnapshotEngine, build_snapshot
from .formatter import format_snapshot, format_snapshot_node
from .models import Snapshot, SnapshotNode, make_uid
from .resolver import ElementResolver

__all__ = [
    "SnapshotEngine",
    "build_snapshot",
    "format_snapshot",
    "format_snapshot_node",
    "Snapshot",
    "SnapshotNode",
    "make_uid",
    "ElementResolver",
]
