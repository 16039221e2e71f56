"""Data models for accessibility snapshots."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from playwright.async_api import ElementHandle

from ..browser.accessibility import AXNode

UID_SEPARATOR = "_"


def make_uid(snapshot_id: int, sequence: int) -> str:
    return f"{snapshot_id}{UID_SEPARATOR}{sequence}"


def uid_prefix(uid: str) -> str:
    """Snapshot id part of a uid (everything before the first separator)."""
    return uid.split(UID_SEPARATOR, 1)[0]


@dataclass(frozen=True)
class SnapshotNode:
    """A uid-stamped accessibility node."""

    uid: str
    role: str
    name: str = ""
    value: Optional[str] = None
    description: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    children: tuple["SnapshotNode", ...] = ()
    source: Optional[AXNode] = field(default=None, repr=False, compare=False)

    async def element_handle(self) -> Optional[ElementHandle]:
        """Live element for this node, or None if it left the document."""
        if self.source is None:
            return None
        return await self.source.element_handle()


@dataclass(frozen=True)
class Snapshot:
    """Immutable accessibility tree captured at one point in time."""

    snapshot_id: int
    root: SnapshotNode
    id_to_node: Mapping[str, SnapshotNode]
    verbose: bool = False

    def get(self, uid: str) -> Optional[SnapshotNode]:
        return self.id_to_node.get(uid)

    def owns(self, uid: str) -> bool:
        """Whether ``uid`` was minted by this snapshot generation."""
        return uid_prefix(uid) == str(self.snapshot_id)

    def __len__(self) -> int:
        return len(self.id_to_node)
