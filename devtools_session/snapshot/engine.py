"""Snapshot capture and uid bookkeeping."""
import itertools
import logging
from types import MappingProxyType
from typing import Optional

from ..browser.accessibility import AccessibilityExtractor, AXNode
from ..browser.pages import PageRegistry
from ..core.errors import ElementNotFoundError, NoSnapshotError, StaleSnapshotError
from .models import Snapshot, SnapshotNode, make_uid

logger = logging.getLogger(__name__)

# Shared by every session in the process so snapshot ids are never reused.
_snapshot_ids = itertools.count(1)


def next_snapshot_id() -> int:
    return next(_snapshot_ids)


def build_snapshot(tree: AXNode, snapshot_id: int, verbose: bool = False) -> Snapshot:
    """Stamp every node of ``tree`` with a uid and freeze the result.

    Uids are assigned depth-first in pre-order, starting at sequence 0.
    Option nodes take their name as value so it can be used to fill selects.
    """
    sequence = itertools.count()
    id_to_node: dict[str, SnapshotNode] = {}

    def stamp(ax_node: AXNode) -> SnapshotNode:
        uid = make_uid(snapshot_id, next(sequence))
        # Reserve the slot so the mapping iterates in document order.
        id_to_node[uid] = None  # type: ignore[assignment]
        children = tuple(stamp(child) for child in ax_node.children)
        value = ax_node.value
        if ax_node.role == "option" and ax_node.name:
            value = str(ax_node.name)
        node = SnapshotNode(
            uid=uid,
            role=ax_node.role,
            name=ax_node.name,
            value=value,
            description=ax_node.description,
            properties=MappingProxyType(dict(ax_node.properties)),
            children=children,
            source=ax_node,
        )
        id_to_node[uid] = node
        return node

    root = stamp(tree)
    return Snapshot(
        snapshot_id=snapshot_id,
        root=root,
        id_to_node=MappingProxyType(id_to_node),
        verbose=verbose,
    )


class SnapshotEngine:
    """Captures snapshots of the selected page and validates uids against them."""

    def __init__(
        self,
        registry: PageRegistry,
        extractor: Optional[AccessibilityExtractor] = None,
    ) -> None:
        self._registry = registry
        self._extractor = extractor or AccessibilityExtractor()
        self._snapshot: Optional[Snapshot] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    async def capture(self, verbose: bool = False) -> Optional[Snapshot]:
        """Capture the selected page's accessibility tree.

        When the browser reports no tree the current snapshot is kept and
        None is returned.

        Raises:
            NoSelectionError: If no page is selected.
        """
        page = self._registry.get_selected_page()
        tree = await self._extractor.snapshot(
            page, include_iframes=True, interesting_only=not verbose
        )
        if tree is None:
            logger.debug(f"No accessibility tree for {page.url}")
            return None

        snapshot = build_snapshot(tree, next_snapshot_id(), verbose)
        self._snapshot = snapshot
        logger.info(f"Captured snapshot {snapshot.snapshot_id} with {len(snapshot)} nodes")
        return snapshot

    def check_uid(self, uid: str) -> SnapshotNode:
        """Return the node for ``uid`` in the current snapshot.

        Raises:
            NoSnapshotError: If nothing has been captured yet.
            StaleSnapshotError: If the uid belongs to another snapshot.
            ElementNotFoundError: If the current snapshot has no such uid.
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise NoSnapshotError()
        if not snapshot.owns(uid):
            raise StaleSnapshotError()
        node = snapshot.get(uid)
        if node is None:
            raise ElementNotFoundError()
        return node

    def get_node(self, uid: str) -> Optional[SnapshotNode]:
        if self._snapshot is None:
            return None
        return self._snapshot.get(uid)
