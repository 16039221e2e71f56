"""Resolve snapshot uids to live element handles."""
import logging

from playwright.async_api import ElementHandle

from ..core.errors import ElementDetachedError
from .engine import SnapshotEngine

logger = logging.getLogger(__name__)


class ElementResolver:
    """Maps uids from the latest snapshot to elements on the page."""

    def __init__(self, engine: SnapshotEngine) -> None:
        self._engine = engine

    async def get_element_by_uid(self, uid: str) -> ElementHandle:
        """Get the live element for ``uid``.

        No retry is attempted; a detached node needs a fresh snapshot.

        Raises:
            NoSnapshotError: If no snapshot has been captured.
            StaleSnapshotError: If the uid comes from an older snapshot.
            ElementNotFoundError: If the uid is unknown to the current snapshot.
            ElementDetachedError: If the element left the document since capture.
        """
        node = self._engine.check_uid(uid)
        handle = await node.element_handle()
        if handle is None:
            logger.debug(f"Element {uid} ({node.role} {node.name!r}) is detached")
            raise ElementDetachedError()
        return handle
