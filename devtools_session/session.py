"""The automation session: one object owning all mutable browser state."""
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar, Union

from playwright.async_api import Browser, Dialog, ElementHandle, Page

from .browser.accessibility import AccessibilityExtractor
from .browser.pages import DialogAction, PageRegistry
from .core.config import Settings
from .core.logging import BackgroundErrorSink
from .response import files
from .snapshot.engine import SnapshotEngine
from .snapshot.models import Snapshot, SnapshotNode
from .snapshot.resolver import ElementResolver
from .wait.engine import WaitEngine
from .wait.settle import WaitForHelper

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Session:
    """Pages, selection, pending dialog, and the latest snapshot of one session.

    Not safe for concurrent tool calls; callers serialize invocations.
    Create instances with ``await Session.create(browser)`` so existing pages
    are discovered up front.
    """

    def __init__(
        self,
        browser: Browser,
        settings: Optional[Settings] = None,
        extractor: Optional[AccessibilityExtractor] = None,
    ) -> None:
        self.browser = browser
        self.settings = settings or Settings()
        self.errors = BackgroundErrorSink(self.settings.session.background_error_limit)
        self.pages = PageRegistry(browser, self.settings.session, self.errors)
        self.snapshots = SnapshotEngine(self.pages, extractor)
        self.elements = ElementResolver(self.snapshots)
        self.waits = WaitEngine(self.pages, self.settings.wait, self.settings.session)

    @classmethod
    async def create(
        cls,
        browser: Browser,
        settings: Optional[Settings] = None,
        extractor: Optional[AccessibilityExtractor] = None,
    ) -> "Session":
        session = cls(browser, settings, extractor)
        await session.refresh_pages()
        logger.info(f"Session started with {len(session.get_pages())} page(s)")
        return session

    async def dispose(self) -> None:
        """Let pending background work finish."""
        await self.pages.wait_for_background()

    # Pages

    async def new_page(self) -> Page:
        return await self.pages.new_page()

    async def close_page(self, page_id: int) -> None:
        await self.pages.close_page(page_id)

    async def refresh_pages(self) -> list[Page]:
        return await self.pages.refresh()

    def get_pages(self) -> list[Page]:
        return self.pages.pages

    def select_page(self, page: Page) -> None:
        self.pages.select_page(page)

    def get_selected_page(self) -> Page:
        return self.pages.get_selected_page()

    def get_page_by_id(self, page_id: int) -> Page:
        return self.pages.get_page_by_id(page_id)

    def get_page_id(self, page: Page) -> Optional[int]:
        return self.pages.get_page_id(page)

    def is_page_selected(self, page: Page) -> bool:
        return self.pages.is_page_selected(page)

    def get_navigation_timeout(self) -> int:
        return self.pages.get_navigation_timeout()

    # Dialogs

    def get_dialog(self) -> Optional[Dialog]:
        return self.pages.dialog

    def clear_dialog(self) -> None:
        self.pages.clear_dialog()

    async def handle_dialog(self, action: DialogAction, prompt_text: Optional[str] = None) -> None:
        await self.pages.handle_dialog(action, prompt_text)

    # Snapshots

    async def capture_snapshot(self, verbose: bool = False) -> Optional[Snapshot]:
        return await self.snapshots.capture(verbose)

    def get_snapshot(self) -> Optional[Snapshot]:
        return self.snapshots.snapshot

    def get_ax_node_by_uid(self, uid: str) -> Optional[SnapshotNode]:
        return self.snapshots.get_node(uid)

    async def get_element_by_uid(self, uid: str) -> ElementHandle:
        return await self.elements.get_element_by_uid(uid)

    # Waiting

    def get_wait_for_helper(
        self, cpu_multiplier: float, network_multiplier: float
    ) -> WaitForHelper:
        return self.waits.get_wait_for_helper(cpu_multiplier, network_multiplier)

    async def wait_for_events_after_action(self, action: Callable[[], Awaitable[T]]) -> T:
        return await self.waits.wait_for_events_after_action(action)

    async def wait_for_text_on_page(
        self, text: str, timeout: Optional[float] = None
    ) -> ElementHandle:
        return await self.waits.wait_for_text_on_page(text, timeout)

    # Files

    async def save_temporary_file(self, data: bytes, mime_type: str) -> Path:
        return await files.save_temporary_file(data, mime_type)

    async def save_file(self, data: bytes, filename: Union[str, Path]) -> Path:
        return await files.save_file(data, filename)
