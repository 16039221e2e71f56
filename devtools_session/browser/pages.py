"""Page registry: stable page ids, selection, and dialog capture."""
import asyncio
import itertools
import logging
import weakref
from contextlib import ExitStack
from typing import Callable, Literal, Optional

from playwright.async_api import Browser, BrowserContext, CDPSession, Dialog, Page
from playwright.async_api import Error as PlaywrightError

from ..core.config import SessionConfig
from ..core.errors import (
    LastPageError,
    NoDialogError,
    NoSelectionError,
    PageNotFoundError,
    StaleSelectionError,
)
from ..core.logging import BackgroundErrorSink

logger = logging.getLogger(__name__)

DialogAction = Literal["accept", "dismiss"]


class PageIdAllocator:
    """Hands out small integer ids keyed by page identity.

    Ids are never reused, and the page object itself is never touched.
    """

    def __init__(self) -> None:
        self._ids: "weakref.WeakKeyDictionary[Page, int]" = weakref.WeakKeyDictionary()
        self._counter = itertools.count(1)

    def assign(self, page: Page) -> int:
        if page not in self._ids:
            self._ids[page] = next(self._counter)
        return self._ids[page]

    def get(self, page: Page) -> Optional[int]:
        return self._ids.get(page)

    def __contains__(self, page: Page) -> bool:
        return page in self._ids


class DialogWatch:
    """Scoped ``dialog`` listener on a single page."""

    def __init__(self, page: Page, handler: Callable[[Dialog], None]) -> None:
        self.page = page
        self._handler = handler
        self._active = False

    def acquire(self) -> "DialogWatch":
        self.page.on("dialog", self._handler)
        self._active = True
        return self

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self.page.remove_listener("dialog", self._handler)
        except (KeyError, ValueError) as e:
            logger.debug(f"Dialog listener already gone: {e}")

    @property
    def active(self) -> bool:
        return self._active

    def __enter__(self) -> "DialogWatch":
        return self.acquire()

    def __exit__(self, *exc_info) -> None:
        self.release()


class PageRegistry:
    """Tracks visible pages, the selected page, and the pending dialog."""

    def __init__(
        self,
        browser: Browser,
        config: Optional[SessionConfig] = None,
        error_sink: Optional[BackgroundErrorSink] = None,
    ) -> None:
        """Initialize the registry.

        Args:
            browser: Playwright Browser instance.
            config: Timeouts and visibility policy.
            error_sink: Receives failures of best-effort background work.
        """
        self._browser = browser
        self._config = config or SessionConfig()
        self._errors = error_sink or BackgroundErrorSink(self._config.background_error_limit)
        self._context: Optional[BrowserContext] = None
        self._ids = PageIdAllocator()
        self._pages: list[Page] = []
        self._selected: Optional[Page] = None
        self._dialog_watch: Optional[DialogWatch] = None
        self._dialog: Optional[Dialog] = None
        self._cdp_sessions: "weakref.WeakKeyDictionary[Page, CDPSession]" = (
            weakref.WeakKeyDictionary()
        )
        self._background: set[asyncio.Task] = set()

    async def context(self) -> BrowserContext:
        """Get or create the default browser context."""
        if not self._context:
            if self._browser.contexts:
                self._context = self._browser.contexts[0]
            else:
                self._context = await self._browser.new_context()
        return self._context

    @property
    def pages(self) -> list[Page]:
        """Visible pages in discovery order, as of the last refresh."""
        return list(self._pages)

    @property
    def dialog(self) -> Optional[Dialog]:
        return self._dialog

    @property
    def error_sink(self) -> BackgroundErrorSink:
        return self._errors

    def clear_dialog(self) -> None:
        self._dialog = None

    def _is_visible(self, page: Page) -> bool:
        if self._config.include_devtools_pages:
            return True
        return not page.url.startswith("devtools://")

    async def _enumerate(self) -> list[Page]:
        if self._config.include_all_pages:
            return [p for ctx in self._browser.contexts for p in ctx.pages]
        return list((await self.context()).pages)

    async def refresh(self) -> list[Page]:
        """Re-enumerate pages from the browser.

        Newly seen pages get ids, devtools pages are hidden unless enabled, and
        a selection that is no longer visible moves to the first visible page.

        Returns:
            The visible pages.
        """
        all_pages = await self._enumerate()
        for page in all_pages:
            if page not in self._ids:
                page_id = self._ids.assign(page)
                logger.debug(f"Discovered page {page_id}: {page.url}")

        self._pages = [p for p in all_pages if self._is_visible(p)]

        if self._selected is None or self._selected not in self._pages:
            if self._pages:
                self.select_page(self._pages[0])
            else:
                self._deselect()
        return self.pages

    async def new_page(self) -> Page:
        """Open a new page, select it, and return it."""
        page = await (await self.context()).new_page()
        await self.refresh()
        self.select_page(page)
        return page

    async def close_page(self, page_id: int) -> None:
        """Close the visible page with the given id.

        Raises:
            LastPageError: If it is the only visible page.
            PageNotFoundError: If no visible page has that id.
        """
        if len(self._pages) == 1:
            raise LastPageError()
        page = self.get_page_by_id(page_id)
        await page.close(run_before_unload=False)
        logger.info(f"Closed page {page_id}")
        await self.refresh()

    def get_page_by_id(self, page_id: int) -> Page:
        for page in self._pages:
            if self._ids.get(page) == page_id:
                return page
        raise PageNotFoundError()

    def get_page_id(self, page: Page) -> Optional[int]:
        return self._ids.get(page)

    def is_page_selected(self, page: Page) -> bool:
        return self._selected is page

    def get_selected_page(self) -> Page:
        """Return the selected page.

        Raises:
            NoSelectionError: If no page is selected.
            StaleSelectionError: If the selected page has been closed.
        """
        page = self._selected
        if page is None:
            raise NoSelectionError()
        if page.is_closed():
            raise StaleSelectionError()
        return page

    def get_navigation_timeout(self) -> int:
        self.get_selected_page()
        return self._config.navigation_timeout_ms

    def _on_dialog(self, dialog: Dialog) -> None:
        if self._dialog is not None:
            logger.warning(
                f"Unhandled {self._dialog.type} dialog replaced by a new {dialog.type} dialog"
            )
        logger.info(f"Dialog opened: {dialog.type}: {dialog.message}")
        self._dialog = dialog

    def _deselect(self) -> None:
        if self._dialog_watch is not None:
            self._dialog_watch.release()
            self._dialog_watch = None
        if self._selected is not None:
            self._emulate_focus(self._selected, False)
        self._selected = None

    def select_page(self, page: Page) -> None:
        """Make ``page`` the selected page.

        The previous page loses its dialog listener and focus emulation; the new
        page gains both and gets the default timeouts. Focus emulation runs in
        the background and never fails the selection.
        """
        self._deselect()

        watch = DialogWatch(page, self._on_dialog)
        with ExitStack() as stack:
            stack.enter_context(watch)
            page.set_default_timeout(self._config.default_timeout_ms)
            page.set_default_navigation_timeout(self._config.navigation_timeout_ms)
            stack.pop_all()

        self._dialog_watch = watch
        self._selected = page
        self._emulate_focus(page, True)
        logger.debug(f"Selected page {self._ids.get(page)}: {page.url}")

    def _emulate_focus(self, page: Page, enabled: bool) -> None:
        task = asyncio.get_running_loop().create_task(self._set_focus_emulation(page, enabled))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _set_focus_emulation(self, page: Page, enabled: bool) -> None:
        state = "on" if enabled else "off"
        try:
            if page.is_closed():
                return
            cdp = self._cdp_sessions.get(page)
            if cdp is None:
                cdp = await page.context.new_cdp_session(page)
                self._cdp_sessions[page] = cdp
            await cdp.send("Emulation.setFocusEmulationEnabled", {"enabled": enabled})
        except Exception as e:
            self._errors.report(f"Error turning {state} focused page emulation", e)

    async def handle_dialog(
        self, action: DialogAction, prompt_text: Optional[str] = None
    ) -> None:
        """Accept or dismiss the pending dialog and clear it.

        Raises:
            NoDialogError: If no dialog is pending.
        """
        dialog = self._dialog
        if dialog is None:
            raise NoDialogError()
        try:
            if action == "accept":
                await dialog.accept(prompt_text)
            else:
                await dialog.dismiss()
        except PlaywrightError as e:
            # The browser may have closed the dialog already.
            logger.warning(f"Failed to {action} dialog: {e}")
        finally:
            self.clear_dialog()

    async def wait_for_background(self) -> None:
        """Wait for scheduled best-effort work to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
