"""Waiting for text to show up on a page."""
import asyncio
import logging
from typing import Awaitable, Iterable, Optional, TypeVar

from playwright.async_api import ElementHandle, Frame, Locator, Page

from ..core.errors import WaitTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def race_first(awaitables: Iterable[Awaitable[T]], timeout: float) -> Optional[T]:
    """Run ``awaitables`` concurrently and return the first successful result.

    Failed watchers drop out of the race. Everything still running when a
    winner appears, or when ``timeout`` seconds pass, is cancelled and
    awaited before returning.

    Returns:
        The winning result, or None if nothing succeeded in time.
    """
    loop = asyncio.get_running_loop()
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    deadline = loop.time() + timeout
    try:
        pending = set(tasks)
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if task.cancelled():
                    continue
                error = task.exception()
                if error is None:
                    return task.result()
                logger.debug(f"Watcher dropped out: {error}")
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def text_locators(frame: Frame, text: str) -> list[Locator]:
    """Accessible-name and literal-text locators for ``text`` in one frame.

    Accessible names come from labels, alt text and titles, so each source
    gets its own locator.
    """
    return [
        frame.get_by_label(text),
        frame.get_by_alt_text(text),
        frame.get_by_title(text),
        frame.get_by_text(text),
    ]


async def _watch(locator: Locator, timeout_ms: float) -> ElementHandle:
    target = locator.first
    await target.wait_for(state="attached", timeout=timeout_ms)
    return await target.element_handle(timeout=timeout_ms)


async def wait_for_text_on_page(
    page: Page,
    text: str,
    timeout_ms: Optional[float] = None,
    default_timeout_ms: float = 5000,
) -> ElementHandle:
    """Wait until ``text`` appears in any frame of ``page``.

    Args:
        page: Page to watch.
        text: Accessible name or visible text to look for.
        timeout_ms: Overrides the default when positive.
        default_timeout_ms: Timeout used when none is given.

    Returns:
        Handle of the first matching element.

    Raises:
        WaitTimeoutError: If nothing matched in time.
    """
    if not timeout_ms or timeout_ms <= 0:
        timeout_ms = default_timeout_ms

    watchers = [
        _watch(locator, timeout_ms)
        for frame in page.frames
        for locator in text_locators(frame, text)
    ]
    handle = await race_first(watchers, timeout_ms / 1000)
    if handle is None:
        raise WaitTimeoutError(f"Timed out after waiting {timeout_ms:g}ms for text {text!r}")
    return handle
