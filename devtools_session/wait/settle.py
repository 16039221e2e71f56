"""Waiting for a page to settle after an action."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Page, Request

from ..core.config import WaitConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Resolves once the document has gone ``quietMs`` without mutations,
# or after ``maxMs`` regardless.
_STABLE_DOM_JS = """([quietMs, maxMs]) => new Promise(resolve => {
    const start = performance.now();
    let mutations = 0;
    let quietTimer = null;
    let maxTimer = null;
    const target = document.body || document.documentElement;
    const finish = reason => {
        observer.disconnect();
        clearTimeout(quietTimer);
        clearTimeout(maxTimer);
        resolve({waited_ms: Math.round(performance.now() - start), mutations, reason});
    };
    const observer = new MutationObserver(records => {
        mutations += records.length;
        clearTimeout(quietTimer);
        quietTimer = setTimeout(() => finish("quiet"), quietMs);
    });
    if (!target) { resolve({waited_ms: 0, mutations: 0, reason: "no-document"}); return; }
    observer.observe(target, {childList: true, subtree: true, attributes: true, characterData: true});
    quietTimer = setTimeout(() => finish("quiet"), quietMs);
    maxTimer = setTimeout(() => finish("timeout"), maxMs);
})"""


class WaitForHelper:
    """Waits for navigation and DOM activity triggered by an action to finish.

    Durations come from ``WaitConfig``; DOM-related ones are scaled by the CPU
    multiplier and the navigation timeout by the network multiplier, so slow
    or throttled environments wait proportionally longer.
    """

    def __init__(
        self,
        page: Page,
        cpu_multiplier: float = 1.0,
        network_multiplier: float = 1.0,
        config: Optional[WaitConfig] = None,
    ) -> None:
        config = config or WaitConfig()
        self._page = page
        self.stable_dom_timeout_ms = config.stable_dom_timeout_ms * cpu_multiplier
        self.stable_dom_for_ms = config.stable_dom_for_ms * cpu_multiplier
        self.expect_navigation_in_ms = config.expect_navigation_in_ms * cpu_multiplier
        self.navigation_timeout_ms = config.navigation_timeout_ms * network_multiplier

    async def wait_for_stable_dom(self) -> Optional[dict]:
        """Wait until the DOM stops changing, bounded by the stable-DOM timeout."""
        # A little slack on top of the in-page bound for the evaluate round trip.
        budget = self.stable_dom_timeout_ms / 1000 + 1
        result = await asyncio.wait_for(
            self._page.evaluate(
                _STABLE_DOM_JS, [self.stable_dom_for_ms, self.stable_dom_timeout_ms]
            ),
            timeout=budget,
        )
        logger.debug(f"DOM settle: {result}")
        return result

    async def _navigation_started(self, started: asyncio.Event) -> bool:
        try:
            await asyncio.wait_for(started.wait(), timeout=self.expect_navigation_in_ms / 1000)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_for_events_after_action(self, action: Callable[[], Awaitable[T]]) -> T:
        """Run ``action`` and wait for the page to quiet down afterwards.

        Errors from the action propagate. Errors while waiting are logged and
        swallowed: the action already happened and its result stands.
        """
        page = self._page
        started = asyncio.Event()

        def on_request(request: Request) -> None:
            if request.is_navigation_request() and request.frame == page.main_frame:
                started.set()

        page.on("request", on_request)
        try:
            result = await action()
            try:
                if await self._navigation_started(started):
                    logger.debug("Navigation started after action, waiting for load")
                    await page.wait_for_load_state("load", timeout=self.navigation_timeout_ms)
                await self.wait_for_stable_dom()
            except Exception as e:
                logger.warning(f"Waiting for page to settle failed: {e}")
        finally:
            page.remove_listener("request", on_request)
        return result
