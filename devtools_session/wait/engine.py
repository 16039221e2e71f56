"""Wait primitives bound to the selected page."""
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import ElementHandle

from ..browser.pages import PageRegistry
from ..core.config import SessionConfig, WaitConfig
from .settle import WaitForHelper
from .text import wait_for_text_on_page

T = TypeVar("T")


class WaitEngine:
    """Text and settle waits against whichever page is currently selected."""

    def __init__(
        self,
        registry: PageRegistry,
        wait_config: Optional[WaitConfig] = None,
        session_config: Optional[SessionConfig] = None,
    ) -> None:
        self._registry = registry
        self._wait_config = wait_config or WaitConfig()
        self._session_config = session_config or SessionConfig()

    def get_wait_for_helper(
        self,
        cpu_multiplier: Optional[float] = None,
        network_multiplier: Optional[float] = None,
    ) -> WaitForHelper:
        page = self._registry.get_selected_page()
        return WaitForHelper(
            page,
            cpu_multiplier or self._wait_config.cpu_multiplier,
            network_multiplier or self._wait_config.network_multiplier,
            self._wait_config,
        )

    async def wait_for_events_after_action(self, action: Callable[[], Awaitable[T]]) -> T:
        return await self.get_wait_for_helper().wait_for_events_after_action(action)

    async def wait_for_text_on_page(
        self, text: str, timeout: Optional[float] = None
    ) -> ElementHandle:
        page = self._registry.get_selected_page()
        return await wait_for_text_on_page(
            page,
            text,
            timeout_ms=timeout,
            default_timeout_ms=self._session_config.default_timeout_ms,
        )
