"""Chrome connection management."""
import asyncio
import logging
from typing import Optional

import httpx
from playwright.async_api import Browser, Playwright, async_playwright

from ..core.config import BrowserConfig

logger = logging.getLogger(__name__)


class BrowserConnection:
    """Manages the Playwright connection to Chrome with retry logic."""

    def __init__(
        self,
        cdp_port: int = 9333,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        launch: bool = False,
        headless: bool = True,
    ) -> None:
        """Initialize browser connection settings.

        Args:
            cdp_port: Chrome DevTools Protocol port of a running browser.
            max_retries: Maximum connection attempts.
            retry_delay: Base delay between retries in seconds.
            launch: Launch a bundled Chromium instead of connecting over CDP.
            headless: Headless mode for launched browsers.
        """
        self.cdp_port = cdp_port
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.launch = launch
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @classmethod
    def from_config(cls, config: BrowserConfig) -> "BrowserConnection":
        return cls(
            cdp_port=config.cdp_port,
            max_retries=config.connect_retries,
            retry_delay=config.retry_delay,
            launch=config.launch,
            headless=config.headless,
        )

    @property
    def browser(self) -> Browser:
        """Get the connected browser instance.

        Raises:
            RuntimeError: If not connected.
        """
        if not self._browser:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._browser

    async def _check_cdp_endpoint(self) -> bool:
        """Verify CDP endpoint is responding."""
        url = f"http://127.0.0.1:{self.cdp_port}/json/version"
        try:
            async with httpx.AsyncClient(timeout=5) as client:
                resp = await client.get(url)
                data = resp.json()
                logger.debug(f"CDP ready: {data.get('Browser', 'unknown')}")
                return True
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"CDP not ready: {e}")
            return False

    async def connect(self) -> bool:
        """Connect to Chrome with exponential backoff retry.

        Returns:
            True if connection successful, False otherwise.
        """
        if self.launch:
            return await self._launch()

        for attempt in range(self.max_retries):
            wait_time = min(self.retry_delay * (2**attempt), 30)

            if not await self._check_cdp_endpoint():
                logger.info(
                    f"Attempt {attempt + 1}/{self.max_retries}: "
                    f"CDP not ready, waiting {wait_time:.1f}s"
                )
                await asyncio.sleep(wait_time)
                continue

            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.connect_over_cdp(
                    f"http://127.0.0.1:{self.cdp_port}"
                )
                logger.info("Connected to Chrome successfully")
                return True
            except Exception as e:
                logger.warning(f"Connection failed: {e}")
                await self._cleanup()
                await asyncio.sleep(wait_time)

        logger.error("Failed to connect after all retries")
        return False

    async def _launch(self) -> bool:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
        except Exception as e:
            logger.error(f"Failed to launch Chromium: {e}")
            await self._cleanup()
            return False
        logger.info("Launched Chromium")
        return True

    async def _cleanup(self) -> None:
        """Clean up playwright resources."""
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")
        self._playwright = None
        self._browser = None

    async def disconnect(self) -> None:
        """Close the browser connection."""
        logger.info("Disconnecting from Chrome")
        await self._cleanup()
