from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from devtools_session.browser.pages import PageRegistry
from devtools_session.core.config import SessionConfig, Settings
from devtools_session.session import Session

from .fakes import FakeBrowser, FakeContext, FakeExtractor, ax


@pytest.fixture
def context() -> FakeContext:
    """Two pages in one browser context."""
    return FakeContext(urls=("https://example.com/", "https://example.org/"))


@pytest.fixture
def browser(context: FakeContext) -> FakeBrowser:
    """Browser holding the shared context."""
    return FakeBrowser(context)


@pytest.fixture
def registry(browser: FakeBrowser) -> PageRegistry:
    """Registry with default session settings."""
    return PageRegistry(browser, SessionConfig())


@pytest.fixture
def button_handle() -> MagicMock:
    """Handle returned for the button node."""
    return MagicMock(name="button")


@pytest.fixture
def extractor(button_handle: MagicMock) -> FakeExtractor:
    """Extractor yielding a page with a button and a filled textbox."""
    return FakeExtractor(
        lambda: ax(
            "RootWebArea", "Test page",
            ax("button", "Click me", handle=button_handle, focusable=True),
            ax("textbox", "", value="Input", handle=MagicMock(name="textbox")),
        )
    )


@pytest.fixture
async def session(browser: FakeBrowser, extractor: FakeExtractor) -> Session:
    """Session that has already discovered the fixture pages."""
    return await Session.create(browser, Settings(), extractor)
