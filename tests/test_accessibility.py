"""Tests for CDP accessibility tree conversion and element lookup."""
from __future__ import annotations

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from devtools_session.browser.accessibility import (
    AccessibilityExtractor,
    cdp_nodes_to_tree,
    prune_tree,
)
from devtools_session.core.config import Settings
from devtools_session.core.errors import NO_SUCH_ELEMENT, ElementNotFoundError
from devtools_session.session import Session

from .fakes import FakeBrowser, FakeCDPSession, FakeContext


def cdp_node(node_id: str, role: str, name: str = "", children: tuple[str, ...] = (),
             backend: Optional[int] = None, value: Optional[str] = None,
             ignored: bool = False, **properties) -> dict:
    node = {
        "nodeId": node_id,
        "role": {"type": "role", "value": role},
        "name": {"type": "computedString", "value": name},
        "childIds": list(children),
        "ignored": ignored,
        "properties": [
            {"name": k, "value": {"type": "boolean", "value": v}} for k, v in properties.items()
        ],
    }
    if backend is not None:
        node["backendDOMNodeId"] = backend
    if value is not None:
        node["value"] = {"type": "string", "value": value}
    return node


BUTTON_AND_INPUT = [
    cdp_node("1", "RootWebArea", "Test", ("2",), backend=1),
    cdp_node("2", "generic", "", ("3", "5"), backend=2),
    cdp_node("3", "button", "Click me", ("4",), backend=3, focusable=True),
    cdp_node("4", "StaticText", "Click me", ("6",), backend=4),
    cdp_node("6", "InlineTextBox", "Click me"),
    cdp_node("5", "textbox", "", ("7",), backend=5, value="Input", focusable=True),
    cdp_node("7", "generic", "", ("8",), backend=7),
    cdp_node("8", "StaticText", "Input", backend=8),
]


class TestTreeConversion:
    """Tests for turning CDP nodes into a pruned tree."""

    def test_empty_list(self) -> None:
        """No nodes means no tree."""
        assert cdp_nodes_to_tree([]) is None

    def test_builds_nested_tree(self) -> None:
        """Children are linked by their child ids."""
        root = cdp_nodes_to_tree(BUTTON_AND_INPUT)
        assert root.role == "RootWebArea"
        assert root.name == "Test"
        button = root.children[0].children[0]
        assert button.role == "button"
        assert button.properties == {"focusable": True}
        assert button.backend_node_id == 3
        assert root.children[0].children[1].value == "Input"

    def test_interesting_only(self) -> None:
        """Interesting mode keeps only controls under the root."""
        root = prune_tree(cdp_nodes_to_tree(BUTTON_AND_INPUT), interesting_only=True)
        assert [c.role for c in root.children] == ["button", "textbox"]
        assert all(not c.children for c in root.children)

    def test_verbose_keeps_wrappers_but_drops_inline_text(self) -> None:
        """Verbose mode keeps wrappers but never inline text boxes."""
        root = prune_tree(cdp_nodes_to_tree(BUTTON_AND_INPUT), interesting_only=False)
        generic = root.children[0]
        assert generic.role == "generic"
        button = generic.children[0]
        assert [c.role for c in button.children] == ["StaticText"]
        assert button.children[0].children == []

    def test_text_lifted_out_of_unnamed_wrappers(self) -> None:
        """Text inside unnamed wrappers moves up to the nearest kept node."""
        nodes = [
            cdp_node("1", "RootWebArea", "", ("2",)),
            cdp_node("2", "paragraph", "", ("3",)),
            cdp_node("3", "StaticText", "Hello"),
        ]
        root = prune_tree(cdp_nodes_to_tree(nodes), interesting_only=True)
        assert [(c.role, c.name) for c in root.children] == [("StaticText", "Hello")]

    def test_ignored_nodes_lifted(self) -> None:
        """Children of ignored nodes take their place."""
        nodes = [
            cdp_node("1", "RootWebArea", "", ("2",)),
            cdp_node("2", "none", "", ("3",), ignored=True),
            cdp_node("3", "link", "Home"),
        ]
        root = prune_tree(cdp_nodes_to_tree(nodes), interesting_only=False)
        assert [c.role for c in root.children] == ["link"]

    def test_redundant_link_text_dropped(self) -> None:
        """Static text that repeats a link's name is dropped."""
        nodes = [
            cdp_node("1", "RootWebArea", "", ("2",)),
            cdp_node("2", "link", "Home", ("3",)),
            cdp_node("3", "StaticText", "Home"),
        ]
        root = prune_tree(cdp_nodes_to_tree(nodes), interesting_only=True)
        assert root.children[0].children == []


@pytest.fixture
def page_with_cdp():
    """Page of a one-page context and the CDP session it hands out."""
    context = FakeContext(urls=("https://example.com/",))
    return context.pages[0], context.cdp


class TestExtractor:
    """Tests for AccessibilityExtractor against a fake CDP session."""

    async def test_snapshot_returns_pruned_tree(self, page_with_cdp) -> None:
        """The snapshot is pruned and the CDP session detached."""
        page, cdp = page_with_cdp
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}, "childFrames": []}},
        }
        root = await AccessibilityExtractor().snapshot(page, interesting_only=True)
        assert [c.role for c in root.children] == ["button", "textbox"]
        cdp.detach.assert_awaited()

    async def test_no_nodes_means_no_tree(self, page_with_cdp) -> None:
        """An empty AX tree yields None."""
        page, cdp = page_with_cdp
        cdp.responses = {"Accessibility.getFullAXTree": {"nodes": []}}
        assert await AccessibilityExtractor().snapshot(page) is None

    async def test_iframe_tree_grafted_under_owner(self, page_with_cdp) -> None:
        """Iframe content hangs under its owner node."""
        page, cdp = page_with_cdp
        main = [
            cdp_node("1", "RootWebArea", "Outer", ("2",), backend=1),
            cdp_node("2", "Iframe", "", backend=20),
        ]
        inner = [
            cdp_node("a", "RootWebArea", "Inner", ("b",), backend=30),
            cdp_node("b", "button", "Inside", backend=31),
        ]
        cdp.responses = {
            "Accessibility.getFullAXTree": lambda params: {"nodes": inner if params else main},
            "Page.getFrameTree": {"frameTree": {
                "frame": {"id": "main"}, "childFrames": [{"frame": {"id": "child"}}],
            }},
            "DOM.getFrameOwner": {"backendNodeId": 20},
        }
        root = await AccessibilityExtractor().snapshot(page, include_iframes=True)
        iframe = root.children[0]
        assert iframe.role == "Iframe"
        assert iframe.children[0].name == "Inner"
        assert iframe.children[0].children[0].name == "Inside"

    async def test_unreachable_frame_skipped(self, page_with_cdp) -> None:
        """Frames without a reachable owner are skipped."""
        page, cdp = page_with_cdp
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {
                "frame": {"id": "main"}, "childFrames": [{"frame": {"id": "oopif"}}],
            }},
            "DOM.getFrameOwner": RuntimeError("Frame not found"),
        }
        root = await AccessibilityExtractor().snapshot(page)
        assert len(root.children) == 2

    async def test_element_lookup_tags_and_queries(self, page_with_cdp) -> None:
        """Element lookup tags the node and queries it back."""
        page, cdp = page_with_cdp
        handle = MagicMock(name="handle")
        handle.evaluate = AsyncMock()
        page.main_frame.query_selector.return_value = handle
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
            "DOM.resolveNode": {"object": {"objectId": "obj-3"}},
            "Runtime.callFunctionOn": {"result": {"value": True}},
        }
        root = await AccessibilityExtractor().snapshot(page)
        assert await root.children[0].element_handle() is handle

        resolve = [p for m, p in cdp.calls if m == "DOM.resolveNode"]
        assert resolve == [{"backendNodeId": 3}]
        selector = page.main_frame.query_selector.await_args.args[0]
        assert selector.startswith("[data-devtools-session-ref=")
        handle.evaluate.assert_awaited_once()

    async def test_detached_element_resolves_to_none(self, page_with_cdp) -> None:
        """A node the browser no longer knows resolves to None."""
        page, cdp = page_with_cdp
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
            "DOM.resolveNode": RuntimeError("No node with given id found"),
        }
        root = await AccessibilityExtractor().snapshot(page)
        assert await root.children[0].element_handle() is None

    async def test_closed_page_resolves_to_none(self, page_with_cdp) -> None:
        """Nodes of a closed page resolve to None."""
        page, cdp = page_with_cdp
        cdp.responses = {"Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
                         "Page.getFrameTree": {"frameTree": {}}}
        root = await AccessibilityExtractor().snapshot(page)
        page.closed = True
        assert await root.children[0].element_handle() is None

    async def test_element_detached_during_untag_resolves_to_none(self, page_with_cdp) -> None:
        """An element that detaches before its tag is removed counts as gone."""
        page, cdp = page_with_cdp
        handle = MagicMock(name="handle")
        handle.evaluate = AsyncMock(side_effect=PlaywrightError("Element is not attached to the DOM"))
        page.main_frame.query_selector.return_value = handle
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
            "DOM.resolveNode": {"object": {"objectId": "obj-3"}},
            "Runtime.callFunctionOn": {"result": {"value": True}},
        }
        root = await AccessibilityExtractor().snapshot(page)
        assert await root.children[0].element_handle() is None

    async def test_unqueryable_element_is_untagged(self, page_with_cdp) -> None:
        """The lookup tag is removed over CDP when no frame can find the element."""
        page, cdp = page_with_cdp
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
            "DOM.resolveNode": {"object": {"objectId": "obj-3"}},
            "Runtime.callFunctionOn": {"result": {"value": True}},
        }
        root = await AccessibilityExtractor().snapshot(page)
        assert await root.children[0].element_handle() is None

        calls = [p for m, p in cdp.calls if m == "Runtime.callFunctionOn"]
        assert len(calls) == 2
        assert calls[1]["objectId"] == "obj-3"
        assert "removeAttribute" in calls[1]["functionDeclaration"]


class TestResolverWithDevtoolsTree:
    """Element lookup through a session backed by the CDP extractor."""

    async def test_detached_element_raises_not_found(self, page_with_cdp) -> None:
        """A driver error during lookup surfaces as the session's not-found error."""
        page, cdp = page_with_cdp
        handle = MagicMock(name="handle")
        handle.evaluate = AsyncMock(side_effect=PlaywrightError("Element is not attached to the DOM"))
        page.main_frame.query_selector.return_value = handle
        cdp.responses = {
            "Accessibility.getFullAXTree": {"nodes": BUTTON_AND_INPUT},
            "Page.getFrameTree": {"frameTree": {"frame": {"id": "main"}}},
            "DOM.resolveNode": {"object": {"objectId": "obj-3"}},
            "Runtime.callFunctionOn": {"result": {"value": True}},
        }
        session = await Session.create(FakeBrowser(page.context), Settings(), AccessibilityExtractor())
        snapshot = await session.capture_snapshot()
        assert snapshot.get(f"{snapshot.snapshot_id}_1").role == "button"
        with pytest.raises(ElementNotFoundError, match=NO_SUCH_ELEMENT):
            await session.get_element_by_uid(f"{snapshot.snapshot_id}_1")
