"""Accessibility tree extraction over the Chrome DevTools Protocol."""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import CDPSession, ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

# Roles that never reach the caller on their own.
_NOISE_ROLES: frozenset[str] = frozenset({"InlineTextBox", "LineBreak"})
# Wrappers whose children are lifted into the parent when unnamed.
_GENERIC_ROLES: frozenset[str] = frozenset({"generic", "none", "presentation", "Section"})
# Roles kept regardless of name or focusability.
_STRUCTURAL_ROLES: frozenset[str] = frozenset({"RootWebArea", "WebArea", "Iframe"})
_CONTROL_ROLES: frozenset[str] = frozenset({
    "button", "checkbox", "combobox", "link", "listbox", "menuitem",
    "menuitemcheckbox", "menuitemradio", "option", "radio", "scrollbar",
    "searchbox", "slider", "spinbutton", "switch", "tab", "textbox", "treeitem",
})
# Controls whose descendants only restate their name.
_LEAF_ROLES: frozenset[str] = frozenset({
    "button", "checkbox", "image", "img", "meter", "progressbar", "radio",
    "scrollbar", "searchbox", "slider", "spinbutton", "switch", "textbox",
})

_UID_ATTRIBUTE = "data-devtools-session-ref"
_TAG_ELEMENT_JS = """function(attr, token) {
    const el = this.nodeType === Node.ELEMENT_NODE ? this : this.parentElement;
    if (!el) return false;
    el.setAttribute(attr, token);
    return true;
}"""
_UNTAG_ELEMENT_JS = """function(attr) {
    const el = this.nodeType === Node.ELEMENT_NODE ? this : this.parentElement;
    if (el) el.removeAttribute(attr);
}"""

ElementLookup = Callable[["AXNode"], Awaitable[Optional[ElementHandle]]]


@dataclass
class AXNode:
    """One node of the accessibility tree as reported by the browser."""

    role: str
    name: str = ""
    value: Optional[str] = None
    description: Optional[str] = None
    properties: dict[str, Any] = field(default_factory=dict)
    children: list["AXNode"] = field(default_factory=list)
    backend_node_id: Optional[int] = None
    ignored: bool = False
    lookup: Optional[ElementLookup] = field(default=None, repr=False, compare=False)

    async def element_handle(self) -> Optional[ElementHandle]:
        """Resolve the live DOM element behind this node, if it still exists."""
        if self.lookup is None:
            return None
        return await self.lookup(self)


def _unwrap(obj: Any) -> Any:
    if isinstance(obj, dict):
        return obj.get("value")
    return obj


def _parse_cdp_node(raw: dict) -> AXNode:
    properties: dict[str, Any] = {}
    for prop in raw.get("properties", []):
        prop_name = prop.get("name")
        if prop_name:
            properties[prop_name] = _unwrap(prop.get("value"))

    value = _unwrap(raw.get("value"))
    description = _unwrap(raw.get("description"))
    return AXNode(
        role=str(_unwrap(raw.get("role")) or ""),
        name=str(_unwrap(raw.get("name")) or ""),
        value=None if value in (None, "") else str(value),
        description=description or None,
        properties=properties,
        backend_node_id=raw.get("backendDOMNodeId"),
        ignored=bool(raw.get("ignored", False)),
    )


def cdp_nodes_to_tree(nodes: list[dict]) -> Optional[AXNode]:
    """Convert the flat ``Accessibility.getFullAXTree`` node list to a tree.

    Args:
        nodes: Raw CDP nodes; the first one is the root.

    Returns:
        Root AXNode, or None for an empty list.
    """
    if not nodes:
        return None

    by_id: dict[str, AXNode] = {}
    for raw in nodes:
        by_id[raw.get("nodeId", "")] = _parse_cdp_node(raw)

    for raw in nodes:
        parent = by_id[raw.get("nodeId", "")]
        for child_id in raw.get("childIds", []):
            child = by_id.get(child_id)
            if child is not None:
                parent.children.append(child)

    return by_id.get(nodes[0].get("nodeId", ""))


def _is_interesting(node: AXNode) -> bool:
    if node.role in _STRUCTURAL_ROLES:
        return True
    if node.properties.get("focusable"):
        return True
    if node.role in _CONTROL_ROLES:
        return True
    if node.role in _GENERIC_ROLES:
        return False
    return bool(node.name) or bool(node.value)


def _prune(node: AXNode, interesting_only: bool) -> list[AXNode]:
    """Return the nodes that take ``node``'s place in its parent."""
    if node.role in _NOISE_ROLES:
        return []

    children: list[AXNode] = []
    for child in node.children:
        children.extend(_prune(child, interesting_only))

    if node.ignored and node.role not in _STRUCTURAL_ROLES:
        return children

    if interesting_only:
        if node.role in _LEAF_ROLES:
            children = []
        else:
            children = [
                c for c in children
                if not (c.role == "StaticText" and c.name == node.name and not c.children)
            ]
        if not _is_interesting(node):
            return children

    node.children = children
    return [node]


def prune_tree(root: AXNode, interesting_only: bool) -> AXNode:
    """Drop noise and, when ``interesting_only``, uninteresting wrappers.

    The root always survives.
    """
    children: list[AXNode] = []
    for child in root.children:
        children.extend(_prune(child, interesting_only))
    root.children = children
    return root


def _walk(node: AXNode):
    yield node
    for child in node.children:
        yield from _walk(child)


class AccessibilityExtractor:
    """Reads the browser's accessibility tree for a page."""

    async def snapshot(
        self,
        page: Page,
        include_iframes: bool = True,
        interesting_only: bool = True,
    ) -> Optional[AXNode]:
        """Fetch the accessibility tree of ``page``.

        Args:
            page: Page to read.
            include_iframes: Graft same-process iframe trees under their owner nodes.
            interesting_only: Drop wrappers and nodes without semantic content.

        Returns:
            Root AXNode, or None when the browser reports no tree.
        """
        cdp = await page.context.new_cdp_session(page)
        try:
            result = await cdp.send("Accessibility.getFullAXTree")
            root = cdp_nodes_to_tree(result.get("nodes", []))
            if root is None:
                return None
            if include_iframes:
                await self._attach_frames(cdp, root)
        finally:
            await self._detach(cdp)

        prune_tree(root, interesting_only)
        lookup = self._make_lookup(page)
        for node in _walk(root):
            node.lookup = lookup
        return root

    async def _attach_frames(self, cdp: CDPSession, root: AXNode) -> None:
        frame_tree = await cdp.send("Page.getFrameTree")
        owners = {n.backend_node_id: n for n in _walk(root) if n.backend_node_id is not None}
        pending = list(frame_tree.get("frameTree", {}).get("childFrames", []))
        while pending:
            entry = pending.pop(0)
            frame_id = entry.get("frame", {}).get("id")
            pending.extend(entry.get("childFrames", []))
            try:
                owner = await cdp.send("DOM.getFrameOwner", {"frameId": frame_id})
                result = await cdp.send("Accessibility.getFullAXTree", {"frameId": frame_id})
            except Exception as e:
                # Out-of-process frames are not reachable from this session.
                logger.debug(f"Skipping frame {frame_id}: {e}")
                continue
            subtree = cdp_nodes_to_tree(result.get("nodes", []))
            owner_node = owners.get(owner.get("backendNodeId"))
            if subtree is None or owner_node is None:
                continue
            owner_node.children.append(subtree)
            owners.update(
                (n.backend_node_id, n) for n in _walk(subtree) if n.backend_node_id is not None
            )

    def _make_lookup(self, page: Page) -> ElementLookup:
        async def lookup(node: AXNode) -> Optional[ElementHandle]:
            if node.backend_node_id is None or page.is_closed():
                return None
            return await self._resolve_backend_node(page, node.backend_node_id)

        return lookup

    async def _resolve_backend_node(
        self, page: Page, backend_node_id: int
    ) -> Optional[ElementHandle]:
        token = uuid.uuid4().hex
        cdp = await page.context.new_cdp_session(page)
        try:
            object_id = await self._tag_backend_node(cdp, backend_node_id, token)
            if object_id is None:
                return None
            handle = await self._query_tagged(page, token)
            if handle is None:
                await self._untag(cdp, object_id)
            return handle
        finally:
            await self._detach(cdp)

    @staticmethod
    async def _tag_backend_node(
        cdp: CDPSession, backend_node_id: int, token: str
    ) -> Optional[str]:
        try:
            resolved = await cdp.send("DOM.resolveNode", {"backendNodeId": backend_node_id})
            object_id = resolved.get("object", {}).get("objectId")
            if not object_id:
                return None
            tagged = await cdp.send(
                "Runtime.callFunctionOn",
                {
                    "functionDeclaration": _TAG_ELEMENT_JS,
                    "objectId": object_id,
                    "arguments": [{"value": _UID_ATTRIBUTE}, {"value": token}],
                    "returnByValue": True,
                },
            )
        except Exception as e:
            logger.debug(f"Backend node {backend_node_id} is gone: {e}")
            return None
        return object_id if tagged.get("result", {}).get("value") else None

    @staticmethod
    async def _query_tagged(page: Page, token: str) -> Optional[ElementHandle]:
        selector = f'[{_UID_ATTRIBUTE}="{token}"]'
        for frame in page.frames:
            try:
                handle = await frame.query_selector(selector)
            except PlaywrightError as e:
                logger.debug(f"Frame query failed for {frame.url}: {e}")
                continue
            if handle is None:
                continue
            try:
                await handle.evaluate("(el, attr) => el.removeAttribute(attr)", _UID_ATTRIBUTE)
            except PlaywrightError as e:
                logger.debug(f"Element detached during lookup: {e}")
                return None
            return handle
        return None

    @staticmethod
    async def _untag(cdp: CDPSession, object_id: str) -> None:
        try:
            await cdp.send(
                "Runtime.callFunctionOn",
                {
                    "functionDeclaration": _UNTAG_ELEMENT_JS,
                    "objectId": object_id,
                    "arguments": [{"value": _UID_ATTRIBUTE}],
                },
            )
        except Exception as e:
            logger.debug(f"Could not remove lookup tag: {e}")

    @staticmethod
    async def _detach(cdp: CDPSession) -> None:
        try:
            await cdp.detach()
        except Exception as e:
            logger.debug(f"CDP session detach failed: {e}")
