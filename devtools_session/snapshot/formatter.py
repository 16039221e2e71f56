"""Text rendering of snapshots."""
from typing import Any

from .models import Snapshot, SnapshotNode

INDENT = "  "
_MAX_TEXT = 200

# Node properties worth showing; the rest of what the browser reports
# (settable, editable, hiddenRoot, ...) is omitted.
RENDERED_PROPERTIES: tuple[str, ...] = (
    "focusable", "focused", "modal", "disabled", "expanded", "selected",
    "checked", "pressed", "level", "valuemin", "valuemax", "valuetext",
    "autocomplete", "haspopup", "invalid", "orientation", "multiline",
    "multiselectable", "readonly", "required", "keyshortcuts", "roledescription",
)
_RENDERED = frozenset(RENDERED_PROPERTIES)


def _quote(text: Any) -> str:
    text = str(text).replace("\n", " ")
    if len(text) > _MAX_TEXT:
        text = text[:_MAX_TEXT] + "..."
    return f'"{text}"'


def format_node_line(node: SnapshotNode) -> str:
    """Render a single node without its children.

    Example: ``uid=3_1 button "Submit" focusable disabled``
    """
    parts = [f"uid={node.uid}", node.role or "generic"]

    if node.name:
        parts.append(_quote(node.name))
    if node.value is not None and node.value != node.name:
        parts.append(f"value={_quote(node.value)}")
    if node.description:
        parts.append(f"description={_quote(node.description)}")

    for key, value in node.properties.items():
        if key not in _RENDERED:
            continue
        # CDP reports tristate and token values as strings.
        if value in ("true", "false"):
            value = value == "true"
        if value is None or value is False or value == "":
            continue
        if value is True:
            parts.append(key)
        else:
            parts.append(f"{key}={_quote(value)}")

    return " ".join(parts)


def format_snapshot_node(node: SnapshotNode, depth: int = 0) -> str:
    """Render ``node`` and its subtree, one node per line."""
    lines: list[str] = []
    stack = [(node, depth)]
    while stack:
        current, level = stack.pop()
        lines.append(f"{INDENT * level}{format_node_line(current)}")
        stack.extend((child, level + 1) for child in reversed(current.children))
    return "\n".join(lines)


def format_snapshot(snapshot: Snapshot) -> str:
    return format_snapshot_node(snapshot.root)
