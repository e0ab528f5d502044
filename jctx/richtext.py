"""Atlassian Document Format (ADF) to markdown.

Jira cloud returns descriptions and comment bodies as ADF trees, datacenter
returns wiki-markup strings. ``render_body`` accepts either and never raises.

The tree is parsed once into ``RichTextNode`` objects whose ``kind`` is a closed
enum; node types we have never seen map to ``NodeKind.GENERIC`` and are rendered
by concatenating their children, so plain text inside them survives.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class NodeKind(Enum):
    TEXT = "text"
    LINE_BREAK = "hardBreak"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    CODE_BLOCK = "codeBlock"
    INLINE_CARD = "inlineCard"
    BLOCK_CARD = "blockCard"
    GENERIC = "generic"

    @classmethod
    def from_type(cls, raw: Any) -> "NodeKind":
        try:
            kind = cls(raw)
        except ValueError:
            return cls.GENERIC
        return kind


class RichTextNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    text: str = ""
    level: int = 1
    url: str = ""
    children: tuple["RichTextNode", ...] = ()

    @classmethod
    def parse(cls, raw: Any) -> "RichTextNode | None":
        """Build a node from decoded JSON; anything that isn't a dict is dropped."""
        if not isinstance(raw, dict):
            return None
        attrs = raw.get("attrs") if isinstance(raw.get("attrs"), dict) else {}
        content = raw.get("content") if isinstance(raw.get("content"), list) else []
        children = tuple(child for child in (cls.parse(c) for c in content) if child is not None)
        text = raw.get("text")
        level = attrs.get("level")
        url = attrs.get("url")
        return cls(
            kind=NodeKind.from_type(raw.get("type")),
            text=text if isinstance(text, str) else "",
            level=level if isinstance(level, int) and level > 0 else 1,
            url=url if isinstance(url, str) else "",
            children=children,
        )


def _render_children(node: RichTextNode) -> str:
    return "".join(_render_node(child) for child in node.children)


def _render_list(node: RichTextNode, ordered: bool) -> str:
    lines = []
    for index, item in enumerate(node.children, start=1):
        bullet = f"{index}. " if ordered else "- "
        lines.append(bullet + _render_node(item).strip() + "\n")
    return "".join(lines) + "\n"


def _render_node(node: RichTextNode) -> str:
    match node.kind:
        case NodeKind.TEXT:
            return node.text
        case NodeKind.LINE_BREAK:
            return "\n"
        case NodeKind.PARAGRAPH:
            return _render_children(node) + "\n\n"
        case NodeKind.HEADING:
            prefix = "#" * node.level + " " if node.children else ""
            return prefix + _render_children(node) + "\n\n"
        case NodeKind.BULLET_LIST:
            return _render_list(node, ordered=False)
        case NodeKind.ORDERED_LIST:
            return _render_list(node, ordered=True)
        case NodeKind.LIST_ITEM:
            return "".join(_render_node(child).strip() + " " for child in node.children)
        case NodeKind.CODE_BLOCK:
            return "```\n" + _render_children(node) + "\n```\n\n"
        case NodeKind.INLINE_CARD | NodeKind.BLOCK_CARD:
            return f"[{node.url}]({node.url})" if node.url else ""
        case _:
            return _render_children(node)


def render(document: Any) -> str:
    """Render an ADF document (decoded JSON) to trimmed markdown."""
    root = RichTextNode.parse(document)
    if root is None or not root.children:
        return ""
    return _render_children(root).strip()


def render_body(body: Any) -> str:
    """Render a description or comment body whatever shape the tracker sent."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, dict) and isinstance(body.get("content"), list):
        return render(body)
    return json.dumps(body, indent=2)
