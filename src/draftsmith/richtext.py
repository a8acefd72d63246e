"""
Markdown <-> rich-text tree conversion.

The editor works on a tree of typed nodes (headings, paragraphs, quotes,
lists, code blocks, rules) whose leaves are text nodes carrying marks (bold,
italic, code, strike, highlight, link). Documents are stored as markdown, so
every load and save crosses this boundary.

Only the subset of markdown the editor can produce is understood. Converting
is not byte-exact (list markers, emphasis spelling and ordered-list numbers
are normalized), but re-converting the output yields the same tree.

Example:
    >>> tree = markdown_to_tree("# Title\\n\\nSome **bold** text.")
    >>> tree_to_markdown(tree)
    '# Title\\n\\nSome **bold** text.\\n'
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

# Block node types
DOC = "doc"
HEADING = "heading"
PARAGRAPH = "paragraph"
BLOCKQUOTE = "blockquote"
BULLET_LIST = "bullet_list"
ORDERED_LIST = "ordered_list"
LIST_ITEM = "list_item"
CODE_BLOCK = "code_block"
HORIZONTAL_RULE = "horizontal_rule"
TEXT = "text"

# Mark types
BOLD = "bold"
ITALIC = "italic"
CODE = "code"
STRIKE = "strike"
HIGHLIGHT = "highlight"
LINK = "link"


@dataclass
class Mark:
    """Inline formatting applied to a text node."""

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)


@dataclass
class RichNode:
    """A node of the editor tree."""

    type: str
    content: list[RichNode] = field(default_factory=list)
    text: str | None = None
    marks: list[Mark] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)

    def has_mark(self, mark_type: str) -> bool:
        return any(m.type == mark_type for m in self.marks)

    def mark(self, mark_type: str) -> Mark | None:
        return next((m for m in self.marks if m.type == mark_type), None)

    @property
    def plain_text(self) -> str:
        """Concatenated text of this node and its descendants."""
        if self.text is not None:
            return self.text
        return "".join(child.plain_text for child in self.content)


def text_node(text: str, *marks: Mark) -> RichNode:
    return RichNode(TEXT, text=text, marks=list(marks))


# ---------------------------------------------------------------------------
# markdown -> tree
# ---------------------------------------------------------------------------

_FENCE_OPEN = re.compile(r"^\s*```(.*)$")
_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_RULE = re.compile(r"^ {0,3}(?:-{3,}|\*{3,}|_{3,})\s*$")
_QUOTE = re.compile(r"^\s*>\s?(.*)$")
_BULLET_ITEM = re.compile(r"^\s*[-*+]\s+(.*)$")
_ORDERED_ITEM = re.compile(r"^\s*\d+[.)]\s+(.*)$")


def markdown_to_tree(markdown: str) -> RichNode:
    """Parse markdown into a ``doc`` node."""
    builder = _BlockBuilder()
    for line in markdown.replace("\r\n", "\n").split("\n"):
        builder.feed(line)
    return builder.finish()


class _BlockBuilder:
    """Line-at-a-time block parser holding the open list, quote and code state."""

    def __init__(self) -> None:
        self.blocks: list[RichNode] = []
        self.open_list: RichNode | None = None
        self.quote_lines: list[str] = []
        self.code_lines: list[str] | None = None
        self.code_language = ""

    def feed(self, line: str) -> None:
        if self.code_lines is not None:
            if line.strip() == "```":
                self._close_code()
            else:
                self.code_lines.append(line)
            return

        fence = _FENCE_OPEN.match(line)
        if fence:
            self._flush()
            self.code_lines = []
            self.code_language = fence.group(1).strip()
            return

        heading = _HEADING.match(line)
        if heading:
            self._flush()
            self.blocks.append(
                RichNode(
                    HEADING,
                    content=parse_inline(heading.group(2).strip()),
                    attrs={"level": len(heading.group(1))},
                )
            )
            return

        if _RULE.match(line):
            self._flush()
            self.blocks.append(RichNode(HORIZONTAL_RULE))
            return

        quote = _QUOTE.match(line)
        if quote:
            self._flush_list()
            self.quote_lines.append(quote.group(1).strip())
            return
        self._flush_quote()

        bullet = _BULLET_ITEM.match(line)
        if bullet:
            self._add_item(BULLET_LIST, bullet.group(1))
            return

        ordered = _ORDERED_ITEM.match(line)
        if ordered:
            self._add_item(ORDERED_LIST, ordered.group(1))
            return

        if not line.strip():
            self._flush_list()
            return

        self._flush_list()
        self.blocks.append(RichNode(PARAGRAPH, content=parse_inline(line.strip())))

    def finish(self) -> RichNode:
        if self.code_lines is not None:
            self._close_code()
        self._flush()
        return RichNode(DOC, content=self.blocks)

    def _add_item(self, list_type: str, text: str) -> None:
        if self.open_list is None or self.open_list.type != list_type:
            self._flush_list()
            self.open_list = RichNode(list_type)
        paragraph = RichNode(PARAGRAPH, content=parse_inline(text.strip()))
        self.open_list.content.append(RichNode(LIST_ITEM, content=[paragraph]))

    def _close_code(self) -> None:
        lines = self.code_lines or []
        while lines and not lines[-1].strip():
            lines.pop()
        code = "\n".join(lines)
        self.blocks.append(
            RichNode(
                CODE_BLOCK,
                content=[text_node(code)] if code else [],
                attrs={"language": self.code_language or None},
            )
        )
        self.code_lines = None
        self.code_language = ""

    def _flush(self) -> None:
        self._flush_list()
        self._flush_quote()

    def _flush_list(self) -> None:
        if self.open_list is not None:
            self.blocks.append(self.open_list)
            self.open_list = None

    def _flush_quote(self) -> None:
        if not self.quote_lines:
            return
        joined = " ".join(line for line in self.quote_lines if line)
        self.blocks.append(
            RichNode(BLOCKQUOTE, content=[RichNode(PARAGRAPH, content=parse_inline(joined))])
        )
        self.quote_lines = []


# ---------------------------------------------------------------------------
# Inline parsing
# ---------------------------------------------------------------------------

_Segment = str | RichNode


@dataclass(frozen=True)
class _InlineRule:
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], RichNode]


def _group(match: re.Match[str]) -> str:
    return next(g for g in match.groups() if g is not None)


# Order is precedence: a later rule never sees text an earlier rule consumed
INLINE_RULES: tuple[_InlineRule, ...] = (
    _InlineRule(
        re.compile(r"\*\*\*(?!\s)(.+?)(?<!\s)\*\*\*|(?<!\w)___(?!\s)(.+?)(?<!\s)___(?!\w)"),
        lambda m: text_node(_group(m), Mark(BOLD), Mark(ITALIC)),
    ),
    _InlineRule(
        re.compile(r"\*\*(?!\s)(.+?)(?<!\s)\*\*|(?<!\w)__(?!\s)(.+?)(?<!\s)__(?!\w)"),
        lambda m: text_node(_group(m), Mark(BOLD)),
    ),
    _InlineRule(
        re.compile(r"\*(?![\s*])(.+?)(?<![\s*])\*|(?<!\w)_(?![\s_])(.+?)(?<![\s_])_(?!\w)"),
        lambda m: text_node(_group(m), Mark(ITALIC)),
    ),
    _InlineRule(
        re.compile(r"`([^`]+)`"),
        lambda m: text_node(m.group(1), Mark(CODE)),
    ),
    _InlineRule(
        re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)"),
        lambda m: text_node(m.group(1), Mark(LINK, {"href": m.group(2)})),
    ),
    _InlineRule(
        re.compile(r"~~(?!\s)(.+?)(?<!\s)~~"),
        lambda m: text_node(m.group(1), Mark(STRIKE)),
    ),
    _InlineRule(
        re.compile(r"==(?!\s)(.+?)(?<!\s)=="),
        lambda m: text_node(m.group(1), Mark(HIGHLIGHT)),
    ),
)


def parse_inline(text: str) -> list[RichNode]:
    """Split one line of markdown into marked text nodes."""
    segments: list[_Segment] = [text]
    for rule in INLINE_RULES:
        segments = [
            piece
            for segment in segments
            for piece in (_apply_rule(rule, segment) if isinstance(segment, str) else [segment])
        ]
    return [text_node(s) if isinstance(s, str) else s for s in segments if s != ""]


def _apply_rule(rule: _InlineRule, text: str) -> list[_Segment]:
    pieces: list[_Segment] = []
    cursor = 0
    for match in rule.pattern.finditer(text):
        pieces.append(text[cursor : match.start()])
        pieces.append(rule.build(match))
        cursor = match.end()
    pieces.append(text[cursor:])
    return pieces


# ---------------------------------------------------------------------------
# tree -> markdown
# ---------------------------------------------------------------------------


def tree_to_markdown(node: RichNode) -> str:
    """Render a tree (usually a ``doc`` node) back to markdown."""
    if node.type == DOC:
        blocks = [_render_block(child) for child in node.content]
        return "\n\n".join(blocks) + "\n" if blocks else ""
    return _render_block(node) + "\n"


def _render_block(node: RichNode) -> str:
    if node.type == HEADING:
        level = min(max(int(node.attrs.get("level", 1)), 1), 6)
        return "#" * level + " " + render_inline(node.content)
    if node.type == PARAGRAPH:
        return render_inline(node.content)
    if node.type == BLOCKQUOTE:
        inner = "\n\n".join(_render_block(child) for child in node.content)
        return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
    if node.type == BULLET_LIST:
        return "\n".join("- " + _render_item(item) for item in node.content)
    if node.type == ORDERED_LIST:
        return "\n".join(
            f"{number}. " + _render_item(item)
            for number, item in enumerate(node.content, start=1)
        )
    if node.type == CODE_BLOCK:
        language = node.attrs.get("language") or ""
        return f"```{language}\n{node.plain_text}\n```"
    if node.type == HORIZONTAL_RULE:
        return "---"
    if node.type == TEXT:
        return render_inline([node])
    # Unknown container: render its children as blocks
    return "\n\n".join(_render_block(child) for child in node.content)


def _render_item(item: RichNode) -> str:
    if not item.content:
        return ""
    first, rest = item.content[0], item.content[1:]
    lines = [_render_block(first)]
    for child in rest:
        lines.extend("  " + line for line in _render_block(child).split("\n"))
    return "\n".join(lines)


def render_inline(nodes: list[RichNode]) -> str:
    """Render inline nodes back to marker syntax."""
    parts: list[str] = []
    for node in nodes:
        if node.type != TEXT:
            parts.append(render_inline(node.content))
            continue
        text = node.text or ""
        if node.has_mark(CODE):
            text = f"`{text}`"
        if node.has_mark(BOLD) and node.has_mark(ITALIC):
            text = f"***{text}***"
        elif node.has_mark(BOLD):
            text = f"**{text}**"
        elif node.has_mark(ITALIC):
            text = f"*{text}*"
        if node.has_mark(STRIKE):
            text = f"~~{text}~~"
        if node.has_mark(HIGHLIGHT):
            text = f"=={text}=="
        link = node.mark(LINK)
        if link is not None:
            text = f"[{text}]({link.attrs.get('href', '')})"
        parts.append(text)
    return "".join(parts)


# ---------------------------------------------------------------------------
# JSON form
# ---------------------------------------------------------------------------


def tree_to_dict(node: RichNode) -> dict[str, Any]:
    """Convert a tree to the JSON shape editors exchange."""
    data: dict[str, Any] = {"type": node.type}
    if node.attrs:
        data["attrs"] = dict(node.attrs)
    if node.text is not None:
        data["text"] = node.text
    if node.marks:
        data["marks"] = [
            {"type": m.type, **({"attrs": dict(m.attrs)} if m.attrs else {})}
            for m in node.marks
        ]
    if node.content:
        data["content"] = [tree_to_dict(child) for child in node.content]
    return data


def tree_from_dict(data: dict[str, Any]) -> RichNode:
    """Build a tree from its JSON shape."""
    return RichNode(
        type=data["type"],
        content=[tree_from_dict(child) for child in data.get("content", [])],
        text=data.get("text"),
        marks=[Mark(m["type"], dict(m.get("attrs", {}))) for m in data.get("marks", [])],
        attrs=dict(data.get("attrs", {})),
    )
