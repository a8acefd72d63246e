"""
Apply-directive extraction.

Models propose file edits inside their replies using one of two embedded
syntaxes, often mixed in one reply and surrounded by prose.

Fenced form::

    ```draft-apply
    target: books/one/chapters/03/scene-02/draft.md
    action: replace
    section: "## Opening"
    ---
    (body, optionally starting with its own metadata header)
    ```

Tag form::

    <document path="world/places/harbor.md" action="create">
    (body, optionally wrapped in a single markdown code fence)
    </document>

Directives are proposals. Nothing here writes to disk; see
``draftsmith.apply`` for executing an approved directive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from draftsmith.frontmatter import parse_frontmatter
from draftsmith.logging import get_logger
from draftsmith.models import UNKNOWN_TARGET, ApplyDirective, DirectiveAction

logger = get_logger("directives")

APPLY_FENCE = "```draft-apply"
FENCE = "```"
DIRECTIVE_TAG = "document"

# Accepted attribute names for the tag form's target, highest priority first
TARGET_ATTRIBUTES = ("path", "target", "file", "filename")

# A fenced block that has not shown its separator after this many lines is
# treated as having no header separator at all
MAX_HEADER_LINES = 10

_FENCE_OPEN = re.compile(r"^[ \t]*```draft-apply[ \t]*$")
_HEADER_LINE = re.compile(r"^([A-Za-z_][\w-]*)\s*:(.*)$")
_TAG_OPEN = re.compile(rf"<{DIRECTIVE_TAG}\b[^>]*>", re.IGNORECASE)
_TAG_PAIR = re.compile(
    rf"<{DIRECTIVE_TAG}\b([^>]*)>(.*?)</{DIRECTIVE_TAG}\s*>",
    re.IGNORECASE | re.DOTALL,
)
_ATTRIBUTE = re.compile(r"""([A-Za-z_][\w-]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""")
_WRAPPING_FENCE = re.compile(r"^```(?:markdown|md)?[ \t]*\r?\n(.*?)\r?\n?```$", re.DOTALL | re.IGNORECASE)
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass
class _Region:
    """A directive region of the reply, valid or not."""

    start: int
    end: int
    directive: ApplyDirective | None


def has_directives(text: str) -> bool:
    """Cheap check for whether ``text`` may contain apply directives."""
    return APPLY_FENCE in text or _TAG_OPEN.search(text) is not None


def extract_directives(text: str) -> tuple[list[ApplyDirective], str]:
    """
    Recover every apply directive in ``text``.

    Returns:
        (directives, display_text): directives of both syntaxes in the order
        they appear, and the reply with all directive regions removed.
    """
    if not has_directives(text):
        return [], text.strip()

    regions = _find_regions(text)
    directives = [r.directive for r in regions if r.directive is not None]
    logger.debug(
        "Found %d directive region(s), %d valid", len(regions), len(directives)
    )
    return directives, _remove_regions(text, regions)


def strip_directive_markup(text: str) -> str:
    """Return the conversational prose of ``text`` with directive regions removed."""
    if not has_directives(text):
        return text.strip()
    return _remove_regions(text, _find_regions(text))


def parse_directives(text: str) -> list[ApplyDirective]:
    """Shorthand for ``extract_directives(text)[0]``."""
    return extract_directives(text)[0]


# ---------------------------------------------------------------------------
# Region discovery
# ---------------------------------------------------------------------------


def _find_regions(text: str) -> list[_Region]:
    fenced = list(_find_fenced_regions(text))
    tagged = [
        region
        for region in _find_tag_regions(text)
        if not any(f.start <= region.start < f.end for f in fenced)
    ]
    return sorted(fenced + tagged, key=lambda r: r.start)


def _remove_regions(text: str, regions: list[_Region]) -> str:
    parts: list[str] = []
    cursor = 0
    for region in regions:
        parts.append(text[cursor : region.start])
        cursor = region.end
    parts.append(text[cursor:])
    return _EXCESS_BLANK_LINES.sub("\n\n", "".join(parts)).strip()


def _find_fenced_regions(text: str):
    lines = text.splitlines(keepends=True)
    offsets: list[int] = []
    pos = 0
    for line in lines:
        offsets.append(pos)
        pos += len(line)

    i = 0
    while i < len(lines):
        if not _FENCE_OPEN.match(lines[i].rstrip("\r\n")):
            i += 1
            continue

        interior: list[str] = []
        nested = False
        close_idx = None
        for j in range(i + 1, len(lines)):
            stripped = lines[j].strip()
            if stripped.startswith(FENCE):
                info = stripped[len(FENCE) :].strip()
                if nested:
                    if not info:
                        nested = False
                elif info:
                    nested = True
                else:
                    close_idx = j
                    break
            interior.append(lines[j])

        if close_idx is None:
            logger.debug("Unterminated %s block at offset %d ignored", APPLY_FENCE, offsets[i])
            return

        yield _Region(
            start=offsets[i],
            end=offsets[close_idx] + len(lines[close_idx]),
            directive=_parse_fenced_interior("".join(interior)),
        )
        i = close_idx + 1


def _parse_fenced_interior(interior: str) -> ApplyDirective | None:
    lines = interior.splitlines()
    target = ""
    action = DirectiveAction.CREATE
    section: str | None = None
    body_start: int | None = None
    header_end = 0

    for idx, raw in enumerate(lines):
        line = raw.strip()
        if line == "---":
            body_start = idx + 1
            break
        if idx >= MAX_HEADER_LINES:
            break
        if not line:
            continue
        match = _HEADER_LINE.match(line)
        if match is None:
            break
        key, value = match.group(1).lower(), match.group(2).strip()
        if key == "target":
            target = value
        elif key == "action":
            action = DirectiveAction.parse(value)
        elif key == "section":
            section = _unquote(value) or None
        header_end = idx + 1

    if not target:
        logger.debug("Dropping %s block without a target", APPLY_FENCE)
        return None

    start = body_start if body_start is not None else header_end
    content = "\n".join(lines[start:]).strip()
    return _make_directive(target, action, section, content, syntax="fenced")


def _find_tag_regions(text: str):
    for match in _TAG_PAIR.finditer(text):
        attrs = _parse_attributes(match.group(1))
        target = next((attrs[name] for name in TARGET_ATTRIBUTES if attrs.get(name)), "")
        content = _strip_wrapping_fence(match.group(2).strip())

        directive: ApplyDirective | None = None
        if content:
            directive = _make_directive(
                target or UNKNOWN_TARGET,
                DirectiveAction.parse(attrs.get("action")),
                attrs.get("section") or None,
                content,
                syntax="tag",
            )
        else:
            logger.debug("Dropping empty <%s> directive", DIRECTIVE_TAG)

        yield _Region(start=match.start(), end=match.end(), directive=directive)


def _parse_attributes(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTRIBUTE.finditer(raw):
        name = match.group(1).lower()
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attrs.setdefault(name, value.strip())
    return attrs


def _strip_wrapping_fence(content: str) -> str:
    match = _WRAPPING_FENCE.match(content)
    if match is None or not fences_balanced(match.group(1)):
        return content
    return match.group(1).strip()


def fences_balanced(interior: str) -> bool:
    """
    Check that the fence lines inside a candidate wrapping fence pair up.

    A language-tagged fence opens a nested block that the next bare fence
    closes. A bare fence with nothing open would close the wrapper itself,
    so the outer markers belong to two separate blocks.
    """
    nested = False
    for line in interior.splitlines():
        stripped = line.strip()
        if not stripped.startswith(FENCE):
            continue
        info = stripped[len(FENCE) :].strip()
        if nested:
            if not info:
                nested = False
        elif info:
            nested = True
        else:
            return False
    return not nested


def _make_directive(
    target: str,
    action: DirectiveAction,
    section: str | None,
    content: str,
    syntax: str,
) -> ApplyDirective:
    metadata, body = parse_frontmatter(content)
    has_header = bool(metadata) or body != content
    return ApplyDirective(
        target=target,
        action=action,
        content=content,
        section=section,
        metadata=metadata if has_header else None,
        syntax=syntax,
    )


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value.strip("\"'")
