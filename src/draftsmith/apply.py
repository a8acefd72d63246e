"""
Executing approved apply directives.

Directives are proposals; a caller decides which to keep and hands each
approved one to ``apply_directive``. Directives without a real target are
display-only and refused.
"""

from __future__ import annotations

import re

from draftsmith.errors import DirectiveError, DocumentNotFoundError
from draftsmith.frontmatter import Document, parse_frontmatter
from draftsmith.logging import get_logger
from draftsmith.models import ApplyDirective, DirectiveAction
from draftsmith.storage import DocumentStorage

logger = get_logger("apply")

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*$")


async def apply_directive(storage: DocumentStorage, directive: ApplyDirective) -> Document:
    """
    Write ``directive`` through ``storage`` and return the resulting document.

    Raises:
        DirectiveError: the directive has no usable target.
        DocumentWriteError: storage failed to persist the result.
    """
    if not directive.is_actionable:
        raise DirectiveError(
            f"Directive has no target path ({directive.target!r}); it can only be displayed"
        )

    metadata, body = parse_frontmatter(directive.content)
    existing = await _read_existing(storage, directive.target)

    if directive.action is DirectiveAction.CREATE or existing is None:
        result = Document(metadata=metadata, body=body)
    elif directive.action is DirectiveAction.REPLACE:
        new_body = (
            replace_section(existing.body, directive.section, body)
            if directive.section
            else body
        )
        result = Document(metadata={**existing.metadata, **metadata}, body=new_body)
    elif directive.action is DirectiveAction.APPEND:
        result = Document(
            metadata={**existing.metadata, **metadata},
            body=_join_blocks(existing.body, body),
        )
    else:
        result = Document(metadata={**existing.metadata, **metadata}, body=existing.body)

    await storage.write(directive.target, result.metadata, result.body)
    logger.info("Applied %s directive to %s", directive.action.value, directive.target)
    result.path = directive.target
    return result


async def _read_existing(storage: DocumentStorage, path: str) -> Document | None:
    try:
        return await storage.read(path)
    except DocumentNotFoundError:
        return None


def replace_section(body: str, section: str, replacement: str) -> str:
    """
    Replace the section headed ``section`` with ``replacement``.

    ``section`` may be the full heading line (``"## Opening"``) or just its
    text. The section runs to the next heading of the same or higher level.
    The original heading is kept unless ``replacement`` starts with a heading
    of its own. A missing section is appended.
    """
    lines = body.split("\n")
    start, level = _find_heading(lines, section)
    replacement = replacement.strip("\n")

    starts_with_heading = _HEADING.match(replacement.split("\n", 1)[0]) is not None

    if start is None:
        heading = section.strip() if section.lstrip().startswith("#") else f"## {section.strip()}"
        addition = replacement if starts_with_heading else f"{heading}\n\n{replacement}"
        return _join_blocks(body, addition)

    end = len(lines)
    for idx in range(start + 1, len(lines)):
        match = _HEADING.match(lines[idx])
        if match and len(match.group(1)) <= level:
            end = idx
            break

    new_section = replacement if starts_with_heading else f"{lines[start]}\n\n{replacement}"
    tail = "\n".join(lines[end:])
    head = "\n".join(lines[:start])
    parts = [part for part in (head.rstrip("\n"), new_section, tail.strip("\n")) if part]
    result = "\n\n".join(parts)
    return result + "\n" if body.endswith("\n") else result


def _find_heading(lines: list[str], section: str) -> tuple[int | None, int]:
    wanted = section.strip()
    wanted_text = wanted.lstrip("#").strip().lower()
    for idx, line in enumerate(lines):
        match = _HEADING.match(line)
        if match is None:
            continue
        if wanted.startswith("#"):
            if line.strip() == wanted:
                return idx, len(match.group(1))
        elif match.group(2).strip().lower() == wanted_text:
            return idx, len(match.group(1))
    return None, 0


def _join_blocks(first: str, second: str) -> str:
    first = first.rstrip("\n")
    second = second.strip("\n")
    if not first:
        return second
    return f"{first}\n\n{second}"
