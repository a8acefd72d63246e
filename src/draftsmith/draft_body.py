"""
Draft-body normalization.

A model asked for "just the scene" may still wrap it in any mixture of a
``<document>`` tag, a code fence, the header lines of a ``draft-apply``
block and a metadata header. ``normalize_draft_body`` peels those layers off
and returns the canonical body meant for storage.

The normalizer is a pipeline of small stages. Each stage removes at most one
layer and returns its input unchanged when the layer is absent, so stages can
be tested and reused on their own.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from draftsmith.directives import APPLY_FENCE, fences_balanced
from draftsmith.frontmatter import parse_frontmatter
from draftsmith.logging import get_logger

logger = get_logger("draft_body")

WRAPPER_TAGS = ("document", "draft")

_TAG_NAMES = "|".join(WRAPPER_TAGS)
_WHOLE_TAG = re.compile(
    rf"^\s*<({_TAG_NAMES})\b[^>]*>(.*)</\1\s*>\s*$", re.DOTALL | re.IGNORECASE
)
_EMBEDDED_TAG = re.compile(
    rf"<({_TAG_NAMES})\b[^>]*>(.*?)</\1\s*>", re.DOTALL | re.IGNORECASE
)
_WHOLE_FENCE = re.compile(r"^\s*```[\w-]*[ \t]*\r?\n(.*?)\r?\n?[ \t]*```\s*$", re.DOTALL)
_EMBEDDED_FENCE = re.compile(r"```[\w-]*[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)
_HEADER_LINE = re.compile(r"^\s*[A-Za-z_][\w-]*\s*:")

Stage = Callable[[str, str], str]
"""A stage receives (text, pass_input) and returns text with one layer removed."""


def strip_tag_wrapper(text: str, pass_input: str = "") -> str:
    """Remove a ``<document>``/``<draft>`` wrapper, whole-string match first."""
    match = _WHOLE_TAG.match(text) or _EMBEDDED_TAG.search(text)
    if match is None:
        return text
    return match.group(2).strip()


def strip_code_fence(text: str, pass_input: str = "") -> str:
    """Remove one code fence, preferring one that wraps the whole text."""
    match = _WHOLE_FENCE.match(text)
    if match is not None and not fences_balanced(match.group(1)):
        # First and last fences belong to different blocks
        match = None
    match = match or _EMBEDDED_FENCE.search(text)
    if match is None:
        return text
    return match.group(1).strip()


def strip_directive_header(text: str, pass_input: str = "") -> str:
    """
    Remove ``target:``/``action:`` style header lines up through ``---``.

    Only applies when the pass input carried the fenced-directive marker; a
    plain draft that happens to contain ``key: value`` lines is left alone.
    """
    if APPLY_FENCE not in pass_input:
        return text

    lines = text.splitlines()
    saw_header = False
    for idx, line in enumerate(lines):
        if line.strip() == "---":
            if not saw_header:
                return text
            return "\n".join(lines[idx + 1 :]).strip()
        if not line.strip():
            continue
        if not _HEADER_LINE.match(line):
            return text
        saw_header = True
    return text


def strip_metadata_header(text: str, pass_input: str = "") -> str:
    """Remove one leading metadata header."""
    metadata, body = parse_frontmatter(text)
    if not metadata and body == text:
        return text
    return body.strip()


def trim(text: str, pass_input: str = "") -> str:
    return text.strip()


DEFAULT_STAGES: tuple[Stage, ...] = (
    strip_tag_wrapper,
    strip_code_fence,
    strip_directive_header,
    strip_metadata_header,
    trim,
)


def normalize_once(text: str, stages: Sequence[Stage] = DEFAULT_STAGES) -> str:
    """Run every stage once, left to right."""
    result = text
    for stage in stages:
        result = stage(result, text)
    return result


def normalize_draft_body(text: str, stages: Sequence[Stage] = DEFAULT_STAGES) -> str:
    """
    Reduce a raw assistant reply to its canonical draft body.

    Passes repeat until nothing changes, so normalizing an already normalized
    body returns it unchanged. Every stage that changes its input shortens
    it, which bounds the number of passes.
    """
    current = text
    passes = 0
    while True:
        result = normalize_once(current, stages)
        passes += 1
        if result == current:
            break
        current = result
    if passes > 2:
        logger.debug("Draft body converged after %d passes", passes)
    return current
