"""
Flat frontmatter codec.

Documents are stored as an optional metadata header followed by a markdown
body:

```markdown
---
title: The Lighthouse
tags: ["draft", "act-one"]
words: 1200
---

# The Lighthouse
...
```

Only flat ``key: value`` pairs are supported. Values decode to lists of
strings, booleans, numbers, or strings; anything that does not decode
cleanly stays a raw string. Parsing never raises.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from draftsmith.logging import get_logger

logger = get_logger("frontmatter")

DELIMITER = "---"

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")
_TITLE_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Split ``text`` into its metadata header and body.

    Returns ``({}, text)`` when the text has no header or the header is never
    closed.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != DELIMITER:
        return {}, text

    for idx in range(1, len(lines)):
        if lines[idx].startswith(DELIMITER):
            metadata = _parse_header_lines(lines[1:idx])
            rest = lines[idx + 1 :]
            # Drop the blank separator line written by serialize_frontmatter
            if rest and rest[0].strip("\r\n") == "":
                rest = rest[1:]
            return metadata, "".join(rest)

    logger.debug("Frontmatter opened but never closed; treating input as body")
    return {}, text


def serialize_frontmatter(metadata: dict[str, Any] | None, body: str) -> str:
    """Render ``metadata`` as a header in front of ``body``."""
    if not metadata:
        return body

    header = [f"{key}: {_encode_value(value)}" for key, value in metadata.items()]
    return f"{DELIMITER}\n" + "\n".join(header) + f"\n{DELIMITER}\n\n{body}"


def has_frontmatter(text: str) -> bool:
    """Check whether ``text`` starts with a closed metadata header."""
    metadata, body = parse_frontmatter(text)
    return bool(metadata) or body != text


def extract_title(body: str) -> str | None:
    """Return the text of the first level-one heading, if any."""
    match = _TITLE_PATTERN.search(body)
    return match.group(1).strip() if match else None


@dataclass
class Document:
    """The persisted unit: metadata header plus body text."""

    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    path: str | None = None

    @classmethod
    def from_text(cls, text: str, path: str | None = None) -> Document:
        metadata, body = parse_frontmatter(text)
        return cls(metadata=metadata, body=body, path=path)

    def to_text(self) -> str:
        return serialize_frontmatter(self.metadata, self.body)

    @property
    def title(self) -> str | None:
        title = self.metadata.get("title")
        if isinstance(title, str) and title:
            return title
        return extract_title(self.body)


# ---------------------------------------------------------------------------
# Value decoding
# ---------------------------------------------------------------------------


def _parse_header_lines(lines: list[str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key:
            result[key] = decode_value(value.strip())
    return result


def decode_value(value: str) -> Any:
    """Decode a single header value."""
    if value.startswith("[") and value.endswith("]"):
        return _decode_list(value)
    if value == "true":
        return True
    if value == "false":
        return False
    if _NUMBER_PATTERN.match(value):
        return float(value) if "." in value else int(value)
    if _is_quoted(value):
        if value[0] == '"':
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, str):
                return decoded
        return value[1:-1]
    return value


def _decode_list(value: str) -> list[str]:
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        decoded = None
    if isinstance(decoded, list):
        return [item if isinstance(item, str) else json.dumps(item) for item in decoded]

    items = (_strip_quotes(part.strip()) for part in value[1:-1].split(","))
    return [item for item in items if item]


def _is_quoted(value: str) -> bool:
    return len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'")


def _strip_quotes(value: str) -> str:
    if value[:1] in ('"', "'"):
        value = value[1:]
    if value[-1:] in ('"', "'"):
        value = value[:-1]
    return value


# ---------------------------------------------------------------------------
# Value encoding
# ---------------------------------------------------------------------------


def _encode_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(json.dumps(item, ensure_ascii=False) for item in value) + "]"
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, str):
        if _needs_quoting(value):
            return json.dumps(value, ensure_ascii=False)
        return value
    if isinstance(value, float) and math.isfinite(value):
        return _encode_float(value)
    return str(value)


def _encode_float(value: float) -> str:
    """Positional notation with a fractional part, so the value decodes as a float."""
    text = format(Decimal(repr(value)), "f")
    return text if "." in text else f"{text}.0"


def _needs_quoting(value: str) -> bool:
    """True when the bare string would not decode back to itself."""
    if not value or value != value.strip() or "\n" in value or "\r" in value:
        return True
    return decode_value(value) != value or _is_quoted(value)
