"""
Document storage.

The orchestrator only needs ``write``; ``read`` and ``list_names`` serve
callers that probe for existing documents, pick versioned names or apply
directives. ``FileStorage`` keeps documents as markdown files with a
frontmatter header under a project root.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

from draftsmith.errors import DocumentNotFoundError, DocumentWriteError
from draftsmith.frontmatter import Document, serialize_frontmatter
from draftsmith.logging import get_logger

logger = get_logger("storage")

DRAFTS_DIR = ".drafts"
SNAPSHOT_FORMAT = "%Y-%m-%dT%H-%M-%S"


class DocumentStorage(ABC):
    """Where generated documents are persisted."""

    @abstractmethod
    async def write(self, path: str, metadata: dict[str, Any], body: str) -> None:
        """Persist a document, replacing any existing one at ``path``."""

    @abstractmethod
    async def read(self, path: str) -> Document:
        """Load a document. Raises DocumentNotFoundError when absent."""

    @abstractmethod
    async def list_names(self, directory: str) -> list[str]:
        """File names directly inside ``directory`` (empty if it does not exist)."""

    async def exists(self, path: str) -> bool:
        try:
            await self.read(path)
        except DocumentNotFoundError:
            return False
        return True

    async def next_versioned_path(self, path: str) -> str:
        """The next free versioned path for ``path`` (see ``next_versioned_name``)."""
        posix = PurePosixPath(path)
        directory = str(posix.parent)
        existing = await self.list_names(directory)
        name = next_versioned_name(posix.name, existing)
        return name if directory == "." else f"{directory}/{name}"


class FileStorage(DocumentStorage):
    """
    Markdown-on-disk storage rooted at a project directory.

    Relative paths resolve against ``root``; parent directories are created
    on write.
    """

    def __init__(self, root: Path | str, drafts_dir: str = DRAFTS_DIR) -> None:
        self.root = Path(root)
        self.drafts_dir = drafts_dir

    def resolve(self, path: str | Path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    async def write(self, path: str, metadata: dict[str, Any], body: str) -> None:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(serialize_frontmatter(metadata, body), encoding="utf-8")
        except OSError as e:
            raise DocumentWriteError(f"Failed to write {path}: {e}") from e
        logger.info("Wrote %s", target)

    async def read(self, path: str) -> Document:
        target = self.resolve(path)
        try:
            text = target.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DocumentNotFoundError(path) from e
        except IsADirectoryError as e:
            raise DocumentNotFoundError(path) from e
        return Document.from_text(text, path=path)

    async def list_names(self, directory: str) -> list[str]:
        target = self.resolve(directory)
        if not target.is_dir():
            return []
        return sorted(entry.name for entry in target.iterdir() if entry.is_file())

    # -----------------------------------------------------------------------
    # Draft snapshots
    # -----------------------------------------------------------------------

    def save_draft(self, path: str, text: str) -> Path | None:
        """
        Overwrite ``path`` with ``text``, snapshotting the current file first.

        Snapshots go to ``<dir>/.drafts/<UTC timestamp>.md``. Returns the
        snapshot path, or None when there was nothing to snapshot.
        """
        target = self.resolve(path)
        snapshot: Path | None = None
        try:
            if target.exists():
                drafts = target.parent / self.drafts_dir
                drafts.mkdir(parents=True, exist_ok=True)
                stamp = datetime.now(timezone.utc).strftime(SNAPSHOT_FORMAT)
                snapshot = drafts / f"{stamp}.md"
                snapshot.write_text(target.read_text(encoding="utf-8"), encoding="utf-8")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise DocumentWriteError(f"Failed to save draft {path}: {e}") from e
        return snapshot

    def list_drafts(self, directory: str) -> list[DraftSnapshot]:
        """Snapshots in ``directory``, most recent first."""
        drafts = self.resolve(directory) / self.drafts_dir
        if not drafts.is_dir():
            return []
        snapshots = []
        for entry in drafts.iterdir():
            if entry.suffix != ".md" or not entry.is_file():
                continue
            content = entry.read_text(encoding="utf-8")
            modified = datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc)
            snapshots.append(
                DraftSnapshot(
                    name=entry.name,
                    path=entry,
                    created=modified.isoformat(),
                    word_count=len(content.split()),
                )
            )
        return sorted(snapshots, key=lambda s: s.name, reverse=True)

    def restore_draft(self, directory: str, snapshot_name: str, filename: str = "draft.md") -> str:
        """Make a snapshot current again, snapshotting the current draft first."""
        snapshot = self.resolve(directory) / self.drafts_dir / snapshot_name
        if not snapshot.is_file():
            raise DocumentNotFoundError(str(snapshot))
        content = snapshot.read_text(encoding="utf-8")
        self.save_draft(str(PurePosixPath(directory) / filename), content)
        return content


@dataclass(frozen=True)
class DraftSnapshot:
    name: str
    path: Path
    created: str
    word_count: int


def next_versioned_name(base_name: str, existing: Iterable[str]) -> str:
    """
    Pick a file name that does not collide with ``existing``.

    Returns ``base_name`` when neither it nor any version of it exists;
    otherwise ``<stem>_v<N+1><suffix>`` where N is the highest existing
    version. The unversioned base counts as version 1.

    Example:
        >>> next_versioned_name("overview.md", ["overview.md", "overview_v3.md"])
        'overview_v4.md'
    """
    base = PurePosixPath(base_name)
    stem, suffix = base.stem, base.suffix
    pattern = re.compile(rf"^{re.escape(stem)}_v(\d+){re.escape(suffix)}$")

    highest = 0
    for name in existing:
        if name == base_name:
            highest = max(highest, 1)
            continue
        match = pattern.match(name)
        if match:
            highest = max(highest, int(match.group(1)))

    if highest == 0:
        return base_name
    return f"{stem}_v{highest + 1}{suffix}"
