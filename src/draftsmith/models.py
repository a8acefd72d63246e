"""
Core data models for draftsmith.

These are plain dataclasses shared by the planner, executors, orchestrator
and the reply parsers.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContextMode(str, Enum):
    """How a context file is included in a plan."""

    FULL = "full"
    SUMMARY = "summary"


class DirectiveAction(str, Enum):
    """What an apply directive asks to do with its target."""

    CREATE = "create"
    REPLACE = "replace"
    APPEND = "append"
    UPDATE_METADATA = "update_metadata"

    @classmethod
    def parse(cls, value: str | None) -> DirectiveAction:
        """Parse an action name, falling back to CREATE for anything unknown."""
        if value:
            normalized = value.strip().lower()
            # Older prompts still say "update_frontmatter"
            if normalized == "update_frontmatter":
                return cls.UPDATE_METADATA
            try:
                return cls(normalized)
            except ValueError:
                pass
        return cls.CREATE


@dataclass(frozen=True)
class ContextScope:
    """Optional narrowing of a request to part of a project."""

    book: str | None = None
    chapter: str | None = None
    scene: str | None = None

    def as_vars(self) -> dict[str, str]:
        """Scope identifiers usable as path template variables."""
        return {
            key: value
            for key, value in (("book", self.book), ("chapter", self.chapter), ("scene", self.scene))
            if value
        }


@dataclass(frozen=True)
class ContextFileInfo:
    """A project file the plan will feed to the model."""

    path: str
    mode: ContextMode = ContextMode.FULL
    tokens_est: int = 0


@dataclass(frozen=True)
class RetrievedContext:
    """A passage pulled in by retrieval rather than by the skill definition."""

    source_path: str
    score: float
    tokens_est: int = 0
    preview: str = ""
    section: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Relevance score must be within [0, 1], got {self.score}")


@dataclass(frozen=True)
class Plan:
    """A priced, context-resolved proposal awaiting confirmation."""

    plan_id: str
    skills: tuple[str, ...]
    model: str
    context_files: tuple[ContextFileInfo, ...] = ()
    retrieved_context: tuple[RetrievedContext, ...] = ()
    total_tokens_est: int = 0
    estimated_cost: str = ""
    approach: str = ""


@dataclass(frozen=True)
class Message:
    """One conversation turn."""

    role: str  # "user", "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the orchestrator needs to produce and store one document."""

    skill: str
    instruction: str
    output_path: str
    scope: ContextScope = field(default_factory=ContextScope)
    metadata: dict[str, Any] = field(default_factory=dict)
    transform: Callable[[str], str] | None = None  # raw reply -> body
    versioned: bool = False  # write to the next free _vN name


UNKNOWN_TARGET = "unknown"


@dataclass
class ApplyDirective:
    """A structured file edit recovered from a model reply."""

    target: str
    action: DirectiveAction = DirectiveAction.CREATE
    content: str = ""
    section: str | None = None
    metadata: dict[str, Any] | None = None
    syntax: str = "fenced"  # "fenced" or "tag"

    @property
    def is_actionable(self) -> bool:
        """False for tag directives that never named a target."""
        return bool(self.target) and self.target != UNKNOWN_TARGET
