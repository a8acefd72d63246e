"""Shared pytest fixtures and fakes for draftsmith tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from textwrap import dedent
from typing import Any

import pytest

from draftsmith.cost import CostTracker
from draftsmith.errors import DocumentNotFoundError, DocumentWriteError, PlanningError
from draftsmith.events import (
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    EventBus,
    chunk_channel,
    done_channel,
    error_channel,
)
from draftsmith.executors.base import Executor
from draftsmith.frontmatter import Document
from draftsmith.model_registry import ModelDefinition, ModelPricing, ModelRegistry, PricingTier
from draftsmith.models import ContextScope, Message, Plan
from draftsmith.planning import Planner
from draftsmith.storage import DocumentStorage


class FakePlanner(Planner):
    """Returns canned plans, or raises when ``error`` is set."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[Path, str, ContextScope, str]] = []
        self.gate: asyncio.Event | None = None

    async def plan(self, root: Path, skill: str, scope: ContextScope, instruction: str) -> Plan:
        self.calls.append((root, skill, scope, instruction))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return Plan(
            plan_id=f"plan-{len(self.calls)}",
            skills=(skill,),
            model="test-model",
            total_tokens_est=100,
            estimated_cost="~$0.0010",
            approach=f"Using {skill} skill to process: {instruction}",
        )


class FakeExecutor(Executor):
    """
    Publishes a scripted outcome on the plan's channels.

    Set ``chunks`` and either ``done`` or ``error``. ``raise_on_execute``
    makes ``execute`` raise instead; ``hold`` makes it wait for the event
    to be set before publishing anything.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self.chunks: list[str] = []
        self.done: DoneEvent | None = DoneEvent(
            full_text="Generated text.", input_tokens=1000, output_tokens=500, model="test-model"
        )
        self.error: str | None = None
        self.raise_on_execute: Exception | None = None
        self.raise_on_cancel: Exception | None = None
        self.hold: asyncio.Event | None = None
        self.executed: list[tuple[str, list[Message]]] = []
        self.cancelled: list[str] = []

    async def execute(self, plan_id: str, history: list[Message]) -> None:
        self.executed.append((plan_id, history))
        if self.raise_on_execute is not None:
            raise self.raise_on_execute
        if self.hold is not None:
            await self.hold.wait()
        for text in self.chunks:
            await self.bus.emit(chunk_channel(plan_id), ChunkEvent(text=text))
        if self.error is not None:
            await self.bus.emit(error_channel(plan_id), ErrorEvent(error=self.error))
        elif self.done is not None:
            await self.bus.emit(done_channel(plan_id), self.done)

    async def cancel(self, plan_id: str) -> None:
        self.cancelled.append(plan_id)
        if self.raise_on_cancel is not None:
            raise self.raise_on_cancel


class MemoryStorage(DocumentStorage):
    """Keeps documents in a dict. ``fail_writes`` makes that many writes fail."""

    def __init__(self) -> None:
        self.documents: dict[str, Document] = {}
        self.fail_writes = 0

    async def write(self, path: str, metadata: dict[str, Any], body: str) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise DocumentWriteError("disk full")
        self.documents[path] = Document(metadata=dict(metadata), body=body, path=path)

    async def read(self, path: str) -> Document:
        try:
            return self.documents[path]
        except KeyError:
            raise DocumentNotFoundError(path) from None

    async def list_names(self, directory: str) -> list[str]:
        prefix = "" if directory in ("", ".") else directory.rstrip("/") + "/"
        return sorted(
            p[len(prefix) :]
            for p in self.documents
            if p.startswith(prefix) and "/" not in p[len(prefix) :]
        )


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def planner() -> FakePlanner:
    return FakePlanner()


@pytest.fixture
def executor(bus: EventBus) -> FakeExecutor:
    return FakeExecutor(bus)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def costs() -> CostTracker:
    return CostTracker()


@pytest.fixture
def registry() -> ModelRegistry:
    """A registry with one standard-only model and one tiered model."""
    reg = ModelRegistry()
    reg.register(
        ModelDefinition(
            id="test-model",
            provider="test",
            pricing=ModelPricing(standard=PricingTier(input=3.0, output=15.0)),
        )
    )
    reg.register(
        ModelDefinition(
            id="tiered-model",
            provider="test",
            pricing=ModelPricing(
                standard=PricingTier(input=3.0, output=15.0),
                long_context=PricingTier(input=6.0, output=22.5),
            ),
        )
    )
    return reg


@pytest.fixture
def skills_dir(tmp_path: Path) -> Path:
    """A skills directory with one scene-drafting skill."""
    directory = tmp_path / "skills"
    directory.mkdir()
    (directory / "scene-draft.yaml").write_text(
        dedent(
            """\
            name: scene-draft
            display_name: Scene Draft
            description: Draft a scene from its outline
            default_model: test-model
            temperature: 0.8
            system_prompt: |
              You are a fiction co-writer working on book {book}.
            context:
              always_include:
                - overview/overview.md
              include_if_exists:
                - books/{book}/outline.md
                - books/{book}/chapters/{chapter}/notes.md
              max_context_tokens: 50
            """
        )
    )
    return directory


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A small project with an overview and a book outline."""
    root = tmp_path / "project"
    (root / "overview").mkdir(parents=True)
    (root / "overview" / "overview.md").write_text("# Overview\n\nA lighthouse keeper's story.\n")
    (root / "books" / "one").mkdir(parents=True)
    (root / "books" / "one" / "outline.md").write_text(
        "# Outline\n\nThe storm arrives.\n\n" + "More detail about the storm. " * 20
    )
    return root
