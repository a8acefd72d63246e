"""
Generation orchestrator.

A GenerationSession walks one request at a time through

    idle -> planning -> confirming -> generating -> done

with any non-idle phase able to fall back to idle on failure or
cancellation. It asks the planner for a priced Plan, waits for the caller to
confirm, runs the executor while listening to the plan's event channels,
prices the finished generation, normalizes the reply and writes the document.

Example:
    session = GenerationSession(
        root=project_dir,
        planner=planner,
        executor=executor,
        storage=FileStorage(project_dir),
        events=bus,
        costs=CostTracker(ProjectCostStore(project_dir)),
    )

    await session.start_generate(request)
    print(session.plan.estimated_cost)     # show to the user
    await session.confirm_generate()
    if session.phase is GenerationPhase.DONE:
        print(session.result.path)
    else:
        print(session.error)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from draftsmith.cost import CostTracker
from draftsmith.draft_body import normalize_draft_body
from draftsmith.events import PHASE_CHANGED, DoneEvent, EventBus, PhaseChangeEvent, PlanStream
from draftsmith.executors.base import Executor
from draftsmith.logging import get_logger
from draftsmith.model_registry import ModelRegistry
from draftsmith.models import GenerationRequest, Message, Plan
from draftsmith.planning import Planner
from draftsmith.storage import DocumentStorage

logger = get_logger("generation")

HistoryProvider = Callable[[], Iterable[Message]]


class GenerationPhase(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    CONFIRMING = "confirming"
    GENERATING = "generating"
    DONE = "done"


@dataclass
class GenerationResult:
    """A finished generation, written or waiting to be."""

    path: str
    body: str
    metadata: dict[str, Any] = field(default_factory=dict)
    cost: float = 0.0
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0


class GenerationSession:
    """
    Drives one generation attempt at a time.

    Collaborator failures never escape: their message lands in ``error`` and
    the session returns to idle. Callers gate on ``phase``; starting a new
    attempt while one is running is not guarded against.

    Args:
        root: Project root handed to the planner.
        planner: Produces plans.
        executor: Runs confirmed plans and reports through ``events``.
        storage: Receives the finished document.
        events: Bus the executor publishes on. Phase changes are announced
            on it as ``PHASE_CHANGED``.
        costs: Accumulates the cost of each completed generation.
        registry: Pricing source. Defaults to the built-in catalog.
        history: Returns prior conversation turns to send with the request.
        on_chunk: Called with each streamed piece of text.
    """

    def __init__(
        self,
        root: Path | str,
        planner: Planner,
        executor: Executor,
        storage: DocumentStorage,
        events: EventBus | None = None,
        costs: CostTracker | None = None,
        registry: ModelRegistry | None = None,
        history: HistoryProvider | None = None,
        on_chunk: Callable[[str], None] | None = None,
    ) -> None:
        self.root = Path(root)
        self.planner = planner
        self.executor = executor
        self.storage = storage
        self.events = events or EventBus()
        self.costs = costs or CostTracker()
        if registry is None:
            registry = ModelRegistry()
            registry.load_defaults()
        self.registry = registry
        self.history = history
        self.on_chunk = on_chunk

        self.phase = GenerationPhase.IDLE
        self.plan: Plan | None = None
        self.error: str | None = None
        self.result: GenerationResult | None = None
        self.pending_write: GenerationResult | None = None

        self._request: GenerationRequest | None = None
        self._stream: PlanStream | None = None
        self._last_stream: PlanStream | None = None
        self._execute_task: asyncio.Future[None] | None = None
        # Bumped whenever an attempt is abandoned; late results compare against it
        self._attempt = 0

    @property
    def streamed_text(self) -> str:
        """Text streamed so far in the current (or last) attempt."""
        return self._last_stream.text if self._last_stream is not None else ""

    @property
    def is_busy(self) -> bool:
        return self.phase in (GenerationPhase.PLANNING, GenerationPhase.GENERATING)

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    async def start_generate(self, request: GenerationRequest) -> None:
        """Plan ``request``. Ends in ``confirming`` or, on failure, ``idle``."""
        self._attempt += 1
        attempt = self._attempt
        self._request = request
        self.plan = None
        self.error = None
        self.result = None
        self.pending_write = None
        self._set_phase(GenerationPhase.PLANNING)

        try:
            plan = await self.planner.plan(
                self.root, request.skill, request.scope, request.instruction
            )
        except Exception as e:
            if attempt == self._attempt:
                self._fail(str(e))
            return

        if attempt != self._attempt:
            logger.debug("Discarding plan %s from an abandoned attempt", plan.plan_id)
            return
        self.plan = plan
        self._set_phase(GenerationPhase.CONFIRMING)

    async def confirm_generate(self) -> None:
        """Run the confirmed plan and commit its output."""
        if self.phase is not GenerationPhase.CONFIRMING or self.plan is None or self._request is None:
            logger.debug("confirm_generate ignored in phase %s", self.phase.value)
            return

        plan, request, attempt = self.plan, self._request, self._attempt
        self._set_phase(GenerationPhase.GENERATING)

        stream = PlanStream(self.events, plan.plan_id, on_chunk=self.on_chunk)
        self._stream = self._last_stream = stream

        history = self._build_history(request.instruction)
        task = asyncio.ensure_future(self.executor.execute(plan.plan_id, history))
        task.add_done_callback(lambda t: _report_execute_failure(t, stream))
        self._execute_task = task

        try:
            done = await stream.wait()
        except Exception as e:
            if attempt == self._attempt:
                self._fail(str(e))
            return
        finally:
            stream.close()
            if self._stream is stream:
                self._stream = None

        if done is None or attempt != self._attempt:
            logger.debug("Plan %s finished after its attempt was abandoned", plan.plan_id)
            return
        await self._commit(request, done)

    async def cancel_generate(self) -> None:
        """
        Abandon the current attempt.

        Local state resets first and unconditionally; the executor is then
        asked to stop, and a failure to do so is only logged.
        """
        plan = self.plan
        self._attempt += 1
        stream, self._stream = self._stream, None
        self.plan = None
        self._request = None
        self._set_phase(GenerationPhase.IDLE)

        if stream is not None:
            stream.cancel()
        if plan is not None:
            try:
                await self.executor.cancel(plan.plan_id)
            except Exception as e:
                logger.warning("Cancel request for plan %s failed: %s", plan.plan_id, e)

    def reset(self) -> None:
        """Forget everything about the last attempt and return to idle."""
        self._attempt += 1
        if self._stream is not None:
            self._stream.cancel()
            self._stream = None
        self.plan = None
        self.error = None
        self.result = None
        self.pending_write = None
        self._request = None
        self._set_phase(GenerationPhase.IDLE)

    async def retry_write(self) -> bool:
        """
        Re-attempt the write of a generation whose write failed.

        Returns True when the document was written.
        """
        pending = self.pending_write
        if pending is None:
            return False
        try:
            await self.storage.write(pending.path, pending.metadata, pending.body)
        except Exception as e:
            self.error = f"Failed to write generated file: {e}"
            logger.warning("Retrying write of %s failed: %s", pending.path, e)
            return False

        self.pending_write = None
        self.error = None
        self.result = pending
        self._set_phase(GenerationPhase.DONE)
        return True

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _commit(self, request: GenerationRequest, done: DoneEvent) -> None:
        cost = self.registry.calculate_cost(done.model, done.input_tokens, done.output_tokens)
        self.costs.add_cost(cost)

        transform = request.transform or normalize_draft_body
        try:
            body = transform(done.full_text)
            path = request.output_path
            if request.versioned:
                path = await self.storage.next_versioned_path(path)
        except Exception as e:
            self._fail(f"Failed to process generated text: {e}")
            return

        result = GenerationResult(
            path=path,
            body=body,
            metadata=dict(request.metadata),
            cost=cost,
            model=done.model,
            input_tokens=done.input_tokens,
            output_tokens=done.output_tokens,
        )
        try:
            await self.storage.write(result.path, result.metadata, result.body)
        except Exception as e:
            self.pending_write = result
            self._fail(f"Failed to write generated file: {e}")
            return

        self.result = result
        logger.info("Generated %s with %s ($%.4f)", result.path, result.model, cost)
        self._set_phase(GenerationPhase.DONE)

    def _build_history(self, instruction: str) -> list[Message]:
        prior = list(self.history()) if self.history is not None else []
        turns = [m for m in prior if m.content.strip()]
        turns.append(Message(role="user", content=instruction))
        return turns

    def _fail(self, message: str) -> None:
        self.error = message
        logger.warning("Generation failed: %s", message)
        self._set_phase(GenerationPhase.IDLE)

    def _set_phase(self, phase: GenerationPhase) -> None:
        previous = self.phase
        self.phase = phase
        if previous is phase:
            return
        logger.debug("Phase %s -> %s", previous.value, phase.value)
        self.events.emit_sync(
            PHASE_CHANGED,
            PhaseChangeEvent(
                previous=previous.value,
                current=phase.value,
                plan_id=self.plan.plan_id if self.plan else None,
                error=self.error,
            ),
        )


def _report_execute_failure(task: asyncio.Future[None], stream: PlanStream) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        stream.fail(error)
