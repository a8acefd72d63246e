"""
Base executor interface.

An executor runs a confirmed plan. It returns nothing useful from
``execute``; progress and the outcome are published on the plan's event
channels (see ``draftsmith.events``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass

from draftsmith.events import (
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    EventBus,
    chunk_channel,
    done_channel,
    error_channel,
)
from draftsmith.logging import get_logger
from draftsmith.models import Message
from draftsmith.planning import PlanState, PlanStore

logger = get_logger("executors")


class Executor(ABC):
    """Runs plans and reports through the event bus."""

    @abstractmethod
    async def execute(self, plan_id: str, history: list[Message]) -> None:
        """
        Run the plan.

        Exactly one of the done or error events follows any chunk events,
        unless the plan is cancelled first. Raises PlanNotFoundError when the
        plan is unknown.
        """
        pass

    @abstractmethod
    async def cancel(self, plan_id: str) -> None:
        """Ask a running plan to stop. Fire-and-forget."""
        pass


@dataclass
class StreamUsage:
    """Filled in by a provider stream once the provider reports it."""

    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


class StreamingExecutor(Executor):
    """
    Shared plumbing for provider executors.

    Subclasses implement ``stream`` to yield text pieces for a plan and fill
    in ``usage``. This class resolves the plan, publishes the events, honors
    cancellation between pieces and forgets the plan afterwards.
    """

    def __init__(self, plans: PlanStore, events: EventBus) -> None:
        self.plans = plans
        self.events = events
        self._cancelled: set[str] = set()
        self._running: set[str] = set()

    @abstractmethod
    def stream(
        self, state: PlanState, history: list[Message], usage: StreamUsage
    ) -> AsyncIterator[str]:
        pass

    async def execute(self, plan_id: str, history: list[Message]) -> None:
        state = self.plans.get(plan_id)
        usage = StreamUsage(model=state.model)
        pieces: list[str] = []
        self._running.add(plan_id)
        try:
            async with aclosing(self.stream(state, history, usage)) as stream:
                async for piece in stream:
                    if plan_id in self._cancelled:
                        break
                    pieces.append(piece)
                    await self.events.emit(chunk_channel(plan_id), ChunkEvent(text=piece))

            if plan_id in self._cancelled:
                logger.info("Plan %s cancelled after %d chunk(s)", plan_id, len(pieces))
                return

            await self.events.emit(
                done_channel(plan_id),
                DoneEvent(
                    full_text="".join(pieces),
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens,
                    model=usage.model or state.model,
                ),
            )
        except Exception as e:
            logger.warning("Plan %s failed: %s", plan_id, e)
            await self.events.emit(error_channel(plan_id), ErrorEvent(error=str(e)))
        finally:
            self.plans.discard(plan_id)
            self._cancelled.discard(plan_id)
            self._running.discard(plan_id)

    async def cancel(self, plan_id: str) -> None:
        if plan_id in self._running:
            self._cancelled.add(plan_id)
        elif plan_id in self.plans:
            # Confirmed but never started
            self.plans.discard(plan_id)
            logger.debug("Dropped plan %s before execution", plan_id)
