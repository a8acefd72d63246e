"""
Anthropic executor.

Requires the 'anthropic' extra: pip install draftsmith[anthropic]
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

try:
    from anthropic import AsyncAnthropic  # type: ignore[import-not-found]
except ImportError:
    raise ImportError(
        "Anthropic executor requires the 'anthropic' package. "
        "Install with: pip install draftsmith[anthropic]"
    )

from draftsmith.events import EventBus
from draftsmith.executors.base import StreamingExecutor, StreamUsage
from draftsmith.models import Message
from draftsmith.planning import PlanState, PlanStore


class AnthropicExecutor(StreamingExecutor):
    """
    Streams plans through the Anthropic Messages API.

    Example:
        planner = SkillPlanner.from_directory(Path("skills"))
        executor = AnthropicExecutor(planner.store, bus)
        await executor.execute(plan.plan_id, [Message("user", "Draft it")])
    """

    def __init__(
        self,
        plans: PlanStore,
        events: EventBus,
        client: AsyncAnthropic | None = None,
    ) -> None:
        super().__init__(plans, events)
        self.client = client or AsyncAnthropic()

    async def stream(
        self, state: PlanState, history: list[Message], usage: StreamUsage
    ) -> AsyncIterator[str]:
        request_kwargs: dict[str, Any] = {
            "model": state.model,
            "max_tokens": state.max_output_tokens,
            "temperature": state.temperature,
            # Anthropic takes the system prompt separately
            "messages": [m.to_dict() for m in history if m.role != "system"],
        }
        if state.system_prompt:
            request_kwargs["system"] = state.system_prompt

        async with self.client.messages.stream(**request_kwargs) as stream:
            async for text in stream.text_stream:
                yield text
            final = await stream.get_final_message()

        usage.input_tokens = final.usage.input_tokens
        usage.output_tokens = final.usage.output_tokens
        usage.model = final.model
