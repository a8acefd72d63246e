"""
OpenAI-compatible executor.

Requires the 'openai' extra: pip install draftsmith[openai]
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

try:
    import httpx
    from openai import AsyncOpenAI  # type: ignore[import-not-found]
except ImportError:
    raise ImportError(
        "OpenAI executor requires the 'openai' package. "
        "Install with: pip install draftsmith[openai]"
    )

from draftsmith.events import EventBus
from draftsmith.executors.base import StreamingExecutor, StreamUsage
from draftsmith.models import Message
from draftsmith.planning import PlanState, PlanStore


class OpenAIExecutor(StreamingExecutor):
    """
    Streams plans through an OpenAI-compatible chat completions endpoint.

    Example:
        executor = OpenAIExecutor(planner.store, bus, base_url="http://localhost:8000/v1")
    """

    def __init__(
        self,
        plans: PlanStore,
        events: EventBus,
        client: AsyncOpenAI | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
    ) -> None:
        super().__init__(plans, events)
        if client is None:
            # trust_env=False keeps environment proxy settings out of the client
            http_client = httpx.AsyncClient(
                trust_env=False,
                timeout=httpx.Timeout(300.0, connect=30.0),
            )
            client = AsyncOpenAI(base_url=base_url, api_key=api_key, http_client=http_client)
        self.client = client

    async def stream(
        self, state: PlanState, history: list[Message], usage: StreamUsage
    ) -> AsyncIterator[str]:
        messages: list[dict[str, Any]] = []
        if state.system_prompt:
            messages.append({"role": "system", "content": state.system_prompt})
        messages.extend(m.to_dict() for m in history)

        stream = await self.client.chat.completions.create(
            model=state.model,
            messages=messages,
            temperature=state.temperature,
            max_tokens=state.max_output_tokens,
            stream=True,
            stream_options={"include_usage": True},
        )

        async for chunk in stream:
            if chunk.model:
                usage.model = chunk.model
            if chunk.usage is not None:
                usage.input_tokens = chunk.usage.prompt_tokens
                usage.output_tokens = chunk.usage.completion_tokens
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                yield delta.content
