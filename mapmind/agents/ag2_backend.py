from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from autogen import ConversableAgent

from mapmind.agents.autogen_config import llm_config_from_env
from mapmind.agents.base import ModelReply
from mapmind.agents.json_schema import JsonSchema
from mapmind.core.context import RenderedContext


def _extract_last_content(messages: object) -> str:
    """Extract the last non-empty message content from AG2 chat history."""

    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict):
            content = msg.get("content")
            if isinstance(content, str) and content.strip():
                return content.strip()
    return ""


@dataclass(slots=True)
class Ag2ChatModel:
    """Single-turn chat completion through AG2 (`autogen`).

    Environment variables supported:
    - OPENAI_MODEL
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (for OpenAI-compatible servers like Ollama, e.g. http://127.0.0.1:11434/v1)
    """

    name: str
    model: str

    def _run(self, *, prompt: str, ctx: RenderedContext, structured_output: JsonSchema | None) -> str:
        agent = ConversableAgent(
            name=self.name,
            system_message=ctx.system_prompt,
            llm_config=llm_config_from_env(default_model=self.model),
            human_input_mode="NEVER",
        )

        # AG2 forwards unknown kwargs through to the OpenAI client.
        extra: dict[str, Any] = {}
        if structured_output is not None:
            extra["response_format"] = structured_output.as_response_format()

        result = agent.run(message=prompt, max_turns=1, **extra)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text and isinstance(result.summary, str):
            text = result.summary.strip()
        return text

    async def complete(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> ModelReply:
        # AG2's run loop is blocking; keep it off the event loop so other sessions keep ticking.
        text = await asyncio.to_thread(self._run, prompt=prompt, ctx=ctx, structured_output=structured_output)
        return ModelReply(
            content=text,
            metadata={"model": self.model, **({"structured": True} if structured_output else {})},
        )
