from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from mapmind.agents.json_schema import JsonSchema
from mapmind.agents.profiles import AgentProfile
from mapmind.core.context import RenderedContext
from mapmind.core.geo import Coordinate
from mapmind.rounds.registry import RoundRecord


@dataclass(frozen=True, slots=True)
class AgentVerdict:
    guess: Coordinate
    confidence: int


@dataclass(frozen=True, slots=True)
class ModelReply:
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class ReasoningProvider(Protocol):
    """Where an agent's reasoning text and final guess come from.

    The round coordinator and streamers depend only on this protocol.
    """

    name: str

    async def next_fragment(self, *, agent: AgentProfile, record: RoundRecord, step: int) -> str | None:  # pragma: no cover
        """Return fragment number `step` (0-based), or None once the sequence is exhausted."""
        ...

    async def final_guess(self, *, agent: AgentProfile, record: RoundRecord) -> AgentVerdict:  # pragma: no cover
        ...


class ChatModel(Protocol):
    name: str

    async def complete(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> ModelReply:  # pragma: no cover
        ...
