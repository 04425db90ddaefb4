from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from mapmind.agents.base import AgentVerdict, ChatModel
from mapmind.agents.json_schema import JsonSchema
from mapmind.agents.profiles import AgentProfile
from mapmind.core.context import BaseAnalystContext, PersonaContext, RenderedContext, compose_context
from mapmind.core.geo import Coordinate
from mapmind.prompts import load_prompt
from mapmind.rounds.registry import RoundRecord

logger = logging.getLogger(__name__)


class AnalysisParseError(RuntimeError):
    pass


class ReasoningError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Analysis:
    reasoning: tuple[str, ...]
    guess: Coordinate
    confidence: float


def _number(data: dict[str, object], *keys: str) -> float:
    for key in keys:
        value = data.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and math.isfinite(value):
            return float(value)
    raise AnalysisParseError(f"Missing/invalid '{keys[0]}' field")


def parse_analysis(text: str) -> Analysis:
    """Parse a model's geolocation analysis.

    Expected strict JSON object:
        {"reasoning": ["...", ...], "lat": 48.85, "lng": 2.35, "confidence": 70}
    `latitude`/`longitude` are accepted as variants. Non-JSON output is rejected.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisParseError("Expected a JSON object")

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, list):
        raise AnalysisParseError("Missing/invalid 'reasoning' field")
    steps = tuple(s.strip() for s in reasoning if isinstance(s, str) and s.strip())
    if not steps:
        raise AnalysisParseError("'reasoning' must contain at least one non-empty string")

    lat = _number(data, "lat", "latitude")
    lng = _number(data, "lng", "longitude")
    if not -90.0 <= lat <= 90.0:
        raise AnalysisParseError(f"Latitude out of range: {lat}")

    confidence = _number(data, "confidence")
    return Analysis(reasoning=steps, guess=Coordinate(lat=lat, lng=lng), confidence=confidence)


_ANALYSIS_SCHEMA = JsonSchema(
    name="geolocation_analysis",
    schema={
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "reasoning": {"type": "array", "items": {"type": "string"}},
            "lat": {"type": "number"},
            "lng": {"type": "number"},
            "confidence": {"type": "number"},
        },
        "required": ["reasoning", "lat", "lng", "confidence"],
    },
    strict=True,
)


def analyst_context(agent: AgentProfile) -> RenderedContext:
    base = BaseAnalystContext(system_prompt=load_prompt("base_analyst.txt"))
    persona = PersonaContext(agent_id=agent.id, display_name=agent.name, prompt=load_prompt(agent.persona_file))
    return compose_context(base=base, persona=persona)


async def analyze_with_model(
    *,
    model: ChatModel,
    ctx: RenderedContext,
    record: RoundRecord,
    max_fragments: int = 5,
    max_attempts: int = 3,
) -> Analysis:
    """Ask a model for a full analysis of one round's photo, retrying on unparseable output."""

    prompt = (
        "Analyze the photo below and guess where it was taken.\n"
        f"Photo reference: {record.image}\n"
        f"Difficulty: {record.difficulty}\n\n"
        f"Give at most {max_fragments} reasoning steps, then your guess.\n"
        "Return ONLY JSON matching the required schema. No explanation.\n"
    )

    last_err: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        reply = await model.complete(prompt=prompt, ctx=ctx, structured_output=_ANALYSIS_SCHEMA)
        try:
            analysis = parse_analysis(reply.content)
        except AnalysisParseError as e:
            logger.debug("analysis attempt %d from %s rejected: %s", attempt, model.name, e)
            last_err = e
            continue
        return Analysis(
            reasoning=analysis.reasoning[:max_fragments],
            guess=analysis.guess,
            confidence=analysis.confidence,
        )

    raise ReasoningError(f"Failed to get a valid analysis after {max_attempts} attempts: {last_err}")


class ModelReasoningProvider:
    """Model-backed reasoning: one structured analysis per agent per round, replayed as fragments."""

    name = "external"

    def __init__(
        self,
        *,
        model_for: Callable[[AgentProfile], ChatModel],
        max_fragments: int = 5,
        max_attempts: int = 3,
    ) -> None:
        self._model_for = model_for
        self._max_fragments = max_fragments
        self._max_attempts = max_attempts
        self._analyses: dict[tuple[str, str], Analysis] = {}

    async def _analysis(self, *, agent: AgentProfile, record: RoundRecord) -> Analysis:
        key = (agent.id, record.id)
        cached = self._analyses.get(key)
        if cached is None:
            cached = await analyze_with_model(
                model=self._model_for(agent),
                ctx=analyst_context(agent),
                record=record,
                max_fragments=self._max_fragments,
                max_attempts=self._max_attempts,
            )
            self._analyses[key] = cached
        return cached

    async def next_fragment(self, *, agent: AgentProfile, record: RoundRecord, step: int) -> str | None:
        analysis = await self._analysis(agent=agent, record=record)
        if step >= len(analysis.reasoning):
            return None
        return analysis.reasoning[step] + " "

    async def final_guess(self, *, agent: AgentProfile, record: RoundRecord) -> AgentVerdict:
        analysis = await self._analysis(agent=agent, record=record)
        # The round is over for this agent; a replay of the same record gets a fresh analysis.
        self._analyses.pop((agent.id, record.id), None)

        lo, hi = agent.confidence
        confidence = max(lo, min(hi, int(round(analysis.confidence))))
        return AgentVerdict(guess=analysis.guess.clamped(), confidence=confidence)
