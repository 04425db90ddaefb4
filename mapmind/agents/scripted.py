from __future__ import annotations

import random

from mapmind.agents.base import AgentVerdict
from mapmind.agents.profiles import AgentProfile
from mapmind.core.geo import Coordinate
from mapmind.prompts import load_prompt_lines
from mapmind.rounds.registry import RoundRecord

# Longitude degrees are "cheaper" than latitude degrees away from the equator.
LNG_NOISE_SCALE = 1.5


def noisy_guess(*, actual: Coordinate, spread: tuple[float, float], rng: random.Random) -> Coordinate:
    """Offset the true coordinate by a bounded uniform amount and clamp latitude."""

    lo, hi = spread
    amount = rng.uniform(lo, hi)
    dlat = rng.uniform(-amount, amount)
    dlng = rng.uniform(-amount, amount) * LNG_NOISE_SCALE
    return Coordinate(lat=actual.lat + dlat, lng=actual.lng + dlng).clamped()


class ScriptedReasoningProvider:
    """Fixture-backed reasoning: five canned fragments per (agent, difficulty).

    Fragments come from `prompts/reasoning/<agent>_<difficulty>.txt`, one per line.
    Guesses are the true location plus per-agent noise.
    """

    name = "scripted"

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._scripts: dict[tuple[str, str], tuple[str, ...]] = {}

    def fragments_for(self, *, agent: AgentProfile, difficulty: str) -> tuple[str, ...]:
        key = (agent.id, difficulty)
        if key not in self._scripts:
            self._scripts[key] = load_prompt_lines(agent.reasoning_file(difficulty))
        return self._scripts[key]

    async def next_fragment(self, *, agent: AgentProfile, record: RoundRecord, step: int) -> str | None:
        script = self.fragments_for(agent=agent, difficulty=record.difficulty)
        if step >= len(script):
            return None
        # Fragments are appended verbatim by the client, so keep a separator.
        return script[step] + " "

    async def final_guess(self, *, agent: AgentProfile, record: RoundRecord) -> AgentVerdict:
        guess = noisy_guess(actual=record.location, spread=agent.spread, rng=self._rng)
        lo, hi = agent.confidence
        return AgentVerdict(guess=guess, confidence=self._rng.randint(lo, hi))
