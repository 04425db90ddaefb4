from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mapmind.config import GameSettings


class AgentId(str, Enum):
    atlas = "atlas"
    nova = "nova"


@dataclass(frozen=True, slots=True)
class AgentProfile:
    id: str
    name: str
    color: str
    # Guess-noise spread in degrees, (min, max).
    spread: tuple[float, float]
    # Reported confidence in percent, (min, max).
    confidence: tuple[int, int]
    # Multiplier on the base stream period; agents must not tick in lockstep.
    period_factor: float = 1.0
    # Whether this agent's stream starts after the configured stagger.
    staggered: bool = False

    def stream_period(self, settings: GameSettings) -> float:
        return settings.stream_period * self.period_factor

    def stream_offset(self, settings: GameSettings) -> float:
        return settings.stream_stagger if self.staggered else 0.0

    @property
    def persona_file(self) -> str:
        return f"personas/{self.id}.txt"

    def reasoning_file(self, difficulty: str) -> str:
        return f"reasoning/{self.id}_{difficulty}.txt"


ATLAS = AgentProfile(
    id=AgentId.atlas.value,
    name="Atlas",
    color="#4f8cff",
    spread=(0.5, 4.0),
    confidence=(62, 91),
    period_factor=1.0,
)

NOVA = AgentProfile(
    id=AgentId.nova.value,
    name="Nova",
    color="#ff5fa2",
    spread=(1.0, 7.0),
    confidence=(55, 88),
    period_factor=1.3,
    staggered=True,
)

# Enumeration order is significant: it breaks ranking and leaderboard ties.
AGENTS: tuple[AgentProfile, ...] = (ATLAS, NOVA)
