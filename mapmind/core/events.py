from __future__ import annotations

from dataclasses import dataclass

from mapmind.core.geo import Coordinate


@dataclass(frozen=True, slots=True)
class StreamChunk:
    """One unit of agent output, passed from a streamer to its round coordinator.

    Non-terminal chunks carry reasoning text. The terminal chunk (`done=True`)
    carries the final guess and confidence and is the last chunk a streamer sends.
    """

    agent_id: str
    round_number: int
    text: str
    done: bool
    guess: Coordinate | None = None
    confidence: int | None = None

    @staticmethod
    def fragment(*, agent_id: str, round_number: int, text: str) -> "StreamChunk":
        return StreamChunk(
            agent_id=agent_id,
            round_number=round_number,
            text=text,
            done=False,
        )

    @staticmethod
    def final(*, agent_id: str, round_number: int, guess: Coordinate, confidence: int) -> "StreamChunk":
        return StreamChunk(
            agent_id=agent_id,
            round_number=round_number,
            text="",
            done=True,
            guess=guess,
            confidence=confidence,
        )
