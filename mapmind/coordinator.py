from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from mapmind.agents.base import ReasoningProvider
from mapmind.agents.profiles import AgentProfile
from mapmind.api.models import AgentResult, AiStream, LatLng, RoundResults
from mapmind.config import GameSettings
from mapmind.core.events import StreamChunk
from mapmind.core.scoring import rank_round, round_winner, score_guess
from mapmind.rounds.registry import RoundRecord
from mapmind.streamer import ReasoningStreamer

if TYPE_CHECKING:
    from mapmind.session import Session

logger = logging.getLogger(__name__)


class RoundCoordinator:
    """Runs one round: two streamers feeding one channel, one consumer deciding completion.

    Use as an async context manager. Entering starts the streamer and consumer
    tasks (registered with the session's timers); exiting cancels whatever is
    still running. The consumer is the only place that observes both agents, so
    `analysis_complete` fires exactly once whichever agent finishes first.
    """

    def __init__(
        self,
        *,
        session: "Session",
        record: RoundRecord,
        round_number: int,
        provider: ReasoningProvider,
        agents: Sequence[AgentProfile],
        settings: GameSettings,
    ) -> None:
        self.session = session
        self.record = record
        self.round_number = round_number
        self.agents = tuple(agents)
        self.channel: asyncio.Queue[StreamChunk] = asyncio.Queue(maxsize=2 * len(self.agents))
        self.streamers = [
            ReasoningStreamer(
                agent=agent,
                record=record,
                round_number=round_number,
                provider=provider,
                channel=self.channel,
                period=agent.stream_period(settings),
                offset=agent.stream_offset(settings),
            )
            for agent in self.agents
        ]
        self.finished: dict[str, bool] = {a.id: False for a in self.agents}
        self.completed = False
        self.finalized = False
        self._tasks: list[asyncio.Task[Any]] = []

    @property
    def all_done(self) -> bool:
        return all(self.finished.values())

    async def __aenter__(self) -> "RoundCoordinator":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def start(self) -> None:
        timers = self.session.timers
        for streamer in self.streamers:
            self._tasks.append(timers.spawn(streamer.run(), name=f"round{self.round_number}:{streamer.agent.id}"))
        self._tasks.append(timers.spawn(self._consume(), name=f"round{self.round_number}:coordinator"))

    async def aclose(self) -> None:
        await self.session.timers.cancel(self._tasks)
        self._tasks.clear()

    async def _consume(self) -> None:
        while not self.all_done:
            chunk = await self.channel.get()
            await self._forward(chunk)
        await self._complete()

    async def _forward(self, chunk: StreamChunk) -> None:
        if chunk.done:
            if chunk.guess is None:
                raise ValueError(f"Terminal chunk from {chunk.agent_id} carries no guess")
            self.finished[chunk.agent_id] = True
            self.session.current_guesses[chunk.agent_id] = chunk.guess

        await self.session.emit(
            AiStream(
                agent=chunk.agent_id,
                text=chunk.text,
                done=chunk.done,
                guess=LatLng(lat=chunk.guess.lat, lng=chunk.guess.lng) if chunk.guess else None,
                confidence=chunk.confidence,
            )
        )

    async def _complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        await self.session.mark_analysis_complete(self.record)

    def finalize(self) -> RoundResults:
        """Score this round into the session totals and build the results frame.

        Raises ValueError if the round is still streaming or was already finalized.
        """

        if self.finalized:
            raise ValueError(f"Round {self.round_number} already finalized")
        if not self.all_done:
            raise ValueError(f"Round {self.round_number} is still being analyzed")
        self.finalized = True

        actual = self.record.location
        scored = [
            score_guess(agent_id=a.id, guess=self.session.current_guesses[a.id], actual=actual)
            for a in self.agents
        ]
        ranked = rank_round(scored)
        winner = round_winner(ranked)
        self.session.apply_round_score(scored, winner=winner)

        by_id = {a.id: a for a in self.agents}
        results = [
            AgentResult(
                agent_id=s.agent_id,
                name=by_id[s.agent_id].name,
                color=by_id[s.agent_id].color,
                guess=LatLng(lat=s.guess.lat, lng=s.guess.lng),
                distance=s.distance_km,
            )
            for s in ranked
        ]

        logger.info(
            "session %s round %d scored: %s (winner=%s)",
            self.session.session_id,
            self.round_number,
            ", ".join(f"{s.agent_id}={s.distance_km}km" for s in ranked),
            winner or "tie",
        )

        return RoundResults(
            round=self.round_number,
            total_rounds=self.session.total_rounds,
            results=results,
            actual_location=LatLng(lat=actual.lat, lng=actual.lng),
            location_name=self.record.name,
            is_last_round=self.session.round_index >= self.session.total_rounds,
            leaderboard=self.session.leaderboard(),
            round_winner=winner,
        )
