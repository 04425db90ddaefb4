from __future__ import annotations

import asyncio
import logging

from mapmind.agents.base import ReasoningProvider
from mapmind.agents.profiles import AgentProfile
from mapmind.core.events import StreamChunk
from mapmind.rounds.registry import RoundRecord

logger = logging.getLogger(__name__)


class ReasoningStreamer:
    """Paced producer of one agent's output for one round.

    After `offset` seconds it ticks once per `period`: each tick reports the
    next reasoning fragment, and the tick after the last fragment reports the
    terminal chunk with the final guess. Chunks go to the coordinator's channel;
    the streamer never talks to the viewer directly.
    """

    def __init__(
        self,
        *,
        agent: AgentProfile,
        record: RoundRecord,
        round_number: int,
        provider: ReasoningProvider,
        channel: asyncio.Queue[StreamChunk],
        period: float,
        offset: float = 0.0,
    ) -> None:
        self.agent = agent
        self.record = record
        self.round_number = round_number
        self.provider = provider
        self.channel = channel
        self.period = period
        self.offset = offset
        self.sent = 0

    async def run(self) -> None:
        if self.offset > 0:
            await asyncio.sleep(self.offset)

        while True:
            await asyncio.sleep(self.period)
            text = await self.provider.next_fragment(agent=self.agent, record=self.record, step=self.sent)
            if text is None:
                break
            await self.channel.put(
                StreamChunk.fragment(agent_id=self.agent.id, round_number=self.round_number, text=text)
            )
            self.sent += 1

        verdict = await self.provider.final_guess(agent=self.agent, record=self.record)
        await self.channel.put(
            StreamChunk.final(
                agent_id=self.agent.id,
                round_number=self.round_number,
                guess=verdict.guess,
                confidence=verdict.confidence,
            )
        )
        logger.debug("round %d: %s finished after %d fragments", self.round_number, self.agent.id, self.sent)
