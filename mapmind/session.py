from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Mapping, Sequence
from contextlib import AsyncExitStack
from uuid import uuid4

from mapmind.agents.base import ReasoningProvider
from mapmind.agents.profiles import AGENTS, AgentProfile
from mapmind.api.models import (
    AnalysisComplete,
    Countdown,
    FinalScoreboard,
    GameStarting,
    LeaderboardEntry,
    RoundStart,
    SessionPhase,
    WireModel,
)
from mapmind.config import GameSettings
from mapmind.connection import ViewerConnection
from mapmind.coordinator import RoundCoordinator
from mapmind.core.geo import Coordinate
from mapmind.core.scoring import ScoredGuess, build_leaderboard
from mapmind.fsm import RoundFSM
from mapmind.rounds.registry import RoundDeck, RoundRecord
from mapmind.timers import TimerRegistry

logger = logging.getLogger(__name__)

COUNTDOWN_FROM = 3

ProviderFactory = Callable[..., ReasoningProvider]


class Session:
    """All game state for one viewer connection.

    Owned by that connection's dispatcher and discarded on reset or disconnect.
    Every task the session starts is registered in `timers`; the active round's
    coordinator lives in an AsyncExitStack so it is released on next round,
    reset and teardown alike.
    """

    def __init__(
        self,
        *,
        connection: ViewerConnection,
        rounds: Sequence[RoundRecord],
        settings: GameSettings,
        provider: ReasoningProvider,
        seed: int,
        agents: Sequence[AgentProfile] = AGENTS,
    ) -> None:
        if not rounds:
            raise ValueError("A session needs at least one round")

        self.session_id = uuid4().hex[:12]
        self.connection = connection
        self.settings = settings
        self.provider = provider
        self.seed = seed
        self.agents = tuple(agents)

        self.rounds = tuple(rounds)
        self.total_rounds = len(self.rounds)
        self.round_index = 0

        self.total_distance: dict[str, int] = {a.id: 0 for a in self.agents}
        self.round_wins: dict[str, int] = {a.id: 0 for a in self.agents}
        self.tied_rounds = 0
        self.current_guesses: dict[str, Coordinate] = {}
        self.pending: RoundRecord | None = None

        self.phase = SessionPhase.idle
        self.fsm = RoundFSM(self)
        self.timers = TimerRegistry(owner=f"session-{self.session_id}")
        self.coordinator: RoundCoordinator | None = None
        self._round_stack = AsyncExitStack()
        self.closed = False

    async def emit(self, event: WireModel) -> bool:
        if self.closed:
            return False
        return await self.connection.send(event)

    # ---- lifecycle ----

    async def start(self) -> None:
        """Acknowledge the game, then count down 3, 2, 1 and open round 1."""

        self.fsm.advance("start_countdown")
        logger.info("session %s starting: %d rounds (seed=%d)", self.session_id, self.total_rounds, self.seed)
        await self.emit(GameStarting())
        self.timers.spawn(self._countdown(), name="countdown")

    async def _countdown(self) -> None:
        for count in range(COUNTDOWN_FROM, 0, -1):
            await self.emit(Countdown(count=count))
            await asyncio.sleep(self.settings.countdown_interval)
        await self.begin_round()

    async def begin_round(self) -> None:
        if self.closed:
            return
        if self.round_index >= self.total_rounds:
            raise ValueError("No rounds left")
        self.fsm.advance("begin_round")

        # Release the previous round's coordinator before the next one starts.
        await self._round_stack.aclose()
        self._round_stack = AsyncExitStack()

        self.round_index += 1
        self.current_guesses.clear()
        self.pending = None
        record = self.rounds[self.round_index - 1]

        logger.info("session %s round %d/%d: %s", self.session_id, self.round_index, self.total_rounds, record.id)
        await self.emit(RoundStart(round=self.round_index, total_rounds=self.total_rounds, photo=record.image))

        self.coordinator = await self._round_stack.enter_async_context(
            RoundCoordinator(
                session=self,
                record=record,
                round_number=self.round_index,
                provider=self.provider,
                agents=self.agents,
                settings=self.settings,
            )
        )

    async def mark_analysis_complete(self, record: RoundRecord) -> None:
        """Both agents are done: gate results behind `request_results`."""

        self.fsm.advance("analysis_done")
        self.pending = record
        await self.emit(AnalysisComplete())

    async def request_results(self) -> None:
        if self.pending is None or self.coordinator is None:
            raise ValueError("No results pending")
        self.fsm.advance("reveal_results")
        self.pending = None
        await self.emit(self.coordinator.finalize())

    async def next_round(self) -> None:
        if self.phase != SessionPhase.showing_results:
            raise ValueError(f"Cannot start the next round in phase '{self.phase.value}'")
        await self.begin_round()

    async def show_scoreboard(self) -> None:
        # Permissive: any phase gets a snapshot; only the end of the game changes phase.
        if self.phase == SessionPhase.showing_results and self.round_index >= self.total_rounds:
            self.fsm.advance("open_scoreboard")
        await self.emit(FinalScoreboard(leaderboard=self.leaderboard()))

    async def close(self) -> None:
        """Cancel every timer and release the round. Idempotent."""

        if self.closed:
            return
        self.closed = True
        await self.timers.cancel_all()
        await self._round_stack.aclose()
        self.coordinator = None
        self.pending = None
        logger.info("session %s closed after round %d/%d", self.session_id, self.round_index, self.total_rounds)

    # ---- scoring ----

    def apply_round_score(self, scored: Sequence[ScoredGuess], *, winner: str | None) -> None:
        for s in scored:
            self.total_distance[s.agent_id] += s.distance_km
        if winner is None:
            self.tied_rounds += 1
        else:
            self.round_wins[winner] += 1

    def leaderboard(self) -> list[LeaderboardEntry]:
        return leaderboard_entries(self.agents, total_distance=self.total_distance, round_wins=self.round_wins)


def leaderboard_entries(
    agents: Sequence[AgentProfile],
    *,
    total_distance: Mapping[str, int] | None = None,
    round_wins: Mapping[str, int] | None = None,
) -> list[LeaderboardEntry]:
    """Leaderboard frame rows, closest cumulative distance first. Missing totals count as zero."""

    by_id = {a.id: a for a in agents}
    standings = build_leaderboard(
        agent_ids=[a.id for a in agents],
        total_distance=total_distance or {},
        round_wins=round_wins or {},
    )
    return [
        LeaderboardEntry(
            id=s.agent_id,
            name=by_id[s.agent_id].name,
            color=by_id[s.agent_id].color,
            total_distance=s.total_distance,
            round_wins=s.round_wins,
        )
        for s in standings
    ]


def create_session(
    *,
    connection: ViewerConnection,
    deck: RoundDeck,
    settings: GameSettings,
    provider_factory: ProviderFactory,
) -> Session:
    """Draw a shuffled set of rounds and build a fresh session with zeroed totals."""

    seed = settings.seed if settings.seed is not None else random.randrange(2**32)
    rounds = deck.draw(n=settings.max_rounds, seed=seed)
    provider = provider_factory(settings=settings, seed=seed)
    return Session(connection=connection, rounds=rounds, settings=settings, provider=provider, seed=seed)
