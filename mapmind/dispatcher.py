from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from uuid import uuid4

from pydantic import ValidationError

from mapmind.agents.factory import create_reasoning_provider
from mapmind.agents.profiles import AGENTS
from mapmind.api.models import ClientCommand, CommandName, FinalScoreboard, GameReset
from mapmind.commands.validators import CommandContext, pipeline_for_command
from mapmind.config import GameSettings
from mapmind.connection import ViewerConnection
from mapmind.rounds.registry import RoundDeck
from mapmind.session import ProviderFactory, Session, create_session, leaderboard_entries

logger = logging.getLogger(__name__)


def parse_command(raw: str | bytes) -> ClientCommand | None:
    """Parse an inbound frame. Anything that isn't a JSON object with a string `type` is None."""

    try:
        return ClientCommand.model_validate_json(raw)
    except ValidationError:
        return None


class ProtocolDispatcher:
    """Per-connection command router.

    Owns the viewer's Session. Every accepted command maps to one Session entry
    point; malformed frames, unknown commands and commands whose preconditions
    fail are dropped without a reply.
    """

    def __init__(
        self,
        *,
        connection: ViewerConnection,
        deck: RoundDeck,
        settings: GameSettings,
        provider_factory: ProviderFactory = create_reasoning_provider,
    ) -> None:
        self.viewer_id = uuid4().hex[:12]
        self.connection = connection
        self.deck = deck
        self.settings = settings
        self.provider_factory = provider_factory
        self.session: Session | None = None

        self._handlers: dict[CommandName, Callable[[], Awaitable[None]]] = {
            "start_game": self._start_game,
            "request_results": self._request_results,
            "next_round": self._next_round,
            "show_scoreboard": self._show_scoreboard,
            "play_again": self._play_again,
        }

    async def handle(self, raw: str | bytes) -> None:
        command = parse_command(raw)
        if command is None:
            logger.debug("viewer %s: dropped malformed frame", self.viewer_id)
            return

        handler = self._handlers.get(command.type)  # type: ignore[call-overload]
        if handler is None:
            logger.debug("viewer %s: ignoring unknown command %r", self.viewer_id, command.type)
            return

        ctx = CommandContext(viewer_id=self.viewer_id, command=command.type)
        try:
            pipeline_for_command(command.type).validate(ctx=ctx, session=self.session)
            await handler()
        except ValueError as e:
            logger.debug("viewer %s: rejected %s: %s", self.viewer_id, command.type, e)

    async def close(self) -> None:
        """Transport is gone: stop sending and tear the session down."""

        self.connection.close()
        await self._discard_session()

    async def _discard_session(self) -> None:
        if self.session is not None:
            session, self.session = self.session, None
            await session.close()

    def _require_session(self) -> Session:
        if self.session is None:
            raise ValueError("No running game")
        return self.session

    async def _fresh_session(self) -> Session:
        await self._discard_session()
        self.session = create_session(
            connection=self.connection,
            deck=self.deck,
            settings=self.settings,
            provider_factory=self.provider_factory,
        )
        return self.session

    # ---- command handlers ----

    async def _start_game(self) -> None:
        session = await self._fresh_session()
        await session.start()

    async def _request_results(self) -> None:
        await self._require_session().request_results()

    async def _next_round(self) -> None:
        await self._require_session().next_round()

    async def _show_scoreboard(self) -> None:
        if self.session is None:
            # No game yet: both agents stand at zero.
            await self.connection.send(FinalScoreboard(leaderboard=leaderboard_entries(AGENTS)))
            return
        await self.session.show_scoreboard()

    async def _play_again(self) -> None:
        session = await self._fresh_session()
        logger.info("viewer %s: game reset (session %s)", self.viewer_id, session.session_id)
        await session.emit(GameReset())
