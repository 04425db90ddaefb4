from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from mapmind.api.deps import get_provider_factory, get_round_deck, get_settings
from mapmind.api.models import HealthResponse, SampleRound
from mapmind.config import GameSettings
from mapmind.connection import ViewerConnection
from mapmind.dispatcher import ProtocolDispatcher
from mapmind.rounds.registry import RoundDeck
from mapmind.session import ProviderFactory

logger = logging.getLogger(__name__)

router = APIRouter()


# Also served at "/" for clients that open the socket on the page origin.
@router.websocket("/ws")
@router.websocket("/")
async def game_ws(
    websocket: WebSocket,
    settings: GameSettings = Depends(get_settings),
    deck: RoundDeck = Depends(get_round_deck),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> None:
    await websocket.accept()
    dispatcher = ProtocolDispatcher(
        connection=ViewerConnection(websocket),
        deck=deck,
        settings=settings,
        provider_factory=provider_factory,
    )
    logger.info("viewer %s connected", dispatcher.viewer_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await dispatcher.handle(raw)
    except WebSocketDisconnect:
        logger.info("viewer %s disconnected", dispatcher.viewer_id)
        await dispatcher.close()
    except Exception:
        await dispatcher.close()
        raise


@router.get("/health", response_model=HealthResponse)
async def healthcheck() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/api/sample-rounds", response_model=list[SampleRound])
async def sample_rounds(deck: RoundDeck = Depends(get_round_deck)) -> list[SampleRound]:
    return [SampleRound.model_validate(r.as_dict()) for r in deck.records]
