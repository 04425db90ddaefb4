from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from mapmind.api.models import WireModel

logger = logging.getLogger(__name__)


class FrameSink(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None:  # pragma: no cover
        ...


class ViewerConnection:
    """One viewer's outbound side of the WebSocket.

    Contract:
      - `send(event)` is a no-op once the connection is closed.
      - a failed send closes the connection; the caller never sees the transport error.

    Sends are serialized so frames from concurrent round tasks never interleave.
    """

    def __init__(self, websocket: FrameSink) -> None:
        self._ws = websocket
        self._lock = asyncio.Lock()
        self._open = True

    @property
    def open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    async def send(self, event: WireModel) -> bool:
        if not self._open:
            return False

        payload = event.frame()
        async with self._lock:
            # Re-check: teardown may have happened while waiting for the lock.
            if not self._open:
                return False
            try:
                await self._ws.send_json(payload)
            except Exception as e:
                logger.info("send failed, closing viewer connection: %s", e)
                self._open = False
                return False
        return True
