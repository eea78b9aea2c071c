"""Realtime sync gateway: the pub/sub channel shared by everyone in a room.

Outbound events: ``join-room``, ``update-status``, ``update-score``,
``leave-room``. Inbound events: ``room-questions``, ``participants-update``,
``score-updated``, ``user-joined``, ``user-left``.

Transport (Socket.IO over websocket with polling fallback, reconnect with
backoff) is provided by python-socketio; the session only sees the
:class:`Gateway` interface so tests can swap in an in-memory one.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import socketio
from socketio import exceptions as sio_exceptions

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.room.errors import ConnectivityError


logger = get_logger(__name__)

Handler = Callable[..., Any]

# outbound
JOIN_ROOM = "join-room"
UPDATE_STATUS = "update-status"
UPDATE_SCORE = "update-score"
LEAVE_ROOM = "leave-room"

# inbound
ROOM_QUESTIONS = "room-questions"
PARTICIPANTS_UPDATE = "participants-update"
SCORE_UPDATED = "score-updated"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"

# transport lifecycle
CONNECT = "connect"
CONNECT_ERROR = "connect_error"
DISCONNECT = "disconnect"

# disconnect reason when the server dropped us; the client will not retry on its own
SERVER_DISCONNECT = "io server disconnect"


class Gateway:
    """Interface the room session talks to."""

    @property
    def sid(self) -> Optional[str]:
        """This connection's id; matches the local participant's ``id``."""
        raise NotImplementedError

    def on(self, event: str, handler: Handler) -> None:
        raise NotImplementedError

    async def connect(self) -> None:
        raise NotImplementedError

    async def emit(self, event: str, payload: Any) -> None:
        raise NotImplementedError

    async def disconnect(self) -> None:
        raise NotImplementedError


class SocketIOGateway(Gateway):
    def __init__(
        self,
        url: Optional[str] = None,
        *,
        connect_timeout: Optional[float] = None,
        reconnect: Optional[bool] = None,
        client: Optional[socketio.AsyncClient] = None,
    ) -> None:
        self.url = url or settings.gateway.url
        self.connect_timeout = (
            connect_timeout
            if connect_timeout is not None
            else settings.gateway.connect_timeout_sec
        )
        self._client = client or socketio.AsyncClient(
            reconnection=settings.gateway.reconnect if reconnect is None else reconnect
        )

    @property
    def sid(self) -> Optional[str]:
        return self._client.get_sid()

    def on(self, event: str, handler: Handler) -> None:
        self._client.on(event, handler)

    async def connect(self) -> None:
        logger.info("Connecting to Socket.IO at %s", self.url)
        try:
            await self._client.connect(
                self.url,
                transports=["websocket", "polling"],
                wait_timeout=self.connect_timeout,
            )
        except sio_exceptions.ConnectionError as e:
            raise ConnectivityError(
                "Failed to connect to real-time service. Some features may not work."
            ) from e

    async def emit(self, event: str, payload: Any) -> None:
        try:
            await self._client.emit(event, payload)
        except sio_exceptions.SocketIOError as e:
            raise ConnectivityError() from e

    async def disconnect(self) -> None:
        await self._client.disconnect()
