import logging
from typing import Callable

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from auction_app.services.auction_engine import (
    EVENT_CHAT_MESSAGE,
    EVENT_ERROR,
    EVENT_SOUND_CUE,
    EVENT_STATE_UPDATED,
    EVENT_TIMER_TICK,
    RoomEvent,
)
from auction_app.services.detached_service import DetachedAuctionSession, build_detached_session

logger = logging.getLogger(__name__)

Listener = Callable[[RoomEvent], None]

_ROOM_EVENTS = (
    EVENT_STATE_UPDATED,
    EVENT_TIMER_TICK,
    EVENT_SOUND_CUE,
    EVENT_CHAT_MESSAGE,
    EVENT_ERROR,
)


class ServerUnavailableError(ConnectionError):
    """The authoritative server could not be reached.

    Recoverable: ``detached_session()`` builds a local substitute for the
    same room and franchise.
    """

    def __init__(self, server_url: str, room_code: str, franchise_id: str, display_name: str) -> None:
        super().__init__(f"auction server unreachable at {server_url}")
        self.server_url = server_url
        self.room_code = room_code
        self.franchise_id = franchise_id
        self.display_name = display_name

    def detached_session(self) -> DetachedAuctionSession:
        return build_detached_session(self.room_code, self.franchise_id, self.display_name)


class RemoteAuctionSession:
    def __init__(
        self,
        server_url: str,
        room_code: str,
        franchise_id: str,
        display_name: str,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        self.server_url = server_url
        self.room_code = room_code.upper()
        self.franchise_id = franchise_id
        self.display_name = display_name
        self.state: dict | None = None
        self.last_error: str | None = None
        self._listeners: list[Listener] = []
        self._client = client or socketio.AsyncClient(reconnection=True)
        for event_name in _ROOM_EVENTS:
            self._client.on(event_name, self._make_handler(event_name))

    def _make_handler(self, event_name: str) -> Callable[[dict], None]:
        def handler(payload: dict) -> None:
            self._receive(RoomEvent(event_name, payload))

        return handler

    def _receive(self, event: RoomEvent) -> None:
        if event.name == EVENT_STATE_UPDATED:
            self.state = event.payload
        elif event.name == EVENT_ERROR:
            self.last_error = event.payload.get("reason") if isinstance(event.payload, dict) else None
        for listener in list(self._listeners):
            listener(event)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def connect(self, timeout: float = 5.0) -> None:
        await self._client.connect(
            self.server_url,
            transports=["websocket", "polling"],
            wait_timeout=timeout,
        )

    async def _send(self, event_name: str, payload: dict) -> None:
        await self._client.emit(event_name, {"room_code": self.room_code, **payload})

    async def join(self) -> None:
        await self._send(
            "join_room",
            {"franchise_id": self.franchise_id, "display_name": self.display_name},
        )

    async def start(self) -> None:
        await self._send("start_auction", {"requester_id": self.franchise_id})

    async def bid(self, amount: int) -> None:
        await self._send("place_bid", {"franchise_id": self.franchise_id, "amount": amount})

    async def toggle_pause(self) -> None:
        await self._send("toggle_pause", {"requester_id": self.franchise_id})

    async def update_settings(
        self,
        min_increment: int | None = None,
        timer_duration: int | None = None,
        mode: str | None = None,
    ) -> None:
        changes = {
            key: value
            for key, value in (
                ("min_increment", min_increment),
                ("timer_duration", timer_duration),
                ("mode", mode),
            )
            if value is not None
        }
        await self._send("update_settings", {"requester_id": self.franchise_id, **changes})

    async def send_chat(self, text: str) -> None:
        await self._send(
            "send_chat",
            {"sender": self.display_name, "franchise_id": self.franchise_id, "text": text},
        )

    async def close(self) -> None:
        await self._client.disconnect()


async def connect_session(
    server_url: str,
    room_code: str,
    franchise_id: str,
    display_name: str,
    timeout: float = 5.0,
    client: socketio.AsyncClient | None = None,
) -> RemoteAuctionSession:
    session = RemoteAuctionSession(server_url, room_code, franchise_id, display_name, client=client)
    try:
        await session.connect(timeout=timeout)
    except SocketConnectionError as exc:
        logger.warning("auction server unreachable url=%s error=%s", server_url, exc)
        raise ServerUnavailableError(
            server_url, session.room_code, franchise_id, display_name
        ) from exc
    await session.join()
    return session
