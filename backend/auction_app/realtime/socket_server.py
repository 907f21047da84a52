import logging

import socketio
from pydantic import BaseModel, ValidationError

from auction_app.schemas.auction import (
    JoinRoomRequest,
    PlaceBidRequest,
    RoomIntentRequest,
    SendChatRequest,
    StartAuctionRequest,
    TogglePauseRequest,
    UpdateSettingsRequest,
)
from auction_app.services.auction_engine import (
    EVENT_STATE_UPDATED,
    TARGET_SENDER,
    RoomEvent,
)
from auction_app.services.room_service import build_room_service
from auction_app.services.room_store import room_store

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")
auction_service = build_room_service(room_store, spawn=sio.start_background_task)


def _room(room_code: str) -> str:
    return f"room:{room_code}"


async def _publish_room_events(room_code: str, events: list[RoomEvent]) -> None:
    for event in events:
        await sio.emit(event.name, event.payload, room=_room(room_code))


auction_service.set_publisher(_publish_room_events)


def _parse(model: type[BaseModel], data) -> BaseModel | None:
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as exc:
        logger.debug("malformed %s payload ignored: %s", model.__name__, exc.errors())
        return None


async def _session(sid: str) -> dict | None:
    try:
        return await sio.get_session(sid)
    except KeyError:
        return None


async def _attach_sid_to_room(sid: str, room_code: str | None) -> str | None:
    session = await _session(sid)
    if session is None:
        return None
    previous_room_code = session.get("room_code")
    if previous_room_code and previous_room_code != room_code:
        await sio.leave_room(sid, _room(previous_room_code))
    if room_code:
        await sio.enter_room(sid, _room(room_code))
    session["room_code"] = room_code
    await sio.save_session(sid, session)
    return previous_room_code


async def _requester_id(sid: str, explicit: str | None) -> str | None:
    if explicit:
        return explicit
    session = await _session(sid)
    return session.get("franchise_id") if session else None


@sio.event
async def connect(sid: str, environ: dict, auth: dict | None = None) -> bool:
    await sio.save_session(
        sid,
        {"room_code": None, "franchise_id": None, "display_name": None},
    )
    logger.debug("socket connected sid=%s", sid)
    return True


@sio.event
async def disconnect(sid: str) -> None:
    # franchise slots stay claimed for the room's lifetime
    session = await _session(sid)
    logger.debug(
        "socket disconnected sid=%s room=%s franchise=%s",
        sid,
        session.get("room_code") if session else None,
        session.get("franchise_id") if session else None,
    )


@sio.event
async def join_room(sid: str, data: dict | None = None) -> None:
    payload = _parse(JoinRoomRequest, data)
    if payload is None:
        return
    session = await _session(sid)
    previous_room_code = session.get("room_code") if session else None
    await _attach_sid_to_room(sid, payload.room_code)

    transition = await auction_service.join(
        payload.room_code,
        payload.franchise_id,
        payload.display_name,
        mode=payload.mode,
    )
    if transition is None or not transition.accepted:
        for event in transition.events if transition else []:
            if event.target == TARGET_SENDER:
                await sio.emit(event.name, event.payload, room=sid)
        await _attach_sid_to_room(sid, previous_room_code)
        return

    session = await _session(sid)
    if session is not None:
        session["franchise_id"] = payload.franchise_id
        session["display_name"] = payload.display_name.strip()
        await sio.save_session(sid, session)
    logger.info(
        "franchise joined room=%s franchise=%s name=%s",
        payload.room_code,
        payload.franchise_id,
        payload.display_name.strip(),
    )


@sio.event
async def start_auction(sid: str, data: dict | None = None) -> None:
    payload = _parse(StartAuctionRequest, data)
    if payload is None:
        return
    requester_id = await _requester_id(sid, payload.requester_id)
    await auction_service.start(payload.room_code, requester_id)


@sio.event
async def place_bid(sid: str, data: dict | None = None) -> None:
    payload = _parse(PlaceBidRequest, data)
    if payload is None:
        return
    await auction_service.bid(payload.room_code, payload.franchise_id, payload.amount)


@sio.event
async def toggle_pause(sid: str, data: dict | None = None) -> None:
    payload = _parse(TogglePauseRequest, data)
    if payload is None:
        return
    requester_id = await _requester_id(sid, payload.requester_id)
    await auction_service.toggle_pause(payload.room_code, requester_id)


@sio.event
async def update_settings(sid: str, data: dict | None = None) -> None:
    payload = _parse(UpdateSettingsRequest, data)
    if payload is None:
        return
    requester_id = await _requester_id(sid, payload.requester_id)
    await auction_service.update_settings(
        payload.room_code,
        requester_id,
        min_increment=payload.min_increment,
        timer_duration=payload.timer_duration,
        mode=payload.mode,
    )


@sio.event
async def send_chat(sid: str, data: dict | None = None) -> None:
    payload = _parse(SendChatRequest, data)
    if payload is None:
        return
    await auction_service.chat(
        payload.room_code,
        payload.sender,
        payload.franchise_id,
        payload.text,
    )


@sio.event
async def sync_state(sid: str, data: dict | None = None) -> None:
    payload = _parse(RoomIntentRequest, data)
    if payload is None:
        return
    snapshot = auction_service.snapshot(payload.room_code)
    if snapshot is None:
        return
    await sio.emit(EVENT_STATE_UPDATED, snapshot, room=sid)


def build_socket_app(api_app) -> socketio.ASGIApp:
    return socketio.ASGIApp(sio, other_asgi_app=api_app, socketio_path="socket.io")
