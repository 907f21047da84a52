from fastapi import APIRouter, HTTPException, status

from auction_app.realtime.socket_server import auction_service
from auction_app.schemas.auction import RoomStateRead

router = APIRouter()


@router.get("/{room_code}", response_model=RoomStateRead)
def get_room(room_code: str) -> RoomStateRead:
    snapshot = auction_service.snapshot(room_code.upper())
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return RoomStateRead.model_validate(snapshot)
