from dataclasses import asdict

from fastapi import APIRouter

from auction_app.schemas.auction import FranchiseRead, PlayerRead
from auction_app.services.catalog import FRANCHISES, PLAYER_POOL

router = APIRouter()


@router.get("/franchises", response_model=list[FranchiseRead])
def list_franchises() -> list[FranchiseRead]:
    return [FranchiseRead(**asdict(franchise)) for franchise in FRANCHISES]


@router.get("/players", response_model=list[PlayerRead])
def list_players() -> list[PlayerRead]:
    return [PlayerRead(**asdict(item)) for item in PLAYER_POOL]
