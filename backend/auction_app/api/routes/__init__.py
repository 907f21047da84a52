from fastapi import APIRouter

from auction_app.api.routes.catalog import router as catalog_router
from auction_app.api.routes.health import router as health_router
from auction_app.api.routes.rooms import router as rooms_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
router.include_router(rooms_router, prefix="/rooms", tags=["rooms"])
