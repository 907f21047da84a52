from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auction_app.api.routes import router as api_router
from auction_app.core.config import get_settings
from auction_app.core.logging_setup import configure_logging
from auction_app.realtime.socket_server import auction_service, build_socket_app

settings = get_settings()
configure_logging(settings.log_level)

api_app = FastAPI(title=settings.app_name, debug=settings.debug)

api_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
api_app.include_router(api_router, prefix=settings.api_prefix)


@api_app.on_event("shutdown")
def on_shutdown() -> None:
    auction_service.shutdown()


app = build_socket_app(api_app)
