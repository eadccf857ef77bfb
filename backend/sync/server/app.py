from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from lobby.games.service import GamesService
from lobby.views import get_game, list_games, new_game, new_user, root
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.dal import GuardedRoomStore
from shared.db import Database, SqliteRoomStore
from shared.exceptions import StoreUnavailableError
from shared.logging import setup_logging
from sync.messaging.router import MessageRouter
from sync.server.settings import SyncServerSettings
from sync.server.websocket import websocket_endpoint
from sync.session.coordinator import RoomSessionCoordinator
from sync.session.heartbeat import KeepAliveSender

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from shared.dal import RoomStore


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    coordinator: RoomSessionCoordinator = request.app.state.coordinator
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "connections": coordinator.session_count,
        },
    )


async def store_unavailable_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.warning("room store unavailable", error=str(exc))
    return JSONResponse({"error": "Room store unavailable"}, status_code=503)


def create_app(
    settings: SyncServerSettings | None = None,
    store: RoomStore | None = None,
    coordinator: RoomSessionCoordinator | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = SyncServerSettings()

    # When the app opens its own database, it owns the DB lifecycle.
    owned_db: Database | None = None

    if store is None:
        db = Database(settings.database_path, busy_timeout_seconds=settings.store_timeout_seconds)
        db.connect()
        owned_db = db
        store = GuardedRoomStore(
            SqliteRoomStore(db),
            timeout_seconds=settings.store_timeout_seconds,
            read_retries=settings.store_read_retries,
            retry_backoff_seconds=settings.store_retry_backoff_seconds,
        )

    if coordinator is None:
        coordinator = RoomSessionCoordinator(
            store,
            keepalive=KeepAliveSender(settings.keepalive_interval_seconds),
        )

    if message_router is None:
        message_router = MessageRouter(coordinator)

    games_service = GamesService(store, coordinator)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/", root, methods=["GET"]),
        Route("/games", list_games, methods=["GET"]),
        Route("/games/{game_number}", get_game, methods=["GET"]),
        Route("/newGame", new_game, methods=["POST"]),
        Route("/newUser", new_user, methods=["POST"]),
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        yield
        await coordinator.shutdown()
        if owned_db is not None:
            owned_db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={StoreUnavailableError: store_unavailable_handler},
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.coordinator = coordinator
    app.state.games_service = games_service

    logger.info("sync server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover  # deadcode: ignore
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = SyncServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
