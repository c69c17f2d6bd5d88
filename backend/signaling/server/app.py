from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from shared.logging import setup_logging
from signaling.server.settings import SignalingServerSettings
from signaling.server.websocket import websocket_endpoint
from signaling.session.coordinator import Coordinator

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    coordinator: Coordinator = request.app.state.coordinator
    return JSONResponse(
        {
            "status": "ok",
            "clients": coordinator.client_count,
            "sessions": coordinator.session_count,
        },
    )


def create_app(
    settings: SignalingServerSettings | None = None,
    coordinator: Coordinator | None = None,
) -> Starlette:
    if settings is None:
        settings = SignalingServerSettings()

    if coordinator is None:
        coordinator = Coordinator(liveness_interval=settings.liveness_interval)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, coordinator)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        coordinator.start()
        yield
        await coordinator.stop()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.coordinator = coordinator

    logger.info("signaling server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = SignalingServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
