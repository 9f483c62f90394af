"""FastAPI application exposing the weight feed and print dispatch."""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weighbridge import __version__
from weighbridge.container import WeighbridgeServices
from weighbridge.core.log import get_logger
from weighbridge.routes import printer as printer_routes
from weighbridge.routes import scale as scale_routes

LOG = get_logger("api")


def create_app(
    services: Optional[WeighbridgeServices] = None,
    *,
    services_factory: Callable[[], WeighbridgeServices] = WeighbridgeServices,
) -> FastAPI:
    """Build the app; services are created lazily so importing stays cheap."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        current = app.state.services
        if current is None:
            current = services_factory()
            app.state.services = current
        await current.start()
        try:
            yield
        finally:
            await current.shutdown()

    app = FastAPI(title="Weighbridge Backend API", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scale_routes.router)
    app.include_router(scale_routes.ws_router)
    app.include_router(printer_routes.router)

    @app.get("/api/health")
    async def health_check():
        current: Optional[WeighbridgeServices] = app.state.services
        return {
            "status": "ok",
            "serialPort": bool(current and current.connection.connected),
            "simulation": bool(current and current.connection.simulation),
            "timestamp": datetime.now().isoformat(),
        }

    return app


app = create_app()
