from __future__ import annotations

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field

from weighbridge.container import WeighbridgeServices
from weighbridge.core.log import get_logger
from weighbridge.routes.deps import get_services

logger = get_logger("api.scale")

router = APIRouter(prefix="/api/scale", tags=["scale"])
ws_router = APIRouter(tags=["scale"])


class SerialConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    port: str = Field(min_length=1)
    baud_rate: int = Field(default=9600, gt=0, alias="baudRate")


@router.get("/status")
async def scale_status(services: WeighbridgeServices = Depends(get_services)) -> Dict[str, Any]:
    return services.connection.status()


@router.get("/weight")
async def scale_weight(services: WeighbridgeServices = Depends(get_services)) -> Dict[str, Any]:
    return services.connection.snapshot()


@router.get("/ports")
async def scale_ports(services: WeighbridgeServices = Depends(get_services)) -> Dict[str, Any]:
    return {"ports": await services.connection.available_endpoints()}


@router.post("/config")
async def scale_config(
    data: SerialConfigRequest,
    services: WeighbridgeServices = Depends(get_services),
) -> Dict[str, Any]:
    await services.reconfigure_serial(data.port, data.baud_rate)
    return {"ok": True, **services.connection.status()}


async def _receive_loop(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive_text()
        try:
            data = json.loads(message)
        except ValueError:
            continue
        if isinstance(data, dict) and data.get("type") == "ping":
            await websocket.send_json({"type": "pong"})


@ws_router.websocket("/ws")
@ws_router.websocket("/ws/scale")
async def websocket_weight(websocket: WebSocket) -> None:
    """Live weight and connection status stream."""
    services: WeighbridgeServices = websocket.app.state.services
    await websocket.accept()
    subscription = services.broadcaster.subscribe()
    pump = asyncio.create_task(subscription.pump(websocket.send_json))
    logger.info("WebSocket client connected (%d subscribers)", services.broadcaster.subscriber_count)
    try:
        await _receive_loop(websocket)
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.error("WebSocket error: %s", exc)
    finally:
        pump.cancel()
        services.broadcaster.unsubscribe(subscription.token)
