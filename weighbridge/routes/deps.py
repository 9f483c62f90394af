from __future__ import annotations

from fastapi import Request

from weighbridge.container import WeighbridgeServices


def get_services(request: Request) -> WeighbridgeServices:
    return request.app.state.services
