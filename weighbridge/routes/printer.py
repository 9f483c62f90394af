from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from weighbridge.container import WeighbridgeServices
from weighbridge.core.log import get_logger
from weighbridge.models.print_job import BillSnapshot, PrintMode, PrintRequest, PrintTarget
from weighbridge.routes.deps import get_services
from weighbridge.services.raw_socket import RAW_PORT, test_connectivity

logger = get_logger("api.printer")

router = APIRouter(prefix="/api/printer", tags=["printer"])


class PrintTargetBody(BaseModel):
    name: str = ""
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, gt=0, lt=65536)


class PrintBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: Optional[Literal["local", "ip", "html", "pdf"]] = None
    target: PrintTargetBody = Field(default_factory=PrintTargetBody)
    copies: int = Field(default=1, ge=1)
    company_settings: Dict[str, Any] = Field(default_factory=dict, alias="companySettings")
    bill: Dict[str, Any]


class ProbeBody(BaseModel):
    host: Optional[str] = None
    port: int = Field(default=RAW_PORT, gt=0, lt=65536)


@router.post("/print")
async def print_bill(body: PrintBody, services: WeighbridgeServices = Depends(get_services)):
    try:
        bill = BillSnapshot.from_dict(body.bill)
    except ValueError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    request = PrintRequest(
        bill=bill,
        mode=PrintMode(body.mode) if body.mode else None,
        target=PrintTarget(name=body.target.name, host=body.target.host, port=body.target.port),
        copies=body.copies,
        company=services.settings.company.merged(body.company_settings),
    )
    result = await services.dispatcher.dispatch(request)
    if not result.success:
        logger.warning("Print of bill %s failed via %s: %s", bill.bill_no, result.method, result.error)
    return {"billNo": bill.bill_no, **result.as_dict()}


@router.get("/printers")
async def list_printers(services: WeighbridgeServices = Depends(get_services)) -> Dict[str, Any]:
    return {"printers": await services.dispatcher.list_printers()}


@router.post("/test-ip")
async def probe_ip_printer(body: ProbeBody):
    if not body.host:
        return JSONResponse(status_code=400, content={"error": "host is required"})
    return await test_connectivity(body.host, body.port)


@router.get("/status")
async def printer_status(services: WeighbridgeServices = Depends(get_services)) -> Dict[str, Any]:
    return services.dispatcher.status()
