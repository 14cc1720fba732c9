"""API routes for attached flight controllers."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from plugndump.api.deps import get_service
from plugndump.core.service import PlugNDumpService
from plugndump.models.device import DeviceDescriptor

router = APIRouter(tags=["devices"])


@router.get("/devices")
async def list_devices(service: PlugNDumpService = Depends(get_service)) -> list[DeviceDescriptor]:
    """Scan now and return the attached flight controllers."""
    return await service.request_device_scan()
