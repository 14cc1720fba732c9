"""API routes for extraction, log erase and workflow reset."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from plugndump.api.deps import get_presenter, get_service
from plugndump.api.presenter import ApiPresenter
from plugndump.core.service import PlugNDumpService
from plugndump.exceptions import OperationInProgressError
from plugndump.models.progress import ProgressEvent

router = APIRouter(tags=["operations"])


@router.post("/extract", status_code=202)
async def extract(
    port: str = Query(..., description="Serial port path"),
    service: PlugNDumpService = Depends(get_service),
) -> dict:
    """Start an extraction; follow it through /api/progress."""
    try:
        service.start_extract(port)
    except OperationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"port": port, "started": True}


@router.post("/clear", status_code=202)
async def clear(
    port: str = Query(..., description="Serial port path"),
    service: PlugNDumpService = Depends(get_service),
) -> dict:
    """Start erasing the blackbox logs of the FC on *port*."""
    try:
        service.start_clear(port)
    except OperationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"port": port, "started": True}


@router.post("/reset")
async def reset(service: PlugNDumpService = Depends(get_service)) -> dict:
    """Cancel a pending replug-erase and close the tracked session."""
    await service.reset_workflow()
    return service.workflow.as_dict()


@router.get("/status")
async def status(
    service: PlugNDumpService = Depends(get_service),
    presenter: ApiPresenter = Depends(get_presenter),
) -> dict:
    """Extraction status, workflow phase and what the UI should show."""
    return {
        **service.extraction_status(),
        "ui": {
            "devices": [d.model_dump() for d in presenter.devices],
            "last_event": presenter.last_event,
            "reveal_requested": presenter.reveal_requested,
        },
    }


@router.get("/progress")
async def progress(
    since: int = Query(0, ge=0, description="Return events after this sequence number"),
    service: PlugNDumpService = Depends(get_service),
) -> list[ProgressEvent]:
    return service.reporter.since(since)
