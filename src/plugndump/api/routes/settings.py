"""API routes for persisted settings."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from plugndump.api.deps import get_service
from plugndump.config import AppSettings
from plugndump.core.service import PlugNDumpService
from plugndump.exceptions import PersistenceError

router = APIRouter(tags=["settings"])


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their value."""

    auto_extract_on_detection: bool | None = None
    minimize_to_tray: bool | None = None
    run_on_startup: bool | None = None
    output_dir: Path | None = None


@router.get("/settings")
async def get_settings(service: PlugNDumpService = Depends(get_service)) -> AppSettings:
    return service.settings_store.settings


@router.put("/settings")
async def update_settings(
    body: SettingsUpdate,
    service: PlugNDumpService = Depends(get_service),
) -> AppSettings:
    try:
        return service.settings_store.update(**body.model_dump(exclude_unset=True))
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
