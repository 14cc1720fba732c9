"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from plugndump.api.presenter import ApiPresenter
from plugndump.core.service import PlugNDumpService


def get_service(request: Request) -> PlugNDumpService:
    return request.app.state.service


def get_presenter(request: Request) -> ApiPresenter:
    return request.app.state.presenter
