"""API routes for answering workflow dialogs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from plugndump.api.deps import get_presenter
from plugndump.api.presenter import ApiPresenter
from plugndump.models.dialog import Dialog

router = APIRouter(prefix="/dialog", tags=["dialogs"])


class PendingDialog(BaseModel):
    id: int
    dialog: Dialog


class DialogResponse(BaseModel):
    id: int
    choice: int


@router.get("")
async def get_dialog(presenter: ApiPresenter = Depends(get_presenter)) -> PendingDialog | None:
    """The dialog waiting for an answer, if any."""
    pending = presenter.pending()
    if pending is None:
        return None
    dialog_id, dialog = pending
    return PendingDialog(id=dialog_id, dialog=dialog)


@router.post("/response")
async def answer_dialog(
    body: DialogResponse,
    presenter: ApiPresenter = Depends(get_presenter),
) -> dict:
    try:
        presenter.answer(body.id, body.choice)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {"id": body.id, "choice": body.choice}
