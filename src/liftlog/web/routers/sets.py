"""Logged set routes."""

from fastapi import APIRouter, Depends

from ...errors import NotFound
from ...services import SetLedger
from ..deps import get_set_ledger, get_user_id
from ..schemas import SetUpdate

router = APIRouter(prefix="/sets", tags=["sets"])


@router.get("/{set_id}")
async def get_set(
    set_id: int,
    user_id: str | None = Depends(get_user_id),
    ledger: SetLedger = Depends(get_set_ledger),
):
    workout_set = await ledger.get_set(user_id, set_id)
    if workout_set is None:
        raise NotFound("Set not found")
    return workout_set.to_dict()


@router.patch("/{set_id}")
async def update_set(
    set_id: int,
    body: SetUpdate,
    user_id: str | None = Depends(get_user_id),
    ledger: SetLedger = Depends(get_set_ledger),
):
    workout_set = await ledger.update_set(user_id, set_id, **body.model_dump(exclude_none=True))
    return workout_set.to_dict()


@router.delete("/{set_id}", status_code=204)
async def delete_set(
    set_id: int,
    user_id: str | None = Depends(get_user_id),
    ledger: SetLedger = Depends(get_set_ledger),
):
    """Delete a set; later sets of the same exercise move up."""
    await ledger.delete_set(user_id, set_id)
