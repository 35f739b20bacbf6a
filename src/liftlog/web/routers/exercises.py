"""Exercise record routes."""

from fastapi import APIRouter, Depends

from ...services import RoutineService
from ..deps import get_routine_service, get_user_id

router = APIRouter(prefix="/exercises", tags=["exercises"])


@router.get("/{exercise_id}/prs")
async def exercise_prs(
    exercise_id: str,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    """The caller's personal records for an exercise, or null."""
    prs = await service.get_exercise_prs(user_id, exercise_id)
    return prs.to_dict() if prs else None
