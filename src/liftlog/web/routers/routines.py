"""Routine routes."""

from fastapi import APIRouter, Depends

from ...errors import NotFound
from ...services import RoutineService
from ..deps import get_routine_service, get_user_id
from ..schemas import RoutineCreate, RoutineUpdate

router = APIRouter(prefix="/routines", tags=["routines"])


@router.get("")
async def list_routines(
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    """The caller's routines, newest first."""
    routines = await service.list_routines(user_id)
    return [r.to_dict() for r in routines]


@router.post("", status_code=201)
async def create_routine(
    body: RoutineCreate,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    routine = await service.create_routine(
        user_id,
        name=body.name,
        description=body.description,
        exercises=[ex.to_model() for ex in body.exercises],
        visibility=body.visibility,
    )
    return routine.to_dict()


@router.get("/{routine_id}")
async def get_routine(
    routine_id: int,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    routine = await service.get_by_id(user_id, routine_id)
    if routine is None:
        raise NotFound("Routine not found")
    return routine.to_dict()


@router.patch("/{routine_id}")
async def update_routine(
    routine_id: int,
    body: RoutineUpdate,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    exercises = None
    if body.exercises is not None:
        exercises = [ex.to_model() for ex in body.exercises]
    routine = await service.update_routine(
        user_id,
        routine_id,
        name=body.name,
        description=body.description,
        exercises=exercises,
        visibility=body.visibility,
    )
    return routine.to_dict()


@router.delete("/{routine_id}", status_code=204)
async def delete_routine(
    routine_id: int,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    await service.delete_routine(user_id, routine_id)


@router.get("/{routine_id}/history")
async def routine_with_history(
    routine_id: int,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    """The routine plus recent performance of each exercise."""
    result = await service.get_with_history(user_id, routine_id)
    if result is None:
        raise NotFound("Routine not found")
    return result.to_dict()


@router.get("/{routine_id}/exercises/{exercise_id}/history")
async def exercise_history(
    routine_id: int,
    exercise_id: str,
    limit: int | None = None,
    user_id: str | None = Depends(get_user_id),
    service: RoutineService = Depends(get_routine_service),
):
    history = await service.get_exercise_history(user_id, routine_id, exercise_id, limit)
    if history is None:
        raise NotFound("Routine not found")
    return history.to_dict()
