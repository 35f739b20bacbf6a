"""Workout session routes."""

from fastapi import APIRouter, Depends

from ...errors import NotFound
from ...models.session import SessionStatus
from ...services import SessionService, SetLedger
from ..deps import get_session_service, get_set_ledger, get_user_id
from ..schemas import SessionComplete, SessionStart, SetCreate

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def start_session(
    body: SessionStart,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    """Start a workout from one of the caller's routines."""
    started = await service.start(user_id, body.routine_id, body.visibility, body.name)
    return started.to_dict()


@router.get("/active")
async def active_session(
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    """The caller's open workout, or null."""
    detail = await service.get_active(user_id)
    return detail.to_dict() if detail else None


@router.get("/recent")
async def recent_sessions(
    limit: int | None = None,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    details = await service.recent(user_id, limit)
    return [d.to_dict(include_sets=False) for d in details]


@router.get("/history")
async def session_history(
    status: SessionStatus | None = None,
    limit: int | None = None,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    details, has_more = await service.history(user_id, status, limit)
    return {"sessions": [d.to_dict() for d in details], "has_more": has_more}


@router.get("/spectatable")
async def spectatable_sessions(
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    details = await service.spectatable(user_id)
    return [d.to_dict(include_sets=False) for d in details]


@router.get("/friends")
async def friends_sessions(
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    details = await service.active_for_friends(user_id)
    return [d.to_dict(include_sets=False) for d in details]


@router.get("/public")
async def public_sessions(
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    details = await service.active_public(user_id)
    return [d.to_dict(include_sets=False) for d in details]


@router.get("/{session_id}")
async def get_session(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    detail = await service.get_by_id(user_id, session_id)
    if detail is None:
        raise NotFound("Workout not found")
    return detail.to_dict()


@router.get("/{session_id}/follow")
async def follow_session(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    """Spectator view of a live workout."""
    detail = await service.follow(user_id, session_id)
    return detail.to_follow_dict()


@router.post("/{session_id}/pause")
async def pause_session(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    session = await service.pause(user_id, session_id)
    return session.to_dict()


@router.post("/{session_id}/resume")
async def resume_session(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    session = await service.resume(user_id, session_id)
    return session.to_dict()


@router.post("/{session_id}/complete")
async def complete_session(
    session_id: int,
    body: SessionComplete | None = None,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    notes = body.notes if body else None
    session = await service.complete(user_id, session_id, notes)
    return session.to_dict()


@router.post("/{session_id}/cancel")
async def cancel_session(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    session = await service.cancel(user_id, session_id)
    return session.to_dict()


@router.post("/{session_id}/heartbeat")
async def heartbeat(
    session_id: int,
    user_id: str | None = Depends(get_user_id),
    service: SessionService = Depends(get_session_service),
):
    session = await service.heartbeat(user_id, session_id)
    return session.to_dict()


@router.post("/{session_id}/sets", status_code=201)
async def add_set(
    session_id: int,
    body: SetCreate,
    user_id: str | None = Depends(get_user_id),
    ledger: SetLedger = Depends(get_set_ledger),
):
    """Log a set in an active workout."""
    workout_set = await ledger.add_set(
        user_id,
        session_id,
        exercise_id=body.exercise_id,
        reps=body.reps,
        weight=body.weight,
        weight_unit=body.weight_unit,
        side=body.side,
        label=body.label,
        note=body.note,
        rpe=body.rpe,
    )
    return workout_set.to_dict()
