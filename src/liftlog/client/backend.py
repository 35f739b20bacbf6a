"""Durable backends the session client talks to."""

import logging
from typing import Protocol, runtime_checkable

import httpx

from ..config import settings
from ..errors import InvalidState, MutationFailed, NotFound, Unauthorized
from ..models.routine import Routine, Visibility
from ..models.session import WorkoutSession
from ..models.workout_set import WorkoutSet
from ..services.sessions import SessionDetail, SessionService, StartedSession
from ..services.set_ledger import SetLedger

logger = logging.getLogger(__name__)


@runtime_checkable
class WorkoutBackend(Protocol):
    """Core session operations, already bound to one user.

    Implementations raise ``LiftLogError`` subclasses (or ``ValueError``
    for bad input) and never retry.
    """

    async def start_session(
        self, routine_id: int, visibility: Visibility | None = None
    ) -> StartedSession:
        ...

    async def add_set(
        self,
        session_id: int,
        exercise_id: str,
        reps: int,
        weight: float,
        weight_unit: str,
        side: str | None = None,
        label: str | None = None,
        note: str | None = None,
        rpe: float | None = None,
    ) -> WorkoutSet:
        ...

    async def update_set(self, set_id: int, **updates) -> WorkoutSet:
        ...

    async def delete_set(self, set_id: int) -> None:
        ...

    async def pause_session(self, session_id: int) -> WorkoutSession:
        ...

    async def resume_session(self, session_id: int) -> WorkoutSession:
        ...

    async def complete_session(
        self, session_id: int, notes: str | None = None
    ) -> WorkoutSession:
        ...

    async def cancel_session(self, session_id: int) -> WorkoutSession:
        ...

    async def heartbeat(self, session_id: int) -> WorkoutSession:
        ...

    async def get_active_session(self) -> SessionDetail | None:
        ...


class LocalBackend:
    """Calls the services in-process on behalf of one user."""

    def __init__(
        self,
        user_id: str | None,
        sessions: SessionService | None = None,
        ledger: SetLedger | None = None,
    ):
        self.user_id = user_id
        self.sessions = sessions or SessionService()
        self.ledger = ledger or SetLedger(self.sessions.db_path, self.sessions.clock)

    async def start_session(self, routine_id, visibility=None):
        return await self.sessions.start(self.user_id, routine_id, visibility)

    async def add_set(
        self,
        session_id,
        exercise_id,
        reps,
        weight,
        weight_unit,
        side=None,
        label=None,
        note=None,
        rpe=None,
    ):
        return await self.ledger.add_set(
            self.user_id, session_id, exercise_id, reps, weight, weight_unit,
            side=side, label=label, note=note, rpe=rpe,
        )

    async def update_set(self, set_id, **updates):
        return await self.ledger.update_set(self.user_id, set_id, **updates)

    async def delete_set(self, set_id):
        await self.ledger.delete_set(self.user_id, set_id)

    async def pause_session(self, session_id):
        return await self.sessions.pause(self.user_id, session_id)

    async def resume_session(self, session_id):
        return await self.sessions.resume(self.user_id, session_id)

    async def complete_session(self, session_id, notes=None):
        return await self.sessions.complete(self.user_id, session_id, notes)

    async def cancel_session(self, session_id):
        return await self.sessions.cancel(self.user_id, session_id)

    async def heartbeat(self, session_id):
        return await self.sessions.heartbeat(self.user_id, session_id)

    async def get_active_session(self):
        return await self.sessions.get_active(self.user_id)


# HTTP status -> error raised by the backend
ERRORS_BY_STATUS = {
    401: Unauthorized,
    404: NotFound,
    409: InvalidState,
    422: ValueError,
}


def _detail_from_dict(data: dict) -> SessionDetail:
    return SessionDetail(
        session=WorkoutSession.from_dict(data),
        routine=Routine.from_dict(data["routine"]) if data.get("routine") else None,
        sets=[WorkoutSet.from_dict(s) for s in data.get("sets", [])],
    )


class HttpBackend:
    """Talks to a running liftlog server over HTTP.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (for
    example one bound to an ASGI app in tests); otherwise one is created
    for ``base_url`` and closed by ``aclose()``.
    """

    def __init__(
        self,
        user_id: str | None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.user_id = user_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_url, timeout=timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: dict | None = None):
        headers = {"X-User-Id": self.user_id} if self.user_id else {}
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise MutationFailed(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            error_cls = ERRORS_BY_STATUS.get(response.status_code, MutationFailed)
            raise error_cls(str(detail))

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def start_session(self, routine_id, visibility=None):
        body = {"routine_id": routine_id}
        if visibility:
            body["visibility"] = Visibility(visibility).value
        data = await self._request("POST", "/sessions", json=body)
        return StartedSession(
            session=WorkoutSession.from_dict(data["session"]),
            routine=Routine.from_dict(data["routine"]),
        )

    async def add_set(
        self,
        session_id,
        exercise_id,
        reps,
        weight,
        weight_unit,
        side=None,
        label=None,
        note=None,
        rpe=None,
    ):
        body = {
            "exercise_id": exercise_id,
            "reps": reps,
            "weight": weight,
            "weight_unit": str(getattr(weight_unit, "value", weight_unit)),
            "side": getattr(side, "value", side),
            "label": getattr(label, "value", label),
            "note": note,
            "rpe": rpe,
        }
        data = await self._request("POST", f"/sessions/{session_id}/sets", json=body)
        return WorkoutSet.from_dict(data)

    async def update_set(self, set_id, **updates):
        body = {key: getattr(value, "value", value) for key, value in updates.items()}
        data = await self._request("PATCH", f"/sets/{set_id}", json=body)
        return WorkoutSet.from_dict(data)

    async def delete_set(self, set_id):
        await self._request("DELETE", f"/sets/{set_id}")

    async def pause_session(self, session_id):
        data = await self._request("POST", f"/sessions/{session_id}/pause")
        return WorkoutSession.from_dict(data)

    async def resume_session(self, session_id):
        data = await self._request("POST", f"/sessions/{session_id}/resume")
        return WorkoutSession.from_dict(data)

    async def complete_session(self, session_id, notes=None):
        data = await self._request(
            "POST", f"/sessions/{session_id}/complete", json={"notes": notes}
        )
        return WorkoutSession.from_dict(data)

    async def cancel_session(self, session_id):
        data = await self._request("POST", f"/sessions/{session_id}/cancel")
        return WorkoutSession.from_dict(data)

    async def heartbeat(self, session_id):
        data = await self._request("POST", f"/sessions/{session_id}/heartbeat")
        return WorkoutSession.from_dict(data)

    async def get_active_session(self):
        data = await self._request("GET", "/sessions/active")
        if not data:
            return None
        return _detail_from_dict(data)
