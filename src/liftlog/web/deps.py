"""Request dependencies shared by the routers."""

from fastapi import Header, Request

from ..services import RoutineService, SessionService, SetLedger


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """Caller identity set by the identity provider in front of the API.

    None means anonymous; services decide whether that is allowed.
    """
    return x_user_id or None


def get_session_service(request: Request) -> SessionService:
    return SessionService(request.app.state.db_path, request.app.state.clock)


def get_set_ledger(request: Request) -> SetLedger:
    return SetLedger(request.app.state.db_path, request.app.state.clock)


def get_routine_service(request: Request) -> RoutineService:
    return RoutineService(request.app.state.db_path, request.app.state.clock)
