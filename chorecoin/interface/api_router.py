"""Member-facing JSON API: groups, board, claiming and completing tasks."""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chorecoin.domain.session import SessionContext
from chorecoin.interface.responses import result_response
from chorecoin.interface.sessions import (
    clear_session_cookies,
    require_session,
    set_admin_cookie,
    set_session_cookie,
)
from chorecoin.services import operations


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["members"])


class GroupCreateRequest(BaseModel):
    name: str
    admin_pin: str


class JoinRequest(BaseModel):
    code: str


class SelectMemberRequest(BaseModel):
    member_id: str | None = None


class ClaimRequest(BaseModel):
    claim_from_member_id: str | None = None


@router.post("/groups")
async def post_group(body: GroupCreateRequest) -> JSONResponse:
    """Create a household and sign the creator in as admin."""
    result = await operations.create_group(name=body.name, admin_pin=body.admin_pin)
    response = result_response(result, success_status=status.HTTP_201_CREATED)
    if result.success:
        session = SessionContext.model_validate(result.data["session"])
        set_session_cookie(response, session)
        set_admin_cookie(response, session.group_id)
        logger.info("group_session_started", extra={"group_id": session.group_id})
    return response


@router.post("/groups/join")
async def post_join(body: JoinRequest) -> JSONResponse:
    """Join a household by code."""
    result = await operations.join_group(code=body.code)
    response = result_response(result)
    if result.success:
        set_session_cookie(response, SessionContext.model_validate(result.data["session"]))
    return response


@router.post("/session/member")
async def post_select_member(
    body: SelectMemberRequest,
    session: SessionContext = Depends(require_session),
) -> JSONResponse:
    """Pick which member is using this device."""
    result = await operations.select_member(session, member_id=body.member_id)
    response = result_response(result)
    if result.success:
        set_session_cookie(response, SessionContext.model_validate(result.data))
    return response


@router.post("/session/leave")
async def post_leave() -> JSONResponse:
    """Forget the household on this device."""
    response = JSONResponse(content={"success": True})
    clear_session_cookies(response)
    return response


@router.get("/group")
async def get_group(session: SessionContext = Depends(require_session)) -> JSONResponse:
    return result_response(await operations.get_group(session))


@router.get("/board")
async def get_board(
    session: SessionContext = Depends(require_session),
    today: str | None = Query(None, description="Reference day (YYYY-MM-DD), defaults to today"),
) -> JSONResponse:
    """Upcoming tasks grouped by due date, plus the leaderboard."""
    return result_response(await operations.get_board(session, today=today))


@router.get("/tasks")
async def get_tasks(session: SessionContext = Depends(require_session)) -> JSONResponse:
    return result_response(await operations.list_upcoming_tasks(session))


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, session: SessionContext = Depends(require_session)) -> JSONResponse:
    return result_response(await operations.get_task(session, task_id=task_id))


@router.post("/tasks/{task_id}/claim")
async def post_claim(
    task_id: str,
    body: ClaimRequest | None = None,
    session: SessionContext = Depends(require_session),
) -> JSONResponse:
    """Claim a task, or take it over from ``claim_from_member_id``."""
    claim_from = body.claim_from_member_id if body else None
    return result_response(await operations.claim_task(session, task_id=task_id, claim_from_member_id=claim_from))


@router.post("/tasks/{task_id}/complete")
async def post_complete(task_id: str, session: SessionContext = Depends(require_session)) -> JSONResponse:
    return result_response(await operations.complete_task(session, task_id=task_id))


@router.get("/members")
async def get_members(session: SessionContext = Depends(require_session)) -> JSONResponse:
    """Leaderboard: members by points, highest first."""
    return result_response(await operations.list_members(session))


@router.get("/balance")
async def get_balance(
    session: SessionContext = Depends(require_session),
    member_id: str | None = Query(None),
) -> JSONResponse:
    return result_response(await operations.get_balance(session, member_id=member_id))


@router.get("/history")
async def get_history(
    session: SessionContext = Depends(require_session),
    limit: int | None = Query(None),
) -> JSONResponse:
    """Recent activity, newest first."""
    return result_response(await operations.list_history(session, limit=limit))
