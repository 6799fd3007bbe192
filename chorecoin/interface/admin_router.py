"""Admin JSON API guarded by the household PIN."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chorecoin.domain.session import SessionContext
from chorecoin.interface.responses import result_response
from chorecoin.interface.sessions import ADMIN_COOKIE, has_admin_session, require_session, set_admin_cookie
from chorecoin.services import operations


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class PinRequest(BaseModel):
    pin: str


class TaskCreateRequest(BaseModel):
    name: str
    # Validated by the task service
    points: Any
    due_date: Any
    description: str | None = ""
    recurrence: Any = None


class MemberCreateRequest(BaseModel):
    name: str


class AdjustRequest(BaseModel):
    delta: Any
    note: str | None = None


class RenameRequest(BaseModel):
    name: str


async def admin_context(request: Request, session: SessionContext = Depends(require_session)) -> SessionContext:
    """Member session with the admin flag set only when a valid admin cookie is present."""
    is_admin = has_admin_session(request, session.group_id)
    if not is_admin:
        logger.info("admin_session_absent", extra={"path": request.url.path, "group_id": session.group_id})
    return session.model_copy(update={"is_admin": is_admin})


@router.post("/login")
async def post_login(body: PinRequest, session: SessionContext = Depends(require_session)) -> JSONResponse:
    """Verify the PIN and start an admin session."""
    result = await operations.verify_admin_pin(session, pin=body.pin)
    response = result_response(result)
    if result.success:
        set_admin_cookie(response, session.group_id)
        logger.info("admin_login_success", extra={"group_id": session.group_id})
    return response


@router.post("/logout")
async def post_logout() -> JSONResponse:
    response = JSONResponse(content={"success": True})
    response.delete_cookie(key=ADMIN_COOKIE, httponly=True, samesite="strict")
    logger.info("admin_logout_success")
    return response


@router.get("/tasks")
async def get_tasks(session: SessionContext = Depends(admin_context)) -> JSONResponse:
    """All tasks including completed ones."""
    return result_response(await operations.list_all_tasks(session))


@router.post("/tasks")
async def post_task(body: TaskCreateRequest, session: SessionContext = Depends(admin_context)) -> JSONResponse:
    result = await operations.create_task(
        session,
        name=body.name,
        points=body.points,
        due_date=body.due_date,
        description=body.description,
        recurrence=body.recurrence,
    )
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.patch("/tasks/{task_id}")
async def patch_task(
    task_id: str,
    fields: dict[str, Any],
    session: SessionContext = Depends(admin_context),
) -> JSONResponse:
    """Partial update of name, description, points, due_date or recurrence."""
    return result_response(await operations.update_task(session, task_id=task_id, fields=fields))


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, session: SessionContext = Depends(admin_context)) -> JSONResponse:
    return result_response(await operations.delete_task(session, task_id=task_id))


@router.post("/members")
async def post_member(body: MemberCreateRequest, session: SessionContext = Depends(admin_context)) -> JSONResponse:
    result = await operations.add_member(session, name=body.name)
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.delete("/members/{member_id}")
async def delete_member(member_id: str, session: SessionContext = Depends(admin_context)) -> JSONResponse:
    return result_response(await operations.remove_member(session, member_id=member_id))


@router.post("/members/{member_id}/adjust")
async def post_adjust(
    member_id: str,
    body: AdjustRequest,
    session: SessionContext = Depends(admin_context),
) -> JSONResponse:
    """Add or remove points by hand, with an optional note."""
    return result_response(await operations.adjust_points(session, member_id=member_id, delta=body.delta, note=body.note))


@router.patch("/group")
async def patch_group(body: RenameRequest, session: SessionContext = Depends(admin_context)) -> JSONResponse:
    return result_response(await operations.rename_group(session, name=body.name))
