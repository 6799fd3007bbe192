"""Operations facade used by the presentation layer.

Every call takes an explicit SessionContext, runs under a timeout and returns an
OperationResult. Business-rule failures come back as failed results; store errors
and timeouts propagate.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from chorecoin.core.config import settings
from chorecoin.core.errors import (
    ChorecoinError,
    NotFoundError,
    OperationResult,
    PermissionDeniedError,
    ValidationError,
    to_operation_result,
)
from chorecoin.core.logging import log_with_context
from chorecoin.core.recurrence import describe_recurrence
from chorecoin.domain.group import Group
from chorecoin.domain.history import HistoryEntry
from chorecoin.domain.member import Member
from chorecoin.domain.session import SessionContext
from chorecoin.domain.task import Task
from chorecoin.services import group_service, history_service, ledger_service, task_service
from chorecoin.services.due_date_buckets import group_tasks_by_due_date


logger = logging.getLogger(__name__)


def _task_out(record: dict[str, Any]) -> dict[str, Any]:
    task = Task.from_record(record)
    return {**task.model_dump(mode="json"), "recurrence_label": describe_recurrence(task.recurrence)}


def _member_out(record: dict[str, Any]) -> dict[str, Any]:
    return Member.model_validate(record).model_dump(mode="json")


def _history_out(record: dict[str, Any]) -> dict[str, Any]:
    return HistoryEntry.model_validate(record).model_dump(mode="json")


def _group_out(record: dict[str, Any]) -> dict[str, Any]:
    return Group.model_validate(record).model_dump(mode="json")


async def _execute(
    operation: str,
    work: Callable[[], Awaitable[Any]],
    session: SessionContext | None = None,
) -> OperationResult:
    """Run ``work`` under the operation timeout and wrap the outcome."""
    context = {
        "operation": operation,
        "group_id": session.group_id if session else None,
        "member_id": session.member_id if session else None,
    }
    try:
        async with asyncio.timeout(settings.operation_timeout_seconds):
            data = await work()
    except ChorecoinError as e:
        log_with_context(logger, "info", "operation_rejected", error_code=e.code, reason=str(e), **context)
        return to_operation_result(e)
    except TimeoutError:
        log_with_context(logger, "error", "operation_timed_out", **context)
        raise

    log_with_context(logger, "debug", "operation_succeeded", **context)
    return OperationResult.ok(data)


def _require_admin(session: SessionContext) -> None:
    if not session.is_admin:
        msg = "Admin PIN required"
        raise PermissionDeniedError(msg)


def _require_member(session: SessionContext) -> str:
    if not session.member_id:
        msg = "Select yourself first"
        raise ValidationError(msg)
    return session.member_id


async def _scoped_task(session: SessionContext, task_id: str) -> dict[str, Any]:
    """Fetch a task, hiding tasks of other groups."""
    task = await task_service.get_task(task_id=task_id)
    if task["group_id"] != session.group_id:
        msg = f"Task not found: {task_id}"
        raise NotFoundError(msg)
    return task


async def _scoped_member(session: SessionContext, member_id: str) -> dict[str, Any]:
    """Fetch a member, hiding members of other groups."""
    member = await ledger_service.get_member(member_id=member_id)
    if member["group_id"] != session.group_id:
        msg = f"Member not found: {member_id}"
        raise NotFoundError(msg)
    return member


# Groups and sessions


async def create_group(*, name: str, admin_pin: str) -> OperationResult:
    """Create a household; the creator gets an admin session for it."""

    async def work() -> dict[str, Any]:
        group = await group_service.create_group(name=name, admin_pin=admin_pin)
        session = SessionContext(group_id=group["id"], is_admin=True)
        return {"group": _group_out(group), "session": session.model_dump()}

    return await _execute("create_group", work)


async def join_group(*, code: str) -> OperationResult:
    """Open a member session for the group with this join code."""

    async def work() -> dict[str, Any]:
        group = await group_service.get_group_by_code(code=code)
        session = SessionContext(group_id=group["id"])
        return {"group": _group_out(group), "session": session.model_dump()}

    return await _execute("join_group", work)


async def get_group(session: SessionContext) -> OperationResult:
    async def work() -> dict[str, Any]:
        return _group_out(await group_service.get_group(group_id=session.group_id))

    return await _execute("get_group", work, session)


async def select_member(session: SessionContext, *, member_id: str | None) -> OperationResult:
    """Choose (or clear) the acting member for this session."""

    async def work() -> dict[str, Any]:
        if member_id is not None:
            await _scoped_member(session, member_id)
        return session.model_copy(update={"member_id": member_id}).model_dump()

    return await _execute("select_member", work, session)


async def verify_admin_pin(session: SessionContext, *, pin: str) -> OperationResult:
    """Upgrade the session to admin if the PIN matches."""

    async def work() -> dict[str, Any]:
        if not await group_service.verify_admin_pin(group_id=session.group_id, pin=pin):
            msg = "Incorrect PIN"
            raise PermissionDeniedError(msg)
        return session.model_copy(update={"is_admin": True}).model_dump()

    return await _execute("verify_admin_pin", work, session)


async def rename_group(session: SessionContext, *, name: str) -> OperationResult:
    async def work() -> dict[str, Any]:
        _require_admin(session)
        return _group_out(await group_service.rename_group(group_id=session.group_id, name=name))

    return await _execute("rename_group", work, session)


# Tasks


async def get_board(session: SessionContext, *, today: date | str | None = None) -> OperationResult:
    """Upcoming tasks in due-date buckets plus the leaderboard."""

    async def work() -> dict[str, Any]:
        reference_day = task_service.parse_task_date(today) if today is not None else None
        tasks = [_task_out(record) for record in await task_service.list_upcoming(group_id=session.group_id)]
        members = [_member_out(record) for record in await ledger_service.list_members(group_id=session.group_id)]
        return {
            "buckets": group_tasks_by_due_date(tasks, today=reference_day),
            "members": members,
        }

    return await _execute("get_board", work, session)


async def list_upcoming_tasks(session: SessionContext) -> OperationResult:
    async def work() -> list[dict[str, Any]]:
        return [_task_out(record) for record in await task_service.list_upcoming(group_id=session.group_id)]

    return await _execute("list_upcoming_tasks", work, session)


async def list_all_tasks(session: SessionContext) -> OperationResult:
    async def work() -> list[dict[str, Any]]:
        _require_admin(session)
        return [_task_out(record) for record in await task_service.list_all(group_id=session.group_id)]

    return await _execute("list_all_tasks", work, session)


async def get_task(session: SessionContext, *, task_id: str) -> OperationResult:
    async def work() -> dict[str, Any]:
        return _task_out(await _scoped_task(session, task_id))

    return await _execute("get_task", work, session)


async def create_task(
    session: SessionContext,
    *,
    name: str,
    points: Any,
    due_date: Any,
    description: str | None = "",
    recurrence: Any = None,
) -> OperationResult:
    async def work() -> dict[str, Any]:
        _require_admin(session)
        record = await task_service.create_task(
            group_id=session.group_id,
            name=name,
            points=points,
            due_date=due_date,
            description=description,
            recurrence=recurrence,
        )
        return _task_out(record)

    return await _execute("create_task", work, session)


async def update_task(session: SessionContext, *, task_id: str, fields: dict[str, Any]) -> OperationResult:
    async def work() -> dict[str, Any]:
        _require_admin(session)
        await _scoped_task(session, task_id)
        return _task_out(await task_service.update_task(task_id=task_id, fields=fields))

    return await _execute("update_task", work, session)


async def delete_task(session: SessionContext, *, task_id: str) -> OperationResult:
    async def work() -> None:
        _require_admin(session)
        await _scoped_task(session, task_id)
        await task_service.delete_task(task_id=task_id)

    return await _execute("delete_task", work, session)


async def claim_task(
    session: SessionContext,
    *,
    task_id: str,
    claim_from_member_id: str | None = None,
) -> OperationResult:
    """Claim a task for the session's acting member."""

    async def work() -> dict[str, Any]:
        member_id = _require_member(session)
        await _scoped_task(session, task_id)
        record = await task_service.claim_task(
            task_id=task_id,
            member_id=member_id,
            claim_from_member_id=claim_from_member_id,
        )
        return _task_out(record)

    return await _execute("claim_task", work, session)


async def complete_task(session: SessionContext, *, task_id: str) -> OperationResult:
    """Complete a task held by the session's acting member."""

    async def work() -> dict[str, Any]:
        member_id = _require_member(session)
        await _scoped_task(session, task_id)
        outcome = await task_service.complete_task(task_id=task_id, member_id=member_id)
        return {
            "task": _task_out(outcome["task"]),
            "points": outcome["points"],
            "balance": outcome["balance"],
            "next_task": _task_out(outcome["next_task"]) if outcome["next_task"] else None,
        }

    return await _execute("complete_task", work, session)


# Members and points


async def list_members(session: SessionContext) -> OperationResult:
    async def work() -> list[dict[str, Any]]:
        return [_member_out(record) for record in await ledger_service.list_members(group_id=session.group_id)]

    return await _execute("list_members", work, session)


async def get_balance(session: SessionContext, *, member_id: str | None = None) -> OperationResult:
    """Balance of ``member_id``, or of the acting member when omitted."""

    async def work() -> dict[str, Any]:
        target = member_id or _require_member(session)
        member = await _scoped_member(session, target)
        return {"member_id": member["id"], "points": member["points"]}

    return await _execute("get_balance", work, session)


async def add_member(session: SessionContext, *, name: str) -> OperationResult:
    async def work() -> dict[str, Any]:
        _require_admin(session)
        return _member_out(await ledger_service.add_member(group_id=session.group_id, name=name))

    return await _execute("add_member", work, session)


async def remove_member(session: SessionContext, *, member_id: str) -> OperationResult:
    async def work() -> None:
        _require_admin(session)
        await _scoped_member(session, member_id)
        await ledger_service.remove_member(member_id=member_id)

    return await _execute("remove_member", work, session)


async def adjust_points(
    session: SessionContext,
    *,
    member_id: str,
    delta: Any,
    note: str | None = None,
) -> OperationResult:
    async def work() -> dict[str, Any]:
        _require_admin(session)
        await _scoped_member(session, member_id)
        return _member_out(await ledger_service.adjust_points(member_id=member_id, delta=delta, note=note))

    return await _execute("adjust_points", work, session)


# History


async def list_history(session: SessionContext, *, limit: int | None = None) -> OperationResult:
    async def work() -> list[dict[str, Any]]:
        records = await history_service.list_recent(group_id=session.group_id, limit=limit)
        return [_history_out(record) for record in records]

    return await _execute("list_history", work, session)
