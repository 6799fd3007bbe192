"""Task service for CRUD operations and the claim/complete lifecycle."""

import asyncio
import logging
from datetime import date
from typing import Any

import pydantic

from chorecoin.core import db_client
from chorecoin.core.config import constants
from chorecoin.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError, validation_error_from
from chorecoin.core.logging import span
from chorecoin.core.recurrence import advance_due_date, parse_due_date
from chorecoin.domain.create_models import TaskCreate
from chorecoin.domain.history import HistoryAction
from chorecoin.domain.task import OPEN_STATUSES, Recurrence, Task, TaskStatus
from chorecoin.domain.update_models import TaskUpdate
from chorecoin.services import group_service, history_service, ledger_service, task_state_machine


logger = logging.getLogger(__name__)


async def _fetch_task(task_id: str) -> dict[str, Any]:
    try:
        return await db_client.get_record(collection="tasks", record_id=task_id)
    except db_client.RecordNotFoundError as e:
        msg = f"Task not found: {task_id}"
        raise NotFoundError(msg) from e


async def _fetch_member_of(task: dict[str, Any], member_id: str) -> dict[str, Any]:
    """Load a member and make sure they belong to the task's group."""
    member = await ledger_service.get_member(member_id=member_id)
    if member["group_id"] != task["group_id"]:
        msg = f"Member not found: {member_id}"
        raise NotFoundError(msg)
    return member


def _check_next_occurrence(due_date: date | None, recurrence: Recurrence | None) -> None:
    """Reject recurring tasks whose next occurrence cannot be scheduled."""
    if due_date is None or recurrence is None:
        return
    try:
        advance_due_date(due_date, recurrence)
    except ValueError as e:
        raise ValidationError(str(e)) from e


async def create_task(
    *,
    group_id: str,
    name: str,
    points: Any,
    due_date: Any,
    description: str | None = "",
    recurrence: Any = None,
) -> dict[str, Any]:
    """Create a new available task.

    Args:
        group_id: Owning group ID
        name: Task name
        points: Whole number of points (numeric strings accepted)
        due_date: Date, datetime or parseable date string
        description: Optional details
        recurrence: None, a named frequency ("weekly"), "every N units" or {interval, unit}

    Returns:
        Created task record

    Raises:
        ValidationError: If any field is malformed or the next occurrence is out of range
        NotFoundError: If the group does not exist
    """
    with span("task_service.create_task"):
        try:
            task = TaskCreate(
                group_id=group_id,
                name=name,
                description=description,
                points=points,
                due_date=due_date,
                recurrence=recurrence,
            )
        except pydantic.ValidationError as e:
            raise validation_error_from(e) from e

        _check_next_occurrence(task.due_date, task.recurrence)

        await group_service.get_group(group_id=group_id)

        record = await db_client.create_record(collection="tasks", data=task.to_record())

        await history_service.append_history(
            group_id=group_id,
            action=HistoryAction.TASK_CREATED,
            member_name=constants.ADMIN_DISPLAY_NAME,
            task_name=record["name"],
            points=record["points"],
        )

        logger.info("task_created", extra={"group_id": group_id, "task_id": record["id"]})
        return record


async def claim_task(
    *,
    task_id: str,
    member_id: str,
    claim_from_member_id: str | None = None,
) -> dict[str, Any]:
    """Claim a task for a member.

    An available task goes to any member of its group. A task claimed by someone else
    can be taken over only when the caller names the current holder explicitly and
    has strictly fewer points than that holder. Takeovers are not logged to history.

    Args:
        task_id: Task to claim
        member_id: Member claiming the task
        claim_from_member_id: Current holder being displaced, for takeovers

    Returns:
        Updated task record

    Raises:
        NotFoundError: If the task or member does not exist
        InvalidStateError: If the task is completed, already held by the caller, held
            by someone else without a takeover request, or the caller is not behind
            the holder on points
        ConflictError: If the named holder is stale or the task changed concurrently
    """
    with span("task_service.claim_task"):
        task = await _fetch_task(task_id)
        member = await _fetch_member_of(task, member_id)

        # Guard: Completed tasks are terminal
        if task["status"] == TaskStatus.COMPLETED:
            msg = "Task is no longer available"
            raise InvalidStateError(msg)

        if task["status"] == TaskStatus.CLAIMED:
            holder_id = task["claimed_by"]

            # Guard: No-op re-claim
            if holder_id == member_id:
                msg = "Task is already claimed by you"
                raise InvalidStateError(msg)

            # Guard: Takeover must be requested explicitly
            if claim_from_member_id is None:
                msg = "Task is already claimed"
                raise InvalidStateError(msg)

            # Guard: The caller looked at a different holder
            if claim_from_member_id != holder_id:
                msg = "Task was claimed by someone else in the meantime, refresh and try again"
                raise ConflictError(msg)

            await _check_takeover_allowed(member=member, holder_id=holder_id)

        try:
            updated = await task_state_machine.transition_to_claimed(task=task, member_id=member_id)
        except ValueError as e:
            raise InvalidStateError(str(e)) from e

        logger.info("claim_succeeded", extra={"task_id": task_id, "member_id": member_id})
        return updated


async def _check_takeover_allowed(*, member: dict[str, Any], holder_id: str) -> None:
    """Only a member with strictly fewer points may displace the holder."""
    try:
        holder = await ledger_service.get_member(member_id=holder_id)
    except NotFoundError:
        logger.warning("claim_holder_missing", extra={"holder_id": holder_id})
        return

    if member["points"] >= holder["points"]:
        msg = f"Only members with fewer points than {holder['name']} can take over this task"
        raise InvalidStateError(msg)


async def complete_task(*, task_id: str, member_id: str) -> dict[str, Any]:
    """Complete a task claimed by the member, credit its points and spawn the next occurrence.

    The status change, point credit, successor creation and task_completed entry are
    one unit. If a later step fails, the earlier ones are undone before re-raising.
    The unit runs shielded: cancelling the caller (or its timeout firing) does not
    interrupt it halfway, the unit still finishes or rolls back on its own.

    Args:
        task_id: Task to complete
        member_id: Member completing the task (must hold the claim)

    Returns:
        Dict with the completed ``task``, the credited ``points``, the member's new
        ``balance`` and the ``next_task`` record (None for one-off tasks)

    Raises:
        NotFoundError: If the task or member does not exist
        InvalidStateError: If the member does not currently hold the claim
        ConflictError: If the task or balance changed concurrently
    """
    with span("task_service.complete_task"):
        task = await _fetch_task(task_id)
        member = await _fetch_member_of(task, member_id)

        # Guard: Only the current holder completes
        if task["status"] != TaskStatus.CLAIMED or task["claimed_by"] != member_id:
            msg = "You can only complete tasks you have claimed"
            raise InvalidStateError(msg)

        unit = asyncio.ensure_future(_run_completion(task=task, member=member))
        _running_completions.add(unit)
        unit.add_done_callback(_forget_completion)
        try:
            outcome = await asyncio.shield(unit)
        except asyncio.CancelledError:
            if not unit.done():
                logger.warning("completion_detached", extra={"task_id": task_id, "member_id": member_id})
            raise

        logger.info(
            "completion_succeeded",
            extra={"task_id": task_id, "member_id": member_id, "points": task["points"]},
        )
        return outcome


# Completion units still running after their caller went away
_running_completions: set[asyncio.Future] = set()


def _forget_completion(unit: asyncio.Future) -> None:
    _running_completions.discard(unit)
    # Failures were already logged by the unit; mark them retrieved for detached units
    if not unit.cancelled():
        unit.exception()


async def _run_completion(*, task: dict[str, Any], member: dict[str, Any]) -> dict[str, Any]:
    member_id = member["id"]
    try:
        completed = await task_state_machine.transition_to_completed(task=task, member_id=member_id)
    except ValueError as e:
        raise InvalidStateError(str(e)) from e

    credited = False
    successor: dict[str, Any] | None = None
    try:
        balance_before = await ledger_service.get_balance(member_id=member_id)
        try:
            updated_member = await ledger_service.credit_from_task(member_id=member_id, points=task["points"])
        except ConflictError:
            raise
        except (Exception, asyncio.CancelledError):
            credited = await _credit_landed(member_id=member_id, expected=balance_before + task["points"])
            raise
        credited = True

        successor = await create_next_recurrence(task=task)

        await history_service.append_history(
            group_id=task["group_id"],
            action=HistoryAction.TASK_COMPLETED,
            member_name=member["name"],
            task_name=task["name"],
            points=task["points"],
        )
    except (Exception, asyncio.CancelledError) as e:
        logger.error("task_completion_failed", extra={"task_id": task["id"], "error": str(e)})
        await _compensate_completion(task=task, member_id=member_id, credited=credited, successor=successor)
        raise

    return {
        "task": completed,
        "points": task["points"],
        "balance": updated_member["points"],
        "next_task": successor,
    }


async def _credit_landed(*, member_id: str, expected: int) -> bool:
    """Check whether a credit that raised was written anyway."""
    try:
        landed = await ledger_service.get_balance(member_id=member_id) == expected
    except Exception as e:
        logger.error("credit_check_failed", extra={"member_id": member_id, "error": str(e)})
        return False
    if landed:
        logger.warning("credit_landed_before_failure", extra={"member_id": member_id})
    return landed


async def _compensate_completion(
    *,
    task: dict[str, Any],
    member_id: str,
    credited: bool,
    successor: dict[str, Any] | None,
) -> None:
    """Undo the steps of a failed completion, newest first.

    Each undo step is attempted even if an earlier one fails; failures are logged so the
    original error can propagate.
    """
    if successor is not None:
        try:
            await db_client.delete_record(collection="tasks", record_id=successor["id"])
        except Exception as e:
            logger.error("compensation_failed", extra={"step": "successor", "task_id": task["id"], "error": str(e)})

    if credited:
        try:
            await ledger_service.reverse_credit(member_id=member_id, points=task["points"])
        except Exception as e:
            logger.error("compensation_failed", extra={"step": "credit", "task_id": task["id"], "error": str(e)})

    try:
        await task_state_machine.revert_completion(task=task, member_id=member_id)
    except Exception as e:
        logger.error("compensation_failed", extra={"step": "status", "task_id": task["id"], "error": str(e)})


async def create_next_recurrence(*, task: dict[str, Any]) -> dict[str, Any] | None:
    """Create the next occurrence of a recurring task.

    The successor is a new available task with the same name, description, points,
    recurrence and group, due one interval after the completed task's due date.
    Returns None for one-off tasks and for series whose next date is out of range.
    """
    with span("task_service.create_next_recurrence"):
        model = Task.from_record(task)
        if model.recurrence is None:
            return None

        base = model.due_date or date.today()
        try:
            next_due = advance_due_date(base, model.recurrence)
        except ValueError as e:
            logger.warning("recurrence_ended", extra={"task_id": task["id"], "reason": str(e)})
            return None

        record = await db_client.create_record(
            collection="tasks",
            data=TaskCreate(
                group_id=model.group_id,
                name=model.name,
                description=model.description,
                points=model.points,
                due_date=next_due,
                recurrence=model.recurrence,
            ).to_record(),
        )

        logger.info(
            "recurrence_created",
            extra={"task_id": task["id"], "next_task_id": record["id"], "due_date": next_due.isoformat()},
        )
        return record


async def update_task(*, task_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Update a task's editable fields (admin-only).

    No state-machine constraints apply and no history entry is written.

    Raises:
        ValidationError: If a field is malformed or not editable, or the next occurrence is out of range
        NotFoundError: If the task does not exist
    """
    with span("task_service.update_task"):
        try:
            update = TaskUpdate.model_validate(fields)
        except pydantic.ValidationError as e:
            raise validation_error_from(e) from e

        data = update.to_record()
        if not data:
            msg = "Nothing to update"
            raise ValidationError(msg)

        if {"due_date", "recurrence"} & update.model_fields_set:
            current = Task.from_record(await _fetch_task(task_id))
            provided = update.model_fields_set
            _check_next_occurrence(
                update.due_date if "due_date" in provided and update.due_date else current.due_date,
                update.recurrence if "recurrence" in provided else current.recurrence,
            )

        try:
            record = await db_client.update_record(collection="tasks", record_id=task_id, data=data)
        except db_client.RecordNotFoundError as e:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg) from e

        logger.info("task_updated", extra={"task_id": task_id, "fields": sorted(data)})
        return record


async def delete_task(*, task_id: str) -> None:
    """Delete a task (admin-only, no history entry).

    Raises:
        NotFoundError: If the task does not exist
    """
    with span("task_service.delete_task"):
        try:
            await db_client.delete_record(collection="tasks", record_id=task_id)
        except db_client.RecordNotFoundError as e:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg) from e

        logger.info("task_deleted", extra={"task_id": task_id})


async def get_task(*, task_id: str) -> dict[str, Any]:
    """Get a task by ID.

    Raises:
        NotFoundError: If the task does not exist
    """
    return await _fetch_task(task_id)


async def list_upcoming(*, group_id: str) -> list[dict[str, Any]]:
    """List a group's available and claimed tasks by due date."""
    with span("task_service.list_upcoming"):
        statuses = " || ".join(f'status = "{status.value}"' for status in OPEN_STATUSES)
        return await db_client.list_records(
            collection="tasks",
            filter_query=f'group_id = "{db_client.sanitize_param(group_id)}" && ({statuses})',
            sort="+due_date,+id",
            per_page=constants.DEFAULT_PER_PAGE_LIMIT,
        )


async def list_all(*, group_id: str) -> list[dict[str, Any]]:
    """List all of a group's tasks by due date, for admin review."""
    with span("task_service.list_all"):
        return await db_client.list_records(
            collection="tasks",
            filter_query=f'group_id = "{db_client.sanitize_param(group_id)}"',
            sort="+due_date,+id",
            per_page=constants.DEFAULT_PER_PAGE_LIMIT,
        )


def parse_task_date(value: Any) -> date:
    """Parse a user-supplied date, raising ValidationError on failure."""
    try:
        return parse_due_date(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e
