"""Ledger service for member balances and membership."""

import logging
from typing import Any

import pydantic

from chorecoin.core import db_client
from chorecoin.core.config import constants
from chorecoin.core.errors import ConflictError, InvalidStateError, NotFoundError, validation_error_from
from chorecoin.core.logging import span
from chorecoin.domain.create_models import MemberCreate, PointAdjustment
from chorecoin.domain.history import HistoryAction
from chorecoin.domain.task import TaskStatus
from chorecoin.services import group_service, history_service


logger = logging.getLogger(__name__)


async def get_member(*, member_id: str) -> dict[str, Any]:
    """Get a member by ID.

    Raises:
        NotFoundError: If the member does not exist
    """
    try:
        return await db_client.get_record(collection="members", record_id=member_id)
    except db_client.RecordNotFoundError as e:
        msg = f"Member not found: {member_id}"
        raise NotFoundError(msg) from e


async def get_balance(*, member_id: str) -> int:
    """Get a member's current point balance."""
    member = await get_member(member_id=member_id)
    return member["points"]


async def list_members(*, group_id: str) -> list[dict[str, Any]]:
    """List a group's members by points descending, ties in join order."""
    with span("ledger_service.list_members"):
        return await db_client.list_records(
            collection="members",
            filter_query=f'group_id = "{db_client.sanitize_param(group_id)}"',
            sort="-points,+id",
            per_page=constants.DEFAULT_PER_PAGE_LIMIT,
        )


async def _apply_delta(*, member: dict[str, Any], delta: int) -> dict[str, Any]:
    """Compare-and-swap the balance against the value read in ``member``.

    Raises:
        ConflictError: If the balance changed since it was read
    """
    return await db_client.update_record(
        collection="members",
        record_id=member["id"],
        data={"points": member["points"] + delta},
        expected={"points": member["points"]},
    )


async def adjust_points(*, member_id: str, delta: Any, note: str | None = None) -> dict[str, Any]:
    """Manually adjust a member's balance (admin-only).

    There is no floor; balances may go negative.

    Args:
        member_id: Member to adjust
        delta: Signed whole number of points
        note: Optional reason shown in the activity feed

    Returns:
        Updated member record

    Raises:
        ValidationError: If delta is not a whole number or the note is too long
        NotFoundError: If the member does not exist
        ConflictError: If the balance changed concurrently
    """
    with span("ledger_service.adjust_points"):
        try:
            adjustment = PointAdjustment(delta=delta, note=note)
        except pydantic.ValidationError as e:
            raise validation_error_from(e) from e

        member = await get_member(member_id=member_id)
        updated = await _apply_delta(member=member, delta=adjustment.delta)

        await history_service.append_history(
            group_id=member["group_id"],
            action=HistoryAction.POINTS_ADJUSTED,
            member_name=member["name"],
            points=adjustment.delta,
            note=adjustment.note,
        )

        logger.info(
            "points_adjusted",
            extra={"member_id": member_id, "delta": adjustment.delta, "balance": updated["points"]},
        )
        return updated


async def credit_from_task(*, member_id: str, points: int) -> dict[str, Any]:
    """Credit task points to a member without a history entry.

    The task_completed entry written by the caller already records the change.

    Raises:
        NotFoundError: If the member does not exist
        ConflictError: If the balance changed concurrently
    """
    with span("ledger_service.credit_from_task"):
        member = await get_member(member_id=member_id)
        updated = await _apply_delta(member=member, delta=points)
        logger.info("points_credited", extra={"member_id": member_id, "points": points})
        return updated


async def reverse_credit(*, member_id: str, points: int) -> dict[str, Any]:
    """Take back points credited by a task completion that was rolled back.

    The balance may move between reading and writing it, so the compare-and-swap is
    retried against a fresh read up to ``CREDIT_REVERSAL_ATTEMPTS`` times.

    Raises:
        NotFoundError: If the member does not exist
        ConflictError: If the balance kept changing on every attempt
    """
    with span("ledger_service.reverse_credit"):
        for attempt in range(1, constants.CREDIT_REVERSAL_ATTEMPTS + 1):
            member = await get_member(member_id=member_id)
            try:
                updated = await _apply_delta(member=member, delta=-points)
            except ConflictError:
                logger.warning("credit_reversal_conflict", extra={"member_id": member_id, "attempt": attempt})
                continue
            logger.info("points_reversed", extra={"member_id": member_id, "points": points})
            return updated

        msg = f"Could not take back {points} points from member {member_id}, the balance kept changing"
        raise ConflictError(msg)


async def add_member(*, group_id: str, name: str) -> dict[str, Any]:
    """Add a member to a group with a zero balance.

    Raises:
        ValidationError: If the name is empty or too long
        NotFoundError: If the group does not exist
    """
    with span("ledger_service.add_member"):
        try:
            member = MemberCreate(group_id=group_id, name=name)
        except pydantic.ValidationError as e:
            raise validation_error_from(e) from e

        await group_service.get_group(group_id=group_id)

        record = await db_client.create_record(collection="members", data=member.model_dump())
        await history_service.append_history(
            group_id=group_id,
            action=HistoryAction.MEMBER_ADDED,
            member_name=record["name"],
        )

        logger.info("member_added", extra={"group_id": group_id, "member_id": record["id"]})
        return record


async def remove_member(*, member_id: str) -> None:
    """Remove a member (hard delete, no history entry).

    Completed-task attributions and history entries keep pointing at the removed
    member's id and name.

    Raises:
        NotFoundError: If the member does not exist
        InvalidStateError: If the member currently holds a claimed task
    """
    with span("ledger_service.remove_member"):
        member = await get_member(member_id=member_id)

        # Guard: Active claims must be completed or taken over first
        active_claim = await db_client.get_first_record(
            collection="tasks",
            filter_query=(
                f'claimed_by = "{db_client.sanitize_param(member_id)}" && status = "{TaskStatus.CLAIMED.value}"'
            ),
        )
        if active_claim:
            msg = f"{member['name']} still holds '{active_claim['name']}'; complete or reassign it first"
            raise InvalidStateError(msg)

        await db_client.delete_record(collection="members", record_id=member_id)
        logger.info("member_removed", extra={"group_id": member["group_id"], "member_id": member_id})
