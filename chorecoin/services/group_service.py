"""Group service for household creation, joining and admin PIN checks."""

import logging
import secrets
from typing import Any

import aiosqlite
import pydantic

from chorecoin.core import db_client
from chorecoin.core.codes import generate_join_code, is_valid_join_code, normalize_join_code
from chorecoin.core.config import constants, settings
from chorecoin.core.errors import ConflictError, NotFoundError, ValidationError, validation_error_from
from chorecoin.core.logging import span
from chorecoin.domain.create_models import GroupCreate, clean_name


logger = logging.getLogger(__name__)


def _public(record: dict[str, Any]) -> dict[str, Any]:
    """Strip the admin PIN from a group record."""
    return {key: value for key, value in record.items() if key != "admin_pin"}


async def _fetch_group(group_id: str) -> dict[str, Any]:
    try:
        return await db_client.get_record(collection="groups", record_id=group_id)
    except db_client.RecordNotFoundError as e:
        msg = f"Group not found: {group_id}"
        raise NotFoundError(msg) from e


async def create_group(*, name: str, admin_pin: str) -> dict[str, Any]:
    """Create a household with a fresh join code.

    Candidate codes are checked against existing groups before insert. The unique
    index on ``code`` catches the remaining race, which is retried like a collision.

    Args:
        name: Household name
        admin_pin: Four-digit PIN guarding admin operations

    Returns:
        Created group record (without the PIN)

    Raises:
        ValidationError: If the name is empty or the PIN is not four digits
        ConflictError: If no unused join code was found within the attempt limit
    """
    with span("group_service.create_group"):
        for attempt in range(1, settings.join_code_max_attempts + 1):
            try:
                group = GroupCreate(name=name, code=generate_join_code(), admin_pin=admin_pin)
            except pydantic.ValidationError as e:
                raise validation_error_from(e) from e

            # Guard: Skip codes already in use
            existing = await db_client.get_first_record(
                collection="groups",
                filter_query=f'code = "{db_client.sanitize_param(group.code)}"',
            )
            if existing:
                logger.info("join_code_collision", extra={"attempt": attempt})
                continue

            try:
                record = await db_client.create_record(collection="groups", data=group.model_dump())
            except db_client.DatabaseError as e:
                if isinstance(e.__cause__, aiosqlite.IntegrityError):
                    logger.info("join_code_collision", extra={"attempt": attempt, "stage": "insert"})
                    continue
                raise

            logger.info("group_created", extra={"group_id": record["id"], "code": record["code"]})
            return _public(record)

        msg = "Could not allocate a unique join code, please try again"
        logger.error("join_code_exhausted", extra={"attempts": settings.join_code_max_attempts})
        raise ConflictError(msg)


async def get_group(*, group_id: str) -> dict[str, Any]:
    """Get a group by ID.

    Raises:
        NotFoundError: If the group does not exist
    """
    with span("group_service.get_group"):
        return _public(await _fetch_group(group_id))


async def get_group_by_code(*, code: str) -> dict[str, Any]:
    """Look up a group by join code, ignoring case and surrounding whitespace.

    Raises:
        NotFoundError: If no group uses the code
    """
    with span("group_service.get_group_by_code"):
        normalized = normalize_join_code(code)

        # Guard: Malformed codes cannot match anything
        if not is_valid_join_code(normalized):
            msg = f"No group found with code {code!r}"
            raise NotFoundError(msg)

        record = await db_client.get_first_record(
            collection="groups",
            filter_query=f'code = "{db_client.sanitize_param(normalized)}"',
        )
        if not record:
            msg = f"No group found with code {normalized}"
            raise NotFoundError(msg)

        return _public(record)


async def verify_admin_pin(*, group_id: str, pin: str) -> bool:
    """Check an admin PIN against the group's stored PIN.

    Uses constant-time comparison for security (prevents timing attacks).

    Raises:
        NotFoundError: If the group does not exist
    """
    with span("group_service.verify_admin_pin"):
        group = await _fetch_group(group_id)
        valid = secrets.compare_digest(pin.strip().encode(), group["admin_pin"].encode())
        if not valid:
            logger.warning("admin_pin_rejected", extra={"group_id": group_id})
        return valid


async def rename_group(*, group_id: str, name: str) -> dict[str, Any]:
    """Rename a household (admin-only).

    Raises:
        ValidationError: If the name is empty or too long
        NotFoundError: If the group does not exist
    """
    with span("group_service.rename_group"):
        try:
            cleaned = clean_name(name, max_length=constants.MAX_NAME_LENGTH, label="Group name")
        except ValueError as e:
            raise ValidationError(str(e)) from e

        await _fetch_group(group_id)
        record = await db_client.update_record(collection="groups", record_id=group_id, data={"name": cleaned})
        logger.info("group_renamed", extra={"group_id": group_id})
        return _public(record)
