"""Recreation of recurring tasks when an instance is completed.

Completing a recurring task never mutates its due date. Instead a new pending
instance is inserted with the next due date, the same rule and assignment, and
no completion proof. Each (source task, next due date) pair is claimed in
task_recurrences first, so a repeated or concurrent completion of the same
instance cannot spawn a second copy.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import DuplicateRecordError, RecurrenceError, StoreError, classify_error_with_response
from src.core.logging import log_with_context, span
from src.core.recurrence import next_due_date, should_recreate
from src.domain.task import Task, TaskStatus
from src.models.service_models import RecreationOutcome, RecreationResult
from src.services import task_store


logger = logging.getLogger(__name__)

TASK_RECURRENCES = "task_recurrences"

# Fields copied verbatim from the completed instance to the next one
CARRIED_FIELDS = (
    "description",
    "assigned_to",
    "is_shared",
    "type",
    "recurrence_type",
    "recurrence_day",
    "recurrence_days",
    "response",
    "created_by",
    "created_by_name",
)

InstanceListener = Callable[[Task, Task], Awaitable[None]]

_listeners: list[InstanceListener] = []


def add_listener(listener: InstanceListener) -> None:
    """Register a coroutine called with (completed task, new instance)."""
    if listener not in _listeners:
        _listeners.append(listener)


def remove_listener(listener: InstanceListener) -> None:
    """Unregister a previously added listener."""
    if listener in _listeners:
        _listeners.remove(listener)


def build_next_instance(*, source: Task, due_date: str) -> dict[str, Any]:
    """Build the record for the next instance of ``source``.

    Status is reset to pending and proof columns are left out, so the new row
    starts without completion evidence.
    """
    record = {field: getattr(source, field) for field in CARRIED_FIELDS}
    record["due_date"] = due_date
    record["status"] = TaskStatus.PENDING
    return {key: value for key, value in record.items() if value is not None}


def _failed(*, task_id: str, step: str, error: Exception, next_date: str | None = None) -> RecreationResult:
    error_response = classify_error_with_response(error)
    log_with_context(
        logger,
        "error",
        "recurrence_recreation_failed",
        task_id=task_id,
        step=step,
        next_due_date=next_date,
        error_code=error_response.code,
        error=str(error),
    )
    return RecreationResult(
        source_task_id=task_id,
        outcome=RecreationOutcome.FAILED,
        next_due_date=next_date,
        error_code=error_response.code,
        error=str(error),
    )


async def _fetch_instance(*, task_id: str) -> Task:
    task = await task_store.fetch_task_by_id(task_id=task_id)
    task.assignee_ids = await task_store.fetch_assignees_by_task_id(task_id=task.id)
    return task


async def _release_claim(*, claim_id: str, task_id: str) -> None:
    try:
        await db_client.delete_record(collection=TASK_RECURRENCES, record_id=claim_id)
    except StoreError as e:
        logger.error("recurrence_claim_release_failed", extra={"task_id": task_id, "error": str(e)})


async def _discard_instance(*, new_task_id: str, task_id: str) -> None:
    try:
        await db_client.delete_record(collection=task_store.TASKS, record_id=new_task_id)
    except StoreError as e:
        logger.error(
            "recurrence_orphan_instance",
            extra={"task_id": task_id, "new_task_id": new_task_id, "error": str(e)},
        )


async def _notify(*, source: Task, new_task: Task) -> None:
    for listener in list(_listeners):
        try:
            await listener(source, new_task)
        except Exception as e:
            logger.warning(
                "recurrence_listener_failed",
                extra={"task_id": source.id, "new_task_id": new_task.id, "error": str(e)},
            )


async def _insert_instance(*, source: Task, claim: dict[str, Any], next_date: str) -> Task:
    """Insert the next instance and point the claim at it.

    On failure nothing is left behind: the instance is discarded and the claim
    released, so a later call starts over.
    """
    new_task = None
    try:
        new_task = await task_store.insert_task(record=build_next_instance(source=source, due_date=next_date))
        await db_client.update_record(
            collection=TASK_RECURRENCES,
            record_id=claim["id"],
            data={"next_task_id": new_task.id},
        )
    except StoreError:
        if new_task is not None:
            await _discard_instance(new_task_id=new_task.id, task_id=source.id)
        await _release_claim(claim_id=claim["id"], task_id=source.id)
        raise
    return new_task


async def _copy_missing_assignees(*, source: Task, new_task: Task) -> None:
    """Link every assignee of ``source`` that ``new_task`` does not have yet."""
    source_ids = await task_store.fetch_assignees_by_task_id(task_id=source.id)
    existing = await task_store.fetch_assignees_by_task_id(task_id=new_task.id)
    missing = [employee_id for employee_id in source_ids if employee_id not in existing]
    if missing:
        await task_store.insert_assignees(task_id=new_task.id, employee_ids=missing)
    new_task.assignee_ids = [*existing, *missing]


async def _finish(*, source: Task, claim: dict[str, Any], next_date: str, new_task: Task) -> RecreationResult:
    """Copy assignees, mark the claim finished and announce the instance."""
    try:
        await _copy_missing_assignees(source=source, new_task=new_task)
        await db_client.update_record(
            collection=TASK_RECURRENCES,
            record_id=claim["id"],
            data={"finished_at": datetime.now(UTC).isoformat()},
        )
    except StoreError as e:
        result = _failed(task_id=source.id, step="assignees", error=e, next_date=next_date)
        result.new_task = new_task
        return result

    logger.info(
        "recurrence_recreation_succeeded",
        extra={
            "task_id": source.id,
            "new_task_id": new_task.id,
            "next_due_date": next_date,
            "recurrence_type": source.recurrence_type,
            "assignee_count": len(new_task.assignee_ids),
        },
    )
    await _notify(source=source, new_task=new_task)

    return RecreationResult(
        source_task_id=source.id,
        outcome=RecreationOutcome.CREATED,
        next_due_date=next_date,
        new_task=new_task,
    )


async def _claimed_earlier(*, source: Task, next_date: str, resume: bool) -> RecreationResult:
    """Handle a key that is already claimed.

    A finished claim resolves to the instance the first claimant created. An
    unfinished one is either still being written by another caller or was left
    behind by a failure; it is reported as incomplete unless ``resume`` is set,
    in which case the missing steps are carried out.
    """
    claim = await db_client.get_first_record(
        collection=TASK_RECURRENCES,
        filter_query=f'source_task_id = "{sanitize_param(source.id)}" && next_due_date = "{next_date}"',
    )
    if claim is None:
        # Released between our insert attempt and this lookup
        return RecreationResult(
            source_task_id=source.id,
            outcome=RecreationOutcome.INCOMPLETE,
            next_due_date=next_date,
            error="Claim was released while recreating; retry",
        )

    new_task = await _fetch_instance(task_id=claim["next_task_id"]) if claim.get("next_task_id") else None

    if claim.get("finished_at"):
        logger.info("recurrence_recreation_duplicate", extra={"task_id": source.id, "next_due_date": next_date})
        return RecreationResult(
            source_task_id=source.id,
            outcome=RecreationOutcome.DUPLICATE,
            next_due_date=next_date,
            new_task=new_task,
        )

    if not resume:
        logger.warning(
            "recurrence_recreation_incomplete",
            extra={"task_id": source.id, "next_due_date": next_date, "next_task_id": claim.get("next_task_id")},
        )
        return RecreationResult(
            source_task_id=source.id,
            outcome=RecreationOutcome.INCOMPLETE,
            next_due_date=next_date,
            new_task=new_task,
            error="Next instance is claimed but was not fully created",
        )

    logger.info("recurrence_recreation_resumed", extra={"task_id": source.id, "next_due_date": next_date})
    if new_task is None:
        new_task = await _insert_instance(source=source, claim=claim, next_date=next_date)
    return await _finish(source=source, claim=claim, next_date=next_date, new_task=new_task)


async def recreate_next_instance(*, task_id: str, resume: bool = False) -> RecreationResult:
    """Create the next instance of a completed recurring task.

    Failures are reported through the result (outcome ``failed``) and logged as
    ``recurrence_recreation_failed``; they never touch the completed task.

    Args:
        task_id: ID of the task that was just completed
        resume: Finish a recreation an earlier call left half done. Only for
            repair runs; a concurrent caller may still be working on the claim.

    Returns:
        RecreationResult describing the new instance or why none was created
    """
    with span("recurrence_service.recreate_next_instance"):
        try:
            source = await task_store.fetch_task_by_id(task_id=task_id)
        except (StoreError, ValidationError) as e:
            return _failed(task_id=task_id, step="fetch", error=e)

        if not should_recreate(source.recurrence_type):
            return RecreationResult(source_task_id=task_id, outcome=RecreationOutcome.SKIPPED)

        try:
            next_date = next_due_date(
                source.due_date,
                source.recurrence_type,
                source.recurrence_day,
                source.recurrence_days,
            )
        except RecurrenceError as e:
            return _failed(task_id=task_id, step="calculate", error=e)

        if next_date is None:
            return RecreationResult(source_task_id=task_id, outcome=RecreationOutcome.SKIPPED)

        try:
            claim = await db_client.create_record(
                collection=TASK_RECURRENCES,
                data={"source_task_id": task_id, "next_due_date": next_date},
            )
        except DuplicateRecordError:
            try:
                return await _claimed_earlier(source=source, next_date=next_date, resume=resume)
            except StoreError as e:
                return _failed(task_id=task_id, step="claim", error=e, next_date=next_date)
        except StoreError as e:
            return _failed(task_id=task_id, step="claim", error=e, next_date=next_date)

        try:
            new_task = await _insert_instance(source=source, claim=claim, next_date=next_date)
        except StoreError as e:
            return _failed(task_id=task_id, step="insert", error=e, next_date=next_date)

        return await _finish(source=source, claim=claim, next_date=next_date, new_task=new_task)


async def find_unrecreated_completions() -> list[Task]:
    """Completed recurring tasks whose next instance was never fully created.

    These are the broken chains left behind by a failed recreation: no claim at
    all, or a claim that never got marked finished. Passing their ids to
    recreate_next_instance with ``resume=True`` repairs them.
    """
    with span("recurrence_service.find_unrecreated_completions"):
        completed = await db_client.list_all_records(
            collection=task_store.TASKS,
            filter_query=f'status = "{TaskStatus.COMPLETED}" && recurrence_type != "none"',
            sort="+due_date",
        )
        claims = await db_client.list_all_records(collection=TASK_RECURRENCES)
        recreated = {str(claim["source_task_id"]) for claim in claims if claim.get("finished_at")}

        broken = [Task.model_validate(record) for record in completed if record["id"] not in recreated]
        if broken:
            logger.warning("recurrence_chains_broken", extra={"count": len(broken), "task_ids": [t.id for t in broken]})
        return broken
