"""Task service for CRUD operations and status changes."""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.core.recurrence import describe_rule, rule_from_fields, should_recreate
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskProof, TaskStatus
from src.domain.update_models import TaskUpdate
from src.models.service_models import StatusChangeResult
from src.services import recurrence_service, task_store
from src.services.auth_service import Session, SessionRole


logger = logging.getLogger(__name__)


async def _with_assignees(task: Task) -> Task:
    task.assignee_ids = await task_store.fetch_assignees_by_task_id(task_id=task.id)
    return task


async def create_task(*, task: TaskCreate) -> Task:
    """Create a task and its assignee links.

    Args:
        task: Validated task payload

    Returns:
        Created task including assignee_ids

    Raises:
        StoreError: If a database operation fails
    """
    with span("task_service.create_task"):
        created = await task_store.insert_task(record=task.to_record())

        if task.assignee_ids:
            await task_store.insert_assignees(task_id=created.id, employee_ids=task.assignee_ids)
            created.assignee_ids = list(task.assignee_ids)

        logger.info(
            "Created task %s (due %s, recurrence %s)",
            created.id,
            created.due_date,
            created.recurrence_type,
        )
        return created


async def get_task(*, task_id: str) -> Task:
    """Get a task by ID with its assignee ids.

    Raises:
        RecordNotFoundError: If task not found
    """
    task = await task_store.fetch_task_by_id(task_id=task_id)
    return await _with_assignees(task)


async def get_tasks(
    *,
    status: TaskStatus | None = None,
    assignee_id: str | None = None,
) -> list[Task]:
    """Get tasks with optional filters, ordered by due date.

    Args:
        status: Filter by status
        assignee_id: Filter by single assignee (assigned_to)

    Returns:
        List of tasks matching filters
    """
    with span("task_service.get_tasks"):
        filters = []

        if status:
            filters.append(f'status = "{sanitize_param(status)}"')

        if assignee_id:
            filters.append(f'assigned_to = "{sanitize_param(assignee_id)}"')

        filter_query = " && ".join(filters) if filters else ""

        records = await db_client.list_all_records(
            collection=task_store.TASKS,
            filter_query=filter_query,
            sort="+due_date",
        )

        tasks = [await _with_assignees(Task.model_validate(record)) for record in records]
        logger.debug("Retrieved %d tasks with filters: %s", len(tasks), filter_query)
        return tasks


async def get_tasks_for_employee(*, employee_id: str, status: TaskStatus | None = None) -> list[Task]:
    """Tasks an employee should see: assigned to them, shared, or multi-assigned including them."""
    with span("task_service.get_tasks_for_employee"):
        linked_ids = await task_store.list_task_ids_for_assignee(employee_id=employee_id)
        tasks = await get_tasks(status=status)
        return [
            task
            for task in tasks
            if task.is_shared or task.assigned_to == employee_id or task.id in linked_ids
        ]


def can_access_task(*, task: Task, session: Session) -> bool:
    """Admins and the kiosk panel see every task; employees only their own and shared ones."""
    if session.role in (SessionRole.ADMIN, SessionRole.KIOSK):
        return True
    return task.is_shared or task.assigned_to == session.user_id or session.user_id in task.assignee_ids


async def update_task(*, task_id: str, update: TaskUpdate) -> Task:
    """Edit task fields and recurrence rule.

    The merged rule and assignment are re-validated through TaskCreate before
    anything is written.

    Raises:
        RecordNotFoundError: If task not found
        ValueError: If the merged task is invalid
    """
    with span("task_service.update_task"):
        current = await get_task(task_id=task_id)
        changes = update.model_dump(exclude_unset=True)

        merged = current.model_dump(include=set(TaskCreate.model_fields)) | changes
        if "recurrence_type" in changes and "recurrence_day" not in changes:
            merged["recurrence_day"] = None
        validated = TaskCreate.model_validate(merged)

        data: dict[str, Any] = {
            key: getattr(validated, key)
            for key in TaskCreate.model_fields
            if key not in ("assignee_ids", "status", "response", "created_by", "created_by_name")
        }
        record = await db_client.update_record(collection=task_store.TASKS, record_id=task_id, data=data)
        updated = Task.model_validate(record)

        if current.assignee_ids != validated.assignee_ids:
            await task_store.delete_assignees(task_id=task_id)
            if validated.assignee_ids:
                await task_store.insert_assignees(task_id=task_id, employee_ids=validated.assignee_ids)
        updated.assignee_ids = list(validated.assignee_ids)

        logger.info("Updated task %s", task_id)
        return updated


async def delete_task(*, task_id: str) -> None:
    """Delete a task and its assignee links.

    Raises:
        RecordNotFoundError: If task not found
    """
    with span("task_service.delete_task"):
        await task_store.fetch_task_by_id(task_id=task_id)
        await task_store.delete_assignees(task_id=task_id)
        await db_client.delete_record(collection=task_store.TASKS, record_id=task_id)
        logger.info("Deleted task %s", task_id)


async def set_task_status(
    *,
    task_id: str,
    status: TaskStatus,
    proof: TaskProof | None = None,
    now: datetime | None = None,
) -> StatusChangeResult:
    """Change a task's status; completing a recurring task spawns its next instance.

    The status write happens first and is never rolled back. Recreation runs
    once per transition into completed; its outcome, including failures, is
    returned alongside the updated task.

    Args:
        task_id: Task ID
        status: New status
        proof: Completion evidence (only recorded when completing)
        now: Completion time; defaults to the current UTC time

    Returns:
        StatusChangeResult with the updated task and the recreation result

    Raises:
        RecordNotFoundError: If task not found
        StoreError: If the status write fails
    """
    with span("task_service.set_task_status"):
        previous = await task_store.fetch_task_by_id(task_id=task_id)

        stamped_proof = None
        if status == TaskStatus.COMPLETED:
            stamped_proof = (proof or TaskProof()).model_copy()
            if stamped_proof.completed_at is None:
                stamped_proof.completed_at = (now or datetime.now(UTC)).isoformat()
        elif previous.status == TaskStatus.COMPLETED and not previous.proof.is_empty():
            # Reopened: evidence belonged to the completion being undone
            stamped_proof = TaskProof()

        task = await task_store.update_task_status(task_id=task_id, status=status, proof=stamped_proof)
        logger.info("Task %s status %s -> %s", task_id, previous.status, status)

        recurrence = None
        is_new_completion = status == TaskStatus.COMPLETED and previous.status != TaskStatus.COMPLETED
        if is_new_completion and should_recreate(task.recurrence_type):
            recurrence = await recurrence_service.recreate_next_instance(task_id=task_id)

        return StatusChangeResult(task=await _with_assignees(task), recurrence=recurrence)


async def set_task_response(*, task_id: str, response: str) -> Task:
    """Store the assignee's free text reply.

    Raises:
        RecordNotFoundError: If task not found
    """
    with span("task_service.set_task_response"):
        record = await db_client.update_record(
            collection=task_store.TASKS,
            record_id=task_id,
            data={"response": response.strip() or None},
        )
        return await _with_assignees(Task.model_validate(record))


def describe_task_rule(task: Task) -> str:
    """Human-readable recurrence for a stored task, tolerating broken rules."""
    try:
        return describe_rule(rule_from_fields(task.recurrence_type, task.recurrence_day, task.recurrence_days))
    except ValueError:
        return "invalid recurrence"
