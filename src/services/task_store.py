"""Task store operations the recurrence engine depends on.

Thin typed layer over db_client: every function reads or writes exactly one
kind of record and raises StoreError subclasses on failure.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.domain.task import PROOF_FIELDS, Task, TaskProof, TaskStatus


logger = logging.getLogger(__name__)

TASKS = "tasks"
TASK_ASSIGNEES = "task_assignees"


async def fetch_task_by_id(*, task_id: str) -> Task:
    """Fetch the authoritative task record.

    Raises:
        RecordNotFoundError: If the task does not exist
    """
    record = await db_client.get_record(collection=TASKS, record_id=task_id)
    return Task.model_validate(record)


async def update_task_status(*, task_id: str, status: TaskStatus, proof: TaskProof | None = None) -> Task:
    """Write a new status, and the proof columns when a proof is given.

    Passing an empty TaskProof clears previously recorded evidence.
    """
    data: dict[str, Any] = {"status": status}
    if proof is not None:
        data.update({field: getattr(proof, field) for field in PROOF_FIELDS})

    record = await db_client.update_record(collection=TASKS, record_id=task_id, data=data)
    return Task.model_validate(record)


async def insert_task(*, record: dict[str, Any]) -> Task:
    """Insert a task row and return it with its new id."""
    created = await db_client.create_record(collection=TASKS, data=record)
    return Task.model_validate(created)


async def fetch_assignees_by_task_id(*, task_id: str) -> list[str]:
    """Return the employee ids linked to a task through task_assignees."""
    rows = await db_client.list_all_records(
        collection=TASK_ASSIGNEES,
        filter_query=f'task_id = "{sanitize_param(task_id)}"',
    )
    return [str(row["employee_id"]) for row in rows]


async def insert_assignees(*, task_id: str, employee_ids: list[str]) -> None:
    """Link each employee to the task."""
    for employee_id in employee_ids:
        await db_client.create_record(
            collection=TASK_ASSIGNEES,
            data={"task_id": task_id, "employee_id": employee_id},
        )
    logger.debug("Inserted assignees", extra={"task_id": task_id, "count": len(employee_ids)})


async def delete_assignees(*, task_id: str | None = None, employee_id: str | None = None) -> int:
    """Remove assignee links for a task or for an employee; returns how many were removed."""
    filters = []
    if task_id is not None:
        filters.append(f'task_id = "{sanitize_param(task_id)}"')
    if employee_id is not None:
        filters.append(f'employee_id = "{sanitize_param(employee_id)}"')
    if not filters:
        raise ValueError("delete_assignees needs a task_id or an employee_id")

    rows = await db_client.list_all_records(
        collection=TASK_ASSIGNEES,
        filter_query=" && ".join(filters),
    )
    for row in rows:
        await db_client.delete_record(collection=TASK_ASSIGNEES, record_id=row["id"])
    return len(rows)


async def list_task_ids_for_assignee(*, employee_id: str) -> set[str]:
    """Return ids of tasks an employee is linked to through task_assignees."""
    rows = await db_client.list_all_records(
        collection=TASK_ASSIGNEES,
        filter_query=f'employee_id = "{sanitize_param(employee_id)}"',
    )
    return {str(row["task_id"]) for row in rows}
