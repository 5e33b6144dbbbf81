"""Employee roster service."""

import logging

from src.core import db_client
from src.core.logging import span
from src.domain.create_models import EmployeeCreate
from src.domain.employee import Employee
from src.domain.update_models import EmployeeUpdate
from src.services import task_store


logger = logging.getLogger(__name__)

EMPLOYEES = "employees"


async def create_employee(*, employee: EmployeeCreate) -> Employee:
    """Add an employee to the roster."""
    with span("employee_service.create_employee"):
        record = await db_client.create_record(collection=EMPLOYEES, data=employee.model_dump())
        logger.info("Created employee %s (%s)", record["id"], employee.name)
        return Employee.model_validate(record)


async def get_employee(*, employee_id: str) -> Employee:
    """Get an employee by ID.

    Raises:
        RecordNotFoundError: If the employee does not exist
    """
    record = await db_client.get_record(collection=EMPLOYEES, record_id=employee_id)
    return Employee.model_validate(record)


async def list_employees() -> list[Employee]:
    """List the whole roster ordered by name."""
    records = await db_client.list_all_records(
        collection=EMPLOYEES,
        sort="+name",
    )
    return [Employee.model_validate(record) for record in records]


async def update_employee(*, employee_id: str, update: EmployeeUpdate) -> Employee:
    """Apply a partial update to an employee.

    Raises:
        RecordNotFoundError: If the employee does not exist
    """
    with span("employee_service.update_employee"):
        data = update.model_dump(exclude_unset=True)
        if not data:
            return await get_employee(employee_id=employee_id)

        record = await db_client.update_record(collection=EMPLOYEES, record_id=employee_id, data=data)
        logger.info("Updated employee %s", employee_id)
        return Employee.model_validate(record)


async def delete_employee(*, employee_id: str) -> None:
    """Remove an employee and their multi-assignee links.

    Tasks assigned directly to the employee are kept; their assigned_to is
    cleared so they stay visible to the administrator.

    Raises:
        RecordNotFoundError: If the employee does not exist
    """
    with span("employee_service.delete_employee"):
        await get_employee(employee_id=employee_id)

        removed_links = await task_store.delete_assignees(employee_id=employee_id)

        assigned = await db_client.list_all_records(
            collection=task_store.TASKS,
            filter_query=f'assigned_to = "{db_client.sanitize_param(employee_id)}"',
        )
        for task in assigned:
            await db_client.update_record(collection=task_store.TASKS, record_id=task["id"], data={"assigned_to": None})

        await db_client.delete_record(collection=EMPLOYEES, record_id=employee_id)
        logger.info(
            "Deleted employee %s",
            employee_id,
            extra={"removed_assignee_links": removed_links, "unassigned_tasks": len(assigned)},
        )
