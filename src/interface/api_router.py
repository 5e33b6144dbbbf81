"""JSON API router for the dashboard front end."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from src.core.config import constants, settings
from src.core.errors import AuthenticationError, PermissionDeniedError
from src.domain.create_models import EmployeeCreate, TaskCreate
from src.domain.employee import Employee, EmployeeSummary
from src.domain.task import Task, TaskStatus
from src.domain.update_models import EmployeeUpdate, TaskResponseUpdate, TaskStatusUpdate, TaskUpdate
from src.models.service_models import DashboardSummary, StatusChangeResult
from src.services import auth_service, dashboard_service, employee_service, task_service
from src.services.auth_service import Session, SessionRole


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


class AdminLogin(BaseModel):
    """Administrator login form."""

    password: str


class EmployeeLogin(BaseModel):
    """Employee login form."""

    employee_id: str
    password: str


class TaskView(BaseModel):
    """Task as returned to the front end."""

    task: Task
    recurrence_label: str


def _task_view(task: Task) -> TaskView:
    return TaskView(task=task, recurrence_label=task_service.describe_task_rule(task))


def _start_session(response: Response, session: Session) -> Session:
    response.set_cookie(
        key=constants.SESSION_COOKIE_NAME,
        value=auth_service.issue_session_token(session),
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=constants.SESSION_MAX_AGE_SECONDS,
    )
    return session


async def require_session(request: Request) -> Session:
    """Load the session from its cookie or reject the request."""
    try:
        return auth_service.load_session(request.cookies.get(constants.SESSION_COOKIE_NAME))
    except AuthenticationError as err:
        logger.warning("api_auth_rejected", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(err)) from err


async def require_admin(session: Session = Depends(require_session)) -> Session:
    """Only the administrator may continue."""
    if session.role != SessionRole.ADMIN:
        raise PermissionDeniedError("Administrator access required")
    return session


async def _load_visible_task(task_id: str, session: Session) -> Task:
    task = await task_service.get_task(task_id=task_id)
    if not task_service.can_access_task(task=task, session=session):
        raise PermissionDeniedError(f"Task {task_id} is not assigned to {session.user_id}")
    return task


# Authentication


@router.post("/auth/admin")
async def login_admin(form: AdminLogin, response: Response) -> Session:
    """Log in as administrator."""
    return _start_session(response, auth_service.login_admin(password=form.password))


@router.post("/auth/employee")
async def login_employee(form: EmployeeLogin, response: Response) -> Session:
    """Log in as an employee with the last digits of their phone."""
    session = await auth_service.login_employee(employee_id=form.employee_id, password=form.password)
    return _start_session(response, session)


@router.post("/auth/kiosk")
async def login_kiosk(response: Response) -> Session:
    """Open the shared central panel."""
    return _start_session(response, auth_service.login_kiosk())


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """Clear the session cookie."""
    response.delete_cookie(constants.SESSION_COOKIE_NAME)


@router.get("/auth/me")
async def current_session(session: Session = Depends(require_session)) -> Session:
    """Return the logged-in user."""
    return session


# Employees


@router.get("/employees/roster")
async def get_roster() -> list[EmployeeSummary]:
    """Names and photos for the login screen."""
    employees = await employee_service.list_employees()
    return [EmployeeSummary(id=e.id, name=e.name, photo=e.photo) for e in employees]


@router.get("/employees")
async def list_employees(_admin: Session = Depends(require_admin)) -> list[Employee]:
    """Full roster with contact and payroll details."""
    return await employee_service.list_employees()


@router.post("/employees", status_code=status.HTTP_201_CREATED)
async def create_employee(employee: EmployeeCreate, _admin: Session = Depends(require_admin)) -> Employee:
    """Add an employee."""
    return await employee_service.create_employee(employee=employee)


@router.get("/employees/{employee_id}")
async def get_employee(employee_id: str, _admin: Session = Depends(require_admin)) -> Employee:
    """Get one employee."""
    return await employee_service.get_employee(employee_id=employee_id)


@router.put("/employees/{employee_id}")
async def update_employee(
    employee_id: str, update: EmployeeUpdate, _admin: Session = Depends(require_admin)
) -> Employee:
    """Edit an employee."""
    return await employee_service.update_employee(employee_id=employee_id, update=update)


@router.delete("/employees/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(employee_id: str, _admin: Session = Depends(require_admin)) -> None:
    """Remove an employee."""
    await employee_service.delete_employee(employee_id=employee_id)


# Tasks


@router.get("/tasks")
async def list_tasks(
    task_status: TaskStatus | None = None,
    assignee_id: str | None = None,
    session: Session = Depends(require_session),
) -> list[TaskView]:
    """Tasks visible to the current user."""
    if session.role == SessionRole.EMPLOYEE:
        tasks = await task_service.get_tasks_for_employee(employee_id=session.user_id, status=task_status)
    else:
        tasks = await task_service.get_tasks(status=task_status, assignee_id=assignee_id)
    return [_task_view(task) for task in tasks]


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, admin: Session = Depends(require_admin)) -> TaskView:
    """Create a task; the administrator is recorded as creator unless given."""
    if task.created_by is None and task.created_by_name is None:
        task = task.model_copy(
            update={"created_by": settings.admin_employee_id, "created_by_name": admin.name},
        )
    return _task_view(await task_service.create_task(task=task))


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, session: Session = Depends(require_session)) -> TaskView:
    """Get one task."""
    return _task_view(await _load_visible_task(task_id, session))


@router.put("/tasks/{task_id}")
async def update_task(task_id: str, update: TaskUpdate, _admin: Session = Depends(require_admin)) -> TaskView:
    """Edit a task and its recurrence rule."""
    return _task_view(await task_service.update_task(task_id=task_id, update=update))


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, _admin: Session = Depends(require_admin)) -> None:
    """Delete a task."""
    await task_service.delete_task(task_id=task_id)


@router.post("/tasks/{task_id}/status")
async def change_task_status(
    task_id: str,
    update: TaskStatusUpdate,
    session: Session = Depends(require_session),
) -> StatusChangeResult:
    """Move a task between columns; completing a recurring task returns its next instance."""
    await _load_visible_task(task_id, session)
    return await task_service.set_task_status(task_id=task_id, status=update.status, proof=update.proof)


@router.post("/tasks/{task_id}/response")
async def reply_to_task(
    task_id: str,
    update: TaskResponseUpdate,
    session: Session = Depends(require_session),
) -> TaskView:
    """Store a free text reply on a task."""
    await _load_visible_task(task_id, session)
    return _task_view(await task_service.set_task_response(task_id=task_id, response=update.response))


# Dashboard


@router.get("/dashboard")
async def get_dashboard(
    today: date | None = None,
    session: Session = Depends(require_session),
) -> DashboardSummary:
    """Status counts plus overdue, due today, and upcoming tasks."""
    employee_id = session.user_id if session.role == SessionRole.EMPLOYEE else None
    return await dashboard_service.get_dashboard_summary(today=today or date.today(), employee_id=employee_id)
