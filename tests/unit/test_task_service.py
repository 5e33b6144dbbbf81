"""Unit tests for task_service module."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.core.config import constants
from src.core.errors import RecordNotFoundError
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskProof, TaskStatus
from src.domain.update_models import TaskUpdate
from src.services import task_service
from src.services.auth_service import Session, SessionRole


@pytest.mark.unit
class TestCreateTask:
    """Tests for create_task function."""

    async def test_create_single_assignee(self, patched_db, sample_task_data):
        """Test creating a task assigned to one employee."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        assert task.id
        assert task.description == "Water the plants"
        assert task.assigned_to == "emp1"
        assert task.status == TaskStatus.PENDING
        assert task.recurrence_type == "weekly"
        assert task.assignee_ids == []

    async def test_create_multi_assignee(self, patched_db):
        """Test assignee links are stored in task_assignees."""
        task = await task_service.create_task(
            task=TaskCreate(description="Clean windows", due_date="2024-01-01", assignee_ids=["a", "b", "a"]),
        )

        links = patched_db.records("task_assignees")
        assert task.assignee_ids == ["a", "b"]
        assert sorted(link["employee_id"] for link in links) == ["a", "b"]
        assert all(link["task_id"] == task.id for link in links)

    async def test_monthly_without_day_is_anchored(self, patched_db):
        """Test monthly tasks record the due date's day of month."""
        task = await task_service.create_task(
            task=TaskCreate(description="Pay bills", due_date="2024-01-31", recurrence_type="monthly"),
        )

        assert task.recurrence_day == 31

    async def test_recurring_task_starts_pending(self, patched_db, sample_task_data):
        """Test a recurring task cannot be born completed and skip recreation."""
        payload = TaskCreate.model_validate({**sample_task_data, "status": "completed"})
        task = await task_service.create_task(task=payload)

        assert task.status == TaskStatus.PENDING

    async def test_proof_columns_are_not_stored(self, patched_db, sample_task_data):
        """Test a new task starts without completion evidence."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        assert task.proof.is_empty()


@pytest.mark.unit
class TestGetTasks:
    """Tests for task listing functions."""

    @pytest.fixture
    async def created_tasks(self, patched_db):
        """Create tasks for several employees."""
        own = await task_service.create_task(
            task=TaskCreate(description="Own", due_date="2024-01-03", assigned_to="emp1"),
        )
        shared = await task_service.create_task(
            task=TaskCreate(description="Shared", due_date="2024-01-01", is_shared=True),
        )
        linked = await task_service.create_task(
            task=TaskCreate(description="Linked", due_date="2024-01-02", assignee_ids=["emp1", "emp2"]),
        )
        other = await task_service.create_task(
            task=TaskCreate(description="Other", due_date="2024-01-04", assigned_to="emp2"),
        )
        return {"own": own, "shared": shared, "linked": linked, "other": other}

    async def test_ordered_by_due_date(self, patched_db, created_tasks):
        """Test tasks are returned earliest due first."""
        tasks = await task_service.get_tasks()

        assert [t.description for t in tasks] == ["Shared", "Linked", "Own", "Other"]

    async def test_filter_by_status(self, patched_db, created_tasks):
        """Test filtering by status."""
        await task_service.set_task_status(task_id=created_tasks["own"].id, status=TaskStatus.IN_PROGRESS)

        tasks = await task_service.get_tasks(status=TaskStatus.IN_PROGRESS)

        assert [t.id for t in tasks] == [created_tasks["own"].id]

    async def test_filter_by_assignee(self, patched_db, created_tasks):
        """Test filtering by single assignee."""
        tasks = await task_service.get_tasks(assignee_id="emp2")

        assert [t.description for t in tasks] == ["Other"]

    async def test_employee_view(self, patched_db, created_tasks):
        """Test an employee sees own, shared, and linked tasks only."""
        tasks = await task_service.get_tasks_for_employee(employee_id="emp1")

        assert sorted(t.description for t in tasks) == ["Linked", "Own", "Shared"]

    async def test_get_task_includes_assignees(self, patched_db, created_tasks):
        """Test get_task loads the assignee links."""
        task = await task_service.get_task(task_id=created_tasks["linked"].id)

        assert sorted(task.assignee_ids) == ["emp1", "emp2"]

    async def test_get_missing_task(self, patched_db):
        """Test getting an unknown task raises."""
        with pytest.raises(RecordNotFoundError):
            await task_service.get_task(task_id="404")


@pytest.mark.unit
class TestCanAccessTask:
    """Tests for can_access_task function."""

    def _task(self, **fields) -> Task:
        return Task(id="1", description="Task", due_date="2024-01-01", **fields)

    def test_admin_and_kiosk_see_everything(self):
        """Test privileged roles see every task."""
        task = self._task(assigned_to="someone")

        for role in (SessionRole.ADMIN, SessionRole.KIOSK):
            session = Session(user_id="x", name="X", role=role)
            assert task_service.can_access_task(task=task, session=session)

    def test_employee_access(self):
        """Test employees see their own, multi-assigned, and shared tasks."""
        session = Session(user_id="emp1", name="Maria", role=SessionRole.EMPLOYEE)

        assert task_service.can_access_task(task=self._task(assigned_to="emp1"), session=session)
        assert task_service.can_access_task(task=self._task(assignee_ids=["emp2", "emp1"]), session=session)
        assert task_service.can_access_task(task=self._task(is_shared=True), session=session)
        assert not task_service.can_access_task(task=self._task(assigned_to="emp2"), session=session)


@pytest.mark.unit
class TestUpdateTask:
    """Tests for update_task function."""

    async def test_update_description_keeps_rule(self, patched_db):
        """Test editing the text keeps the recurrence rule."""
        task = await task_service.create_task(
            task=TaskCreate(description="Old", due_date="2024-01-01", recurrence_type="custom", recurrence_days=[1, 3]),
        )

        updated = await task_service.update_task(task_id=task.id, update=TaskUpdate(description="New"))

        assert updated.description == "New"
        assert updated.recurrence_type == "custom"
        assert updated.recurrence_days == [1, 3]

    async def test_switch_to_monthly_anchors_day(self, patched_db):
        """Test switching rule type drops the old day and anchors the new one."""
        task = await task_service.create_task(
            task=TaskCreate(description="Task", due_date="2024-03-15", recurrence_type="weekly", recurrence_day=5),
        )

        updated = await task_service.update_task(task_id=task.id, update=TaskUpdate(recurrence_type="monthly"))

        assert updated.recurrence_type == "monthly"
        assert updated.recurrence_day == 15

    async def test_switch_away_from_custom_clears_days(self, patched_db):
        """Test weekday sets are dropped when the rule is no longer custom."""
        task = await task_service.create_task(
            task=TaskCreate(description="Task", due_date="2024-01-01", recurrence_type="custom", recurrence_days=[2]),
        )

        updated = await task_service.update_task(task_id=task.id, update=TaskUpdate(recurrence_type="daily"))

        assert updated.recurrence_days is None

    async def test_custom_without_days_rejected(self, patched_db, sample_task_data):
        """Test an edit producing an empty custom rule is rejected."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        with pytest.raises(ValidationError, match="at least one weekday"):
            await task_service.update_task(task_id=task.id, update=TaskUpdate(recurrence_type="custom"))

    async def test_replace_assignees(self, patched_db):
        """Test assignee links are replaced when the set changes."""
        task = await task_service.create_task(
            task=TaskCreate(description="Task", due_date="2024-01-01", assignee_ids=["a", "b"]),
        )

        updated = await task_service.update_task(task_id=task.id, update=TaskUpdate(assignee_ids=["c"]))

        links = patched_db.records("task_assignees")
        assert updated.assignee_ids == ["c"]
        assert [link["employee_id"] for link in links] == ["c"]

    async def test_move_from_single_to_multiple_assignees(self, patched_db, sample_task_data):
        """Test switching assignment mode requires clearing assigned_to."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        with pytest.raises(ValidationError, match="either assigned_to or assignee_ids"):
            await task_service.update_task(task_id=task.id, update=TaskUpdate(assignee_ids=["a"]))

        updated = await task_service.update_task(
            task_id=task.id,
            update=TaskUpdate(assigned_to=None, assignee_ids=["a"]),
        )
        assert updated.assigned_to is None
        assert updated.assignee_ids == ["a"]


@pytest.mark.unit
class TestDeleteTask:
    """Tests for delete_task function."""

    async def test_delete_removes_links(self, patched_db):
        """Test deleting a task removes its assignee links."""
        task = await task_service.create_task(
            task=TaskCreate(description="Task", due_date="2024-01-01", assignee_ids=["a", "b"]),
        )

        await task_service.delete_task(task_id=task.id)

        assert patched_db.records("tasks") == []
        assert patched_db.records("task_assignees") == []

    async def test_delete_missing(self, patched_db):
        """Test deleting an unknown task raises."""
        with pytest.raises(RecordNotFoundError):
            await task_service.delete_task(task_id="404")


@pytest.mark.unit
class TestSetTaskStatus:
    """Tests for set_task_status function."""

    async def test_in_progress_does_not_recreate(self, patched_db, sample_task_data):
        """Test only completion triggers recreation."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        result = await task_service.set_task_status(task_id=task.id, status=TaskStatus.IN_PROGRESS)

        assert result.task.status == TaskStatus.IN_PROGRESS
        assert result.recurrence is None
        assert len(patched_db.records("tasks")) == 1

    async def test_completion_stamps_time(self, patched_db, sample_task_data):
        """Test completed_at comes from the injected clock."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))
        now = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

        result = await task_service.set_task_status(task_id=task.id, status=TaskStatus.COMPLETED, now=now)

        assert result.task.completed_at == "2024-01-01T09:00:00+00:00"

    async def test_given_completion_time_is_kept(self, patched_db, sample_task_data):
        """Test a completion time supplied with the proof is stored as is."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        result = await task_service.set_task_status(
            task_id=task.id,
            status=TaskStatus.COMPLETED,
            proof=TaskProof(audio_url="note.webm", completed_at="2024-01-01T07:00:00+00:00"),
        )

        assert result.task.audio_url == "note.webm"
        assert result.task.completed_at == "2024-01-01T07:00:00+00:00"

    async def test_reopen_clears_proof(self, patched_db, sample_task_data):
        """Test moving a completed task back clears its evidence."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))
        await task_service.set_task_status(
            task_id=task.id,
            status=TaskStatus.COMPLETED,
            proof=TaskProof(photo_url="p.jpg", comment="done"),
        )

        result = await task_service.set_task_status(task_id=task.id, status=TaskStatus.PENDING)

        assert result.task.status == TaskStatus.PENDING
        assert result.task.proof.is_empty()

    async def test_missing_task(self, patched_db):
        """Test changing the status of an unknown task raises."""
        with pytest.raises(RecordNotFoundError):
            await task_service.set_task_status(task_id="404", status=TaskStatus.COMPLETED)


@pytest.mark.unit
class TestResponsesAndLabels:
    """Tests for set_task_response and describe_task_rule."""

    async def test_set_response(self, patched_db, sample_task_data):
        """Test replies are stored stripped and blanks are cleared."""
        task = await task_service.create_task(task=TaskCreate(**sample_task_data))

        replied = await task_service.set_task_response(task_id=task.id, response="  On it  ")
        cleared = await task_service.set_task_response(task_id=task.id, response="   ")

        assert replied.response == "On it"
        assert cleared.response is None

    def test_describe_task_rule(self):
        """Test stored tasks render readable rule labels."""
        weekly = Task(id="1", description="t", due_date="2024-01-01", recurrence_type="weekly", recurrence_day=1)
        broken = Task(id="2", description="t", due_date="2024-01-01", recurrence_type="custom")

        assert task_service.describe_task_rule(weekly) == "every Monday"
        assert task_service.describe_task_rule(broken) == "invalid recurrence"


@pytest.mark.unit
class TestLargeTaskTables:
    """Listings must reach rows beyond the first page of results."""

    PAGE = constants.DEFAULT_PER_PAGE_LIMIT

    @pytest.fixture
    async def full_history(self, patched_db):
        """A page worth of completed one-off tasks, then a fresh daily task."""
        for _ in range(self.PAGE):
            await patched_db.create_record(
                "tasks",
                {"description": "Old chore", "due_date": "2024-01-01", "status": "completed"},
            )
        return await task_service.create_task(
            task=TaskCreate(
                description="Feed the cat",
                due_date="2024-06-01",
                assigned_to="emp1",
                recurrence_type="daily",
            ),
        )

    async def test_newest_task_is_listed(self, patched_db, full_history):
        """Test get_tasks returns every row, including the one past the first page."""
        tasks = await task_service.get_tasks()

        assert len(tasks) == self.PAGE + 1
        assert tasks[-1].id == full_history.id

    async def test_newest_task_visible_to_employee(self, patched_db, full_history):
        """Test employee listings page through the table too."""
        tasks = await task_service.get_tasks_for_employee(employee_id="emp1")

        assert [t.id for t in tasks] == [full_history.id]

    async def test_next_instance_is_listed_after_completion(self, patched_db, full_history):
        """Test the recreated instance shows up once the table spans several pages."""
        result = await task_service.set_task_status(task_id=full_history.id, status=TaskStatus.COMPLETED)

        pending = await task_service.get_tasks(status=TaskStatus.PENDING)

        assert [t.id for t in pending] == [result.recurrence.new_task.id]
        assert len(await task_service.get_tasks()) == self.PAGE + 2
