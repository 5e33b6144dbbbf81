"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "employees",
    "tasks",
    "task_assignees",
    "task_recurrences",
]


_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"


_SCHEMA: dict[str, str] = {
    "employees": f"""
        CREATE TABLE IF NOT EXISTS employees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT '',
            phone TEXT NOT NULL DEFAULT '',
            photo TEXT,
            address TEXT NOT NULL DEFAULT '',
            admission_date TEXT,
            bank_details TEXT NOT NULL DEFAULT '{{}}',
            documents TEXT NOT NULL DEFAULT '{{}}'
        )
    """,
    "tasks": f"""
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            description TEXT NOT NULL,
            assigned_to INTEGER REFERENCES employees(id) ON DELETE SET NULL,
            is_shared INTEGER NOT NULL DEFAULT 0,
            type TEXT NOT NULL DEFAULT 'one_off' CHECK (type IN ('routine', 'one_off')),
            due_date TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'in_progress', 'completed', 'blocked')),
            recurrence_type TEXT NOT NULL DEFAULT 'none',
            recurrence_day INTEGER,
            recurrence_days TEXT,
            response TEXT,
            photo_url TEXT,
            audio_url TEXT,
            comment TEXT,
            completed_at TEXT,
            created_by INTEGER REFERENCES employees(id) ON DELETE SET NULL,
            created_by_name TEXT
        )
    """,
    "task_assignees": f"""
        CREATE TABLE IF NOT EXISTS task_assignees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            employee_id INTEGER NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            UNIQUE (task_id, employee_id)
        )
    """,
    # One row per recreated instance; the unique key makes recreation idempotent.
    # finished_at is set once the instance and its assignee links are both written.
    "task_recurrences": f"""
        CREATE TABLE IF NOT EXISTS task_recurrences (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
            source_task_id INTEGER NOT NULL,
            next_due_date TEXT NOT NULL,
            next_task_id INTEGER,
            finished_at TEXT,
            UNIQUE (source_task_id, next_due_date)
        )
    """,
}


_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks (due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks (assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_task_assignees_employee ON task_assignees (employee_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_SCHEMA[collection])
        logger.debug("Ensured collection", extra={"collection": collection})

    for statement in _INDEXES:
        await conn.execute(statement)

    await conn.commit()
    logger.info("Schema initialized", extra={"collections": COLLECTIONS})
