"""Async SQLite store with a small collection-style CRUD API.

Records are plain dicts keyed by column name; ids and foreign keys are exposed
as strings. Filters use the same mini-language everywhere in the services:

    status = "pending" && (assigned_to = "3" || is_shared = "true")
    description ~ "window"

Every failure surfaces as a DatabaseError subclass.
"""

import asyncio
import json
import logging
import re
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings
from src.core.errors import DatabaseError, DuplicateRecordError, RecordNotFoundError


__all__ = [
    "DatabaseError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "close_connection",
    "create_record",
    "delete_record",
    "get_connection",
    "get_first_record",
    "get_record",
    "init_db",
    "list_all_records",
    "list_records",
    "parse_filter",
    "sanitize_param",
    "update_record",
]


logger = logging.getLogger(__name__)

FilterParam = str | int | float | bool | None

_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_COMPARISON = re.compile(r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3""")
_SQL_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<=", "~": "LIKE"}

# Integer columns handed back as strings so ids compare equal across layers
_REFERENCE_COLUMNS = {"id", "assigned_to", "created_by"}


def _validate_identifier(name: str) -> None:
    """Collection and column names are interpolated into SQL, so only plain identifiers pass."""
    if not _IDENTIFIER.match(name):
        msg = f"Invalid collection name: {name}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _encode_value(value: Any) -> Any:
    """Convert a Python value into something SQLite can bind."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, set | frozenset):
        return json.dumps(sorted(value))
    if isinstance(value, dict | list | tuple):
        return json.dumps(value)
    return value


def _to_record(cursor: aiosqlite.Cursor, row: Sequence[Any]) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    record = dict(zip(columns, row, strict=True))
    for key, value in record.items():
        if isinstance(value, int) and (key in _REFERENCE_COLUMNS or key.endswith("_id")):
            record[key] = str(value)
    return record


def _row_id(collection: str, record_id: str) -> int:
    """Convert an opaque record id into the INTEGER primary key it refers to."""
    try:
        return int(record_id)
    except (TypeError, ValueError) as e:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg) from e


def _order_by(sort: str) -> str:
    """Translate "+field" / "-field" into an ORDER BY clause, falling back to id order."""
    text = sort.strip()
    direction = "DESC" if text.startswith("-") else "ASC"
    field = text.lstrip("+-").strip()
    if not text:
        return "id ASC"
    if not _IDENTIFIER.match(field):
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "id ASC"
    if field == "id":
        return f"id {direction}"
    return f"{field} {direction}, id ASC"


# Filter language


def _parse_value(value: str, *, is_like: bool = False) -> FilterParam:
    """Parse a quoted filter value into the Python type SQLite should compare against."""
    if is_like:
        escaped = value.replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"
    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _parse_comparison(comparison: str) -> tuple[str, FilterParam]:
    match = _COMPARISON.match(comparison)
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, _quote, raw_value = match.groups()
    sql_op = _SQL_OPERATORS[op]
    if sql_op == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", _parse_value(raw_value, is_like=True)
    return f"{field} {sql_op} ?", _parse_value(raw_value)


def _split_top_level(filter_query: str) -> list[str]:
    """Split on && outside parentheses."""
    parts: list[str] = []
    current = ""
    depth = 0
    for char in filter_query:
        depth += {"(": 1, ")": -1}.get(char, 0)
        current += char
        if depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""
    if current.strip():
        parts.append(current.strip())
    return parts


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Raises:
        ValueError: If any comparison is not ``field <op> "value"``
    """
    if not filter_query:
        return "", []

    conditions: list[str] = []
    params: list[FilterParam] = []
    for part in _split_top_level(filter_query):
        if part.startswith("(") and part.endswith(")"):
            alternatives = [_parse_comparison(p.strip()) for p in part[1:-1].split("||")]
            conditions.append(f"({' OR '.join(cond for cond, _ in alternatives)})")
            params.extend(value for _, value in alternatives)
        else:
            cond, value = _parse_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


# Connections


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    return threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    key = _cache_key(db_path)
    if key in _db_connections:
        return _db_connections[key]

    async with _db_lock:
        if key in _db_connections:
            return _db_connections[key]

        path = get_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        _db_connections[key] = conn

        logger.info("Created new SQLite connection", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    key = _cache_key(db_path)
    if key not in _db_connections:
        return

    async with _db_lock:
        conn = _db_connections.pop(key, None)
        if conn is None:
            return
        try:
            await conn.close()
            logger.info("Closed SQLite connection", extra={"db_path": key[2]})
        except (aiosqlite.Error, ValueError) as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


@contextmanager
def _store_errors(operation: str, collection: str, **context: object) -> Iterator[None]:
    """Translate anything raised inside into the DatabaseError family, logging it once."""
    fields = {"operation": operation, "collection": collection, **context}
    try:
        yield
    except aiosqlite.IntegrityError as e:
        if "UNIQUE" in str(e):
            logger.warning("store_duplicate_record", extra={**fields, "error": str(e)})
            msg = f"Duplicate record in {collection}: {e}"
            raise DuplicateRecordError(msg) from e
        logger.error("store_operation_failed", extra={**fields, "error": str(e)})
        msg = f"Failed to {operation.replace('_', ' ')} in {collection}: {e}"
        raise DatabaseError(msg) from e
    except aiosqlite.OperationalError as e:
        logger.error("store_operation_failed", extra={**fields, "error": str(e)})
        if "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
        else:
            msg = f"Failed to {operation.replace('_', ' ')} in {collection}: {e}"
        raise DatabaseError(msg) from e
    except DatabaseError:
        raise
    except Exception as e:
        logger.error("store_operation_failed", extra={**fields, "error": str(e)})
        msg = f"Failed to {operation.replace('_', ' ')} in {collection}: {e}"
        raise DatabaseError(msg) from e


# CRUD


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id.

    Raises:
        DuplicateRecordError: If a UNIQUE constraint rejects the row
        DatabaseError: For any other failure
    """
    with _store_errors("create_record", collection):
        _validate_identifier(collection)
        for column in data:
            _validate_identifier(column)
        conn = await get_connection()

        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        query = f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})"  # noqa: S608 - identifiers are validated
        cursor = await conn.execute(query, [_encode_value(value) for value in data.values()])
        await conn.commit()

        logger.info("Created record", extra={"collection": collection, "record_id": cursor.lastrowid})
        return await get_record(collection=collection, record_id=str(cursor.lastrowid))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID.

    Raises:
        RecordNotFoundError: If no row has this id
    """
    with _store_errors("get_record", collection, record_id=record_id):
        _validate_identifier(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_row_id(collection, record_id),))
        row = await cursor.fetchone()
        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        return _to_record(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update the given columns of a record and return the updated record.

    Raises:
        ValueError: If ``data`` is empty
        RecordNotFoundError: If no row has this id
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    with _store_errors("update_record", collection, record_id=record_id):
        _validate_identifier(collection)
        for column in data:
            _validate_identifier(column)
        conn = await get_connection()

        set_clause = ", ".join(f"{column} = ?" for column in data)
        values = [_encode_value(value) for value in data.values()]
        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - identifiers are validated
        cursor = await conn.execute(query, [*values, _row_id(collection, record_id)])
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID.

    Raises:
        RecordNotFoundError: If no row has this id
    """
    with _store_errors("delete_record", collection, record_id=record_id):
        _validate_identifier(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_row_id(collection, record_id),))
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting ("+field"/"-field"), and pagination."""
    with _store_errors("list_records", collection, filter_query=filter_query):
        _validate_identifier(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        where = f"WHERE {where_clause}" if where_clause else ""
        query = f"SELECT * FROM {collection} {where} ORDER BY {_order_by(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, [*params, per_page, (page - 1) * per_page])
        rows = await cursor.fetchall()

        logger.debug("Listed records", extra={"collection": collection, "count": len(rows)})
        return [_to_record(cursor, row) for row in rows]


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    per_page: int | None = None,
) -> list[dict[str, Any]]:
    """List every matching record, fetching page after page until a short page comes back."""
    page_size = per_page or constants.DEFAULT_PER_PAGE_LIMIT
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            filter_query=filter_query,
            sort=sort,
            page=page,
            per_page=page_size,
        )
        records.extend(batch)
        if len(batch) < page_size:
            break
        page += 1

    if page > 1:
        logger.debug("Paged through records", extra={"collection": collection, "pages": page, "count": len(records)})
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record (lowest id) matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
