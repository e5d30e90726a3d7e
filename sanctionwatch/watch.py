"""Storage of watches: customers and companies another service wants notified about."""

from __future__ import annotations

import logging
import secrets
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import pymysql

__all__ = ["WatchError", "WatchRequest", "Watch", "WatchCursor", "WatchRepository"]

_log = logging.getLogger(__name__)

_ZERO_TIME = datetime(1, 1, 1)
_DB_ERRORS = (sqlite3.Error, pymysql.MySQLError)

_clock_lock = threading.Lock()
_last_time = _ZERO_TIME


class WatchError(Exception):
    """Raised when a watch request is missing a required identifier."""


@dataclass
class WatchRequest:
    """Parameters for a new ID watch."""

    auth_token: str = ""
    webhook: str = ""


@dataclass
class Watch:
    """A stored watch; exactly one of the id or name fields is set."""

    id: str = ""
    customer_id: str = ""
    customer_name: str = ""
    company_id: str = ""
    company_name: str = ""
    webhook: str = ""
    auth_token: str = ""


def _new_id() -> str:
    return secrets.token_hex(20)


def _now() -> datetime:
    """Current UTC time at millisecond precision, strictly increasing per process."""
    global _last_time
    now = datetime.utcnow()
    now = now.replace(microsecond=now.microsecond // 1000 * 1000)
    with _clock_lock:
        if now <= _last_time:
            now = _last_time + timedelta(milliseconds=1)
        _last_time = now
    return now


def _is_sqlite(connection: Any) -> bool:
    return isinstance(connection, sqlite3.Connection)


def _time_param(connection: Any, value: datetime) -> Any:
    if _is_sqlite(connection):
        return value.isoformat(sep=" ", timespec="microseconds")
    return value


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return _ZERO_TIME
    return _ZERO_TIME


def _execute(connection: Any, query: str, params: tuple) -> list[tuple]:
    if not _is_sqlite(connection):
        query = query.replace("?", "%s")
    with closing(connection.cursor()) as cursor:
        cursor.execute(query, params)
        rows = list(cursor.fetchall()) if cursor.description else []
    connection.commit()
    return rows


# (table, selected column, Watch field) in the order batches are gathered.
_BATCH_SOURCES = (
    ("company_watches", "company_id", "company_id"),
    ("company_name_watches", "name", "company_name"),
    ("customer_watches", "customer_id", "customer_id"),
    ("customer_name_watches", "name", "customer_name"),
)


class WatchCursor:
    """Walks every live watch in creation order, one batch at a time."""

    def __init__(self, connection: Any, batch_size: int) -> None:
        self._connection = connection
        self.batch_size = batch_size
        # Oldest created_at value to return next, per table.
        self._newer_than = {table: _ZERO_TIME for table, _, _ in _BATCH_SOURCES}

    def next_batch(self) -> list[Watch]:
        """Return the next batch of watches; an empty list once all are seen."""
        limit = self.batch_size // 4 if self.batch_size >= 4 else 1
        watches: list[Watch] = []
        for table, column, field_name in _BATCH_SOURCES:
            try:
                watches.extend(self._batch(table, column, field_name, limit))
            except _DB_ERRORS as err:
                _log.warning("problem reading %s: %s", table, err)
        return watches

    def __iter__(self) -> Iterator[list[Watch]]:
        while batch := self.next_batch():
            yield batch

    def _batch(self, table: str, column: str, field_name: str, limit: int) -> list[Watch]:
        query = (
            f"select id, {column}, webhook, auth_token, created_at from {table} "
            "where created_at > ? and deleted_at is null order by created_at asc limit ?"
        )
        newest = self._newer_than[table]
        rows = _execute(
            self._connection, query, (_time_param(self._connection, newest), limit)
        )
        watches = []
        for watch_id, value, webhook, auth_token, created_at in rows:
            watch = Watch(id=watch_id or "", webhook=webhook or "", auth_token=auth_token or "")
            setattr(watch, field_name, value or "")
            watches.append(watch)
            created = _parse_time(created_at)
            if created > newest:
                newest = created
        self._newer_than[table] = newest
        return watches


class WatchRepository:
    """Watches kept in a SQLite or MySQL database."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def close(self) -> None:
        """Close the underlying database connection."""
        self._connection.close()

    def get_watches_cursor(self, batch_size: int) -> WatchCursor:
        """Return a cursor over customer and company watches."""
        return WatchCursor(self._connection, batch_size)

    def _insert(self, table: str, column: str, value: str, webhook: str, auth_token: str) -> str:
        watch_id = _new_id()
        _execute(
            self._connection,
            f"insert into {table} (id, {column}, webhook, auth_token, created_at) "
            "values (?, ?, ?, ?, ?)",
            (watch_id, value, webhook, auth_token, _time_param(self._connection, _now())),
        )
        return watch_id

    def _delete(self, table: str, watch_id: str, owner: tuple[str, str] | None = None) -> None:
        if not watch_id:
            raise WatchError("no watchID found")
        deleted_at = _time_param(self._connection, _now())
        if owner is None:
            _execute(
                self._connection,
                f"update {table} set deleted_at = ? where id = ? and deleted_at is null",
                (deleted_at, watch_id),
            )
        else:
            column, owner_id = owner
            _execute(
                self._connection,
                f"update {table} set deleted_at = ? where {column} = ? and id = ? "
                "and deleted_at is null",
                (deleted_at, owner_id, watch_id),
            )

    # Company watches

    def add_company_watch(self, company_id: str, params: WatchRequest) -> str:
        """Watch a company by ID; return the new watch ID."""
        if not company_id:
            raise WatchError("no companyID found")
        return self._insert(
            "company_watches", "company_id", company_id, params.webhook, params.auth_token
        )

    def add_company_name_watch(self, name: str, webhook: str, auth_token: str) -> str:
        """Watch a company by name; return the new watch ID."""
        return self._insert("company_name_watches", "name", name, webhook, auth_token)

    def remove_company_watch(self, company_id: str, watch_id: str) -> None:
        """Soft-delete a company ID watch."""
        self._delete("company_watches", watch_id, ("company_id", company_id))

    def remove_company_name_watch(self, watch_id: str) -> None:
        """Soft-delete a company name watch."""
        self._delete("company_name_watches", watch_id)

    # Customer watches

    def add_customer_watch(self, customer_id: str, params: WatchRequest) -> str:
        """Watch a customer by ID; return the new watch ID."""
        if not customer_id:
            raise WatchError("no customerID found")
        return self._insert(
            "customer_watches", "customer_id", customer_id, params.webhook, params.auth_token
        )

    def add_customer_name_watch(self, name: str, webhook: str, auth_token: str) -> str:
        """Watch a customer by name; return the new watch ID."""
        return self._insert("customer_name_watches", "name", name, webhook, auth_token)

    def remove_customer_watch(self, customer_id: str, watch_id: str) -> None:
        """Soft-delete a customer ID watch."""
        self._delete("customer_watches", watch_id, ("customer_id", customer_id))

    def remove_customer_name_watch(self, watch_id: str) -> None:
        """Soft-delete a customer name watch."""
        self._delete("customer_name_watches", watch_id)