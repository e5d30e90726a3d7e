"""Database connections, schema migrations and constraint-error helpers."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pymysql

__all__ = [
    "DatabaseError",
    "Migration",
    "SQLITE_MIGRATIONS",
    "MYSQL_MIGRATIONS",
    "connect",
    "sqlite_path",
    "sqlite_connect",
    "mysql_connect",
    "migrate",
    "unique_violation",
    "sqlite_unique_violation",
    "mysql_unique_violation",
]

_log = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = "watchman.db"
DEFAULT_MYSQL_TIMEOUT = "30s"

# MySQL error code for duplicate entries (violating a unique constraint).
MYSQL_ERR_DUPLICATE_KEY = 1062
# SQLite primary result code for constraint violations.
SQLITE_CONSTRAINT = 19


class DatabaseError(Exception):
    """Raised when a database cannot be opened, reached or migrated."""


@dataclass(frozen=True)
class Migration:
    """A named schema change, applied once and in order."""

    name: str
    statement: str


SQLITE_MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        "create_customer_name_watches",
        "create table if not exists customer_name_watches(id primary key, name, webhook, auth_token, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_customer_status",
        "create table if not exists customer_status(customer_id primary key, user_id, note, status, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_customer_watches",
        "create table if not exists customer_watches(id primary key, customer_id, webhook, auth_token, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_company_name_watches",
        "create table if not exists company_name_watches(id primary key, name, webhook, auth_token, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_company_status",
        "create table if not exists company_status(company_id primary key, user_id, note, status, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_company_watches",
        "create table if not exists company_watches(id primary key, company_id, webhook, auth_token, created_at datetime, deleted_at datetime);",
    ),
    Migration(
        "create_ofac_download_stats",
        "create table if not exists ofac_download_stats(downloaded_at datetime, sdns, alt_names, addresses);",
    ),
    Migration(
        "create_webhook_stats",
        "create table if not exists webhook_stats(watch_id string, attempted_at datetime, status);",
    ),
    Migration(
        "add_denied_persons_to_ofac_download_stats",
        "alter table ofac_download_stats add column denied_persons default 0;",
    ),
    Migration(
        "rename_ofac_download_stats",
        "alter table ofac_download_stats rename to download_stats",
    ),
    Migration(
        "add_sectoral_sanctions_to_download_stats",
        "alter table download_stats add column sectoral_sanctions default 0;",
    ),
    Migration(
        "add__bis_entities__to_download_stats",
        "alter table download_stats add column bis_entities default 0;",
    ),
)

MYSQL_MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        "create_customer_name_watches",
        "create table if not exists customer_name_watches(id varchar(40) primary key, name varchar(40), webhook varchar(512), auth_token varchar(128), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_customer_status",
        "create table if not exists customer_status(customer_id varchar(40) primary key, user_id varchar(40), note varchar(1024), status varchar(10), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_customer_watches",
        "create table if not exists customer_watches(id varchar(40) primary key, customer_id varchar(40), webhook varchar(512), auth_token varchar(128), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_company_name_watches",
        "create table if not exists company_name_watches(id varchar(40) primary key, name varchar(256), webhook varchar(512), auth_token varchar(128), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_company_status",
        "create table if not exists company_status(company_id varchar(40) primary key, user_id varchar(40), note varchar(1024), status varchar(10), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_company_watches",
        "create table if not exists company_watches(id varchar(40) primary key, company_id varchar(40), webhook varchar(512), auth_token varchar(128), created_at timestamp(3), deleted_at timestamp(3));",
    ),
    Migration(
        "create_ofac_download_stats",
        "create table if not exists ofac_download_stats(downloaded_at timestamp(3), sdns integer, alt_names integer, addresses integer);",
    ),
    Migration(
        "create_webhook_stats",
        "create table if not exists webhook_stats(watch_id varchar(40), attempted_at timestamp(3), status varchar(10));",
    ),
    Migration(
        "add__denied_persons__to__ofac_download_stats",
        "alter table ofac_download_stats add column denied_persons integer not null default 0;",
    ),
    Migration(
        "rename_ofac_download_stats",
        "rename table ofac_download_stats to download_stats",
    ),
    Migration(
        "add_sectoral_sanctions_to_download_stats",
        "alter table download_stats add column sectoral_sanctions integer not null default 0;",
    ),
    Migration(
        "add__bis_entities__to_download_stats",
        "alter table download_stats add column bis_entities integer not null default 0;",
    ),
)

_sqlite_version_logged = False


def migrate(connection: Any, migrations: Sequence[Migration]) -> list[str]:
    """Apply the migrations not yet recorded on ``connection``; return their names."""
    mark = "?" if isinstance(connection, sqlite3.Connection) else "%s"
    cursor = connection.cursor()
    try:
        cursor.execute(
            "create table if not exists migrations "
            "(id integer not null primary key, version varchar(255) not null)"
        )
        connection.commit()
        cursor.execute("select count(*) from migrations")
        (applied,) = cursor.fetchone()
        if applied > len(migrations):
            raise DatabaseError(
                "migrate: applied migration number on db cannot be greater "
                "than the defined migration list"
            )
        done: list[str] = []
        for index, migration in enumerate(migrations[applied:], start=applied):
            cursor.execute(migration.statement)
            cursor.execute(
                f"insert into migrations (id, version) values ({mark}, {mark})",
                (index, migration.name),
            )
            connection.commit()
            done.append(migration.name)
        return done
    except DatabaseError:
        raise
    except Exception as err:
        raise DatabaseError(f"migrate: {err}") from err
    finally:
        cursor.close()


def sqlite_path() -> str:
    """Return the SQLite file path from SQLITE_DB_PATH, refusing paths that escape."""
    path = os.environ.get("SQLITE_DB_PATH", "")
    if not path or ".." in path:
        return DEFAULT_SQLITE_PATH
    return path


def sqlite_connect(path: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open (creating if needed) and migrate a SQLite database."""
    global _sqlite_version_logged
    if not _sqlite_version_logged:
        _sqlite_version_logged = True
        _log.info("sqlite version %s", sqlite3.sqlite_version)

    try:
        connection = sqlite3.connect(os.fspath(path), check_same_thread=False)
        connection.execute("select 1").fetchone()
    except sqlite3.Error as err:
        raise DatabaseError(f"sqlite: {err}") from err

    try:
        migrate(connection, SQLITE_MIGRATIONS)
    except DatabaseError:
        connection.close()
        raise
    return connection


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _parse_timeout(value: str) -> float:
    text = value.strip()
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return float(text)
    if not text or _DURATION_PART.sub("", text):
        raise DatabaseError(f"invalid timeout {value!r}")
    return sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART.findall(text)
    )


def _parse_address(address: str) -> dict[str, Any]:
    text = address.strip()
    match = re.fullmatch(r"(tcp|unix)\((.*)\)", text)
    if match:
        if match.group(1) == "unix":
            return {"unix_socket": match.group(2)}
        text = match.group(2)
    if not text:
        return {"host": "127.0.0.1", "port": 3306}
    host, sep, port = text.rpartition(":")
    if not sep:
        return {"host": text, "port": 3306}
    try:
        return {"host": host or "127.0.0.1", "port": int(port)}
    except ValueError as err:
        raise DatabaseError(f"invalid address {address!r}") from err


def mysql_connect(user: str, password: str, address: str, database: str) -> Any:
    """Connect to and migrate a MySQL database."""
    timeout = _parse_timeout(os.environ.get("MYSQL_TIMEOUT") or DEFAULT_MYSQL_TIMEOUT)
    target = _parse_address(address)
    try:
        connection = pymysql.connect(
            user=user,
            password=password,
            database=database or None,
            charset="utf8mb4",
            connect_timeout=timeout,
            init_command="SET SESSION sql_mode='ALLOW_INVALID_DATES'",
            **target,
        )
        connection.ping(reconnect=False)
    except (pymysql.MySQLError, OSError, ValueError) as err:
        raise DatabaseError(f"mysql: {err}") from err

    try:
        migrate(connection, MYSQL_MIGRATIONS)
    except DatabaseError:
        connection.close()
        raise
    return connection


def connect(kind: str) -> Any:
    """Open the database named by ``kind``: ``sqlite`` (the default) or ``mysql``."""
    _log.info("looking for %s database provider", kind)
    normalized = kind.lower()
    if normalized in ("sqlite", ""):
        return sqlite_connect(sqlite_path())
    if normalized == "mysql":
        return mysql_connect(
            os.environ.get("MYSQL_USER", ""),
            os.environ.get("MYSQL_PASSWORD", ""),
            os.environ.get("MYSQL_ADDRESS", ""),
            os.environ.get("MYSQL_DATABASE", ""),
        )
    raise DatabaseError(f"unknown database type {kind!r}")


def sqlite_unique_violation(error: BaseException) -> bool:
    """Report whether ``error`` is a SQLite unique-constraint violation."""
    if "UNIQUE constraint failed" in str(error):
        return True
    code = getattr(error, "sqlite_errorcode", None)
    return isinstance(error, sqlite3.Error) and code is not None and (
        code & 0xFF
    ) == SQLITE_CONSTRAINT


def mysql_unique_violation(error: BaseException) -> bool:
    """Report whether ``error`` is a MySQL duplicate-entry violation."""
    if f"Error {MYSQL_ERR_DUPLICATE_KEY}: Duplicate entry" in str(error):
        return True
    if isinstance(error, pymysql.MySQLError) and error.args:
        return error.args[0] == MYSQL_ERR_DUPLICATE_KEY
    return False


def unique_violation(error: BaseException) -> bool:
    """Report whether ``error`` is a duplicate-entry violation of either database."""
    return mysql_unique_violation(error) or sqlite_unique_violation(error)