"""Calling watch webhooks and recording the outcome of each attempt."""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from contextlib import closing
from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter

__all__ = [
    "DEFAULT_WEBHOOK_BATCH_SIZE",
    "WEBHOOK_TIMEOUT",
    "WebhookError",
    "WebhookRepository",
    "validate_webhook",
    "call_webhook",
    "read_webhook_batch_size",
]

_log = logging.getLogger(__name__)

DEFAULT_WEBHOOK_BATCH_SIZE = 100
WEBHOOK_TIMEOUT = 10.0
_MAX_IN_FLIGHT = 10
_POOL_SIZE = 100

_INTEGER = re.compile(r"[+-]?\d+")
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")

# Only a limited number of webhook calls may be in flight at once.
_gate = threading.BoundedSemaphore(_MAX_IN_FLIGHT)

_session = requests.Session()
_adapter = HTTPAdapter(pool_connections=_POOL_SIZE, pool_maxsize=_POOL_SIZE)
_session.mount("https://", _adapter)
_session.mount("http://", _adapter)


class WebhookError(Exception):
    """Raised when a webhook cannot be called or answers with a non-2xx status.

    ``status`` holds the HTTP status received, or 0 when there was none.
    """

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


def read_webhook_batch_size(value: str) -> int:
    """Parse a batch size, falling back to the default for empty or non-positive values."""
    text = value or ""
    if _INTEGER.fullmatch(text):
        size = int(text)
        if size > 0:
            return size
    return DEFAULT_WEBHOOK_BATCH_SIZE


def validate_webhook(raw: str) -> str:
    """Check that ``raw`` is a valid HTTPS URL and return its normalised form."""
    if _CONTROL.search(raw):
        raise WebhookError(f"{raw} is not a valid URL: invalid control character in URL")
    try:
        parts = urlsplit(raw)
    except ValueError as err:
        raise WebhookError(f"{raw} is not a valid URL: {err}") from err
    normalised = parts.geturl()
    if parts.scheme != "https":
        raise WebhookError(f"{normalised} is not an HTTPS url")
    return normalised


def call_webhook(
    watch_id: str,
    body: bytes | str,
    webhook: str,
    auth_token: str,
) -> int:
    """POST ``body`` (JSON) to ``webhook`` and return the HTTP status code.

    Redirects are never followed.
    """
    url = validate_webhook(webhook)
    headers = {"Authorization": auth_token} if auth_token else {}
    try:
        prepared = _session.prepare_request(
            requests.Request("POST", url, data=body, headers=headers)
        )
    except (requests.RequestException, ValueError) as err:
        raise WebhookError(f"unknown error with watch {watch_id}: {err}") from err

    with _gate:
        try:
            response = _session.send(
                prepared, timeout=WEBHOOK_TIMEOUT, allow_redirects=False
            )
        except requests.RequestException as err:
            raise WebhookError(f"unable to call webhook: {err}") from err
    status = response.status_code
    response.close()
    if not 200 <= status <= 299:
        raise WebhookError(f"call_webhook: bogus status code: {status}", status)
    return status


class WebhookRepository:
    """Records of webhook attempts kept in a SQLite or MySQL database."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def close(self) -> None:
        """Close the underlying database connection."""
        self._connection.close()

    def record_webhook(self, watch_id: str, attempted_at: datetime, status: int) -> None:
        """Store one webhook attempt and the status it returned."""
        if isinstance(self._connection, sqlite3.Connection):
            query = "insert into webhook_stats (watch_id, attempted_at, status) values (?, ?, ?);"
            when: Any = attempted_at.isoformat(sep=" ", timespec="microseconds")
        else:
            query = "insert into webhook_stats (watch_id, attempted_at, status) values (%s, %s, %s);"
            when = attempted_at
        with closing(self._connection.cursor()) as cursor:
            cursor.execute(query, (watch_id, when, status))
        self._connection.commit()