from __future__ import annotations

import logging
import os
import sqlite3
from typing import Any

from .models import RemediationEvent, iso, utc_now

log = logging.getLogger(__name__)

_db_path = "watchdog.db"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _resolve_db_path(path: str) -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that does not exist yet is often created as a
    directory; in that case the database file is placed inside it.
    """
    p = os.path.abspath(path)
    if os.path.isdir(p):
        p = os.path.join(p, "watchdog.db")
    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: str | None = None) -> None:
    """Point the audit log at ``path`` and create the table if needed."""
    global _db_path
    if path:
        _db_path = _resolve_db_path(path)
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              namespace TEXT,
              pod TEXT,
              reason TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(
    level: str,
    message: str,
    namespace: str | None = None,
    pod: str | None = None,
    reason: str | None = None,
) -> None:
    """Write one audit row and forward the same line to the process log.

    The audit table is write-mostly; a broken database must not stop the
    watchdog, so sqlite errors are logged and dropped.
    """
    level = level.upper()
    log.log(_LEVELS.get(level, logging.INFO), message, stacklevel=2)
    try:
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, namespace, pod, reason, message) VALUES (?, ?, ?, ?, ?, ?)",
                (iso(utc_now()), level, namespace, pod, reason, message),
            )
    except sqlite3.Error as e:
        log.error("audit write failed: %s", e)


def record_remediation(event: RemediationEvent) -> None:
    elapsed_s = int(event.elapsed.total_seconds())
    if event.ok:
        msg = f"Remediation {event.action} OK for pod {event.ref} (stuck {elapsed_s}s, reason={event.reason})"
    else:
        msg = (
            f"Remediation {event.action} failed for pod {event.ref} "
            f"(stuck {elapsed_s}s, reason={event.reason}): {event.detail}"
        )
    log_event(
        "INFO" if event.ok else "ERROR",
        msg,
        namespace=event.ref.namespace,
        pod=event.ref.name,
        reason=event.reason,
    )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
