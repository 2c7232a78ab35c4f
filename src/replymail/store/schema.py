"""SQLite schema for the records reply-by-email reads and writes.

Only the columns needed to identify records, authorize the sender, and
persist the resulting note, issue, or merge request are modelled.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL,
        incoming_email_token TEXT NOT NULL UNIQUE,
        state TEXT NOT NULL DEFAULT 'active',
        admin INTEGER NOT NULL DEFAULT 0,
        external INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        full_path TEXT NOT NULL UNIQUE COLLATE NOCASE,
        visibility TEXT NOT NULL DEFAULT 'private',
        default_branch TEXT NOT NULL DEFAULT 'main',
        archived INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS project_members (
        project_id INTEGER NOT NULL REFERENCES projects (id),
        user_id INTEGER NOT NULL REFERENCES users (id),
        access_level INTEGER NOT NULL,
        PRIMARY KEY (project_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS issues (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES projects (id),
        iid INTEGER NOT NULL,
        author_id INTEGER NOT NULL REFERENCES users (id),
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        state TEXT NOT NULL DEFAULT 'opened',
        UNIQUE (project_id, iid)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS merge_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES projects (id),
        iid INTEGER NOT NULL,
        author_id INTEGER NOT NULL REFERENCES users (id),
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        source_branch TEXT NOT NULL,
        target_branch TEXT NOT NULL,
        state TEXT NOT NULL DEFAULT 'opened',
        UNIQUE (project_id, iid)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commits (
        project_id INTEGER NOT NULL REFERENCES projects (id),
        sha TEXT NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        PRIMARY KEY (project_id, sha)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES projects (id),
        author_id INTEGER NOT NULL REFERENCES users (id),
        noteable_type TEXT NOT NULL,
        noteable_ref TEXT NOT NULL,
        note TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sent_notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        reply_key TEXT NOT NULL UNIQUE,
        project_id INTEGER NOT NULL,
        recipient_id INTEGER NOT NULL,
        noteable_type TEXT NOT NULL,
        noteable_ref TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        user_id INTEGER NOT NULL REFERENCES users (id),
        noteable_type TEXT NOT NULL,
        noteable_ref TEXT NOT NULL,
        subscribed INTEGER NOT NULL,
        PRIMARY KEY (user_id, noteable_type, noteable_ref)
    )
    """,
)


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables if they do not already exist.

    ``sent_notifications`` has no foreign keys; its rows may outlive the
    project and noteable they reference.

    Args:
        conn: An open sqlite3.Connection.
    """
    for ddl in _TABLES:
        conn.execute(ddl)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_notes_noteable ON notes (noteable_type, noteable_ref)"
    )

    conn.commit()


def connect(db_path: Path) -> sqlite3.Connection:
    """Open (creating if needed) the database at *db_path* with WAL mode.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema initialized.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    init_schema(conn)
    return conn
