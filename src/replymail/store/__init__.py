"""SQLite persistence for users, projects, noteables, and sent notifications."""

from replymail.store.schema import connect, init_schema
from replymail.store.sqlite import SqliteStore

__all__ = [
    "SqliteStore",
    "connect",
    "init_schema",
]
