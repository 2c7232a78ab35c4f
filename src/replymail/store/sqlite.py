"""SQLite-backed identity and domain store.

Accepts a sqlite3.Connection and uses parameterized queries exclusively.
Mutations made by handlers (notes, issues, merge requests, state changes,
unsubscribes) do not commit on their own; they run inside ``transaction()``
so a failing handler leaves nothing behind.  The ``add_*`` methods used to
seed records commit synchronously.
"""

from __future__ import annotations

import secrets
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from replymail.domain.models import (
    Commit,
    Issue,
    MergeRequest,
    Note,
    Noteable,
    Project,
    SentNotification,
    User,
)
from replymail.domain.policy import can
from replymail.domain.types import (
    AccessLevel,
    Action,
    IssuableState,
    NoteableType,
    UserState,
    Visibility,
)


class SqliteStore:
    """Look up and persist reply-by-email records in SQLite.

    Satisfies both ``IdentityStore`` and ``DomainStore``.  Holds no state
    besides the connection, so one instance may serve any number of
    sequential receiver invocations.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  schema (see ``init_schema``).
        """
        self._conn = conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit everything written inside the block, or roll it all back."""
        with self._conn:
            yield

    # ------------------------------------------------------------------
    # Row helpers
    # ------------------------------------------------------------------

    def _fetchone(self, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        cursor = self._conn.cursor()
        cursor.row_factory = sqlite3.Row
        row: sqlite3.Row | None = cursor.execute(sql, params).fetchone()
        return row

    def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        cursor = self._conn.cursor()
        cursor.row_factory = sqlite3.Row
        return cursor.execute(sql, params).fetchall()

    @staticmethod
    def _user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            incoming_email_token=row["incoming_email_token"],
            state=UserState(row["state"]),
            admin=bool(row["admin"]),
            external=bool(row["external"]),
        )

    @staticmethod
    def _project(row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            full_path=row["full_path"],
            visibility=Visibility(row["visibility"]),
            default_branch=row["default_branch"],
            archived=bool(row["archived"]),
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def find_user_by_id(self, user_id: int) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._user(row) if row else None

    def find_user_by_incoming_email_token(self, token: str) -> User | None:
        if not token:
            return None
        row = self._fetchone(
            "SELECT * FROM users WHERE incoming_email_token = ?", (token,)
        )
        return self._user(row) if row else None

    def access_level(self, user: User, project: Project) -> AccessLevel:
        """Return the membership level of *user* in *project*."""
        row = self._fetchone(
            "SELECT access_level FROM project_members WHERE project_id = ? AND user_id = ?",
            (project.id, user.id),
        )
        return AccessLevel(row["access_level"]) if row else AccessLevel.NO_ACCESS

    def authorize(
        self,
        user: User,
        action: Action,
        project: Project,
        subject: Issue | MergeRequest | None = None,
    ) -> bool:
        return can(user, action, project, self.access_level(user, project), subject)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_project(self, project_id: int) -> Project | None:
        row = self._fetchone("SELECT * FROM projects WHERE id = ?", (project_id,))
        return self._project(row) if row else None

    def find_project_by_full_path(self, full_path: str) -> Project | None:
        row = self._fetchone("SELECT * FROM projects WHERE full_path = ?", (full_path,))
        return self._project(row) if row else None

    def find_sent_notification(self, reply_key: str) -> SentNotification | None:
        row = self._fetchone(
            "SELECT * FROM sent_notifications WHERE reply_key = ?", (reply_key,)
        )
        if row is None:
            return None
        return SentNotification(
            id=row["id"],
            reply_key=row["reply_key"],
            project_id=row["project_id"],
            recipient_id=row["recipient_id"],
            noteable_type=NoteableType(row["noteable_type"]),
            noteable_ref=row["noteable_ref"],
        )

    def find_noteable(
        self, project_id: int, noteable_type: NoteableType, noteable_ref: str
    ) -> Noteable | None:
        """Find an issue or merge request by id, or a commit by SHA."""
        if noteable_type == NoteableType.COMMIT:
            row = self._fetchone(
                "SELECT * FROM commits WHERE project_id = ? AND sha = ?",
                (project_id, noteable_ref),
            )
            return Commit(**dict(row)) if row else None

        if not noteable_ref.isdigit():
            return None

        table = "issues" if noteable_type == NoteableType.ISSUE else "merge_requests"
        row = self._fetchone(
            f"SELECT * FROM {table} WHERE project_id = ? AND id = ?",
            (project_id, int(noteable_ref)),
        )
        if row is None:
            return None
        if noteable_type == NoteableType.ISSUE:
            return Issue(**dict(row))
        return MergeRequest(**dict(row))

    def list_notes(self, noteable_type: NoteableType, noteable_ref: str) -> list[Note]:
        """Return the notes on a noteable in creation order."""
        rows = self._fetchall(
            "SELECT id, project_id, author_id, noteable_type, noteable_ref, note "
            "FROM notes WHERE noteable_type = ? AND noteable_ref = ? ORDER BY id",
            (noteable_type.value, noteable_ref),
        )
        return [Note(**dict(row)) for row in rows]

    def is_subscribed(
        self, user: User, noteable_type: NoteableType, noteable_ref: str
    ) -> bool | None:
        """Return the explicit subscription flag, or ``None`` when unset."""
        row = self._fetchone(
            "SELECT subscribed FROM subscriptions "
            "WHERE user_id = ? AND noteable_type = ? AND noteable_ref = ?",
            (user.id, noteable_type.value, noteable_ref),
        )
        return bool(row["subscribed"]) if row else None

    # ------------------------------------------------------------------
    # Mutations (run inside ``transaction()``)
    # ------------------------------------------------------------------

    def _next_iid(self, table: str, project_id: int) -> int:
        # An aggregate query always yields exactly one row.
        (iid,) = self._conn.execute(
            f"SELECT COALESCE(MAX(iid), 0) + 1 FROM {table} WHERE project_id = ?",
            (project_id,),
        ).fetchone()
        return int(iid)

    def create_note(
        self,
        project: Project,
        author: User,
        noteable_type: NoteableType,
        noteable_ref: str,
        note: str,
    ) -> Note:
        cursor = self._conn.execute(
            "INSERT INTO notes (project_id, author_id, noteable_type, noteable_ref, note) "
            "VALUES (?, ?, ?, ?, ?)",
            (project.id, author.id, noteable_type.value, noteable_ref, note),
        )
        return Note(
            id=cursor.lastrowid,
            project_id=project.id,
            author_id=author.id,
            noteable_type=noteable_type,
            noteable_ref=noteable_ref,
            note=note,
        )

    def create_issue(
        self, project: Project, author: User, title: str, description: str
    ) -> Issue:
        iid = self._next_iid("issues", project.id)
        cursor = self._conn.execute(
            "INSERT INTO issues (project_id, iid, author_id, title, description) "
            "VALUES (?, ?, ?, ?, ?)",
            (project.id, iid, author.id, title, description),
        )
        return Issue(
            id=cursor.lastrowid,
            project_id=project.id,
            iid=iid,
            author_id=author.id,
            title=title,
            description=description,
        )

    def create_merge_request(
        self,
        project: Project,
        author: User,
        title: str,
        source_branch: str,
        target_branch: str,
        description: str,
    ) -> MergeRequest:
        iid = self._next_iid("merge_requests", project.id)
        cursor = self._conn.execute(
            "INSERT INTO merge_requests "
            "(project_id, iid, author_id, title, description, source_branch, target_branch) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (project.id, iid, author.id, title, description, source_branch, target_branch),
        )
        return MergeRequest(
            id=cursor.lastrowid,
            project_id=project.id,
            iid=iid,
            author_id=author.id,
            title=title,
            description=description,
            source_branch=source_branch,
            target_branch=target_branch,
        )

    def set_issuable_state(
        self, issuable: Issue | MergeRequest, state: IssuableState
    ) -> None:
        table = "issues" if isinstance(issuable, Issue) else "merge_requests"
        self._conn.execute(
            f"UPDATE {table} SET state = ? WHERE id = ?", (state.value, issuable.id)
        )

    def unsubscribe(
        self, user: User, noteable_type: NoteableType, noteable_ref: str
    ) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO subscriptions "
            "(user_id, noteable_type, noteable_ref, subscribed) VALUES (?, ?, ?, 0)",
            (user.id, noteable_type.value, noteable_ref),
        )

    # ------------------------------------------------------------------
    # Seeding (commits immediately)
    # ------------------------------------------------------------------

    def add_user(
        self,
        username: str,
        email: str,
        *,
        state: UserState = UserState.ACTIVE,
        admin: bool = False,
        external: bool = False,
        incoming_email_token: str | None = None,
    ) -> User:
        """Create a user with a fresh incoming email token unless one is given."""
        token = incoming_email_token or secrets.token_hex(13)
        cursor = self._conn.execute(
            "INSERT INTO users (username, email, incoming_email_token, state, admin, external) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (username, email, token, state.value, int(admin), int(external)),
        )
        self._conn.commit()
        return User(
            id=cursor.lastrowid,
            username=username,
            email=email,
            incoming_email_token=token,
            state=state,
            admin=admin,
            external=external,
        )

    def add_project(
        self,
        full_path: str,
        *,
        visibility: Visibility = Visibility.PRIVATE,
        default_branch: str = "main",
        archived: bool = False,
    ) -> Project:
        cursor = self._conn.execute(
            "INSERT INTO projects (full_path, visibility, default_branch, archived) "
            "VALUES (?, ?, ?, ?)",
            (full_path, visibility.value, default_branch, int(archived)),
        )
        self._conn.commit()
        return Project(
            id=cursor.lastrowid,
            full_path=full_path,
            visibility=visibility,
            default_branch=default_branch,
            archived=archived,
        )

    def add_member(self, project: Project, user: User, access_level: AccessLevel) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO project_members (project_id, user_id, access_level) "
            "VALUES (?, ?, ?)",
            (project.id, user.id, int(access_level)),
        )
        self._conn.commit()

    def add_issue(self, project: Project, author: User, title: str) -> Issue:
        with self.transaction():
            return self.create_issue(project, author, title, "")

    def add_merge_request(
        self, project: Project, author: User, title: str, source_branch: str
    ) -> MergeRequest:
        with self.transaction():
            return self.create_merge_request(
                project, author, title, source_branch, project.default_branch, ""
            )

    def add_commit(self, project: Project, sha: str, title: str = "") -> Commit:
        self._conn.execute(
            "INSERT INTO commits (project_id, sha, title) VALUES (?, ?, ?)",
            (project.id, sha, title),
        )
        self._conn.commit()
        return Commit(project_id=project.id, sha=sha, title=title)

    def add_sent_notification(
        self,
        project: Project,
        recipient: User,
        noteable_type: NoteableType,
        noteable_ref: str,
        *,
        reply_key: str | None = None,
    ) -> SentNotification:
        """Record a notification sent to *recipient* and return its reply key."""
        key = reply_key or secrets.token_hex(16)
        cursor = self._conn.execute(
            "INSERT INTO sent_notifications "
            "(reply_key, project_id, recipient_id, noteable_type, noteable_ref) "
            "VALUES (?, ?, ?, ?, ?)",
            (key, project.id, recipient.id, noteable_type.value, noteable_ref),
        )
        self._conn.commit()
        return SentNotification(
            id=cursor.lastrowid,
            reply_key=key,
            project_id=project.id,
            recipient_id=recipient.id,
            noteable_type=noteable_type,
            noteable_ref=noteable_ref,
        )

    def subscribe(self, user: User, noteable_type: NoteableType, noteable_ref: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO subscriptions "
            "(user_id, noteable_type, noteable_ref, subscribed) VALUES (?, ?, ?, 1)",
            (user.id, noteable_type.value, noteable_ref),
        )
        self._conn.commit()
