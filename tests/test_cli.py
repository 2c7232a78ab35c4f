"""Tests for the replymail command-line entry point."""

from __future__ import annotations

import io
import json
import sqlite3
from pathlib import Path

import pytest
import structlog

from replymail import cli
from replymail.cli import (
    EXIT_NOT_CONFIGURED,
    EXIT_OK,
    EXIT_REJECTED,
    build_parser,
    format_outcome,
    main,
)
from replymail.config import get_settings
from replymail.domain.types import AccessLevel, NoteableType
from replymail.email.errors import ProjectNotFound, UnknownIncomingEmail
from replymail.email.models import HandlerResult
from replymail.store import SqliteStore, connect

ADDRESS = "incoming+%{key}@appmail.example.com"

MESSAGE = (
    b"From: jane@example.com\r\n"
    b"To: incoming+acme/widgets+tok3n@appmail.example.com\r\n"
    b"Subject: Crash on startup\r\n"
    b"Message-ID: <m1@mail.example.org>\r\n"
    b"\r\n"
    b"The app crashes when the widget spins.\r\n"
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point settings at a temp database and keep log output off stdout."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REPLYMAIL_INCOMING_EMAIL_ADDRESS", ADDRESS)
    monkeypatch.setenv("REPLYMAIL_HOST", "example.com")
    monkeypatch.setenv("REPLYMAIL_DATABASE_PATH", str(tmp_path / "replymail.db"))
    monkeypatch.delenv("REPLYMAIL_SENTRY_DSN", raising=False)
    monkeypatch.delenv("REPLYMAIL_PRODUCTION", raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda production=False: None)
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture()
def seeded_db(tmp_path: Path) -> Path:
    """A database with jane as a developer of acme/widgets."""
    db_path = tmp_path / "replymail.db"
    conn = connect(db_path)
    try:
        store = SqliteStore(conn)
        user = store.add_user("jane", "jane@example.com", incoming_email_token="tok3n")
        project = store.add_project("acme/widgets")
        store.add_member(project, user, AccessLevel.DEVELOPER)
    finally:
        conn.close()
    return db_path


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestBuildParser:
    def test_receive_defaults(self) -> None:
        args = build_parser().parse_args(["receive"])
        assert args.command == "receive"
        assert args.path == "-"
        assert args.output_format == "text"
        assert args.db is None

    def test_receive_with_file_and_json(self) -> None:
        args = build_parser().parse_args(["--db", "x.db", "receive", "msg.eml", "--format", "json"])
        assert args.db == "x.db"
        assert args.path == "msg.eml"
        assert args.output_format == "json"

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


class TestFormatOutcome:
    RESULT = HandlerResult(
        handler="CreateIssueHandler", action="issue_created", record_type="issue", record_id=7
    )

    def test_text_success(self) -> None:
        assert (
            format_outcome(self.RESULT, None, "text")
            == "processed: CreateIssueHandler issue_created issue 7"
        )

    def test_text_success_without_record(self) -> None:
        result = HandlerResult(handler="UnsubscribeHandler", action="ignored")
        assert format_outcome(result, None, "text") == "processed: UnsubscribeHandler ignored"

    def test_text_rejection(self) -> None:
        assert format_outcome(None, ProjectNotFound(), "text") == "rejected: ProjectNotFound"

    def test_json_success(self) -> None:
        payload = json.loads(format_outcome(self.RESULT, None, "json"))
        assert payload == {
            "status": "processed",
            "handler": "CreateIssueHandler",
            "action": "issue_created",
            "record_type": "issue",
            "record_id": 7,
        }

    def test_json_rejection(self) -> None:
        payload = json.loads(format_outcome(None, UnknownIncomingEmail("no key"), "json"))
        assert payload == {
            "status": "rejected",
            "reason": "UnknownIncomingEmail",
            "message": "no key",
        }


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


class TestMain:
    def test_init_db(self, tmp_path: Path) -> None:
        db_path = tmp_path / "fresh" / "replymail.db"
        assert main(["--db", str(db_path), "init-db"]) == EXIT_OK
        assert db_path.exists()

    def test_receive_file_creates_issue(
        self, seeded_db: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        message = tmp_path / "message.eml"
        message.write_bytes(MESSAGE)

        code = main(["receive", str(message)])

        assert code == EXIT_OK
        assert capsys.readouterr().out.startswith("processed: CreateIssueHandler issue_created")
        conn = sqlite3.connect(seeded_db)
        try:
            titles = [row[0] for row in conn.execute("SELECT title FROM issues")]
        finally:
            conn.close()
        assert titles == ["Crash on startup"]

    def test_receive_from_stdin(
        self,
        seeded_db: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(MESSAGE)))

        code = main(["receive", "--format", "json"])

        assert code == EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "processed"
        assert payload["record_type"] == "issue"

    def test_receive_rejected(
        self, seeded_db: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        message = tmp_path / "message.eml"
        message.write_bytes(MESSAGE.replace(b"acme/widgets", b"acme/ghost"))

        code = main(["receive", str(message)])

        assert code == EXIT_REJECTED
        assert capsys.readouterr().out.strip() == "rejected: ProjectNotFound"

    @pytest.mark.parametrize("production", ["false", "true"])
    @pytest.mark.parametrize("address", ["", "incoming@appmail.example.com"])
    def test_not_configured(
        self,
        production: str,
        address: str,
        seeded_db: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("REPLYMAIL_PRODUCTION", production)
        monkeypatch.setenv("REPLYMAIL_INCOMING_EMAIL_ADDRESS", address)
        get_settings.cache_clear()
        message = tmp_path / "message.eml"
        message.write_bytes(MESSAGE)

        assert main(["receive", str(message)]) == EXIT_NOT_CONFIGURED

    def test_disabled_in_production(
        self, seeded_db: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REPLYMAIL_PRODUCTION", "true")
        monkeypatch.setenv("REPLYMAIL_INCOMING_EMAIL_ENABLED", "false")
        get_settings.cache_clear()
        message = tmp_path / "message.eml"
        message.write_bytes(MESSAGE)

        assert main(["receive", str(message)]) == EXIT_NOT_CONFIGURED

    def test_reply_to_notification(
        self, seeded_db: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        conn = connect(seeded_db)
        try:
            store = SqliteStore(conn)
            user = store.find_user_by_incoming_email_token("tok3n")
            project = store.find_project_by_full_path("acme/widgets")
            assert user is not None
            assert project is not None
            issue = store.add_issue(project, user, "Widgets are wobbly")
            notification = store.add_sent_notification(
                project, user, NoteableType.ISSUE, str(issue.id)
            )
        finally:
            conn.close()

        message = tmp_path / "reply.eml"
        message.write_bytes(
            b"From: jane@example.com\r\n"
            b"To: incoming+" + notification.reply_key.encode() + b"@appmail.example.com\r\n"
            b"Subject: Re: Widgets are wobbly\r\n"
            b"\r\n"
            b"Still wobbly on 2.1.\r\n"
        )

        assert main(["receive", str(message)]) == EXIT_OK
        assert "CreateNoteHandler note_created" in capsys.readouterr().out
