"""Command-line entry point for mail transports.

A transport (a Postfix ``pipe`` service, a procmail rule, a mail-room
poller) hands each message to ``replymail receive``.  The exit status
reports the outcome: 0 when a handler succeeded, 1 when the message was
rejected with a ``ProcessingError``, 2 when reply-by-email is not
configured.

Usage::

    replymail init-db --db data/replymail.db
    replymail receive < message.eml
    replymail receive message.eml --format json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import structlog

from replymail.config import get_settings, validate_settings
from replymail.email.errors import ProcessingError
from replymail.email.incoming import IncomingEmail
from replymail.email.models import HandlerResult
from replymail.email.receiver import Receiver
from replymail.observability.logs import configure_logging
from replymail.observability.metrics import MetricsEventSink
from replymail.observability.sentry import init_sentry
from replymail.store import SqliteStore, connect

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_NOT_CONFIGURED = 2


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="replymail", description="Process inbound reply-by-email messages"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the database (default: REPLYMAIL_DATABASE_PATH)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    receive = subparsers.add_parser("receive", help="Process one raw message")
    receive.add_argument(
        "path",
        nargs="?",
        default="-",
        help="Message file, or - for stdin (default: -)",
    )
    receive.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        dest="output_format",
        help="Output format (default: text)",
    )

    subparsers.add_parser("init-db", help="Create the database schema")

    return parser


def read_message(path: str) -> bytes:
    """Read a raw message from *path*, or from stdin when *path* is ``-``."""
    if path == "-":
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()


def format_outcome(
    result: HandlerResult | None, error: ProcessingError | None, output_format: str
) -> str:
    """Render a receive outcome for stdout.

    Args:
        result: The handler result on success.
        error: The processing error on rejection.
        output_format: ``"text"`` or ``"json"``.

    Returns:
        The rendered outcome.
    """
    if output_format == "json":
        if result is not None:
            return json.dumps({"status": "processed", **result.model_dump()})
        return json.dumps(
            {"status": "rejected", "reason": type(error).__name__, "message": str(error)}
        )

    if result is not None:
        target = f" {result.record_type} {result.record_id}" if result.record_type else ""
        return f"processed: {result.handler} {result.action}{target}"
    detail = f": {error}" if str(error) else ""
    return f"rejected: {type(error).__name__}{detail}"


def receive(raw: bytes, store: SqliteStore, incoming: IncomingEmail, output_format: str) -> int:
    """Run the receiver on *raw* and print the outcome.

    Returns:
        The process exit status.
    """
    receiver = Receiver(raw, store=store, sink=MetricsEventSink(), incoming=incoming)
    try:
        result = receiver.execute()
    except ProcessingError as exc:
        logger.warning("email_rejected", reason=type(exc).__name__, detail=str(exc))
        print(format_outcome(None, exc, output_format))
        return EXIT_REJECTED

    logger.info("email_processed", handler=result.handler, action=result.action)
    print(format_outcome(result, None, output_format))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command, and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(production=settings.production)
    init_sentry(
        settings.sentry_dsn,
        environment="production" if settings.production else "development",
    )

    db_path = Path(args.db) if args.db else settings.database_path
    conn = connect(db_path)

    try:
        if args.command == "init-db":
            logger.info("database_initialized", path=str(db_path))
            return EXIT_OK

        incoming = IncomingEmail.from_settings(settings)
        if not incoming.enabled:
            logger.error("incoming_email_not_configured")
            return EXIT_NOT_CONFIGURED

        validate_settings(settings)
        return receive(read_message(args.path), SqliteStore(conn), incoming, args.output_format)
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
