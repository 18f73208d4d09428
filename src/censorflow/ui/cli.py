from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from censorflow.app import get_binding_report, init_database, poll_pending_tasks, submit_text
from censorflow.config import configure_logging
from censorflow.domain.model import BizType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run censorflow moderation tasks")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create or upgrade the database schema")
    init_db.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy URI to migrate (defaults to DATABASE_URI)",
    )

    submit = subparsers.add_parser("submit", help="Review a piece of text")
    submit.add_argument("--biz-type", type=str, required=True, help="Business type of the content")
    submit.add_argument("--biz-id", type=str, required=True, help="Business object id")
    submit.add_argument("--field", type=str, default="", help="Field of the business object")
    submit.add_argument("--submitter-id", type=str, default="", help="Author of the content")
    submit.add_argument("--text", type=str, required=True, help="Text to review")

    binding = subparsers.add_parser("binding", help="Show the current review binding of a field")
    binding.add_argument("--biz-type", type=str, required=True, help="Business type of the content")
    binding.add_argument("--biz-id", type=str, required=True, help="Business object id")
    binding.add_argument("--field", type=str, default="", help="Field of the business object")
    binding.add_argument(
        "--history",
        type=int,
        default=10,
        help="Number of history entries to show (default: %(default)s)",
    )

    poll = subparsers.add_parser("poll", help="Poll async providers once for pending results")
    poll.add_argument(
        "--provider",
        dest="providers",
        action="append",
        help="Provider to poll; repeat for several (defaults to every async provider)",
    )
    poll.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Number of pending tasks to fetch per provider (defaults to config)",
    )

    return parser.parse_args(list(argv))


def _parse_biz_type(value: str) -> BizType:
    try:
        return BizType(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in BizType)
        raise ValueError(f"Invalid biz type: {value} (expected one of: {allowed})") from exc


def _validate(args: argparse.Namespace) -> None:
    if args.command in {"submit", "binding"}:
        args.biz_type = _parse_biz_type(args.biz_type)
        if not args.biz_id.strip():
            raise ValueError("Biz id must not be empty")
    if args.command == "submit" and not args.text.strip():
        raise ValueError("Text to review must not be empty")
    if args.command == "binding" and args.history < 0:
        raise ValueError("History limit must be non-negative")
    if args.command == "poll" and args.batch_size is not None and args.batch_size <= 0:
        raise ValueError("Batch size must be positive")


def _run_submit(args: argparse.Namespace) -> None:
    result = submit_text(
        biz_type=args.biz_type,
        biz_id=args.biz_id,
        field=args.field,
        submitter_id=args.submitter_id,
        text=args.text,
    )
    for resource_id, outcome in result.immediate_results.items():
        log.info(
            "Resource %s: decision=%s, risk=%s, reasons=%s",
            resource_id,
            outcome.decision,
            outcome.risk_level,
            ", ".join(reason.code for reason in outcome.reasons) or "-",
        )
    if result.pending_async:
        log.info("Review %s is waiting for async providers", result.biz_review_id)


def _run_binding(args: argparse.Namespace) -> None:
    report = get_binding_report(
        biz_type=args.biz_type,
        biz_id=args.biz_id,
        field=args.field,
        history_limit=args.history,
    )
    if report.binding is None:
        log.info("No binding for %s/%s/%s", args.biz_type, args.biz_id, args.field)
        return
    binding = report.binding
    log.info(
        "Binding %s/%s/%s: decision=%s, policy=%s, revision=%s",
        binding.biz_type,
        binding.biz_id,
        binding.field,
        binding.decision,
        binding.replace_policy,
        binding.review_revision,
    )
    for entry in report.history:
        log.info(
            "  r%s %s via %s at %s",
            entry.review_revision,
            entry.decision,
            entry.source,
            entry.created_at.isoformat(),
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "init-db":
            init_database(database_uri=parsed_args.database_uri, force=True)
        elif parsed_args.command == "submit":
            _run_submit(parsed_args)
        elif parsed_args.command == "binding":
            _run_binding(parsed_args)
        elif parsed_args.command == "poll":
            examined = poll_pending_tasks(
                providers=tuple(parsed_args.providers) if parsed_args.providers else None,
                batch_size=parsed_args.batch_size,
            )
            log.info("Polled %s pending task(s)", examined)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
