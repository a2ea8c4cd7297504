"""Delete read notifications older than the retention window for every user."""

from __future__ import annotations

import argparse

from edunotify.application.services import NotificationService
from edunotify.config import configure_logging
from edunotify.infrastructure.database import SessionLocal, initialize_database


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Age in days after which read notifications are removed "
        "(default: NOTIFICATION_RETENTION_DAYS)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    initialize_database()

    session = SessionLocal()
    try:
        summary = NotificationService(session).cleanup_all(args.days)
    finally:
        session.close()

    print(
        f"Processed {summary.processed_recipients} users, deleted "
        f"{summary.total_deleted} notifications older than {summary.days_old} days."
    )
    if summary.failed_recipients:
        failed = ", ".join(str(user_id) for user_id in summary.failed_recipients)
        raise SystemExit(f"Cleanup failed for users: {failed}")


if __name__ == "__main__":
    main()
