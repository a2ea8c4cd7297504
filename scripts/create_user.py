"""Utility script to create a notification recipient and print a bearer token."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from edunotify.application.services import NotificationService
from edunotify.domain.entities import USER_ROLES, User
from edunotify.infrastructure.database import SessionLocal, initialize_database
from edunotify.infrastructure.repositories import UserRepository
from edunotify.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a user for the EduNotify notification center.",
    )
    parser.add_argument(
        "--name",
        default="Administrator",
        help="Full name of the user (default: Administrator)",
    )
    parser.add_argument(
        "--email",
        default="admin@example.com",
        help="Email address of the user (default: admin@example.com)",
    )
    parser.add_argument(
        "--role",
        default="admin",
        choices=USER_ROLES,
        help="Role of the user (default: admin)",
    )
    parser.add_argument(
        "--no-welcome",
        action="store_true",
        help="Do not send the welcome notification to the new user.",
    )
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        repository = UserRepository(session)
        if repository.get_by_email(args.email) is not None:
            raise SystemExit(f"A user with email {args.email} already exists.")
        user = repository.create(
            User(id=None, name=args.name, email=args.email, role=args.role)
        )
        if not args.no_welcome:
            NotificationService(session).send_welcome(user)
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not store the user in the database: {exc}") from exc
    else:
        print(
            "User created:\n"
            f"  ID: {user.id}\n"
            f"  Name: {user.name}\n"
            f"  Email: {user.email}\n"
            f"  Role: {user.role}\n"
            f"  Token: {create_access_token({'sub': user.email})}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
