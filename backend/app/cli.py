"""
Operator commands.

    python -m app.cli create-manager --email ops@example.com --username ops --password '...'
    python -m app.cli promote --email someone@example.com
    python -m app.cli init-db

Nothing here runs at application startup. Provisioning the first manager is
an explicit, one-time step.
"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

from pydantic import ValidationError as SchemaValidationError

from app.core.exceptions import BookingSystemError
from app.core.logging import get_logger, setup_logging
from app.db.base import Base
from app.db.session import AsyncSessionLocal, engine
from app.schemas.user import UserCreate
from app.services.auth_service import promote_by_email, provision_manager

logger = get_logger(__name__)


async def create_manager(email: str, username: str, password: str) -> int:
    async with AsyncSessionLocal() as session:
        user = await provision_manager(
            session, UserCreate(email=email, username=username, password=password)
        )
        await session.commit()
        logger.info("manager_provisioned", user_id=user.id, email=user.email)
        return user.id


async def promote(email: str) -> int:
    async with AsyncSessionLocal() as session:
        user = await promote_by_email(session, email)
        await session.commit()
        return user.id


async def init_db() -> None:
    """Create tables directly. Production deployments use `alembic upgrade head`."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="app.cli", description="EventPass operator commands")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-manager", help="Provision a manager account")
    create.add_argument("--email", required=True)
    create.add_argument("--username", required=True)
    create.add_argument("--password", help="Prompted for when omitted")

    promote_cmd = commands.add_parser("promote", help="Give an existing user the manager role")
    promote_cmd.add_argument("--email", required=True)

    commands.add_parser("init-db", help="Create all tables (development only)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        if args.command == "create-manager":
            password = args.password or getpass.getpass("Password: ")
            user_id = asyncio.run(create_manager(args.email, args.username, password))
            print(f"Manager {args.username} created (id={user_id})")
        elif args.command == "promote":
            user_id = asyncio.run(promote(args.email))
            print(f"User {args.email} is now a manager (id={user_id})")
        elif args.command == "init-db":
            asyncio.run(init_db())
            print("Database tables created")
    except SchemaValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2
    except BookingSystemError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
