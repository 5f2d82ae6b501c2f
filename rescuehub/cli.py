"""CLI for RescueHub: create tables, bootstrap an admin account."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys


async def cmd_init_db(args):
    from rescuehub.db.engine import create_all

    await create_all()
    print("Database tables created.")


async def cmd_create_admin(args):
    """Create an admin user, or promote an existing account to admin."""
    from rescuehub.db import crud
    from rescuehub.db.engine import async_session_factory, create_all
    from rescuehub.services.auth import hash_password

    await create_all()

    async with async_session_factory() as db:
        existing = await crud.get_user_by_email(db, args.email)
        if existing:
            if existing.role == "admin":
                print(f"{existing.email} is already an admin (id={existing.id})")
                return
            await crud.update_user(db, existing, role="admin", is_active=True)
            print(f"Promoted {existing.email} to admin (id={existing.id})")
            return

        # Get password interactively if not provided
        password = args.password
        if not password:
            password = getpass.getpass("Admin password: ")
            confirm = getpass.getpass("Confirm password: ")
            if password != confirm:
                print("Passwords do not match")
                sys.exit(1)

        if len(password) < 8:
            print("Password must be at least 8 characters")
            sys.exit(1)

        admin = await crud.create_user(
            db,
            email=args.email,
            password_hash=hash_password(password),
            role="admin",
            first_name=args.first_name,
            last_name=args.last_name,
            is_verified=True,
        )

    print(f"Admin user: {admin.email} (id={admin.id})")


def main():
    parser = argparse.ArgumentParser(description="RescueHub CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create database tables")

    ca = subparsers.add_parser("create-admin", help="Create or promote an admin user")
    ca.add_argument("--email", required=True, help="Admin email")
    ca.add_argument("--password", default="", help="Admin password (prompted if not given)")
    ca.add_argument("--first-name", default="Admin", help="First name")
    ca.add_argument("--last-name", default="", help="Last name")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "create-admin":
        asyncio.run(cmd_create_admin(args))


if __name__ == "__main__":
    main()
