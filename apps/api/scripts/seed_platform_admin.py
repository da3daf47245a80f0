"""
Seed Platform Admin User

Creates the initial platform admin account for TrustTeams. The account is
approved and pre-verified so it can log in straight away.

Usage:
    cd apps/api
    python scripts/seed_platform_admin.py --email admin@example.com --name "Platform Admin"

The password is read from SEED_ADMIN_PASSWORD, or prompted for.
"""

import argparse
import asyncio
import getpass
import os

from trustteams.core.database import async_session_maker, engine
from trustteams.core.security import hash_password
from trustteams.models import User  # noqa: F401 - registers every mapper
from trustteams.modules.auth.service import MIN_PASSWORD_LENGTH
from trustteams.modules.users.models import ApprovalStatus, UserRole
from trustteams.modules.users.repository import UserRepository


async def seed_platform_admin(email: str, name: str, password: str) -> None:
    """Create the platform admin user if it doesn't exist."""
    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Platform admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Role: {existing_user.role.value}")
            return

        admin_user = await UserRepository.create(
            db,
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            approval_status=ApprovalStatus.APPROVED,
            is_active=True,
        )
        admin_user = await UserRepository.update(db, admin_user, email_verified=True)
        await db.commit()

        print("Platform admin created successfully!")
        print(f"  Email: {email}")
        print(f"  Name: {name}")
        print(f"  ID: {admin_user.id}")
        print(f"  Role: {admin_user.role.value}")


async def _run(email: str, name: str, password: str) -> None:
    try:
        await seed_platform_admin(email, name, password)
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the TrustTeams platform admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Platform Admin")
    args = parser.parse_args()

    password = os.environ.get("SEED_ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    asyncio.run(_run(args.email.strip().lower(), args.name.strip(), password))


if __name__ == "__main__":
    main()
