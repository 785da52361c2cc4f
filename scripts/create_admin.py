"""
Create Admin Script

Creates an admin (or staff) account, or promotes an existing one.

Run from project root:
    python scripts/create_admin.py --email owner@restaurant.com --name "Owner" --password s3cret!
"""

import argparse
import asyncio
import getpass
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from tableside.core.config import setup_logging
from tableside.core.security import hash_password
from tableside.database import async_session_maker, engine, init_db
from tableside.models import User, UserRole
from tableside.schemas import UserPreferences


async def create_admin(email: str, name: str, password: str, role: UserRole) -> None:
    await init_db()
    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None:
            user = User(
                email=email.lower(),
                name=name,
                password_hash=hash_password(password),
                role=role,
                preferences=UserPreferences().model_dump(),
                email_verified=True,
            )
            db.add(user)
            action = "Created"
        else:
            user.role = role
            user.password_hash = hash_password(password)
            user.is_active = True
            action = "Updated"

        await db.commit()
        print(f"✅ {action} {role.value} account: {user.email} (#{user.id})")
    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote a back-office account")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--name", default="Administrator", help="Display name")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    parser.add_argument(
        "--role",
        choices=[UserRole.ADMIN.value, UserRole.STAFF.value],
        default=UserRole.ADMIN.value,
        help="Role to grant",
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        parser.error("password must be at least 8 characters")

    setup_logging()
    asyncio.run(create_admin(args.email, args.name, password, UserRole(args.role)))


if __name__ == "__main__":
    main()
