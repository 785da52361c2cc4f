"""
Seed Script

Creates tables and loads the development seed data (restaurant, one
account per role, sample menu and reservation). Safe to re-run.

Run from project root: python scripts/seed.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from tableside.core.config import setup_logging
from tableside.database import async_session_maker, engine, init_db
from tableside.seed import SEED_USERS, seed_database


async def main() -> None:
    setup_logging()
    await init_db()
    async with async_session_maker() as db:
        created = await seed_database(db)
    await engine.dispose()

    print("=" * 60)
    print("🌱 SEED COMPLETE")
    print("=" * 60)
    for table, count in created.items():
        print(f"   {table:<15} +{count}")
    print("\n🔑 Accounts:")
    for user in SEED_USERS:
        print(f"   {user['role'].value:<9} {user['email']:<25} / {user['password']}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
