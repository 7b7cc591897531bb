"""
Staff Account Script

Creates (or resets the password of) a staff user allowed to log in.
Run from project root: python scripts/create_user.py admin

Author: POS Backend Team
Version: 1.0.0
"""

import argparse
import asyncio
import getpass
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from pos_backend.core.security import hash_password
from pos_backend.database import async_session_maker, engine, init_db
from pos_backend.models import User


async def upsert_user(username: str, password: str) -> bool:
    """Create the user, or reset its password. Returns True when created."""
    await init_db()
    try:
        async with async_session_maker() as session:
            result = await session.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
            created = user is None
            if created:
                user = User(username=username, password_hash=hash_password(password))
                session.add(user)
            else:
                user.password_hash = hash_password(password)
            await session.commit()
            return created
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or reset a staff account")
    parser.add_argument("username")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("❌ Password cannot be empty")
        sys.exit(1)

    created = asyncio.run(upsert_user(args.username, password))
    print(f"✅ User '{args.username}' {'created' if created else 'updated'}")
