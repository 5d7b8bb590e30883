"""
One-time bootstrap script: creates the first ADMIN user.

Usage:
    python -m portal.scripts.create_admin

You only need this ONCE. After the first admin exists, all other
users are created from the admin screens.
"""

import asyncio
import getpass
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from portal.core.config import settings
from portal.core.security import hash_password
from portal.models import ADMIN_ACCESS_ID, AccessKind, User


async def create_admin() -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        # ── Collect input ────────────────────────────────────────────
        print(f"\n🔧  {settings.APP_NAME}: First Admin Setup\n")
        email = input("  Admin email: ").strip()
        first_name = input("  First name:  ").strip()
        last_name = input("  Last name:   ").strip()
        password = getpass.getpass("  Password:    ")
        confirm = getpass.getpass("  Confirm:     ")

        if password != confirm:
            print("\n❌  Passwords do not match.")
            await engine.dispose()
            return

        if not email or not first_name or not last_name or not password:
            print("\n❌  All fields are required.")
            await engine.dispose()
            return

        # ── Check for existing user ──────────────────────────────────
        existing = (
            await session.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()

        if existing:
            print(f"\n❌  User with email '{email}' already exists.")
            await engine.dispose()
            return

        # ── Create the admin user ────────────────────────────────────
        admin_user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            access_kind=AccessKind.ADMIN,
            access_id=ADMIN_ACCESS_ID,
            active=True,
            created_by="bootstrap",
        )
        session.add(admin_user)
        await session.commit()

        print("\n✅  Admin user created successfully!")
        print(f"    ID:    {admin_user.id}")
        print(f"    Email: {admin_user.email}")
        print("\n   You can now log in via POST /api/auth/login\n")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_admin())
