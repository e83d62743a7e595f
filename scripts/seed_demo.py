#!/usr/bin/env python3
"""
Seed script to create the table registry and demo users
"""

import asyncio
import uuid


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from app.database import SessionLocal, engine, Base
    from app.models.user import User, UserRole
    from app.services.registry import TableRegistry
    from app.api.auth import create_access_token

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        created = await TableRegistry(db).initialize()
        print(f"Table registry: {created} tables created")

        result = await db.execute(
            select(User).where(User.email == "admin@tablebook.local")
        )
        admin = result.scalar_one_or_none()

        if admin is None:
            admin = User(
                id=uuid.uuid4(),
                email="admin@tablebook.local",
                full_name="Restaurant Admin",
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(admin)

        result = await db.execute(
            select(User).where(User.email == "guest@tablebook.local")
        )
        guest = result.scalar_one_or_none()

        if guest is None:
            guest = User(
                id=uuid.uuid4(),
                email="guest@tablebook.local",
                full_name="Demo Guest",
                phone="0612345678",
                role=UserRole.CUSTOMER,
                is_active=True,
            )
            db.add(guest)

        await db.commit()

        print(f"""
Demo data created successfully!

Users:
  Admin: {admin.email}
    Token: {create_access_token(admin)}

  Guest: {guest.email}
    Token: {create_access_token(guest)}

Tokens expire after the configured access token lifetime.
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
