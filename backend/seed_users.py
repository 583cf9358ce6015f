"""
Database seeding script for demo users.

Creates one SHIPPER and two DRIVER users, each driver with a registered truck.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.models.truck_enums import TruckType
from backend.app.core.security import get_password_hash
from backend.app.services import freight_engine

SEED_USERS = [
    ("shipper@freight.local", "shipper123", UserRole.SHIPPER, None),
    ("driver1@freight.local", "driver123", UserRole.DRIVER, TruckType.SPRINTER),
    ("driver2@freight.local", "driver123", UserRole.DRIVER, TruckType.LARGE_STRAIGHT),
]


async def seed_users():
    """
    Seed demo users.

    Creates:
    - 1 SHIPPER user
    - 2 DRIVER users with one FREE truck each (sprinter, large straight)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        result = await db.execute(select(User).where(User.email == SEED_USERS[0][0]))
        if result.scalar_one_or_none():
            print("ℹ️  Demo users already exist, skipping seeding")
            return

        for email, password, role, truck_type in SEED_USERS:
            user = User(
                email=email,
                name=email.split("@")[0],
                hashed_password=get_password_hash(password),
                role=role,
                is_active=True
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            print(f"✅ Created {role.value} user ({email} / {password})")

            if truck_type is not None:
                truck = await freight_engine.create_truck(db, user.id, truck_type, f"{user.name}'s truck")
                await freight_engine.assign_truck(db, user.id, truck.id)
                print(f"   🚚 Registered {truck_type.value} truck #{truck.id}")

        print("\n🎉 User seeding completed successfully!")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_users())
