#!/usr/bin/env python3
"""
Seed a demo club for development/testing.

Creates a demo club manager (through the normal onboarding path, so the
manager gets a real account number) and a member invite code for the club.

Idempotent: reuses the demo user and skips onboarding if it already manages
a club.
"""

import asyncio
import os
import sys

# Add project root to path
project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)
sys.path.insert(0, project_root)

from libs.db.config import AsyncSessionLocal
from services.onboarding_service.models import ClubType, User
from services.onboarding_service.schemas import (
    ClubManagerPayload,
    InviteCodeCreate,
    PersonalData,
)
from services.onboarding_service.services.clubs import get_managed_club
from services.onboarding_service.services.invite_codes import create_invite_code
from services.onboarding_service.services.onboarding import (
    complete_initial_onboarding,
)
from sqlalchemy.future import select

DEMO_AUTH_ID = "seed-demo-club-manager"
DEMO_EMAIL = "manager@demo-club.test"


async def seed_demo_club():
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.auth_id == DEMO_AUTH_ID))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(auth_id=DEMO_AUTH_ID, email=DEMO_EMAIL)
            db.add(user)
            await db.commit()
            print(f"  ✓ Created demo user {user.id}")

        club = await get_managed_club(db, user.id)
        if club is not None:
            print(f"  Demo club '{club.name}' already exists, skipping...")
            return

        onboarded = await complete_initial_onboarding(
            db,
            user_id=user.id,
            payload=ClubManagerPayload(
                name="Demo Swim Club",
                club_type=ClubType.SPORTS,
                description="Seeded club for local development",
                membership_capacity=100,
                personal_data=PersonalData(first_name="Demo", last_name="Manager"),
            ),
        )
        print(f"  ✓ Created club {onboarded.club_id}")
        print(f"    - Manager account: {onboarded.account_number}")

        invite = await create_invite_code(
            db,
            club_id=onboarded.club_id,
            requesting_user_id=user.id,
            data=InviteCodeCreate(role="member", usage_limit=25),
        )
        print(f"  ✓ Created member invite code: {invite.code}")

        print("\n✓ Demo club seed data complete!")


if __name__ == "__main__":
    # Demo data is dev-only
    env_file = os.environ.get("ENV_FILE", "")
    if "prod" in env_file:
        print("  Skipping demo club seed data (dev-only)")
        sys.exit(0)

    print("Seeding demo club...")
    asyncio.run(seed_demo_club())
