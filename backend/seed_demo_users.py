"""
Seed Demo Users

Creates one user per role for a demo department, wires the student to the
mentor, and prints an access token for each so the API and the
notification WebSocket can be tried without the identity service:
- student@college.edu → Student (mentor: mentor@college.edu)
- mentor@college.edu  → Mentor
- hod@college.edu     → HOD of CSE
- security@college.edu → Security
- admin@college.edu   → Admin

Run with: python seed_demo_users.py
List with: python seed_demo_users.py list
"""
import asyncio
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from datetime import timedelta
from sqlalchemy import select

from gatepass.core.database import AsyncSessionLocal, init_db, close_db
from gatepass.core.security import create_access_token
from gatepass.models.user import User, UserRole


DEMO_DEPARTMENT = "CSE"
DEMO_TOKEN_LIFETIME = timedelta(days=7)

# Demo users, one per role; mentor must precede the student
DEMO_USERS = [
    {
        "email": "mentor@college.edu",
        "full_name": "Demo Mentor",
        "role": UserRole.MENTOR,
        "department": DEMO_DEPARTMENT,
        "phone": "9000000002",
    },
    {
        "email": "student@college.edu",
        "full_name": "Demo Student",
        "role": UserRole.STUDENT,
        "department": DEMO_DEPARTMENT,
        "phone": "9000000001",
        "year": 3,
        "student_id": "21CS001",
        "hostel_block": "A",
        "room_number": "101",
        "mentor_email": "mentor@college.edu",
    },
    {
        "email": "hod@college.edu",
        "full_name": "Demo HOD",
        "role": UserRole.HOD,
        "department": DEMO_DEPARTMENT,
    },
    {
        "email": "security@college.edu",
        "full_name": "Demo Security",
        "role": UserRole.SECURITY,
    },
    {
        "email": "admin@college.edu",
        "full_name": "Demo Admin",
        "role": UserRole.ADMIN,
    },
]


async def seed_demo_users():
    """Create or update demo users"""
    print("=" * 50)
    print("Seeding Demo Users...")
    print("=" * 50)

    # Initialize database
    await init_db()

    async with AsyncSessionLocal() as db:
        created_count = 0
        updated_count = 0
        seeded = {}

        for user_data in DEMO_USERS:
            fields = dict(user_data)
            email = fields.pop("email")
            mentor_email = fields.pop("mentor_email", None)
            if mentor_email:
                fields["mentor_id"] = seeded[mentor_email].id

            result = await db.execute(
                select(User).where(User.email == email)
            )
            user = result.scalar_one_or_none()

            if user:
                for field, value in fields.items():
                    setattr(user, field, value)
                user.is_active = True
                updated_count += 1
                print(f"  Updated: {email} ({user.role.value})")
            else:
                user = User(email=email, is_active=True, **fields)
                db.add(user)
                created_count += 1
                print(f"  Created: {email} ({fields['role'].value})")

            # flush so the mentor id exists before the student row references it
            await db.flush()
            seeded[email] = user

        await db.commit()

        print("=" * 50)
        print("Demo Users Seeded Successfully!")
        print(f"  Created: {created_count}")
        print(f"  Updated: {updated_count}")
        print("=" * 50)
        print("\nDemo Access Tokens (valid 7 days):")
        print("-" * 50)
        for email, user in seeded.items():
            token = create_access_token(
                {"sub": str(user.id), "email": email, "role": user.role.value},
                expires_delta=DEMO_TOKEN_LIFETIME,
            )
            print(f"{user.role.value:<9} {email}")
            print(f"  {token}")
        print("-" * 50)

    await close_db()


async def list_demo_users():
    """List all demo users in the database"""
    await init_db()

    async with AsyncSessionLocal() as db:
        demo_emails = [u["email"] for u in DEMO_USERS]

        result = await db.execute(
            select(User).where(User.email.in_(demo_emails))
        )
        users = result.scalars().all()

        print("\nDemo Users in Database:")
        print("-" * 70)
        print(f"{'Email':<30} {'Role':<12} {'Dept':<8} {'Active':<8}")
        print("-" * 70)

        for user in users:
            print(f"{user.email:<30} {user.role.value:<12} {user.department or '-':<8} {str(user.is_active):<8}")

        if not users:
            print("No demo users found. Run 'python seed_demo_users.py' to create them.")

    await close_db()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "list":
        asyncio.run(list_demo_users())
    else:
        asyncio.run(seed_demo_users())
