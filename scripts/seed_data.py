"""Seed the database with demo accounts, dogs and an open rescue request."""

import asyncio

from rescuehub.db.engine import async_session_factory, create_all
from rescuehub.db import crud
from rescuehub.services.auth import hash_password

DEMO_PASSWORD = "rescue1234"

DEMO_USERS = [
    ("admin@rescuehub.local", "admin", "Ada", "Admin"),
    ("rescuer@rescuehub.local", "rescuer", "Riley", "Rescuer"),
    ("user@rescuehub.local", "user", "Uma", "User"),
]

DEMO_DOGS = [
    {"name": "Biscuit", "breed": "Beagle", "age": 3, "gender": "male", "size": "medium",
     "color": "tricolor", "health_status": "healthy", "description": "Loves long walks."},
    {"name": "Luna", "breed": "Labrador Mix", "age": 2, "gender": "female", "size": "large",
     "color": "black", "health_status": "vaccinated", "description": "Gentle with kids."},
]


async def seed():
    await create_all()

    async with async_session_factory() as db:
        if await crud.get_user_by_email(db, DEMO_USERS[0][0]):
            print("Demo data already exists, skipping seed.")
            return

        users = {}
        for email, role, first, last in DEMO_USERS:
            users[role] = await crud.create_user(
                db, email=email, password_hash=hash_password(DEMO_PASSWORD), role=role,
                first_name=first, last_name=last, is_verified=True,
            )
            print(f"Created {role}: {email}")

        for fields in DEMO_DOGS:
            dog = await crud.create_dog(db, rescuer_id=users["rescuer"].id, **fields)
            print(f"Created dog: {dog.name} (id: {dog.id})")

        rr = await crud.create_rescue_request(
            db,
            reporter_id=users["user"].id,
            reporter_name=users["user"].full_name,
            location="123 Main St",
            description="Injured stray near the bus stop",
            contact_info="555-0100",
            urgency_level="high",
        )
        print(f"Created rescue request {rr.id} ({rr.status})")

    print(f"\nSeed complete. All demo accounts use the password '{DEMO_PASSWORD}'.")
    print("Start the server with: uvicorn rescuehub.main:app --reload")


if __name__ == "__main__":
    asyncio.run(seed())
