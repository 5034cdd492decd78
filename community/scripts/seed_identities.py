import asyncio

from sqlalchemy import select
from passlib.context import CryptContext

from community.db.models import User
from community.db.session import SessionLocal

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Default users to seed; adjust to your needs.
USERS = [
    {
        "email": "admin@example.com",
        "password": "admin12345",
        "username": "admin",
        "full_name": "Admin",
        "role": "admin",
    },
    {
        "email": "alice@example.com",
        "password": "alice12345",
        "username": "alice",
        "full_name": "Alice",
    },
    {
        "email": "bob@example.com",
        "password": "bob123456",
        "username": "bob",
        "full_name": "Bob",
    },
]


async def main():
    async with SessionLocal() as db:
        for entry in USERS:
            existing = await db.scalar(select(User).where(User.email == entry["email"]))
            if existing:
                # keep profile fields in sync; relationships are left alone
                existing.username = entry.get("username") or existing.username
                existing.full_name = entry.get("full_name") or existing.full_name
                existing.role = entry.get("role", existing.role)
                if entry.get("password"):
                    existing.password_hash = pwd_context.hash(entry["password"])
                db.add(existing)
                print(f"Updated user {entry['email']} ({existing.id})")
                continue

            user = User(
                email=entry["email"],
                username=entry.get("username"),
                full_name=entry["full_name"],
                password_hash=pwd_context.hash(entry["password"]),
                role=entry.get("role", "user"),
                followers=[],
                following=[],
            )
            db.add(user)
            await db.flush()
            print(f"Inserted user {entry['email']} ({user.id})")

        await db.commit()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())

    # to run:
    # python -m community.scripts.seed_identities
