# init_db.py
import argparse
import asyncio
import logging

from clinic.core.security import hash_password
from clinic.db.sql import get_engine, get_sessionmaker, init_db
from clinic.modules.users.models import UserRole
from clinic.modules.users.repository import UserRepository

logger = logging.getLogger("init_db")

DEMO_USERS = [
    {
        "email": "doctor@clinic.example.com",
        "name": "Dr. Ana Souza",
        "role": UserRole.DOCTOR,
        "specialization": "Cardiology",
    },
    {
        "email": "doctor2@clinic.example.com",
        "name": "Dr. Paulo Lima",
        "role": UserRole.DOCTOR,
        "specialization": "Dermatology",
    },
    {
        "email": "patient@clinic.example.com",
        "name": "Maria Silva",
        "role": UserRole.PATIENT,
        "phone": "+55 11 99999-0000",
    },
    {
        "email": "admin@clinic.example.com",
        "name": "Clinic Admin",
        "role": UserRole.ADMIN,
    },
]


async def seed_demo_users(password: str) -> None:
    factory = get_sessionmaker()
    async with factory() as session:
        repo = UserRepository(session)
        for data in DEMO_USERS:
            if await repo.get_by_email(data["email"]):
                logger.info("Skipping %s (already present)", data["email"])
                continue
            await repo.create_user(password_hash=hash_password(password), **data)
            logger.info("Created %s %s", data["role"].value, data["email"])
        await session.commit()


async def main(recreate: bool, seed: bool, password: str) -> None:
    # IMPORTANT: init_db imports every model so Base.metadata knows them
    await init_db(drop=recreate)
    if seed:
        await seed_demo_users(password)
    await get_engine().dispose()
    logger.info("Database schema %s successfully", "recreated" if recreate else "created")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the clinic database schema")
    parser.add_argument("--recreate", action="store_true", help="drop every table first")
    parser.add_argument("--seed", action="store_true", help="insert demo doctors and a patient")
    parser.add_argument("--password", default="Password123", help="password for demo users")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(main(args.recreate, args.seed, args.password))
