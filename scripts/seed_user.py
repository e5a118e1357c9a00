"""
Seed script to create a portfolio owner for development.

Run with: python -m scripts.seed_user
"""
import asyncio
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portfolio.database import async_session_maker, init_db, close_db
from portfolio.services.auth import AuthService


# Development user credentials
DEV_EMAIL = "owner@example.com"
DEV_PASSWORD = "PortfolioOwner123!"
DEV_FULL_NAME = "Portfolio Owner"


async def create_dev_user():
    """Create the development user unless it already exists"""
    await init_db()

    async with async_session_maker() as session:
        auth_service = AuthService(session)
        user = await auth_service.get_user_by_email(DEV_EMAIL)

        if user:
            print(f"\n{'='*50}")
            print("Development user already exists!")
        else:
            user = await auth_service.create_user(
                email=DEV_EMAIL,
                password=DEV_PASSWORD,
                full_name=DEV_FULL_NAME,
            )
            print(f"\n{'='*50}")
            print("Development user created successfully!")

        print(f"{'='*50}")
        print(f"Id: {user.id}")
        print(f"Email: {DEV_EMAIL}")
        print(f"Password: {DEV_PASSWORD}")
        print(f"{'='*50}\n")

    await close_db()
    return user


if __name__ == "__main__":
    asyncio.run(create_dev_user())
