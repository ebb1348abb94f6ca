#!/usr/bin/env python3
"""Create an admin user with properly hashed password."""

import asyncio

from sqlalchemy import select

from marketplace.core.permissions import UserRole
from marketplace.core.security import get_password_hash
from marketplace.database import get_db_context, init_db
from marketplace.models.user import User


async def create_admin(
    email: str = "admin@example.com",
    password: str = "admin123",
    name: str = "Admin",
    last_name: str = "User",
) -> User:
    """Create an admin user, or promote and reset the existing account."""
    email = email.lower()
    async with get_db_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        admin = result.scalar_one_or_none()

        if admin:
            admin.password_hash = get_password_hash(password)
            admin.role = UserRole.ADMIN.value
            admin.is_active = True
            print(f"Updated existing admin user: {email}")
        else:
            admin = User(
                email=email,
                password_hash=get_password_hash(password),
                role=UserRole.ADMIN.value,
                name=name,
                last_name=last_name,
                is_active=True,
            )
            session.add(admin)
            print(f"Created admin user: {email}")

    return admin


async def main(args) -> None:
    if args.create_tables:
        await init_db()
    await create_admin(
        email=args.email,
        password=args.password,
        name=args.name,
        last_name=args.last_name,
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--email", default="admin@example.com", help="Admin email")
    parser.add_argument("--password", default="admin123", help="Admin password")
    parser.add_argument("--name", default="Admin", help="First name")
    parser.add_argument("--last-name", default="User", help="Last name")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables first"
    )

    asyncio.run(main(parser.parse_args()))
