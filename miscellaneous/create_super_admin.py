#!/usr/bin/env python3
"""
Script to bootstrap a super admin for the Event Management Platform.

Super admin cannot be granted through the API, so the first one is created
here. A short-lived access token is printed for the initial setup calls.
"""

import asyncio
import os
import sys
from datetime import timedelta

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from event_management_platform.database import close_database, get_db_session, init_database
from event_management_platform.models.user import User, UserRole
from event_management_platform.services.user_service import UserService
from event_management_platform.utils.auth import create_access_token


async def create_super_admin():
    """Create a super admin interactively, or promote an existing user."""
    print("Event Management Platform - Super Admin Creation")
    print("=" * 50)

    email = input("Enter email: ").strip()
    if not email:
        print("Email is required!")
        return

    await init_database()
    try:
        async with get_db_session() as db:
            user = await UserService(db).get_user_by_email(email)

            if user is not None:
                promote = input(f"User {email} exists as {user.role.value}. Promote to super admin? (y/N): ")
                if promote.strip().lower() != "y":
                    return
                user.role = UserRole.SUPER_ADMIN
            else:
                full_name = input("Enter full name: ").strip()
                if not full_name:
                    print("Full name is required!")
                    return
                user = User(email=email, full_name=full_name, role=UserRole.SUPER_ADMIN)
                db.add(user)

            await db.commit()

            token = create_access_token(
                data={"sub": str(user.id), "email": user.email},
                expires_delta=timedelta(hours=1),
            )
            print(f"Super admin ready: {user.email} ({user.id})")
            print(f"Access token (1 hour): {token}")
    finally:
        await close_database()


async def list_admins():
    """List admins and super admins."""
    await init_database()
    try:
        async with get_db_session() as db:
            result = await db.execute(
                select(User)
                .where(User.role.in_([UserRole.ADMIN, UserRole.SUPER_ADMIN]))
                .order_by(User.email)
            )
            admins = result.scalars().all()

            if not admins:
                print("No admin users found.")
            for user in admins:
                status = "Suspended" if user.is_suspended else "Active"
                print(f"{user.email}  {user.role.value}  {status}  {user.id}")
    finally:
        await close_database()


async def main():
    """Main function."""
    if len(sys.argv) > 1 and sys.argv[1] == "list":
        await list_admins()
    else:
        await create_super_admin()


if __name__ == "__main__":
    asyncio.run(main())
