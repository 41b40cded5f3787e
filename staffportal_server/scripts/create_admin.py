#!/usr/bin/env python3
# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Create admin user. Run: python -m staffportal_server.scripts.create_admin"""

import asyncio
import getpass
import sys

from sqlalchemy import or_, select

from staffportal_server.auth import hash_password
from staffportal_server.database import async_session_maker, init_db
from staffportal_server.models import AdminUser


async def main():
    await init_db()
    username = input("Admin username: ").strip()
    email = input("Admin email: ").strip().lower()
    name = input("Display name [Admin]: ").strip() or "Admin"
    password = getpass.getpass("Password: ")
    if not username or not email or not password:
        print("All fields required")
        sys.exit(1)

    async with async_session_maker() as session:
        result = await session.execute(
            select(AdminUser).where(or_(AdminUser.username == username, AdminUser.email == email))
        )
        if result.scalar_one_or_none():
            print("Admin already exists")
            sys.exit(1)
        admin = AdminUser(
            username=username,
            email=email,
            name=name,
            password_hash=hash_password(password),
        )
        session.add(admin)
        await session.commit()
        print("Admin user created.")


if __name__ == "__main__":
    asyncio.run(main())
