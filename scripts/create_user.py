#!/usr/bin/env python3
"""
Script to provision a user for the Digital Forms API.

Usage:
    python scripts/create_user.py --username jdoe --email jdoe@example.com --full-name "Jane Doe"
    python scripts/create_user.py --username boss --email boss@example.com --full-name "Boss" --role admin

The password is prompted for unless --password is given.
"""

import asyncio
import argparse
import getpass
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path to import digital_forms modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.core.exceptions import DigitalFormsException
from digital_forms.database import AsyncSessionLocal, init_db
from digital_forms.models.user import User, UserRole
from digital_forms.services.user_service import UserService


async def create_user(
    session: AsyncSession,
    username: str,
    password: str,
    email: str,
    full_name: str,
    role: UserRole = UserRole.AGENT,
    department: Optional[str] = None
) -> User:
    """
    Create a user through the same path as the admin API.

    Raises:
        InvalidArgumentException on missing fields or a username/email clash
    """
    return await UserService.create_user(
        db=session,
        username=username,
        password=password,
        email=email,
        full_name=full_name,
        role=role,
        department=department
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a user for the Digital Forms API")
    parser.add_argument("--username", required=True, help="Login name (required)")
    parser.add_argument("--email", required=True, help="E-mail address (required)")
    parser.add_argument("--full-name", required=True, help="Display name (required)")
    parser.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.AGENT.value,
        help="User role (default: agent)"
    )
    parser.add_argument("--department", default=None, help="Department (optional)")
    parser.add_argument("--password", default=None, help="Password (prompted if omitted)")
    return parser


async def main():
    """Main function."""
    args = build_parser().parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("Password cannot be empty", file=sys.stderr)
        sys.exit(1)

    await init_db()

    async with AsyncSessionLocal() as session:
        try:
            user = await create_user(
                session,
                username=args.username,
                password=password,
                email=args.email,
                full_name=args.full_name,
                role=UserRole(args.role),
                department=args.department
            )
        except DigitalFormsException as e:
            print(f"Error creating user: {e.detail}", file=sys.stderr)
            sys.exit(1)

    print("\n" + "=" * 60)
    print("USER CREATED SUCCESSFULLY")
    print("=" * 60)
    print(f"ID: {user.id}")
    print(f"Username: {user.username}")
    print(f"Role: {user.role.value}")
    print(f"Email: {user.email}")
    if user.department:
        print(f"Department: {user.department}")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
