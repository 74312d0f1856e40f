"""Create or reset a back office admin account.

Usage:
    python scripts/create_admin.py --email owner@48roots.com --name "Store Owner" \
        --password 'change-me' --role super_admin
"""

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

# Add parent directory to path to import libs
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

# MUST be done before importing libs that use get_settings()
project_root = Path(__file__).resolve().parents[1]
env_file = os.environ.get("ENV_FILE", ".env")
load_dotenv(project_root / env_file, override=True)

from sqlalchemy import select

from libs.auth.passwords import hash_password
from libs.db.config import AsyncSessionLocal
from services.store_service.models import AdminRole, StoreAdmin


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or reset a store admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Store Admin")
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument(
        "--role",
        choices=[role.value for role in AdminRole],
        default=AdminRole.ADMIN.value,
    )
    return parser.parse_args()


async def create_admin(email: str, name: str, password: str, role: str) -> None:
    email = email.strip().lower()
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(StoreAdmin).where(StoreAdmin.email == email))
        admin = result.scalar_one_or_none()

        if admin is None:
            admin = StoreAdmin(email=email, name=name, role=AdminRole(role))
            db.add(admin)
            print(f"Creating admin {email} ({role})")
        else:
            print(f"Admin {email} exists, resetting password and unlocking")

        admin.password_hash = hash_password(password)
        admin.role = AdminRole(role)
        admin.is_active = True
        admin.login_attempts = 0
        admin.lock_until = None
        await db.commit()

    print("Done.")


def main() -> None:
    args = parse_args()
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        sys.exit("Password must be at least 8 characters")
    asyncio.run(create_admin(args.email, args.name, password, args.role))


if __name__ == "__main__":
    main()
