#!/usr/bin/env python3
"""
Create an administrator account, or promote an existing account to admin.

Registration through the API only ever creates lawyers, so the first admin
has to be made from the command line:

    python scripts/create_admin.py admin@example.com --name "Site Admin" --law-firm "LawCaseAI"
"""
import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import Optional

# Add the parent directory to the path so we can import from app
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from app.core.config import get_settings
from app.core.database import Database
from app.crud import user as user_crud
from app.db.models import UserPlan, UserRole, UserStatus
from app.schemas.user import UserRegister
from app.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def create_admin(email: str, name: str, law_firm: str, password: Optional[str]) -> int:
    settings = get_settings()
    database = Database(settings)
    await database.initialize()

    try:
        async with database.session() as db:
            existing = await user_crud.get_user_by_email(db, email)
            if existing:
                updated = await user_crud.update_user(
                    db, existing, {"role": UserRole.admin, "status": UserStatus.active}
                )
                if not updated:
                    logger.error(f"Failed to promote {email}")
                    return 1
                logger.info(f"Promoted {email} to admin")
                return 0

            if not password:
                password = getpass.getpass("Password for the new admin: ")

            user_in = UserRegister(name=name, email=email, password=password, law_firm=law_firm)
            admin = await user_crud.create_user(db, user_in, role=UserRole.admin, plan=UserPlan.enterprise)
            if not admin:
                logger.error(f"Failed to create admin {email}")
                return 1
            logger.info(f"Created admin {admin.email} ({admin.id})")
            return 0
    finally:
        await database.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("email", help="Email of the admin account")
    parser.add_argument("--name", default="Administrator", help="Display name for a new account")
    parser.add_argument("--law-firm", default="LawCaseAI", help="Organization for a new account")
    parser.add_argument("--password", help="Password for a new account (prompted when omitted)")
    args = parser.parse_args()

    setup_logging(get_settings().LOG_LEVEL)
    sys.exit(asyncio.run(create_admin(args.email, args.name, args.law_firm, args.password)))
