"""
Seed the first administrator account.

Usage:
    FIRST_ADMIN_EMAIL=admin@example.com FIRST_ADMIN_PASSWORD=secret python scripts/create_first_user.py
"""
import logging
import os
import sys
from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from app.core.logging_config import setup_logging
from app.core.permissions import DIVISION_ADMIN
from app.core.security import get_password_hash
from app.db.session import engine, init_db
from app.models.user import User, UserRole

logger = logging.getLogger("create_first_user")


def create_initial_user():
    email = os.getenv("FIRST_ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("FIRST_ADMIN_PASSWORD", "adminpassword")
    full_name = os.getenv("FIRST_ADMIN_NAME", "Administrator")

    init_db()
    with Session(engine) as session:
        # Check if user already exists
        user = session.exec(select(User).where(User.email == email)).first()
        if user:
            logger.info("User with email %s already exists.", email)
            return

        db_user = User(
            email=email,
            password=get_password_hash(password),
            full_name=full_name,
            roles=[UserRole.ADMIN],
            division=DIVISION_ADMIN,
            position="Administrator",
        )
        session.add(db_user)
        session.commit()
        logger.info("Initial admin %s created (roles: %s)", email, [UserRole.ADMIN.value])


if __name__ == "__main__":
    setup_logging()
    create_initial_user()
