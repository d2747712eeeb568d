"""
Seed the database with the demo user.

Run with: python -m busy_assistant.database.seed

The demo password is for local development only.
"""
from typing import Optional

from busy_assistant.core.logging_config import get_logger, setup_logging
from busy_assistant.core.security import hash_password
from busy_assistant.database.connection import DatabaseConnection, get_database
from busy_assistant.database.init_db import init_tables
from busy_assistant.database.models import User

logger = get_logger(__name__)

DEMO_EMAIL = "admin@busy.com"
DEMO_NAME = "Admin User"
DEMO_PASSWORD = "BusyAdmin2024!"


def seed_demo_user(
    db: Optional[DatabaseConnection] = None,
    password: str = DEMO_PASSWORD,
    rounds: int = 10,
) -> User:
    """
    Create the demo user if it does not exist yet.

    Existing users are left untouched (upsert with an empty update).

    Returns:
        The demo User
    """
    db = db or get_database()
    with db.get_session() as session:
        user = session.query(User).filter(User.email == DEMO_EMAIL).first()
        if user is None:
            user = User(
                email=DEMO_EMAIL,
                name=DEMO_NAME,
                password_hash=hash_password(password, rounds=rounds),
            )
            session.add(user)
            session.flush()
            logger.info(f"Demo user created: {DEMO_EMAIL}")
        else:
            logger.info(f"Demo user already exists: {DEMO_EMAIL}")
        return user


if __name__ == "__main__":
    setup_logging("INFO")
    init_tables()
    demo = seed_demo_user()
    print(f"Demo user ready: {demo.email}")
    print(f"Login with: {DEMO_EMAIL} / {DEMO_PASSWORD}")
