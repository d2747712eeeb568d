"""
Password hashing and cookie sessions.

Passwords are hashed with bcrypt. A login issues an opaque random token
stored in the auth_sessions table; the token travels as a cookie (or a
Bearer header for API clients such as the tool server).
"""
import secrets
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from busy_assistant.core.config import get_settings
from busy_assistant.core.logging_config import get_logger
from busy_assistant.database.models import AuthSession, User

logger = get_logger(__name__)


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a plaintext password with bcrypt."""
    rounds = rounds or get_settings().bcrypt_rounds
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Look up a user by email and verify the password.

    Returns:
        The User, or None for unknown email or wrong password
    """
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_session(db: Session, user_id: str, ttl_hours: Optional[int] = None) -> AuthSession:
    """
    Issue a new session token for a user.

    Args:
        db: Open database session (caller commits)
        user_id: Owner of the new session
        ttl_hours: Session lifetime, defaults to SESSION_TTL_HOURS

    Returns:
        The persisted AuthSession
    """
    ttl_hours = ttl_hours or get_settings().session_ttl_hours
    now = datetime.utcnow()
    auth_session = AuthSession(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.add(auth_session)
    db.flush()
    logger.info(f"Session created for user={user_id[:8]}...")
    return auth_session


def resolve_session(db: Session, token: Optional[str]) -> Optional[User]:
    """
    Resolve a session token to its user.

    Expired tokens are deleted on sight.

    Returns:
        The owning User, or None when the token is unknown or expired
    """
    if not token:
        return None

    auth_session = db.get(AuthSession, token)
    if auth_session is None:
        return None

    if auth_session.expires_at <= datetime.utcnow():
        db.delete(auth_session)
        logger.debug("Expired session removed")
        return None

    return auth_session.user


def revoke_session(db: Session, token: Optional[str]) -> bool:
    """Delete a session token. Returns True if a session was removed."""
    if not token:
        return False
    removed = db.query(AuthSession).filter(AuthSession.token == token).delete()
    return removed > 0
