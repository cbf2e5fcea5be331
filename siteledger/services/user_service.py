"""
User Service — lookup and password authentication.

Team provisioning lives in member_service; this module only answers
"who is this?" and "is this password right?".
"""

import logging
from datetime import datetime, timezone

from siteledger.models import db
from siteledger.models.auth import User
from siteledger.utils.crypto import verify_password

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Service error carrying the HTTP status the caller should return."""
    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def normalize_email(email) -> str:
    return (email or "").strip().lower()


def get_user_by_email(email: str) -> User | None:
    return User.query.filter_by(email=normalize_email(email)).first()


def get_user_by_id(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def authenticate_user(email: str, password: str) -> User:
    """Authenticate a user with email + password. Returns User on success.

    A successful login clears the temporary password shown to the owner
    at provisioning time.
    """
    user = get_user_by_email(email)
    if not user:
        raise UserServiceError("Invalid email or password", 401)

    if user.status != "active":
        raise UserServiceError(f"Account is {user.status}", 403)

    if not verify_password(password, user.password_hash):
        raise UserServiceError("Invalid email or password", 401)

    user.last_login_at = datetime.now(timezone.utc)
    if user.profile is not None and user.profile.temp_password:
        user.profile.temp_password = None
    db.session.commit()
    logger.info("User %s logged in", user.id)
    return user
