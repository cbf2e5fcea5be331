"""
Crypto utilities — bcrypt password hashing and temporary passwords.
"""

import uuid

import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 12


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (BCRYPT_ROUNDS, default 12)."""
    rounds = DEFAULT_ROUNDS
    if has_app_context():
        rounds = current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Not a bcrypt hash (e.g. a seeded placeholder)
        return False


def generate_temp_password() -> str:
    """Temporary password handed to newly provisioned members.

    Twelve random characters plus a fixed suffix that satisfies the usual
    upper/lower/digit/symbol complexity rules.
    """
    return str(uuid.uuid4())[:12] + "Aa1!"
