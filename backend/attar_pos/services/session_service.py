# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout from SESSION_LIFETIME_HOURS (default 7 days)
- Revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import as_utc_naive, utcnow
from .concurrency import run_with_retry


@dataclass
class SessionContext:
    """Identity behind a valid bearer token."""
    user: User
    session: SessionToken


def generate_token() -> str:
    """Returns 64-character hex string (32 bytes of entropy)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so a fast hash is
    sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    lifetime = timedelta(hours=current_app.config.get("SESSION_LIFETIME_HOURS", 168))

    def _op():
        now = utcnow()
        session = SessionToken(
            user_id=user_id,
            token_hash=hash_token(plaintext_token),
            created_at=now,
            last_used_at=now,
            expires_at=now + lifetime,
            is_revoked=False,
        )
        db.session.add(session)
        db.session.commit()
        return session

    return run_with_retry(_op), plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return SessionContext if token is valid.

    Returns None if:
    - Token is unknown, expired, or revoked
    - User is deactivated

    Raises StorageFault when the database cannot be reached.
    """
    if not token:
        return None

    def _op():
        session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
        if not session or session.is_revoked:
            return None

        now = utcnow()
        if as_utc_naive(session.expires_at) <= now:
            return None

        user = db.session.get(User, session.user_id)
        if not user or not user.is_active:
            return None

        session.last_used_at = now
        db.session.commit()
        return SessionContext(user=user, session=session)

    return run_with_retry(_op)


def revoke_session(token: str) -> bool:
    """Revoke a session token. Returns False if the token is unknown."""
    def _op():
        session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
        if not session:
            return False

        if not session.is_revoked:
            session.is_revoked = True
            session.revoked_at = utcnow()
            db.session.commit()
        return True

    return run_with_retry(_op)
