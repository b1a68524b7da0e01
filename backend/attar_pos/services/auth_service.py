# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every sale is attributed to the user who recorded it, so there are no
shared logins. Passwords are hashed with bcrypt (cost factor 12); the
plaintext never touches the database.

Roles are deliberately few: admin (inventory and staff management) and
cashier (sales only). What each role may do lives in permissions.py.
"""

import bcrypt
from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import ROLES, User
from ..time_utils import utcnow
from .concurrency import run_with_retry


MIN_PASSWORD_LENGTH = 6


def validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated before hashing.
    """
    validate_password(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    display_name: str,
    role: str = "cashier",
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: missing fields, short password, unknown role
        ConflictError: username already taken
    """
    username = (username or "").strip()
    display_name = (display_name or "").strip()
    role = role or "cashier"

    if not username or not password or not display_name:
        raise ValidationError("Please provide all required fields")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    password_hash = hash_password(password)

    def _op():
        existing = db.session.query(User).filter_by(username=username).first()
        if existing:
            raise ConflictError("Username already exists")

        user = User(
            username=username,
            password_hash=password_hash,
            display_name=display_name,
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return run_with_retry(_op)


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid, None otherwise. Unknown user, wrong
    password and deactivated account all look the same to the caller.
    Updates last_login_at on success.
    """
    def _op():
        user = db.session.query(User).filter(
            User.username == username,
            User.is_active.is_(True),
        ).first()

        if not user or not verify_password(password, user.password_hash):
            return None

        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return run_with_retry(_op)
