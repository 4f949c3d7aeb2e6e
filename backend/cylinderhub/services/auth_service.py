# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and User Management Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Each user holds exactly one RoleName
"""

import re

import bcrypt
from sqlalchemy import or_

from ..errors import DuplicateKeyError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import RoleName
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from . import session_service
from .concurrency import run_in_transaction


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str):
        super().__init__(message, field="password")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise. A malformed
    stored hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_role(role) -> str:
    key = str(role or RoleName.VIEWER.value).strip().upper()
    try:
        return RoleName(key).value
    except ValueError:
        raise ValidationError(
            f"role must be one of: {', '.join(r.value for r in RoleName)}",
            field="role",
        )


USER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "role", "is_active"},
    choices={"role": [r.value for r in RoleName]},
)


def create_user(
    username: str,
    password: str,
    role: str | None = None,
    name: str | None = None,
    email: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: blank username, unknown role
        PasswordValidationError: weak password
        DuplicateKeyError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required", field="username")
    role_key = normalize_role(role)
    password_hash = hash_password(password)

    def _op() -> User:
        if db.session.query(User.id).filter_by(username=username).first():
            raise DuplicateKeyError("Username already exists", details={"username": username})

        user = User(
            username=username,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role_key,
            is_active=True,
        )
        db.session.add(user)
        db.session.flush()
        return user

    return run_in_transaction(_op)


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not username or not password:
        return None

    user = db.session.query(User).filter(
        or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(*, role: str | None = None, include_inactive: bool = False) -> list[User]:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == normalize_role(role))
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username.asc()).all()


def update_user(user_id: int, payload: dict) -> User:
    """Patch name/email/role/is_active. Deactivation revokes the user's sessions."""
    patch = validate_payload(model=User, payload=payload, policy=USER_UPDATE_POLICY, partial=True)

    def _op() -> User:
        user = get_user(user_id)
        for k, v in patch.items():
            setattr(user, k, v)
        return user

    user = run_in_transaction(_op)
    if patch.get("is_active") is False:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
    return user


def change_password(user_id: int, new_password: str) -> User:
    password_hash = hash_password(new_password)

    def _op() -> User:
        user = get_user(user_id)
        user.password_hash = password_hash
        return user

    user = run_in_transaction(_op)
    session_service.revoke_all_user_sessions(user.id, reason="Password changed")
    return user
