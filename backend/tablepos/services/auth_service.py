"""
Staff Accounts and Bootstrap

WHY: Register openings, sales and expenses record which staff member acted.
This module owns password hashing and the first-run administrator.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, digit and special characters
- Session/token handling lives outside this service

BOOTSTRAP:
ensure_default_admin() is the explicit first-run step (`flask system init`).
It only creates the administrator while the users table is empty, so running
it on every start is a no-op after the first.
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..errors import DuplicateNameError, ValidationError
from ..extensions import db
from ..models import User, UserRole
from ..models.enums import coerce_enum
from ..time_utils import utcnow
from .concurrency import run_in_transaction


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if len(password or "") < 8:
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
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe comparison via bcrypt.checkpw; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    username: str,
    password: str,
    full_name: str,
    role: UserRole | str = UserRole.WAITER,
    email: str | None = None,
) -> User:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required", {"field": "username"})
    role = coerce_enum(UserRole, role, "role")
    password_hash = hash_password(password)

    def _op():
        if db.session.query(User).filter_by(username=username).first():
            raise DuplicateNameError("User", "username", username)
        user = User(
            username=username,
            full_name=(full_name or username).strip(),
            email=email,
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        db.session.add(user)
        return user
    return run_in_transaction(_op)


def authenticate(username: str, password: str) -> User | None:
    """
    Returns the active user matching username (or email) and password, else None.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()
    if not user or not verify_password(password, user.password_hash):
        return None

    def _op():
        user.last_login_at = utcnow()
        return user
    return run_in_transaction(_op)


def ensure_default_admin() -> tuple[User, bool]:
    """
    Create the configured administrator when no user exists yet.

    Returns (user, created). When users already exist, returns the first
    ADMIN (or the first user) and created=False without touching anything.
    """
    existing = db.session.query(User).order_by(User.id).first()
    if existing:
        admin = db.session.query(User).filter_by(role=UserRole.ADMIN).order_by(User.id).first()
        return admin or existing, False

    config = current_app.config
    user = create_user(
        username=config.get("DEFAULT_ADMIN_USERNAME", "admin"),
        password=config.get("DEFAULT_ADMIN_PASSWORD", "Password123!"),
        full_name="Administrator",
        role=UserRole.ADMIN,
        email=config.get("DEFAULT_ADMIN_EMAIL"),
    )
    current_app.logger.warning(
        "Default administrator %r created; change its password", user.username,
    )
    return user, True
