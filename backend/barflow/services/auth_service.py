# Overview: Service-layer operations for staff accounts; password hashing, login and user admin.

"""
Authentication and user administration.

WHY: Every shift close, credit entry and drawer open is attributed to a
named user. Passwords are hashed with bcrypt; sessions live in
session_service.py.

SECURITY NOTES:
- bcrypt cost factor 12
- Minimum 8 characters, at least one letter and one digit
- The last active ADMIN can never be demoted, deactivated or deleted
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN, ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from barflow.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def _active_admin_count(exclude_user_id: int | None = None) -> int:
    query = db.session.query(User).filter(User.role == ROLE_ADMIN, User.is_active.is_(True))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.count()


def create_user(*, username: str, name: str, password: str, role: str) -> User:
    """
    Create a staff account.

    Raises:
        ValidationError: bad username/role, weak password
        ConflictError: username already taken
    """
    username = (username or "").strip().lower()
    name = (name or "").strip()
    if not username:
        raise ValidationError("username is required")
    if not name:
        raise ValidationError("name is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        name=name,
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_user(*, user_id: int, name: str | None = None, role: str | None = None,
                is_active: bool | None = None, password: str | None = None) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if role is not None and role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}")

    losing_admin = user.is_admin and user.is_active and (
        (role is not None and role != ROLE_ADMIN) or is_active is False
    )
    if losing_admin and _active_admin_count(exclude_user_id=user.id) == 0:
        raise ConflictError("Cannot remove the last active admin")

    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("name cannot be blank")
        user.name = name
    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = bool(is_active)
    if password is not None:
        user.password_hash = hash_password(password)

    db.session.commit()
    return user


def delete_user(*, user_id: int) -> None:
    """
    Remove a staff account.

    Users referenced by shifts, ledger entries or sales are deactivated
    instead of deleted so attribution survives.
    """
    from ..models import CreditTransaction, PosSale, ShiftSession

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if user.is_admin and user.is_active and _active_admin_count(exclude_user_id=user.id) == 0:
        raise ConflictError("Cannot remove the last active admin")

    referenced = (
        db.session.query(ShiftSession).filter(ShiftSession.opened_by_user_id == user.id).first()
        or db.session.query(CreditTransaction).filter(CreditTransaction.employee_id == user.id).first()
        or db.session.query(PosSale).filter(PosSale.employee_id == user.id).first()
    )
    if referenced:
        user.is_active = False
    else:
        for token in list(user.session_tokens):
            db.session.delete(token)
        db.session.delete(user)
    db.session.commit()


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
