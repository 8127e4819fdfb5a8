# Overview: Service-layer operations for operator accounts; password hashing and user administration.

"""
Authentication and User Administration

WHY: Every sale is stamped with the operator who rang it up, so every
request must be attributable to a user account.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Session tokens managed separately (see session_service.py)

ROLES: "admin" holds every page permission; "user" holds an explicit list
of page paths (DEFAULT_USER_PERMISSIONS unless an admin sets another).
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Sale, User
from ..models.auth import DEFAULT_USER_PERMISSIONS, ROLE_ADMIN, ROLE_USER, VALID_ROLES
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_email,
    validate_patch,
)
from .session_service import revoke_all_user_sessions


MIN_PASSWORD_LENGTH = 6

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "name", "email", "role", "permissions", "profile_picture_url"},
    required_on_create={"username", "name", "email"},
)


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


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
    """bcrypt.checkpw is timing-safe; malformed hashes verify as False."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _normalize_permissions(role: str, permissions):
    if role == ROLE_ADMIN:
        return None
    if permissions is None:
        return list(DEFAULT_USER_PERMISSIONS)
    for page in permissions:
        if not page.startswith("/"):
            raise ValidationError(f"Invalid page permission: {page}")
    return sorted(set(permissions))


def _require_unique(username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    clauses = []
    if username:
        clauses.append(func.lower(User.username) == username.lower())
    if email:
        clauses.append(func.lower(User.email) == email.lower())
    if not clauses:
        return
    query = db.session.query(User.id).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError("Username or email already exists")


def _get_or_404(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users() -> list[dict]:
    return [u.to_dict() for u in db.session.query(User).order_by(User.username.asc()).all()]


def get_user(user_id: int) -> dict:
    return _get_or_404(user_id).to_dict()


def create_user(patch: dict) -> dict:
    """
    Create a user from a storage-shaped patch that includes a plaintext ``password``.

    Raises:
        ValidationError: missing/invalid fields
        PasswordValidationError: password too short
        ConflictError: username or email taken
    """
    patch = dict(patch)
    password = patch.pop("password", None)
    cleaned = validate_patch(model=User, patch=patch, policy=USER_POLICY, partial=False)
    enforce_email(cleaned)

    role = cleaned.get("role") or ROLE_USER
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
    cleaned["role"] = role
    cleaned["permissions"] = _normalize_permissions(role, cleaned.get("permissions"))

    _require_unique(cleaned["username"], cleaned["email"])
    password_hash = hash_password(password)

    user = User(**cleaned, password_hash=password_hash, points=0, is_active=True)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User %s created (role=%s)", user.username, user.role)
    return user.to_dict()


def update_user(user_id: int, patch: dict) -> dict:
    patch = dict(patch)
    password = patch.pop("password", None)
    cleaned = validate_patch(model=User, patch=patch, policy=USER_POLICY, partial=True)
    enforce_email(cleaned)

    user = _get_or_404(user_id)
    _require_unique(cleaned.get("username"), cleaned.get("email"), exclude_id=user_id)

    role = cleaned.get("role", user.role)
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
    if "role" in cleaned or "permissions" in cleaned:
        permissions = cleaned.get("permissions", user.permissions)
        cleaned["permissions"] = _normalize_permissions(role, permissions)

    for key, value in cleaned.items():
        setattr(user, key, value)

    if password is not None:
        user.password_hash = hash_password(password)
        db.session.flush()
        # Force re-login everywhere after a password change
        revoke_all_user_sessions(user.id, commit=False)

    db.session.commit()
    return user.to_dict()


def delete_user(user_id: int, acting_user_id: int) -> None:
    if user_id == acting_user_id:
        raise ConflictError("You cannot delete your own account.")

    user = _get_or_404(user_id)
    sale_count = db.session.query(func.count(Sale.id)).filter(Sale.user_id == user_id).scalar()
    if sale_count:
        raise ConflictError(
            "User has recorded sales and cannot be deleted.",
            details={"sale_count": int(sale_count)},
        )
    db.session.delete(user)
    db.session.commit()


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User and stamps last_login_at when credentials are valid,
    None otherwise.
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
