# Overview: Service-layer operations for auth; user accounts, password hashing and sign-in.

"""
Authentication Service

TENANCY: a distributor admin is its own tenant (tenant_id == user id).
Storefront customers sign up under one distributor and carry that
distributor's tenant_id; their user id is the customer_id on their orders.
Super admins have no tenant.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, with upper/lower case, a digit and a special char
- Emails are unique across the platform and compared lower-cased
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.common import new_id
from ..constants import UserRole, values
from ..validation import ConflictError, NotFoundError, ValidationError
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", 12))
    except RuntimeError:
        return 12


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt. Stored as str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    # bcrypt.checkpw is timing-safe
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or "@" not in email:
        raise ValidationError("A valid email is required")
    return email.strip().lower()


def _require_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    return name.strip()


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = UserRole.ADMIN.value,
    tenant_id: str | None = None,
    company_name: str | None = None,
    address: str | None = None,
    plan: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Admins become their own tenant. Customers must name the distributor they
    belong to. Super admins carry no tenant.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError: email already registered
        NotFoundError: customer sign-up under an unknown distributor
    """
    if role not in values(UserRole):
        raise ValidationError(f"role must be one of: {', '.join(values(UserRole))}")
    name = _require_name(name)
    email = _normalize_email(email)
    password_hash = hash_password(password)

    if db.session.query(User.id).filter(User.email == email).first() is not None:
        raise ConflictError("Email already registered")

    user_id = new_id()
    if role == UserRole.ADMIN.value:
        tenant_id = user_id
        plan = plan or "pro"
    elif role == UserRole.CUSTOMER.value:
        distributor = db.session.query(User).filter(
            User.id == tenant_id,
            User.role == UserRole.ADMIN.value,
        ).first()
        if distributor is None:
            raise NotFoundError("Distributor", tenant_id)
    else:
        tenant_id = None

    user = User(
        id=user_id,
        tenant_id=tenant_id,
        name=name,
        email=email,
        role=role,
        address=address,
        company_name=company_name,
        plan=plan if role == UserRole.ADMIN.value else None,
        subscription_status="active" if role == UserRole.ADMIN.value else None,
        password_hash=password_hash,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active User for valid credentials, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_distributor(tenant_id: str) -> User:
    """Public storefront lookup: the admin owning tenant_id."""
    user = db.session.query(User).filter(
        User.id == tenant_id,
        User.role == UserRole.ADMIN.value,
        User.is_active.is_(True),
    ).first()
    if user is None:
        raise NotFoundError("Distributor", tenant_id)
    return user
