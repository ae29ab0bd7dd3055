# Overview: Service-layer operations for auth; user accounts and bcrypt password handling.

"""
Authentication Service

Two roles: admin and seller. Passwords are hashed with bcrypt; the minimum
length matches the user form (6 characters).
"""

import bcrypt
from ..extensions import db
from ..models import User
from ..validation import ValidationError
from vendascontrol.time_utils import utcnow


ROLES = ("admin", "seller")
MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the minimum requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            {"password": f"minimum {MIN_PASSWORD_LENGTH} characters"},
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(name: str, email: str, password: str, role: str = "seller") -> User:
    """
    Raises ValidationError for a bad role/name/email/password and ValueError
    when the e-mail is already registered.
    """
    errors = {}
    if not name or len(name.strip()) < 2:
        errors["name"] = "name is required"
    if not email or "@" not in email:
        errors["email"] = "invalid e-mail"
    if role not in ROLES:
        errors["role"] = f"role must be one of: {', '.join(ROLES)}"
    if errors:
        raise ValidationError("Invalid user", errors)

    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        raise ValueError("E-mail already registered")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Returns the active user for valid credentials, None otherwise."""
    if not email or not password:
        return None
    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if user is None or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()


def update_user(user_id: int, *, name: str | None = None, role: str | None = None,
                is_active: bool | None = None, password: str | None = None) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise LookupError("User not found")
    if role is not None:
        if role not in ROLES:
            raise ValidationError("Invalid user", {"role": f"role must be one of: {', '.join(ROLES)}"})
        user.role = role
    if name is not None:
        user.name = name.strip()
    if is_active is not None:
        user.is_active = bool(is_active)
    if password is not None:
        user.password_hash = hash_password(password)
    db.session.commit()
    return user
