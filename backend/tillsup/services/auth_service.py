# Overview: Identity credentials; bcrypt hashing and password strength rules.

"""
Identity and Credential Service

WHY: Every action must be attributable to an identity with a strong,
bcrypt-hashed password. Tenant membership lives on the Profile, not here.

SECURITY NOTES:
- bcrypt with BCRYPT_ROUNDS (12 unless configured lower for tests)
- Strength rules live in PASSWORD_RULES and are checked before hashing
- Email is the login key and is unique across all tenants
- Bearer sessions are issued by session_service, not here
"""

import re
import secrets
import string

import bcrypt
from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import Identity
from ..time_utils import utcnow


SPECIAL_CHARACTERS = "!@#$%^&*(),.'\":{}|<>"

# (pattern, message) pairs checked in order; the first miss is reported.
PASSWORD_RULES = [
    (r"[A-Z]", "Password must contain at least one uppercase letter"),
    (r"[a-z]", "Password must contain at least one lowercase letter"),
    (r"\d", "Password must contain at least one digit"),
    ("[" + re.escape(SPECIAL_CHARACTERS) + "]", "Password must contain at least one special character"),
]


class PasswordValidationError(ValidationError):
    """Password rejected by PASSWORD_RULES or the minimum length."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    for pattern, message in PASSWORD_RULES:
        if not re.search(pattern, password):
            raise PasswordValidationError(message)


def hash_password(password: str) -> str:
    """Validate, then bcrypt-hash. Returns the hash as text for the column."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Constant-time check via bcrypt.checkpw.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password(length: int = 12) -> str:
    """
    Random password that always satisfies validate_password_strength.
    """
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    required = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice("!@#$%^&*"),
    ]
    rest = [secrets.choice(alphabet) for _ in range(max(length, 8) - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not value or "@" not in value:
        raise ValidationError("A valid email address is required")
    return value


def create_identity(email: str, password: str, *, commit: bool = True) -> Identity:
    """
    Create a login identity.

    Email is globally unique: one identity belongs to at most one tenant.
    With commit=False the identity is only flushed so callers can create it
    in the same transaction as its profile.

    Raises:
        ValidationError: If email is invalid or already registered
        PasswordValidationError: If password doesn't meet requirements
    """
    email = normalize_email(email)

    existing = db.session.query(Identity).filter_by(email=email).first()
    if existing:
        raise ValidationError("An account with this email already exists")

    identity = Identity(email=email, password_hash=hash_password(password), is_active=True)
    db.session.add(identity)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return identity


def authenticate(email: str, password: str) -> Identity | None:
    """
    Authenticate identity with email and password.

    Returns Identity if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        return None

    identity = db.session.query(Identity).filter(
        Identity.email == email,
        Identity.is_active.is_(True),
    ).first()

    if not identity:
        return None

    if verify_password(password or "", identity.password_hash):
        identity.last_login_at = utcnow()
        db.session.commit()
        return identity

    return None


def set_password(identity: Identity, password: str, *, commit: bool = True) -> None:
    identity.password_hash = hash_password(password)
    if commit:
        db.session.commit()
