# Overview: Opaque bearer sessions for identities; issue, validate, revoke, prune.

"""
Session Service

WHY: A bearer token only proves which identity is calling. Business, role
and branch are NOT stored on the session; the identity resolver reads them
from the profile on every request, so a role change or deactivation is
effective on the very next call even if a token is still live.

TOKEN HANDLING:
- 32 random bytes from `secrets`, sent to the client once as hex
- Only the SHA-256 digest is persisted
- Absolute lifetime SESSION_ABSOLUTE_TIMEOUT_HOURS, idle limit
  SESSION_IDLE_TIMEOUT_MINUTES (both from app config)
- Revoked on logout, password reset, deactivation, role or branch change
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Identity, SessionToken
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """Live session plus its identity; tenant context is resolved elsewhere."""
    identity: Identity
    session: SessionToken


def _lifetime() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_limit() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 120))


def generate_token() -> str:
    """Plaintext bearer token (64 hex chars). Never persisted."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Digest stored in session_tokens.token_hash.

    Tokens carry 256 bits of entropy, so a fast hash is enough here; bcrypt
    is reserved for passwords.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(
            SessionToken.token_hash == hash_token(token),
            SessionToken.is_revoked.is_(False),
        )
        .first()
    )


def create_session(
    identity_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Issue a session for an identity.

    An identity without a profile (signup not finished) still gets a
    session; the resolver answers IDENTITY_NOT_FOUND and the client moves on
    to provisioning.

    Returns:
        (session row, plaintext token)
    """
    identity = db.session.get(Identity, identity_id)
    if identity is None:
        raise ValueError("Identity not found")
    if not identity.is_active:
        raise ValueError("Identity is not active")

    token = generate_token()
    issued_at = utcnow()
    session = SessionToken(
        identity_id=identity.id,
        token_hash=hash_token(token),
        created_at=issued_at,
        last_used_at=issued_at,
        expires_at=issued_at + _lifetime(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Look up a live session and touch its last_used_at.

    None for an unknown, revoked or expired token. A session past its idle
    limit, or whose identity was deactivated, is revoked on the spot.
    """
    if not token:
        return None

    session = _find_live(token)
    if session is None:
        return None

    now = utcnow()
    if now > session.expires_at:
        return None

    if now - session.last_used_at > _idle_limit():
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    identity = session.identity
    if identity is None or not identity.is_active:
        _revoke(session, "Identity deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(identity=identity, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token was unknown or already revoked."""
    session = _find_live(token)
    if session is None:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_sessions(identity_id: int, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    """
    Sign an identity out everywhere.

    Callers that change access (staff_service) pass commit=False so the
    revocation lands in the same transaction as the change itself.
    """
    live = (
        db.session.query(SessionToken)
        .filter(
            SessionToken.identity_id == identity_id,
            SessionToken.is_revoked.is_(False),
        )
        .all()
    )
    for session in live:
        _revoke(session, reason)

    if commit:
        db.session.commit()
    return len(live)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Prune dead sessions created before the retention window.

    A session is dead once expired or revoked. Returns the number deleted.
    """
    now = utcnow()
    created_before = now - timedelta(days=retention_days)

    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < created_before,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
