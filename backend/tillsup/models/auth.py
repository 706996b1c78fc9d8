from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Identity(db.Model):
    """
    Authenticated identity (login credential).

    WHY: Credentials are separate from tenant membership. An identity can
    exist before its profile (mid-registration) and that state has to be
    reported distinctly instead of looking like a bad password.
    """
    __tablename__ = "identities"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class Profile(db.Model):
    """
    Actor profile: tenant membership, role and branch assignment.

    MULTI-TENANT: A profile belongs to exactly one business. branch_id is
    null only for owners, who are branch-unscoped.

    LIFECYCLE:
    - Created at tenant provisioning or staff creation
    - role/branch_id change only through the staff service mutation path
    - Never hard-deleted while referenced; deactivated via is_active
    """
    __tablename__ = "profiles"
    __table_args__ = (
        db.Index("ix_profiles_business_role", "business_id", "role"),
        db.Index("ix_profiles_branch_id", "branch_id"),
    )

    # Same id as the identity: one profile per identity
    id = db.Column(db.Integer, db.ForeignKey("identities.id"), primary_key=True, autoincrement=False)

    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    role = db.Column(db.String(32), nullable=False)

    email = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)

    must_change_password = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    identity = db.relationship("Identity", backref=db.backref("profile", uselist=False, lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "role": self.role,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "must_change_password": self.must_change_password,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SessionToken(db.Model):
    """
    Bearer session for an identity.

    Only the SHA-256 digest of the token is kept; the plaintext is returned
    once at login.

    SECURITY NOTES:
    - Absolute and idle timeouts come from app config
    - Revoked on logout, password reset, role/branch change and deactivation
    - Tenant context is NOT cached here; it is resolved from the profile on
      each request so role changes take effect immediately
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_identity_active", "identity_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.Integer, db.ForeignKey("identities.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    identity = db.relationship("Identity", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identity_id": self.identity_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
