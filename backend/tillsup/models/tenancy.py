from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Business(db.Model):
    """
    Multi-tenant root: every tenant is a Business.

    WHY: Shared-database multi-tenancy with strict isolation.
    All branches, profiles and scoped resources belong to exactly one business.

    OWNERSHIP INVARIANT:
    - owner_id must resolve to an active profile with role "owner" in this business
    - owner_id is written only by provisioning and the ownership repair service
    - A null or dangling owner_id is repaired or reported, never papered over
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # use_alter breaks the businesses <-> profiles creation cycle
    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", use_alter=True, name="fk_businesses_owner_id"),
        nullable=True,
        index=True,
    )

    currency = db.Column(db.String(8), nullable=False, default="KES")
    country = db.Column(db.String(64), nullable=False, default="Kenya")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "currency": self.currency,
            "country": self.country,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """
    Branch within a business.

    MULTI-TENANT: Branches are scoped to businesses via business_id.
    Branch names are unique within a business, not globally.
    Deactivating a branch keeps every record scoped to it.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("business_id", "name", name="uq_branches_business_name"),
        db.Index("ix_branches_business_id", "business_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("branches", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "location": self.location,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
