from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ResourceKind:
    """Kinds of tenant data guarded by the scope filter."""
    INVENTORY_ITEM = "inventory_item"
    SALE = "sale"
    ATTENDANCE = "attendance"
    PURCHASE_ORDER = "purchase_order"
    EXPENSE = "expense"

    ALL = (INVENTORY_ITEM, SALE, ATTENDANCE, PURCHASE_ORDER, EXPENSE)

    # Records that belong to one actor's activity. Other actors' records need
    # VIEW_SALES or MANAGE_ATTENDANCE.
    ACTIVITY = frozenset({SALE, ATTENDANCE})


class ScopedResource(db.Model):
    """
    Tenant data record (inventory item, sale, attendance, purchase order, expense).

    MULTI-TENANT: business_id is the tenant; branch_id narrows it to a branch.
    branch_id is null only for tenant-wide records.

    CONCURRENCY: version_id is an optimistic lock. Concurrent writers that
    read the same version cannot both commit.
    """
    __tablename__ = "scoped_resources"
    __table_args__ = (
        db.Index("ix_scoped_resources_business_branch", "business_id", "branch_id"),
        db.Index("ix_scoped_resources_business_kind", "business_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    kind = db.Column(db.String(32), nullable=False)

    # Actor whose activity this record is (cashier on a sale, staff on attendance)
    actor_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    payload = db.Column(db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<ScopedResource id={self.id} kind={self.kind} "
            f"business_id={self.business_id} branch_id={self.branch_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "kind": self.kind,
            "actor_id": self.actor_id,
            "name": self.name,
            "quantity": self.quantity,
            "payload": self.payload or {},
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockAdjustment(db.Model):
    """
    Append-only stock movement log.

    WHY: Every change to a resource's quantity is attributable and carries
    the before/after balance. Rows are written in the same transaction as the
    versioned quantity update, so a conflicting writer leaves no entry.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.Index("ix_stock_adjustments_resource", "resource_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("scoped_resources.id"), nullable=False)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)
    actor_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)

    delta = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    resource = db.relationship("ScopedResource", backref=db.backref("adjustments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "actor_id": self.actor_id,
            "delta": self.delta,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
