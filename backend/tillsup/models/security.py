from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log with tenant context.

    MULTI-TENANT: Events carry business_id (and branch_id where applicable)
    so they can be filtered per tenant.

    WHY: Track denials, cross-tenant attempts and staff lifecycle changes.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_actor_type", "actor_id", "event_type"),
        db.Index("ix_security_events_business_occurred", "business_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Nullable for pre-auth events
    business_id = db.Column(db.Integer, nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True)
    actor_id = db.Column(db.Integer, nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # POLICY_DENIED, CROSS_TENANT_ACCESS_DENIED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g. "/api/staff/4" or "staff:4"
    action = db.Column(db.String(64), nullable=True)     # e.g. "delete_staff"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "actor_id": self.actor_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class OwnershipRepairAudit(db.Model):
    """
    One row per ownership repair attempt, with before/after state.

    IMMUTABLE: Append-only, like security_events.
    """
    __tablename__ = "ownership_repair_audits"
    __table_args__ = (
        db.Index("ix_ownership_repair_audits_business", "business_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, nullable=False)

    detected_state = db.Column(db.String(16), nullable=False)  # orphaned / dangling
    outcome = db.Column(db.String(16), nullable=False)         # valid / unrepairable
    owner_id_before = db.Column(db.Integer, nullable=True)
    owner_id_after = db.Column(db.Integer, nullable=True)
    candidate_count = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.Text, nullable=True)

    # Actor or operator that triggered the attempt (null for opportunistic repair)
    triggered_by = db.Column(db.String(64), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "detected_state": self.detected_state,
            "outcome": self.outcome,
            "owner_id_before": self.owner_id_before,
            "owner_id_after": self.owner_id_after,
            "candidate_count": self.candidate_count,
            "reason": self.reason,
            "triggered_by": self.triggered_by,
            "occurred_at": to_utc_z(self.occurred_at),
        }
