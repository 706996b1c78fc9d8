# Overview: Business ownership linkage inspection and repair.

"""
Ownership Repair Service

WHY: businesses.owner_id must always resolve to an active Owner profile in
the same business. Partial signups and deleted accounts leave it null or
dangling, and a guard waiting on a match that can never occur stalls every
request for the tenant. This service detects and repairs that linkage, or
reports it as Unrepairable so callers fail closed immediately.

STATE MACHINE (per business):
- VALID        owner_id -> active profile, role owner, same business
- ORPHANED     owner_id is null
- DANGLING     owner_id points at a missing, inactive, foreign or non-owner profile
- UNREPAIRABLE zero or several candidate owners; operator action required

Repair never guesses: it only writes owner_id when exactly one active Owner
profile exists in the business.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from flask import current_app

from ..errors import AuthorizationTimeout, NotFoundError
from ..extensions import db
from ..models import Business, OwnershipRepairAudit, Profile
from ..permissions import Role
from ..time_utils import Deadline, utcnow
from .concurrency import apply_statement_timeout, lock_for_update, translate_timeouts


class OwnershipState(str, Enum):
    VALID = "valid"
    ORPHANED = "orphaned"
    DANGLING = "dangling"
    UNREPAIRABLE = "unrepairable"


@dataclass(frozen=True)
class RepairResult:
    business_id: int
    state: OwnershipState
    owner_id_before: int | None
    owner_id_after: int | None
    changed: bool
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is OwnershipState.VALID

    def to_dict(self) -> dict:
        return {
            "business_id": self.business_id,
            "state": self.state.value,
            "owner_id_before": self.owner_id_before,
            "owner_id_after": self.owner_id_after,
            "changed": self.changed,
            "reason": self.reason,
        }


def inspect_ownership(business: Business) -> OwnershipState:
    """
    Classify a business's owner linkage. One primary-key read, no writes.
    """
    if business.owner_id is None:
        return OwnershipState.ORPHANED

    owner = db.session.get(Profile, business.owner_id)
    if (
        owner is not None
        and owner.business_id == business.id
        and owner.role == Role.OWNER.value
        and owner.is_active
    ):
        return OwnershipState.VALID

    return OwnershipState.DANGLING


def _owner_candidates(business_id: int) -> list[Profile]:
    return (
        db.session.query(Profile)
        .filter(
            Profile.business_id == business_id,
            Profile.role == Role.OWNER.value,
            Profile.is_active.is_(True),
        )
        .order_by(Profile.id)
        .all()
    )


def repair_ownership(
    business_id: int,
    *,
    deadline: Deadline | None = None,
    triggered_by: str | None = None,
) -> RepairResult:
    """
    Bring a business's owner linkage back to VALID, or report UNREPAIRABLE.

    Idempotent: a VALID business is left untouched and no audit row is written.
    Every actual attempt (repaired or not) is recorded in
    ownership_repair_audits with before/after owner_id.

    CONCURRENCY: The business row is locked (SELECT ... FOR UPDATE) and its
    state re-read under the lock, so two concurrent repairs cannot both write.

    Raises:
        NotFoundError: business does not exist
        AuthorizationTimeout: the deadline elapsed before the repair finished
    """
    if deadline is None:
        deadline = Deadline(current_app.config.get("OWNERSHIP_REPAIR_TIMEOUT_MS", 500))

    deadline.check("ownership repair")
    apply_statement_timeout(deadline.remaining_ms)

    business = translate_timeouts(
        lambda: lock_for_update(
            db.session.query(Business).populate_existing().filter_by(id=business_id)
        ).first(),
        stage="ownership repair lock",
    )
    if business is None:
        db.session.rollback()
        raise NotFoundError("Business not found")

    owner_before = business.owner_id
    detected = inspect_ownership(business)

    if detected is OwnershipState.VALID:
        # Releases the row lock
        db.session.commit()
        return RepairResult(
            business_id=business_id,
            state=OwnershipState.VALID,
            owner_id_before=owner_before,
            owner_id_after=owner_before,
            changed=False,
        )

    candidates = translate_timeouts(
        lambda: _owner_candidates(business_id),
        stage="owner candidate lookup",
    )

    try:
        deadline.check("owner candidate lookup")
    except AuthorizationTimeout:
        db.session.rollback()
        raise

    if len(candidates) == 1:
        business.owner_id = candidates[0].id
        outcome = OwnershipState.VALID
        reason = f"Linked sole active owner profile {candidates[0].id}"
    elif not candidates:
        outcome = OwnershipState.UNREPAIRABLE
        reason = "No active owner profile in business"
    else:
        outcome = OwnershipState.UNREPAIRABLE
        reason = f"{len(candidates)} active owner profiles in business; refusing to choose"

    db.session.add(OwnershipRepairAudit(
        business_id=business_id,
        detected_state=detected.value,
        outcome=outcome.value,
        owner_id_before=owner_before,
        owner_id_after=business.owner_id,
        candidate_count=len(candidates),
        reason=reason,
        triggered_by=triggered_by,
        occurred_at=utcnow(),
    ))
    db.session.commit()

    if outcome is OwnershipState.VALID:
        current_app.logger.info(
            "Repaired ownership of business %s (%s): owner_id %s -> %s",
            business_id, detected.value, owner_before, business.owner_id,
        )
    else:
        current_app.logger.warning(
            "Business %s ownership is unrepairable (%s): %s",
            business_id, detected.value, reason,
        )

    return RepairResult(
        business_id=business_id,
        state=outcome,
        owner_id_before=owner_before,
        owner_id_after=business.owner_id,
        changed=business.owner_id != owner_before,
        reason=reason,
    )


def _latest_audit(business_id: int) -> OwnershipRepairAudit | None:
    return (
        db.session.query(OwnershipRepairAudit)
        .filter_by(business_id=business_id)
        .order_by(OwnershipRepairAudit.id.desc())
        .first()
    )


def known_unrepairable(business: Business) -> bool:
    """
    True when the latest audit already recorded this exact broken state.

    Same detected state, same owner_id and the same number of candidate
    owners as an UNREPAIRABLE attempt means a repair reaches the same
    outcome. An operator change (new owner profile, fixed owner_id) alters
    one of these and re-enables the automatic repair.
    """
    detected = inspect_ownership(business)
    if detected is OwnershipState.VALID:
        return False

    audit = _latest_audit(business.id)
    if audit is None or audit.outcome != OwnershipState.UNREPAIRABLE.value:
        return False

    return (
        audit.detected_state == detected.value
        and audit.owner_id_before == business.owner_id
        and audit.candidate_count == len(_owner_candidates(business.id))
    )


def scan_ownership() -> list[tuple[Business, OwnershipState]]:
    """Ownership state of every business, for operators."""
    businesses = db.session.query(Business).order_by(Business.id).all()
    return [(business, inspect_ownership(business)) for business in businesses]


def list_repair_audits(business_id: int, limit: int = 50) -> list[OwnershipRepairAudit]:
    return (
        db.session.query(OwnershipRepairAudit)
        .filter_by(business_id=business_id)
        .order_by(OwnershipRepairAudit.occurred_at.desc(), OwnershipRepairAudit.id.desc())
        .limit(limit)
        .all()
    )
