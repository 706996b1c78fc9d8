# Overview: Pytest coverage for business ownership inspection and repair.

"""
Ownership Repair Tests

Test Coverage:
- VALID businesses are left untouched and produce no audit row
- ORPHANED / DANGLING businesses with exactly one active owner are repaired
- Zero or several candidates are reported UNREPAIRABLE and left unchanged
- Repair is idempotent
- Deadline and missing-business failures
"""

import logging

import pytest

from tillsup.errors import AuthorizationTimeout, NotFoundError
from tillsup.models import Business, OwnershipRepairAudit
from tillsup.permissions import Role
from tillsup.services.ownership_service import (
    OwnershipState,
    inspect_ownership,
    list_repair_audits,
    repair_ownership,
    scan_ownership,
)
from tillsup.time_utils import Deadline


def audit_count(db_session, business_id):
    return db_session.query(OwnershipRepairAudit).filter_by(business_id=business_id).count()


class TestInspectOwnership:

    def test_provisioned_business_is_valid(self, tenant_a):
        assert inspect_ownership(tenant_a.business) is OwnershipState.VALID

    def test_null_owner_is_orphaned(self, tenant_a, db_session):
        tenant_a.business.owner_id = None
        db_session.commit()
        assert inspect_ownership(tenant_a.business) is OwnershipState.ORPHANED

    def test_missing_profile_is_dangling(self, tenant_a, db_session):
        tenant_a.business.owner_id = 99999
        db_session.commit()
        assert inspect_ownership(tenant_a.business) is OwnershipState.DANGLING

    def test_non_owner_profile_is_dangling(self, tenant_a, manager_x, db_session):
        tenant_a.business.owner_id = manager_x.id
        db_session.commit()
        assert inspect_ownership(tenant_a.business) is OwnershipState.DANGLING

    def test_foreign_owner_is_dangling(self, tenant_a, tenant_b, db_session):
        tenant_a.business.owner_id = tenant_b.owner_profile.id
        db_session.commit()
        assert inspect_ownership(tenant_a.business) is OwnershipState.DANGLING


class TestRepairOwnership:

    def test_valid_is_noop_without_audit(self, tenant_a, db_session):
        business_id = tenant_a.business.id
        owner_id = tenant_a.owner_profile.id

        result = repair_ownership(business_id)

        assert result.ok
        assert result.changed is False
        assert result.owner_id_after == owner_id
        assert audit_count(db_session, business_id) == 0

    def test_orphaned_repaired_then_idempotent(self, tenant_a, db_session):
        business_id = tenant_a.business.id
        owner_id = tenant_a.owner_profile.id
        tenant_a.business.owner_id = None
        db_session.commit()

        first = repair_ownership(business_id, triggered_by="test")
        second = repair_ownership(business_id)

        assert first.ok and first.changed
        assert first.owner_id_before is None
        assert first.owner_id_after == owner_id
        assert second.ok and not second.changed
        assert db_session.get(Business, business_id).owner_id == owner_id

        audits = list_repair_audits(business_id)
        assert len(audits) == 1
        assert audits[0].detected_state == "orphaned"
        assert audits[0].outcome == "valid"
        assert audits[0].candidate_count == 1
        assert audits[0].triggered_by == "test"

    def test_dangling_repaired(self, tenant_a, db_session):
        business_id = tenant_a.business.id
        tenant_a.business.owner_id = 99999
        db_session.commit()

        result = repair_ownership(business_id)

        assert result.ok
        assert result.owner_id_before == 99999
        assert result.owner_id_after == tenant_a.owner_profile.id
        assert list_repair_audits(business_id)[0].detected_state == "dangling"

    def test_deactivated_owner_replaced_by_sole_active_co_owner(self, tenant_a, make_actor, db_session):
        business_id = tenant_a.business.id
        co_owner = make_actor(tenant_a.business, Role.OWNER)
        tenant_a.owner_profile.is_active = False
        db_session.commit()

        result = repair_ownership(business_id)

        assert result.ok
        assert result.owner_id_after == co_owner.id

    def test_no_candidates_is_unrepairable(self, tenant_a, db_session):
        business_id = tenant_a.business.id
        tenant_a.owner_profile.is_active = False
        tenant_a.business.owner_id = None
        db_session.commit()

        result = repair_ownership(business_id)

        assert not result.ok
        assert result.state is OwnershipState.UNREPAIRABLE
        assert result.changed is False
        assert db_session.get(Business, business_id).owner_id is None
        audit = list_repair_audits(business_id)[0]
        assert audit.outcome == "unrepairable"
        assert audit.candidate_count == 0

    def test_several_candidates_never_guessed(self, tenant_a, make_actor, db_session):
        business_id = tenant_a.business.id
        make_actor(tenant_a.business, Role.OWNER)
        tenant_a.business.owner_id = None
        db_session.commit()

        result = repair_ownership(business_id)

        assert result.state is OwnershipState.UNREPAIRABLE
        assert "refusing to choose" in result.reason
        assert db_session.get(Business, business_id).owner_id is None
        assert list_repair_audits(business_id)[0].candidate_count == 2

    def test_unrepairable_is_logged(self, tenant_a, db_session, caplog):
        business_id = tenant_a.business.id
        tenant_a.owner_profile.is_active = False
        tenant_a.business.owner_id = None
        db_session.commit()

        with caplog.at_level(logging.WARNING):
            repair_ownership(business_id)

        assert f"Business {business_id} ownership is unrepairable" in caplog.text

    def test_expired_deadline(self, tenant_a, db_session):
        business_id = tenant_a.business.id
        tenant_a.business.owner_id = None
        db_session.commit()

        with pytest.raises(AuthorizationTimeout):
            repair_ownership(business_id, deadline=Deadline(0))

        assert db_session.get(Business, business_id).owner_id is None
        assert audit_count(db_session, business_id) == 0

    def test_missing_business(self, db_session):
        with pytest.raises(NotFoundError):
            repair_ownership(424242)


class TestScanOwnership:

    def test_reports_every_business(self, tenant_a, tenant_b, db_session):
        tenant_b.business.owner_id = None
        db_session.commit()

        states = {business.id: state for business, state in scan_ownership()}

        assert states == {
            tenant_a.business.id: OwnershipState.VALID,
            tenant_b.business.id: OwnershipState.ORPHANED,
        }
