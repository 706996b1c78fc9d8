# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for every layer.

These tests create two businesses with separate branches and staff, then
verify that:
1. An actor in Business A cannot read or write data in Business B
2. Passing a foreign branch_id is answered exactly like an unknown one
3. Cross-tenant attempts are logged as security events

Test Coverage:
- tenant_service guards
- Resource, staff and branch services
- HTTP API
"""

import pytest

from tillsup.errors import NotFoundError, TenantMismatchError
from tillsup.models import ResourceKind, SecurityEvent
from tillsup.permissions import Role
from tillsup.services import resource_service, staff_service
from tillsup.services.tenant_service import (
    get_business_branches,
    require_branch_in_business,
    require_tenant_access,
)


def cross_tenant_events(db_session):
    return db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").count()


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_branch_in_own_business(self, tenant_a, branch_x):
        branch = require_branch_in_business(branch_x.id, tenant_a.business.id)
        assert branch.id == branch_x.id

    def test_foreign_branch_looks_like_missing_branch(self, tenant_a, tenant_b):
        with pytest.raises(NotFoundError) as foreign:
            require_branch_in_business(tenant_b.default_branch.id, tenant_a.business.id)
        with pytest.raises(NotFoundError) as missing:
            require_branch_in_business(99999, tenant_a.business.id)

        assert foreign.value.message == missing.value.message == "Branch not found"

    def test_foreign_branch_is_logged(self, db_session, tenant_a, tenant_b, ctx_of):
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(NotFoundError):
            require_branch_in_business(tenant_b.default_branch.id, tenant_a.business.id, ctx=ctx)

        assert cross_tenant_events(db_session) == 1
        event = db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").one()
        assert event.actor_id == ctx.actor_id
        assert event.business_id == tenant_a.business.id

    def test_unknown_branch_is_not_logged(self, db_session, tenant_a):
        with pytest.raises(NotFoundError):
            require_branch_in_business(99999, tenant_a.business.id)
        assert cross_tenant_events(db_session) == 0

    def test_get_business_branches(self, tenant_a, tenant_b, branch_y):
        branches_a = get_business_branches(tenant_a.business.id)
        branches_b = get_business_branches(tenant_b.business.id)

        assert {b.id for b in branches_a} == {tenant_a.default_branch.id, branch_y.id}
        assert [b.id for b in branches_b] == [tenant_b.default_branch.id]

    def test_require_tenant_access(self, db_session, tenant_a, tenant_b, ctx_of):
        ctx = ctx_of(tenant_a.owner_profile)

        require_tenant_access(ctx, tenant_a.business.id)
        with pytest.raises(TenantMismatchError):
            require_tenant_access(ctx, tenant_b.business.id)

        assert cross_tenant_events(db_session) == 1


class TestServiceIsolation:

    def test_owner_cannot_read_foreign_resource(self, db_session, tenant_a, tenant_b, make_resource, ctx_of):
        foreign = make_resource(tenant_b.business, tenant_b.default_branch)
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(TenantMismatchError):
            resource_service.get_resource(ctx, foreign.id)
        assert cross_tenant_events(db_session) == 1

    def test_owner_cannot_adjust_foreign_stock(self, db_session, tenant_a, tenant_b, make_resource, ctx_of):
        foreign = make_resource(tenant_b.business, tenant_b.default_branch, quantity=5)
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(TenantMismatchError):
            resource_service.adjust_stock(ctx, foreign.id, -1)

        db_session.refresh(foreign)
        assert foreign.quantity == 5

    def test_listing_never_includes_foreign_rows(self, tenant_a, tenant_b, make_resource, ctx_of):
        own = make_resource(tenant_a.business, tenant_a.default_branch)
        make_resource(tenant_b.business, tenant_b.default_branch)
        make_resource(tenant_b.business, None)

        listed = resource_service.list_resources(ctx_of(tenant_a.owner_profile))

        assert [r.id for r in listed] == [own.id]

    def test_owner_cannot_manage_foreign_staff(self, tenant_a, tenant_b, make_actor, ctx_of):
        foreign_cashier = make_actor(tenant_b.business, Role.CASHIER, tenant_b.default_branch)
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(TenantMismatchError):
            staff_service.get_staff(ctx, foreign_cashier.id)
        with pytest.raises(TenantMismatchError):
            staff_service.update_staff(ctx, foreign_cashier.id, role=Role.STAFF)
        with pytest.raises(TenantMismatchError):
            staff_service.deactivate_staff(ctx, foreign_cashier.id)
        with pytest.raises(TenantMismatchError):
            staff_service.reset_staff_password(ctx, foreign_cashier.id)

    def test_cannot_create_resource_in_foreign_branch(self, tenant_a, tenant_b, ctx_of):
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(NotFoundError):
            resource_service.create_resource(
                ctx,
                ResourceKind.INVENTORY_ITEM,
                "Smuggled Sugar",
                branch_id=tenant_b.default_branch.id,
            )

    def test_cannot_hire_into_foreign_branch(self, tenant_a, tenant_b, ctx_of):
        ctx = ctx_of(tenant_a.owner_profile)

        with pytest.raises(NotFoundError):
            staff_service.create_staff(ctx, "mole@example.com", Role.CASHIER, tenant_b.default_branch.id)


class TestApiIsolation:

    def test_foreign_resource_returns_tenant_mismatch(self, client, tenant_a, tenant_b, make_resource, headers_for):
        foreign = make_resource(tenant_b.business, tenant_b.default_branch)

        response = client.get(f'/api/resources/{foreign.id}', headers=headers_for(tenant_a.owner_profile))

        assert response.status_code == 403
        assert response.get_json()['code'] == 'TENANT_MISMATCH'

    def test_foreign_staff_returns_tenant_mismatch(self, client, tenant_a, tenant_b, headers_for):
        response = client.get(
            f'/api/staff/{tenant_b.owner_profile.id}',
            headers=headers_for(tenant_a.owner_profile),
        )
        assert response.status_code == 403
        assert response.get_json()['code'] == 'TENANT_MISMATCH'

    def test_foreign_business_security_events_denied(self, client, tenant_a, tenant_b, headers_for):
        response = client.get(
            f'/api/businesses/{tenant_b.business.id}/security-events',
            headers=headers_for(tenant_a.owner_profile),
        )
        assert response.status_code == 403
        assert response.get_json()['code'] == 'TENANT_MISMATCH'

    def test_foreign_branch_filter_returns_not_found(self, client, tenant_a, tenant_b, headers_for):
        response = client.get(
            f'/api/resources?branch_id={tenant_b.default_branch.id}',
            headers=headers_for(tenant_a.owner_profile),
        )
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'
