# Overview: Pytest coverage for the branch scope filter.

"""
Branch Scope Filter Tests

Fixture layout (tenant A):
- branch_x: default branch with manager_x, cashier_x, staff_x, accountant_a
- branch_y: second branch with cashier_y
- one tenant-wide row (branch null)
"""

import pytest

from tillsup.errors import BranchInactiveError, BranchScopeError, NotFoundError, RolePolicyDenied
from tillsup.extensions import db
from tillsup.models import ResourceKind, ScopedResource
from tillsup.permissions import DEFAULT_ROLE_PERMISSIONS, Role
from tillsup.services.scope_service import filter_by_scope, resolve_viewing_branch


@pytest.fixture
def scoped_rows(tenant_a, tenant_b, branch_x, branch_y, make_resource):
    return {
        "x": make_resource(tenant_a.business, branch_x, name="Sugar X"),
        "y": make_resource(tenant_a.business, branch_y, name="Sugar Y"),
        "tenant_wide": make_resource(tenant_a.business, None, name="Price List"),
        "foreign": make_resource(tenant_b.business, tenant_b.default_branch, name="Foreign"),
    }


def visible_ids(ctx, viewing_branch_id=None):
    query = filter_by_scope(ctx, db.session.query(ScopedResource), viewing_branch_id)
    return {row.id for row in query.all()}


class TestFilterByScope:

    def test_staff_sees_own_branch_and_tenant_wide(self, staff_x, scoped_rows, ctx_of):
        assert visible_ids(ctx_of(staff_x)) == {scoped_rows["x"].id, scoped_rows["tenant_wide"].id}

    def test_manager_limited_to_own_branch(self, manager_x, scoped_rows, ctx_of):
        assert visible_ids(ctx_of(manager_x)) == {scoped_rows["x"].id, scoped_rows["tenant_wide"].id}

    def test_cashier_in_other_branch(self, cashier_y, scoped_rows, ctx_of):
        assert visible_ids(ctx_of(cashier_y)) == {scoped_rows["y"].id, scoped_rows["tenant_wide"].id}

    def test_owner_sees_all_branches(self, tenant_a, scoped_rows, ctx_of):
        assert visible_ids(ctx_of(tenant_a.owner_profile)) == {
            scoped_rows["x"].id,
            scoped_rows["y"].id,
            scoped_rows["tenant_wide"].id,
        }

    def test_owner_selected_branch(self, tenant_a, branch_y, scoped_rows, ctx_of):
        ids = visible_ids(ctx_of(tenant_a.owner_profile), viewing_branch_id=branch_y.id)
        assert ids == {scoped_rows["y"].id, scoped_rows["tenant_wide"].id}

    def test_accountant_reads_every_branch(self, accountant_a, scoped_rows, ctx_of):
        assert visible_ids(ctx_of(accountant_a)) == {
            scoped_rows["x"].id,
            scoped_rows["y"].id,
            scoped_rows["tenant_wide"].id,
        }

    def test_staff_sees_only_own_sales(self, tenant_a, branch_x, staff_x, cashier_x, make_resource, ctx_of):
        mine = make_resource(tenant_a.business, branch_x, kind=ResourceKind.SALE, actor=staff_x)
        theirs = make_resource(tenant_a.business, branch_x, kind=ResourceKind.SALE, actor=cashier_x)
        stock = make_resource(tenant_a.business, branch_x)

        ids = visible_ids(ctx_of(staff_x))

        assert mine.id in ids
        assert stock.id in ids
        assert theirs.id not in ids

    def test_manager_sees_all_branch_sales(self, tenant_a, branch_x, manager_x, staff_x, cashier_x, make_resource, ctx_of):
        sales = [
            make_resource(tenant_a.business, branch_x, kind=ResourceKind.SALE, actor=staff_x),
            make_resource(tenant_a.business, branch_x, kind=ResourceKind.SALE, actor=cashier_x),
        ]
        assert {s.id for s in sales} <= visible_ids(ctx_of(manager_x))

    def test_attendance_oversight_follows_role_grant(self, tenant_a, branch_x, staff_x, cashier_x, make_resource, ctx_of, monkeypatch):
        theirs = make_resource(tenant_a.business, branch_x, kind=ResourceKind.ATTENDANCE, actor=cashier_x)
        assert theirs.id not in visible_ids(ctx_of(staff_x))

        granted = DEFAULT_ROLE_PERMISSIONS[Role.STAFF] | {"MANAGE_ATTENDANCE"}
        monkeypatch.setitem(DEFAULT_ROLE_PERMISSIONS, Role.STAFF, granted)

        assert theirs.id in visible_ids(ctx_of(staff_x))

    def test_in_memory_list(self, staff_x, scoped_rows, ctx_of):
        filtered = filter_by_scope(ctx_of(staff_x), list(scoped_rows.values()))

        assert isinstance(filtered, list)
        assert {r.id for r in filtered} == {scoped_rows["x"].id, scoped_rows["tenant_wide"].id}

    def test_inactive_branch_blocks_non_owner(self, manager_x, branch_x, scoped_rows, ctx_of, db_session):
        branch_x.is_active = False
        db_session.commit()

        with pytest.raises(BranchInactiveError):
            visible_ids(ctx_of(manager_x))

    def test_owner_can_view_inactive_branch_history(self, tenant_a, branch_y, scoped_rows, ctx_of, db_session):
        branch_y.is_active = False
        db_session.commit()

        ids = visible_ids(ctx_of(tenant_a.owner_profile), viewing_branch_id=branch_y.id)
        assert scoped_rows["y"].id in ids


class TestResolveViewingBranch:

    def test_defaults(self, tenant_a, manager_x, accountant_a, branch_x, ctx_of):
        assert resolve_viewing_branch(ctx_of(tenant_a.owner_profile)) is None
        assert resolve_viewing_branch(ctx_of(accountant_a)) is None
        assert resolve_viewing_branch(ctx_of(manager_x)) == branch_x.id

    def test_manager_may_name_own_branch(self, manager_x, branch_x, ctx_of):
        assert resolve_viewing_branch(ctx_of(manager_x), str(branch_x.id)) == branch_x.id

    def test_manager_cannot_switch(self, manager_x, branch_y, ctx_of):
        with pytest.raises(BranchScopeError):
            resolve_viewing_branch(ctx_of(manager_x), branch_y.id)

    def test_accountant_cannot_switch(self, accountant_a, branch_y, ctx_of):
        with pytest.raises(RolePolicyDenied) as exc_info:
            resolve_viewing_branch(ctx_of(accountant_a), branch_y.id)
        assert exc_info.value.required_role == "owner"

    def test_owner_cannot_select_foreign_branch(self, tenant_a, tenant_b, ctx_of):
        with pytest.raises(NotFoundError):
            resolve_viewing_branch(ctx_of(tenant_a.owner_profile), tenant_b.default_branch.id)
