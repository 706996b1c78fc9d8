"""
Pytest fixtures for Tillsup backend tests.

Provides test database setup, tenant/branch/actor factories, and test client.
"""

import uuid

import pytest

from tillsup import create_app
from tillsup.extensions import db
from tillsup.models import Branch, Profile, ResourceKind, ScopedResource
from tillsup.permissions import Role
from tillsup.services import session_service
from tillsup.services.auth_service import create_identity
from tillsup.services.identity_service import context_for_profile
from tillsup.services.provisioning_service import register_tenant


PASSWORD = "Password123!"


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@example.com"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'AUTHZ_TIMEOUT_MS': 5000,
        'OWNERSHIP_REPAIR_TIMEOUT_MS': 5000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_tenant(db_session):
    """Factory: register a tenant (identity + business + owner + Main Branch)."""
    def _make(business_name="Acme Retail", email=None):
        return register_tenant(email or unique_email("owner"), PASSWORD, business_name)
    return _make


@pytest.fixture(scope='function')
def make_branch(db_session):
    """Factory: add a branch directly (bypasses the owner-only service)."""
    def _make(business, name=None, active=True):
        branch = Branch(
            business_id=business.id,
            name=name or f"Branch {uuid.uuid4().hex[:6]}",
            location="Nairobi",
            is_active=active,
        )
        db_session.add(branch)
        db_session.commit()
        return branch
    return _make


@pytest.fixture(scope='function')
def make_actor(db_session):
    """Factory: identity + profile with a given role, for test setup only."""
    def _make(business, role, branch=None, email=None, active=True):
        identity = create_identity(email or unique_email(Role(role).value), PASSWORD, commit=False)
        profile = Profile(
            id=identity.id,
            business_id=business.id,
            branch_id=branch.id if branch is not None else None,
            role=Role(role).value,
            email=identity.email,
            is_active=active,
        )
        db_session.add(profile)
        db_session.commit()
        return profile
    return _make


@pytest.fixture(scope='function')
def make_resource(db_session):
    """Factory: scoped resource row written directly."""
    def _make(business, branch=None, kind=ResourceKind.INVENTORY_ITEM, name=None, quantity=10, actor=None):
        resource = ScopedResource(
            business_id=business.id,
            branch_id=branch.id if branch is not None else None,
            kind=kind,
            actor_id=actor.id if actor is not None else None,
            name=name or f"{kind}-{uuid.uuid4().hex[:6]}",
            quantity=quantity,
            payload={},
        )
        db_session.add(resource)
        db_session.commit()
        return resource
    return _make


@pytest.fixture(scope='function')
def ctx_of(db_session):
    """Build the ActorContext the resolver would produce for a profile."""
    def _ctx(profile):
        db_session.refresh(profile)
        branch = db_session.get(Branch, profile.branch_id) if profile.branch_id else None
        return context_for_profile(profile, branch)
    return _ctx


@pytest.fixture(scope='function')
def token_for(db_session):
    """Create a session and return its plaintext bearer token."""
    def _token(profile_or_identity):
        _, token = session_service.create_session(profile_or_identity.id)
        return token
    return _token


@pytest.fixture(scope='function')
def tenant_a(make_tenant):
    return make_tenant("Tenant A - Duka Ltd")


@pytest.fixture(scope='function')
def tenant_b(make_tenant):
    return make_tenant("Tenant B - Soko Traders")


@pytest.fixture(scope='function')
def branch_x(tenant_a):
    """Tenant A's default branch."""
    return tenant_a.default_branch


@pytest.fixture(scope='function')
def branch_y(tenant_a, make_branch):
    """A second branch in tenant A."""
    return make_branch(tenant_a.business, name="Westlands")


@pytest.fixture(scope='function')
def manager_x(tenant_a, branch_x, make_actor):
    return make_actor(tenant_a.business, Role.MANAGER, branch_x)


@pytest.fixture(scope='function')
def cashier_x(tenant_a, branch_x, make_actor):
    return make_actor(tenant_a.business, Role.CASHIER, branch_x)


@pytest.fixture(scope='function')
def staff_x(tenant_a, branch_x, make_actor):
    return make_actor(tenant_a.business, Role.STAFF, branch_x)


@pytest.fixture(scope='function')
def cashier_y(tenant_a, branch_y, make_actor):
    return make_actor(tenant_a.business, Role.CASHIER, branch_y)


@pytest.fixture(scope='function')
def accountant_a(tenant_a, branch_x, make_actor):
    return make_actor(tenant_a.business, Role.ACCOUNTANT, branch_x)


@pytest.fixture(scope='function')
def headers_for(token_for):
    """Authorization headers for a fresh session of the given profile."""
    def _headers(profile_or_identity):
        return {'Authorization': f'Bearer {token_for(profile_or_identity)}'}
    return _headers
