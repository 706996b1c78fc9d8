# Overview: Pytest coverage for atomic tenant provisioning.

"""
Provisioning Tests

A provisioned tenant is business + owner profile + default branch, all or
nothing.
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from tillsup.errors import ProvisioningError, ValidationError
from tillsup.models import Branch, Business, Identity, Profile, SecurityEvent
from tillsup.permissions import Role
from tillsup.services import provisioning_service
from tillsup.services.auth_service import PasswordValidationError, create_identity
from tillsup.services.ownership_service import OwnershipState, inspect_ownership
from tillsup.services.provisioning_service import (
    DEFAULT_BRANCH_NAME,
    provision_tenant,
    register_tenant,
)


class TestProvisionTenant:

    def test_bundle_is_consistent(self, db_session):
        identity = create_identity("founder@example.com", "Password123!")

        bundle = provision_tenant(identity.id, "  Mama Mboga Stores  ", first_name="Achieng")

        assert bundle.business.name == "Mama Mboga Stores"
        assert bundle.business.owner_id == bundle.owner_profile.id == identity.id
        assert bundle.owner_profile.business_id == bundle.business.id
        assert bundle.owner_profile.role == Role.OWNER.value
        assert bundle.owner_profile.branch_id is None
        assert bundle.default_branch.business_id == bundle.business.id
        assert bundle.default_branch.name == DEFAULT_BRANCH_NAME
        assert inspect_ownership(bundle.business) is OwnershipState.VALID

    def test_provisioning_is_audited(self, db_session):
        identity = create_identity("auditme@example.com", "Password123!")
        bundle = provision_tenant(identity.id, "Audit Traders")

        event = db_session.query(SecurityEvent).filter_by(event_type="TENANT_PROVISIONED").one()
        assert event.business_id == bundle.business.id
        assert event.actor_id == identity.id

    def test_identity_already_in_tenant(self, tenant_a):
        with pytest.raises(ProvisioningError):
            provision_tenant(tenant_a.owner_profile.id, "Second Shop")

    def test_unknown_identity(self, db_session):
        with pytest.raises(ProvisioningError):
            provision_tenant(424242, "Ghost Shop")

    def test_empty_business_name(self, db_session):
        identity = create_identity("noname@example.com", "Password123!")
        with pytest.raises(ValidationError):
            provision_tenant(identity.id, "   ")

    def test_failure_leaves_nothing_behind(self, db_session, monkeypatch):
        identity = create_identity("halfway@example.com", "Password123!")

        def broken_audit(**kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(provisioning_service, "log_security_event", broken_audit)

        with pytest.raises(ProvisioningError):
            provision_tenant(identity.id, "Never Opened")

        assert db_session.query(Business).count() == 0
        assert db_session.query(Branch).count() == 0
        assert db_session.query(Profile).count() == 0
        # The identity was committed beforehand and survives, ready to retry
        assert db_session.get(Identity, identity.id) is not None


class TestRegisterTenant:

    def test_register_creates_identity_and_tenant(self, db_session):
        bundle = register_tenant("Owner@Example.com", "Password123!", "Duka Ltd")

        identity = db_session.get(Identity, bundle.owner_profile.id)
        assert identity.email == "owner@example.com"
        assert bundle.owner_profile.email == "owner@example.com"

    def test_failed_register_rolls_back_identity(self, db_session, monkeypatch):
        def broken_audit(**kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(provisioning_service, "log_security_event", broken_audit)

        with pytest.raises(ProvisioningError):
            register_tenant("rollback@example.com", "Password123!", "Never Opened")

        assert db_session.query(Identity).filter_by(email="rollback@example.com").count() == 0
        assert db_session.query(Business).count() == 0

    def test_weak_password(self, db_session):
        with pytest.raises(PasswordValidationError):
            register_tenant("weak@example.com", "password", "Weak Shop")
        assert db_session.query(Identity).count() == 0

    def test_duplicate_email(self, tenant_a):
        with pytest.raises(ValidationError):
            register_tenant(tenant_a.owner_profile.email, "Password123!", "Copycat Ltd")

    def test_empty_business_name(self, db_session):
        with pytest.raises(ValidationError):
            register_tenant("blank@example.com", "Password123!", "")
        assert db_session.query(Identity).count() == 0
