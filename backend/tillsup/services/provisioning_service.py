# Overview: Atomic tenant bootstrap (business + owner profile + default branch).

"""
Bootstrap / Provisioning Service

WHY: A business without a valid owner is the root cause of stalled tenant
guards. Provisioning creates the business, its owner profile and its default
branch in ONE transaction and checks they agree before committing, so no
other connection can ever observe a business without an owner.

ORDER (flushed inside the transaction):
1. Business (owner_id pending)
2. Owner profile (role owner, branch-unscoped)
3. Default branch
4. business.owner_id = profile.id, consistency check, commit
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from ..errors import AccessControlError, ProvisioningError, ValidationError
from ..extensions import db
from ..models import Branch, Business, Identity, Profile
from ..permissions import Role
from . import auth_service
from .security_service import log_security_event


DEFAULT_BRANCH_NAME = "Main Branch"
DEFAULT_BRANCH_LOCATION = "Headquarters"


@dataclass
class TenantBundle:
    business: Business
    owner_profile: Profile
    default_branch: Branch

    def to_dict(self) -> dict:
        return {
            "business": self.business.to_dict(),
            "owner": self.owner_profile.to_dict(),
            "default_branch": self.default_branch.to_dict(),
        }


def provision_tenant(
    identity_id: int,
    business_name: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    branch_name: str = DEFAULT_BRANCH_NAME,
    branch_location: str | None = DEFAULT_BRANCH_LOCATION,
    currency: str = "KES",
    country: str = "Kenya",
) -> TenantBundle:
    """
    Create a tenant for an existing identity.

    Either all three records exist and are mutually consistent
    (business.owner_id == profile.id, branch.business_id == business.id)
    or none of them do.

    Raises:
        ValidationError: missing business name
        ProvisioningError: unknown identity, identity already in a tenant,
            or the database rejected the bundle
    """
    name = (business_name or "").strip()
    if not name:
        raise ValidationError("Business name is required")

    try:
        identity = db.session.get(Identity, identity_id)
        if identity is None:
            raise ProvisioningError("Identity not found")
        if not identity.is_active:
            raise ProvisioningError("Identity is not active")
        if db.session.get(Profile, identity_id) is not None:
            raise ProvisioningError("This account already belongs to a business")

        business = Business(name=name, owner_id=None, currency=currency, country=country, is_active=True)
        db.session.add(business)
        db.session.flush()

        profile = Profile(
            id=identity.id,
            business_id=business.id,
            branch_id=None,
            role=Role.OWNER.value,
            email=identity.email,
            first_name=first_name,
            last_name=last_name,
            must_change_password=False,
            is_active=True,
        )
        db.session.add(profile)
        db.session.flush()

        branch = Branch(
            business_id=business.id,
            name=(branch_name or DEFAULT_BRANCH_NAME).strip(),
            location=branch_location,
            is_active=True,
        )
        db.session.add(branch)
        db.session.flush()

        business.owner_id = profile.id
        db.session.flush()

        if (
            business.owner_id != profile.id
            or profile.business_id != business.id
            or branch.business_id != business.id
        ):
            raise ProvisioningError("Tenant records are inconsistent")

        log_security_event(
            actor_id=profile.id,
            event_type="TENANT_PROVISIONED",
            success=True,
            action="provision_tenant",
            reason=f"Business '{name}' provisioned",
            business_id=business.id,
            branch_id=branch.id,
            commit=False,
        )
        db.session.commit()
    except AccessControlError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise ProvisioningError("Failed to provision tenant") from exc

    return TenantBundle(business=business, owner_profile=profile, default_branch=branch)


def register_tenant(
    email: str,
    password: str,
    business_name: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    **kwargs,
) -> TenantBundle:
    """
    Self-registration: identity + tenant in a single transaction.

    If provisioning fails the identity is rolled back with it, so a failed
    signup never leaves an account without a profile.
    """
    if not (business_name or "").strip():
        raise ValidationError("Business name is required")

    try:
        identity = auth_service.create_identity(email, password, commit=False)
    except AccessControlError:
        db.session.rollback()
        raise

    return provision_tenant(
        identity.id,
        business_name,
        first_name=first_name,
        last_name=last_name,
        **kwargs,
    )
