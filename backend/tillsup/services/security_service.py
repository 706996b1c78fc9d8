# Overview: Security event audit trail with tenant context.

from flask import has_request_context, request

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def log_security_event(
    actor_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    business_id: int | None = None,
    branch_id: int | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    MULTI-TENANT: Includes business_id and branch_id for tenant-scoped auditing.
    Client address and user agent are captured when called inside a request.

    event_type examples:
    - POLICY_DENIED
    - BRANCH_SCOPE_DENIED
    - CROSS_TENANT_ACCESS_DENIED
    - STAFF_CREATED / STAFF_UPDATED / STAFF_DEACTIVATED
    - STAFF_PASSWORD_RESET
    - TENANT_PROVISIONED
    - LOGIN_FAILED
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")
        if resource is None:
            resource = request.path

    event = SecurityEvent(
        actor_id=actor_id,
        business_id=business_id,
        branch_id=branch_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def list_security_events(business_id: int, *, event_type: str | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent).filter_by(business_id=business_id)
    if event_type:
        query = query.filter_by(event_type=event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
