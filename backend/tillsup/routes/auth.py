# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/tillsup/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Session management with opaque bearer tokens
- Failed logins recorded as security events
- Accounts without a profile are routed to provisioning, not rejected
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..errors import AccessControlError, AuthenticationError
from ..permissions import get_role_permissions
from ..services import auth_service
from ..services import provisioning_service
from ..services import session_service
from ..services import staff_service
from ..services.identity_service import bearer_token, current_actor
from ..services.security_service import log_security_event


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client():
    return request.headers.get("User-Agent"), request.remote_addr


@auth_bp.post("/register")
def register_route():
    """
    Self-registration: creates the identity, business, owner profile and
    default branch atomically, then signs the new owner in.
    """
    data = request.get_json(silent=True) or {}
    try:
        bundle = provisioning_service.register_tenant(
            email=data.get("email"),
            password=data.get("password"),
            business_name=data.get("business_name"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
        )
        user_agent, ip_address = _client()
        session, token = session_service.create_session(
            identity_id=bundle.owner_profile.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        payload = bundle.to_dict()
        payload.update({"token": token, "session": session.to_dict()})
        return jsonify(payload), 201

    except AccessControlError:
        raise
    except Exception:
        current_app.logger.exception("Failed to register tenant")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate identity and create session token.

    Token must be included in Authorization header for protected routes.
    `needs_provisioning` is true when the account has no business yet.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        identity = auth_service.authenticate(email, password)
        user_agent, ip_address = _client()

        if not identity:
            log_security_event(
                actor_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                action="login",
                reason=f"Invalid credentials for {email}",
            )
            return jsonify({"error": "Invalid credentials", "code": AuthenticationError.code}), 401

        session, token = session_service.create_session(
            identity_id=identity.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        profile = identity.profile

        return jsonify({
            "identity": identity.to_dict(),
            "profile": profile.to_dict() if profile else None,
            "needs_provisioning": profile is None,
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except AccessControlError:
        raise
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/provision")
def provision_route():
    """
    Finish setup for a signed-in account that has no business yet
    (the IDENTITY_NOT_FOUND path).
    """
    context = session_service.validate_session(bearer_token())
    if not context:
        raise AuthenticationError("Invalid or expired token")

    data = request.get_json(silent=True) or {}
    bundle = provisioning_service.provision_tenant(
        context.identity.id,
        data.get("business_name"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
    )
    return jsonify(bundle.to_dict()), 201


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    WHY: Explicit logout prevents token reuse.
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """
    Resolved actor context with role permissions, for UI filtering.
    """
    ctx = current_actor()
    payload = ctx.to_dict()
    payload["permissions"] = sorted(get_role_permissions(ctx.role))
    return jsonify(payload), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    staff_service.change_own_password(
        current_actor(),
        data.get("current_password"),
        data.get("new_password"),
    )
    return jsonify({"message": "Password changed"}), 200
