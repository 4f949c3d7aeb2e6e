# Overview: Flask API routes for auth and user management; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login     username/email + password -> bearer token
- POST /api/auth/logout    revoke the presented token
- GET  /api/auth/me        current user + permissions
- /api/auth/users          user administration (CREATE/READ/UPDATE_USER)

Self-registration does not exist; users are created by an administrator or
with `flask users create`.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import bearer_token, require_auth, require_permission
from ..errors import CylinderHubError, UnauthorizedError
from ..permissions import PermissionCode
from ..services import auth_service, permission_service, session_service
from .helpers import bool_arg, error_response, json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    Failed attempts are written to security_events.
    """
    try:
        data = json_body()
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(username, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason=f"Invalid credentials for {username}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise UnauthorizedError("Invalid credentials")

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(permission_service.get_user_permissions(user.id)),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke session token (logout)."""
    try:
        token = bearer_token()
        if not token:
            raise UnauthorizedError("Authorization header required")

        if not session_service.revoke_session(token, reason="User logout"):
            raise UnauthorizedError("Invalid or expired token")

        return jsonify({"message": "Logout successful"}), 200

    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Return the current user and the permissions of its role."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user.id)),
    })


@auth_bp.get("/users")
@require_auth
@require_permission(PermissionCode.READ_USER)
def list_users_route():
    try:
        users = auth_service.list_users(
            role=request.args.get("role"),
            include_inactive=bool_arg("include_inactive"),
        )
        return jsonify({"users": [u.to_dict() for u in users]})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/users")
@require_auth
@require_permission(PermissionCode.CREATE_USER)
def create_user_route():
    """
    Create a user.

    Body: {"username", "password", "role"?, "name"?, "email"?}
    """
    try:
        data = json_body()
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role"),
            name=data.get("name"),
            email=data.get("email"),
        )
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="USER_CREATED",
            success=True,
            resource=request.path,
            action="CREATE_USER",
            reason=f"Created {user.username} as {user.role}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_USER)
def update_user_route(user_id: int):
    try:
        data = json_body()
        password = data.pop("password", None)
        user = auth_service.update_user(user_id, data)
        if password:
            user = auth_service.change_password(user_id, password)
        return jsonify({"user": user.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
