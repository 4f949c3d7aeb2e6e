# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import g, request

from .errors import ForbiddenError, UnauthorizedError
from .routes.helpers import error_response
from .services import permission_service, session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return error_response(UnauthorizedError("Authentication required"))

        context = session_service.validate_session(token)
        if not context:
            return error_response(UnauthorizedError("Invalid or expired token"))

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code):
    """
    Require a specific permission on the caller's role.

    Denials are logged to security_events and answered with 403.
    """
    code = getattr(permission_code, "value", permission_code)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return error_response(UnauthorizedError("Authentication required"))

            try:
                permission_service.require_permission(
                    user_id=g.current_user.id,
                    permission_code=code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except ForbiddenError as e:
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
