# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.
Every denial is logged for security monitoring.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- Static mapping: a user's permissions come from its single role via
  DEFAULT_ROLE_PERMISSIONS, validated at startup
"""

from ..errors import ForbiddenError
from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import PermissionCode, get_role_permissions, role_has_permission
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    The event is committed on its own so a denial is recorded even though
    the request it belongs to goes no further.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - USER_CREATED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user_id: int) -> set[str]:
    """
    Get all permission codes for a user.

    Returns set of permission codes (e.g., {"CREATE_SALE", "READ_CYLINDER"}).
    Inactive or unknown users have none.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return set()
    return set(get_role_permissions(user.role))


def user_has_permission(user_id: int, permission_code: str) -> bool:
    """True if the user's role grants the permission."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return False
    return role_has_permission(user.role, permission_code)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise ForbiddenError if not.

    Logs the denial to security_events before raising.
    """
    code = permission_code.value if isinstance(permission_code, PermissionCode) else permission_code
    if user_has_permission(user_id, code):
        return

    log_security_event(
        user_id=user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=code,
        reason=f"Missing permission: {code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise ForbiddenError(f"User lacks permission: {code}", required_permission=code)


def get_security_events(
    *,
    user_id: int | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent)
    if user_id:
        query = query.filter(SecurityEvent.user_id == user_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return (
        query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
        .limit(min(max(limit, 1), 500))
        .all()
    )
