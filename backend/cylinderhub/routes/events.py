# Overview: Flask API routes for lifecycle notifications and the security log.

"""
Polling surface for the notification hub.

GET /api/events/recent?since=<seq>&limit=<n> returns events published after
the given sequence number. The buffer is in memory and bounded; a client
that falls behind simply misses the oldest events.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import notification_service, permission_service
from .helpers import error_response, int_arg


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("/recent")
@require_auth
@require_permission(PermissionCode.VIEW_EVENTS)
def recent_events_route():
    try:
        since = int_arg("since") or 0
        limit = int_arg("limit")
    except CylinderHubError as e:
        return error_response(e)

    buffer = notification_service.get_recent_buffer()
    events = buffer.since(since, limit) if buffer else []
    last_seq = events[-1]["seq"] if events else since
    return jsonify({"events": events, "last_seq": last_seq})


@events_bp.get("/security")
@require_auth
@require_permission(PermissionCode.READ_USER)
def security_events_route():
    try:
        events = permission_service.get_security_events(
            user_id=int_arg("user_id"),
            event_type=request.args.get("event_type"),
            limit=int_arg("limit") or 100,
        )
        return jsonify({"events": [e.to_dict() for e in events]})
    except CylinderHubError as e:
        return error_response(e)
