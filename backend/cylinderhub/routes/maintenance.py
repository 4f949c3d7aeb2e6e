# Overview: Flask API routes for cylinder maintenance; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import maintenance_service
from ..validation import require_int
from .helpers import error_response, int_arg, json_body, page_args, paged


maintenance_bp = Blueprint("maintenance", __name__, url_prefix="/api/maintenance")


@maintenance_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_MAINTENANCE)
def open_maintenance_route():
    """Body: {"cylinder_id", "issue_description", "notes"?}. Cylinder must be in ERROR."""
    try:
        data = json_body()
        record = maintenance_service.open_maintenance(
            require_int(data, "cylinder_id"),
            data.get("issue_description"),
            technician_user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({"record": record.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open maintenance")
        return jsonify({"error": "Internal server error"}), 500


@maintenance_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_MAINTENANCE)
def list_maintenance_route():
    try:
        page, per_page = page_args()
        items, total = maintenance_service.list_maintenance(
            cylinder_id=int_arg("cylinder_id"),
            status=request.args.get("status"),
            page=page,
            per_page=per_page,
        )
        return paged("records", items, total, page, per_page)
    except CylinderHubError as e:
        return error_response(e)


@maintenance_bp.get("/<int:record_id>")
@require_auth
@require_permission(PermissionCode.READ_MAINTENANCE)
def get_maintenance_route(record_id: int):
    try:
        return jsonify({"record": maintenance_service.get_record(record_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@maintenance_bp.post("/<int:record_id>/complete")
@require_auth
@require_permission(PermissionCode.UPDATE_MAINTENANCE)
def complete_maintenance_route(record_id: int):
    """Body: {"action_taken", "cost_cents"?, "notes"?}. Cylinder goes back to EMPTY."""
    try:
        data = json_body()
        record = maintenance_service.complete_maintenance(
            record_id,
            data.get("action_taken"),
            technician_user_id=g.current_user.id,
            cost_cents=data.get("cost_cents"),
            notes=data.get("notes"),
        )
        return jsonify({"record": record.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete maintenance")
        return jsonify({"error": "Internal server error"}), 500


@maintenance_bp.post("/<int:record_id>/unrepairable")
@require_auth
@require_permission(PermissionCode.UPDATE_MAINTENANCE)
def unrepairable_route(record_id: int):
    """Body: {"notes"?}. Cylinder goes to ERROR and is retired."""
    try:
        data = json_body()
        record = maintenance_service.mark_unrepairable(
            record_id,
            notes=data.get("notes"),
            technician_user_id=g.current_user.id,
        )
        return jsonify({"record": record.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark cylinder unrepairable")
        return jsonify({"error": "Internal server error"}), 500
