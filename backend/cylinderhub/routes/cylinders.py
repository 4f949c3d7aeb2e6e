# Overview: Flask API routes for cylinder operations; parses input and returns JSON responses.

"""
Cylinder API routes

- GET    /api/cylinders                     list (status, factory_id, cylinder_type, search, is_active, page, per_page)
- POST   /api/cylinders                     intake a new cylinder (EMPTY)
- GET    /api/cylinders/<id>                one cylinder
- GET    /api/cylinders/qr/<code>           lookup by QR code
- PATCH  /api/cylinders/<id>                edit non-lifecycle attributes
- DELETE /api/cylinders/<id>                deactivate (soft or hard)
- GET    /api/cylinders/<id>/history        status events, oldest first
- POST   /api/cylinders/<id>/request-inspection
- POST   /api/cylinders/batch-status        manual status change for many ids

SECURITY: actor ids come from g.current_user, never from the body.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import lifecycle_service
from ..validation import require_int_list
from .helpers import error_response, json_body, int_arg, page_args, paged


cylinders_bp = Blueprint("cylinders", __name__, url_prefix="/api/cylinders")


def _is_active_arg():
    raw = request.args.get("is_active")
    if raw is None:
        return True
    if raw.strip().lower() in ("all", ""):
        return None
    return raw.strip().lower() in ("1", "true", "yes")


@cylinders_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_CYLINDER)
def list_cylinders_route():
    try:
        page, per_page = page_args()
        items, total = lifecycle_service.list_cylinders(
            status=request.args.get("status"),
            factory_id=int_arg("factory_id"),
            cylinder_type=request.args.get("cylinder_type"),
            search=request.args.get("search"),
            is_active=_is_active_arg(),
            page=page,
            per_page=per_page,
        )
        return paged("cylinders", items, total, page, per_page)
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cylinders")
        return jsonify({"error": "Internal server error"}), 500


@cylinders_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_CYLINDER)
def intake_cylinder_route():
    """
    Register a cylinder.

    Body: {"serial_number", "size_litres", "working_pressure",
           "design_pressure", "factory_id", "cylinder_type"?, "gas_type"?, ...}
    The QR code is derived from the serial number.
    """
    try:
        cylinder = lifecycle_service.intake_cylinder(json_body(), g.current_user.id)
        return jsonify({"cylinder": cylinder.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to intake cylinder")
        return jsonify({"error": "Internal server error"}), 500


@cylinders_bp.get("/<int:cylinder_id>")
@require_auth
@require_permission(PermissionCode.READ_CYLINDER)
def get_cylinder_route(cylinder_id: int):
    try:
        cylinder = lifecycle_service.get_cylinder(cylinder_id)
        return jsonify({"cylinder": cylinder.to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@cylinders_bp.get("/qr/<string:qr_code>")
@require_auth
@require_permission(PermissionCode.READ_CYLINDER)
def get_cylinder_by_qr_route(qr_code: str):
    try:
        cylinder = lifecycle_service.get_cylinder_by_qr(qr_code)
        return jsonify({"cylinder": cylinder.to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@cylinders_bp.patch("/<int:cylinder_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_CYLINDER)
def update_cylinder_route(cylinder_id: int):
    try:
        cylinder = lifecycle_service.update_cylinder(cylinder_id, json_body())
        return jsonify({"cylinder": cylinder.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update cylinder")
        return jsonify({"error": "Internal server error"}), 500


@cylinders_bp.delete("/<int:cylinder_id>")
@require_auth
@require_permission(PermissionCode.DELETE_CYLINDER)
def deactivate_cylinder_route(cylinder_id: int):
    """
    Retire a cylinder.

    Response: {"id", "mode": "SOFT" | "HARD"}
    """
    try:
        result = lifecycle_service.deactivate_cylinder(cylinder_id, g.current_user.id)
        return jsonify(result)
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate cylinder")
        return jsonify({"error": "Internal server error"}), 500


@cylinders_bp.get("/<int:cylinder_id>/history")
@require_auth
@require_permission(PermissionCode.READ_CYLINDER)
def cylinder_history_route(cylinder_id: int):
    try:
        events = lifecycle_service.get_history(cylinder_id)
        return jsonify({"events": [e.to_dict() for e in events]})
    except CylinderHubError as e:
        return error_response(e)


@cylinders_bp.post("/<int:cylinder_id>/request-inspection")
@require_auth
@require_permission(PermissionCode.UPDATE_CYLINDER)
def request_inspection_route(cylinder_id: int):
    try:
        data = json_body()
        cylinder = lifecycle_service.request_inspection(
            cylinder_id,
            g.current_user.id,
            note=data.get("note"),
        )
        return jsonify({"cylinder": cylinder.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to request inspection")
        return jsonify({"error": "Internal server error"}), 500


@cylinders_bp.post("/batch-status")
@require_auth
@require_permission(PermissionCode.UPDATE_CYLINDER)
def batch_status_route():
    """
    Body: {"cylinder_ids": [..], "status": "INSPECTION" | "MAINTENANCE" | "EMPTY", "note"?}

    Always 200 once input is valid; per-id failures are in "results".
    """
    try:
        data = json_body()
        result = lifecycle_service.batch_update_status(
            require_int_list(data, "cylinder_ids"),
            data.get("status"),
            g.current_user.id,
            note=data.get("note"),
        )
        return jsonify(result)
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to batch update cylinder status")
        return jsonify({"error": "Internal server error"}), 500
