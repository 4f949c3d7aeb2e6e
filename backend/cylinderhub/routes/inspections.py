# Overview: Flask API routes for inspections; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import inspection_service
from ..validation import require_int, require_int_list
from .helpers import error_response, int_arg, json_body, page_args, paged


inspections_bp = Blueprint("inspections", __name__, url_prefix="/api/inspections")


def _readings(data: dict) -> dict:
    return {
        "pressure_reading": data.get("pressure_reading"),
        "visual_check": data.get("visual_check", False),
        "valve_check": data.get("valve_check", False),
        "notes": data.get("notes"),
    }


@inspections_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_INSPECTION)
def inspect_route():
    """
    Inspect one cylinder.

    Body: {"cylinder_id", "result": "APPROVED" | "REJECTED", "rejection_reason"?,
           "pressure_reading"?, "visual_check"?, "valve_check"?, "notes"?}
    """
    try:
        data = json_body()
        inspection = inspection_service.inspect(
            require_int(data, "cylinder_id"),
            _readings(data),
            data.get("result"),
            rejection_reason=data.get("rejection_reason"),
            inspector_user_id=g.current_user.id,
        )
        return jsonify({"inspection": inspection.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record inspection")
        return jsonify({"error": "Internal server error"}), 500


@inspections_bp.post("/batch")
@require_auth
@require_permission(PermissionCode.CREATE_INSPECTION)
def batch_inspect_route():
    """Same body as POST /api/inspections with "cylinder_ids" instead of "cylinder_id"."""
    try:
        data = json_body()
        result = inspection_service.batch_inspect(
            require_int_list(data, "cylinder_ids"),
            _readings(data),
            data.get("result"),
            rejection_reason=data.get("rejection_reason"),
            inspector_user_id=g.current_user.id,
        )
        return jsonify(result)
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to batch inspect")
        return jsonify({"error": "Internal server error"}), 500


@inspections_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_INSPECTION)
def list_inspections_route():
    try:
        page, per_page = page_args()
        items, total = inspection_service.list_inspections(
            cylinder_id=int_arg("cylinder_id"),
            result=request.args.get("result"),
            inspector_user_id=int_arg("inspector_user_id"),
            page=page,
            per_page=per_page,
        )
        return paged("inspections", items, total, page, per_page)
    except CylinderHubError as e:
        return error_response(e)


@inspections_bp.get("/cylinder/<int:cylinder_id>")
@require_auth
@require_permission(PermissionCode.READ_INSPECTION)
def cylinder_inspections_route(cylinder_id: int):
    try:
        items = inspection_service.get_cylinder_inspections(cylinder_id)
        return jsonify({"inspections": [i.to_dict() for i in items]})
    except CylinderHubError as e:
        return error_response(e)
