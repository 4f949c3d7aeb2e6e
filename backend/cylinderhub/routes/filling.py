# Overview: Flask API routes for filling lines and batches; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import filling_service, registry_service
from ..validation import optional_number, require_int
from .helpers import bool_arg, error_response, int_arg, json_body, page_args


filling_bp = Blueprint("filling", __name__, url_prefix="/api/filling")


# -----------------------------------------------------------------------------
# Lines
# -----------------------------------------------------------------------------


@filling_bp.get("/lines")
@require_auth
@require_permission(PermissionCode.READ_FILLING)
def list_lines_route():
    try:
        lines = registry_service.list_filling_lines(
            factory_id=int_arg("factory_id"),
            status=request.args.get("status"),
            include_inactive=bool_arg("include_inactive"),
        )
        return jsonify({"lines": [line.to_dict() for line in lines]})
    except CylinderHubError as e:
        return error_response(e)


@filling_bp.post("/lines")
@require_auth
@require_permission(PermissionCode.CREATE_FILLING)
def create_line_route():
    try:
        line = registry_service.create_filling_line(json_body())
        return jsonify({"line": line.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create filling line")
        return jsonify({"error": "Internal server error"}), 500


@filling_bp.get("/lines/<int:line_id>")
@require_auth
@require_permission(PermissionCode.READ_FILLING)
def get_line_route(line_id: int):
    try:
        return jsonify({"line": registry_service.get_filling_line(line_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@filling_bp.patch("/lines/<int:line_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_FILLING)
def update_line_route(line_id: int):
    try:
        line = registry_service.update_filling_line(line_id, json_body())
        return jsonify({"line": line.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update filling line")
        return jsonify({"error": "Internal server error"}), 500


@filling_bp.delete("/lines/<int:line_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_FILLING)
def deactivate_line_route(line_id: int):
    try:
        line = registry_service.deactivate_filling_line(line_id)
        return jsonify({"line": line.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate filling line")
        return jsonify({"error": "Internal server error"}), 500


# -----------------------------------------------------------------------------
# Batches
# -----------------------------------------------------------------------------


@filling_bp.post("/batches")
@require_auth
@require_permission(PermissionCode.CREATE_FILLING)
def start_batch_route():
    """
    Start a batch on an idle line.

    Body: {"filling_line_id": int,
           "cylinders": [id, ...] or [{"cylinder_id", "initial_pressure"?}, ...],
           "notes"?}
    """
    try:
        data = json_body()
        batch = filling_service.start_batch(
            require_int(data, "filling_line_id"),
            data.get("cylinders"),
            g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({"batch": batch.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start filling batch")
        return jsonify({"error": "Internal server error"}), 500


@filling_bp.get("/batches")
@require_auth
@require_permission(PermissionCode.READ_FILLING)
def list_batches_route():
    try:
        page, per_page = page_args()
        items, total = filling_service.list_batches(
            line_id=int_arg("filling_line_id"),
            status=request.args.get("status"),
            page=page,
            per_page=per_page,
        )
        return jsonify({
            "batches": [b.to_dict(include_details=False) for b in items],
            "total": total,
            "page": page,
            "per_page": per_page,
        })
    except CylinderHubError as e:
        return error_response(e)


@filling_bp.get("/batches/<int:batch_id>")
@require_auth
@require_permission(PermissionCode.READ_FILLING)
def get_batch_route(batch_id: int):
    try:
        return jsonify({"batch": filling_service.get_batch(batch_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@filling_bp.post("/batches/<int:batch_id>/outcomes")
@require_auth
@require_permission(PermissionCode.UPDATE_FILLING)
def record_outcome_route(batch_id: int):
    """
    Body: {"cylinder_id", "outcome": "SUCCESS" | "FAILED", "final_pressure"?, "notes"?}
    """
    try:
        data = json_body()
        detail = filling_service.record_outcome(
            batch_id,
            require_int(data, "cylinder_id"),
            data.get("outcome"),
            final_pressure=optional_number(data, "final_pressure"),
            operator_user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        batch = filling_service.get_batch(batch_id)
        return jsonify({"detail": detail.to_dict(), "batch": batch.to_dict(include_details=False)})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record fill outcome")
        return jsonify({"error": "Internal server error"}), 500


@filling_bp.post("/batches/<int:batch_id>/end")
@require_auth
@require_permission(PermissionCode.UPDATE_FILLING)
def end_batch_route(batch_id: int):
    try:
        data = json_body()
        batch = filling_service.end_batch(batch_id, g.current_user.id, notes=data.get("notes"))
        return jsonify({"batch": batch.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to end filling batch")
        return jsonify({"error": "Internal server error"}), 500
