# Overview: Flask API routes for trucks; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import registry_service
from .helpers import bool_arg, error_response, json_body


trucks_bp = Blueprint("trucks", __name__, url_prefix="/api/trucks")


@trucks_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_TRUCK)
def list_trucks_route():
    trucks = registry_service.list_trucks(
        status=request.args.get("status"),
        include_inactive=bool_arg("include_inactive"),
    )
    return jsonify({"trucks": [t.to_dict() for t in trucks]})


@trucks_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_TRUCK)
def create_truck_route():
    """Body: {"license_number", "capacity"?, "driver_name"?, "driver_phone"?, ...}"""
    try:
        truck = registry_service.create_truck(json_body())
        return jsonify({"truck": truck.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create truck")
        return jsonify({"error": "Internal server error"}), 500


@trucks_bp.get("/<int:truck_id>")
@require_auth
@require_permission(PermissionCode.READ_TRUCK)
def get_truck_route(truck_id: int):
    try:
        return jsonify({"truck": registry_service.get_truck(truck_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@trucks_bp.patch("/<int:truck_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_TRUCK)
def update_truck_route(truck_id: int):
    try:
        truck = registry_service.update_truck(truck_id, json_body())
        return jsonify({"truck": truck.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update truck")
        return jsonify({"error": "Internal server error"}), 500


@trucks_bp.delete("/<int:truck_id>")
@require_auth
@require_permission(PermissionCode.DELETE_TRUCK)
def deactivate_truck_route(truck_id: int):
    try:
        truck = registry_service.deactivate_truck(truck_id)
        return jsonify({"truck": truck.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate truck")
        return jsonify({"error": "Internal server error"}), 500
