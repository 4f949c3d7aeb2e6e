# Overview: Flask API routes for factories; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import registry_service
from .helpers import bool_arg, error_response, json_body


factories_bp = Blueprint("factories", __name__, url_prefix="/api/factories")


@factories_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_FACTORY)
def list_factories_route():
    factories = registry_service.list_factories(include_inactive=bool_arg("include_inactive"))
    return jsonify({"factories": [f.to_dict() for f in factories]})


@factories_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_FACTORY)
def create_factory_route():
    try:
        factory = registry_service.create_factory(json_body())
        return jsonify({"factory": factory.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create factory")
        return jsonify({"error": "Internal server error"}), 500


@factories_bp.get("/<int:factory_id>")
@require_auth
@require_permission(PermissionCode.READ_FACTORY)
def get_factory_route(factory_id: int):
    try:
        return jsonify({"factory": registry_service.get_factory(factory_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@factories_bp.patch("/<int:factory_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_FACTORY)
def update_factory_route(factory_id: int):
    try:
        factory = registry_service.update_factory(factory_id, json_body())
        return jsonify({"factory": factory.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update factory")
        return jsonify({"error": "Internal server error"}), 500


@factories_bp.delete("/<int:factory_id>")
@require_auth
@require_permission(PermissionCode.DELETE_FACTORY)
def deactivate_factory_route(factory_id: int):
    try:
        factory = registry_service.deactivate_factory(factory_id)
        return jsonify({"factory": factory.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate factory")
        return jsonify({"error": "Internal server error"}), 500
