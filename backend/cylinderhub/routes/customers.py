# Overview: Flask API routes for customers; parses input and returns JSON responses.

"""
Customer API routes

balance_cents is read-only here. It moves only through sales, cancellations
and payments.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import registry_service, sales_service
from .helpers import bool_arg, error_response, json_body, page_args, paged


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_CUSTOMER)
def list_customers_route():
    try:
        page, per_page = page_args()
        items, total = registry_service.list_customers(
            customer_type=request.args.get("customer_type"),
            payment_type=request.args.get("payment_type"),
            search=request.args.get("search"),
            include_inactive=bool_arg("include_inactive"),
            page=page,
            per_page=per_page,
        )
        return paged("customers", items, total, page, per_page)
    except CylinderHubError as e:
        return error_response(e)


@customers_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_CUSTOMER)
def create_customer_route():
    try:
        customer = registry_service.create_customer(json_body())
        return jsonify({"customer": customer.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission(PermissionCode.READ_CUSTOMER)
def get_customer_route(customer_id: int):
    try:
        return jsonify({"customer": registry_service.get_customer(customer_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_permission(PermissionCode.UPDATE_CUSTOMER)
def update_customer_route(customer_id: int):
    try:
        customer = registry_service.update_customer(customer_id, json_body())
        return jsonify({"customer": customer.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission(PermissionCode.DELETE_CUSTOMER)
def deactivate_customer_route(customer_id: int):
    try:
        customer = registry_service.deactivate_customer(customer_id)
        return jsonify({"customer": customer.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>/sales")
@require_auth
@require_permission(PermissionCode.READ_SALE)
def customer_sales_route(customer_id: int):
    try:
        registry_service.get_customer(customer_id)
        page, per_page = page_args()
        items, total = sales_service.list_sales(customer_id=customer_id, page=page, per_page=per_page)
        return jsonify({
            "sales": [s.to_dict(include_items=False) for s in items],
            "total": total,
            "page": page,
            "per_page": per_page,
        })
    except CylinderHubError as e:
        return error_response(e)
