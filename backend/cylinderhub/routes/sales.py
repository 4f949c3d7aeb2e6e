# Overview: Flask API routes for sales, deliveries and payments; parses input and returns JSON responses.

"""
Sales API routes

- POST /api/sales                         create (cylinders FULL -> RESERVED)
- GET  /api/sales                         list
- GET  /api/sales/<id>                    one sale with items and payments
- POST /api/sales/<id>/dispatch           truck leaves (RESERVED -> IN_TRANSIT)
- POST /api/sales/<id>/complete           handed over (-> AT_CUSTOMER)
- POST /api/sales/<id>/cancel             undo an undelivered sale
- POST /api/sales/<id>/payments           take a payment
- GET  /api/sales/<id>/payments           payment summary
- POST /api/sales/<id>/returns            empty cylinder back from the customer
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import CylinderHubError
from ..permissions import PermissionCode
from ..services import payment_service, sales_service
from ..validation import optional_bool, require_int
from .helpers import error_response, int_arg, json_body, page_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission(PermissionCode.CREATE_SALE)
def create_sale_route():
    """
    Body: {"customer_id", "items": [id, ...] or [{"cylinder_id", "unit_price_cents"?}, ...],
           "delivery_type": "PICKUP" | "TRUCK_DELIVERY", "truck_id"?,
           "paid_amount_cents"?, "payment_method"?, "notes"?}
    """
    try:
        data = json_body()
        sale = sales_service.create_sale(
            require_int(data, "customer_id"),
            data.get("items"),
            delivery_type=data.get("delivery_type"),
            truck_id=data.get("truck_id"),
            seller_user_id=g.current_user.id,
            paid_amount_cents=data.get("paid_amount_cents", 0),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission(PermissionCode.READ_SALE)
def list_sales_route():
    try:
        page, per_page = page_args()
        items, total = sales_service.list_sales(
            customer_id=int_arg("customer_id"),
            delivery_status=request.args.get("delivery_status"),
            payment_status=request.args.get("payment_status"),
            delivery_type=request.args.get("delivery_type"),
            search=request.args.get("search"),
            page=page,
            per_page=per_page,
        )
        return jsonify({
            "sales": [s.to_dict(include_items=False) for s in items],
            "total": total,
            "page": page,
            "per_page": per_page,
        })
    except CylinderHubError as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission(PermissionCode.READ_SALE)
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": sales_service.get_sale(sale_id).to_dict()})
    except CylinderHubError as e:
        return error_response(e)


@sales_bp.post("/<int:sale_id>/dispatch")
@require_auth
@require_permission(PermissionCode.UPDATE_SALE)
def dispatch_route(sale_id: int):
    try:
        sale = sales_service.dispatch_delivery(sale_id, g.current_user.id)
        return jsonify({"sale": sale.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to dispatch sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/complete")
@require_auth
@require_permission(PermissionCode.UPDATE_SALE)
def complete_route(sale_id: int):
    """Body: {"customer_signature": bool} (required true for truck deliveries)."""
    try:
        data = json_body()
        sale = sales_service.complete_delivery(
            sale_id,
            customer_signature=optional_bool(data, "customer_signature"),
            user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete delivery")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_permission(PermissionCode.UPDATE_SALE)
def cancel_route(sale_id: int):
    try:
        data = json_body()
        sale = sales_service.cancel_sale(sale_id, reason=data.get("reason"), user_id=g.current_user.id)
        return jsonify({"sale": sale.to_dict()})
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/payments")
@require_auth
@require_permission(PermissionCode.UPDATE_SALE)
def record_payment_route(sale_id: int):
    """Body: {"amount_cents", "method"?, "reference"?}"""
    try:
        data = json_body()
        sale = payment_service.record_payment(
            sale_id,
            data.get("amount_cents"),
            method=data.get("method"),
            user_id=g.current_user.id,
            reference=data.get("reference"),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>/payments")
@require_auth
@require_permission(PermissionCode.READ_SALE)
def payment_summary_route(sale_id: int):
    try:
        return jsonify(payment_service.get_payment_summary(sale_id))
    except CylinderHubError as e:
        return error_response(e)


@sales_bp.post("/<int:sale_id>/returns")
@require_auth
@require_permission(PermissionCode.UPDATE_SALE)
def record_return_route(sale_id: int):
    """Body: {"cylinder_id"}"""
    try:
        data = json_body()
        item = sales_service.record_return(
            sale_id,
            require_int(data, "cylinder_id"),
            user_id=g.current_user.id,
        )
        return jsonify({"item": item.to_dict()}), 201
    except CylinderHubError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record return")
        return jsonify({"error": "Internal server error"}), 500
