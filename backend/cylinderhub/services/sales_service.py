# Overview: Service-layer operations for sales and deliveries; encapsulates business logic and database work.

"""
Sales & delivery workflow.

    create_sale        FULL -> RESERVED, invoice allocated, credit balance moved
    dispatch_delivery  RESERVED -> IN_TRANSIT, truck AVAILABLE -> IN_TRANSIT
    complete_delivery  RESERVED/IN_TRANSIT -> AT_CUSTOMER, truck freed
    cancel_sale        RESERVED/IN_TRANSIT -> FULL, truck freed, balance reversed
    record_return      AT_CUSTOMER -> EMPTY

Every operation is one transaction: either all cylinders, the truck, the
customer and the sale move together or nothing moves.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import (
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from ..extensions import db
from ..models import Customer, Cylinder, Sale, SaleItem, Truck
from ..models.customers import PaymentType
from ..models.cylinders import CylinderStatus
from ..models.fleet import TruckStatus
from ..models.sales import (
    DeliveryStatus,
    DeliveryType,
    PaymentStatus,
    SaleItemStatus,
)
from ..time_utils import utcnow
from ..validation import enforce_price_cents
from . import lifecycle_service, notification_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_invoice_number
from .lifecycle_service import Trigger
from .payment_service import add_payment_locked, compute_payment_status, normalize_method, validate_amount


REFERENCE_TYPE = "SALE"

_OPEN_ITEM_STATUSES = (SaleItemStatus.RESERVED, SaleItemStatus.IN_TRANSIT)


def _normalize_delivery_type(value) -> str:
    key = str(value or DeliveryType.PICKUP).strip().upper()
    if key == "DELIVERY":
        key = DeliveryType.TRUCK_DELIVERY
    if key not in DeliveryType.ALL:
        raise ValidationError(
            f"delivery_type must be one of: {', '.join(DeliveryType.ALL)}",
            field="delivery_type",
        )
    return key


def _normalize_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one cylinder is required", field="items")

    default_price = current_app.config.get("DEFAULT_CYLINDER_PRICE_CENTS", 0)
    clean = []
    for item in items:
        if isinstance(item, dict):
            cylinder_id = item.get("cylinder_id")
            price = item.get("unit_price_cents", default_price)
        else:
            cylinder_id, price = item, default_price

        if isinstance(cylinder_id, bool) or not isinstance(cylinder_id, int):
            raise ValidationError("cylinder_id must be an integer", field="items")
        clean.append({
            "cylinder_id": cylinder_id,
            "unit_price_cents": enforce_price_cents(price),
        })

    ids = [i["cylinder_id"] for i in clean]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(
            "A cylinder can only appear once per sale",
            details={"duplicate_ids": duplicates},
            field="items",
        )
    return clean


def _get_sale(sale_id: int, *, for_update: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if for_update:
        query = lock_for_update(query)
    sale = query.first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _get_truck(truck_id: int) -> Truck:
    truck = lock_for_update(db.session.query(Truck).filter_by(id=truck_id)).first()
    if not truck:
        raise NotFoundError("Truck not found", details={"truck_id": truck_id})
    return truck


def _require_available_truck(truck_id: int) -> Truck:
    truck = _get_truck(truck_id)
    if not truck.is_active:
        raise PreconditionFailedError("Truck is inactive", details={"truck_id": truck_id})
    if truck.status != TruckStatus.AVAILABLE:
        raise PreconditionFailedError(
            f"Truck is {truck.status}",
            details={"truck_id": truck_id, "truck_status": truck.status},
        )
    return truck


def _release_truck(sale: Sale) -> None:
    if not sale.truck_id:
        return
    truck = _get_truck(sale.truck_id)
    if truck.status == TruckStatus.IN_TRANSIT:
        truck.status = TruckStatus.AVAILABLE


def _open_items(sale: Sale) -> list[SaleItem]:
    return [i for i in sale.items if not i.is_return and i.status in _OPEN_ITEM_STATUSES]


def _queue_status(sale: Sale) -> None:
    notification_service.queue(notification_service.SALE_STATUS_UPDATED, {
        "id": sale.id,
        "invoice_number": sale.invoice_number,
        "delivery_status": sale.delivery_status,
        "payment_status": sale.payment_status,
    })


def create_sale(
    customer_id: int,
    items,
    delivery_type: str | None = None,
    truck_id: int | None = None,
    seller_user_id: int | None = None,
    paid_amount_cents: int = 0,
    payment_method: str | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Sell FULL cylinders to a customer.

    Every listed cylinder must exist, be active and FULL; one bad cylinder
    aborts the whole sale. TRUCK_DELIVERY needs an AVAILABLE truck.

    For CREDIT customers the balance moves by (total - paid) in the same
    transaction and that exact amount is stored on the sale so cancellation
    can reverse it. A positive credit limit caps the resulting balance.
    """
    clean_items = _normalize_items(items)
    dtype = _normalize_delivery_type(delivery_type)
    paid = validate_amount(paid_amount_cents or 0, allow_zero=True, field="paid_amount_cents")
    method = normalize_method(payment_method)

    if dtype == DeliveryType.TRUCK_DELIVERY and truck_id is None:
        raise ValidationError("truck_id is required for TRUCK_DELIVERY", field="truck_id")
    if dtype == DeliveryType.PICKUP and truck_id is not None:
        raise ValidationError("truck_id only applies to TRUCK_DELIVERY", field="truck_id")

    def _op() -> Sale:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})
        if not customer.is_active:
            raise PreconditionFailedError("Customer is inactive", details={"customer_id": customer_id})

        cylinders: list[Cylinder] = []
        for item in clean_items:
            cylinder = lifecycle_service.get_cylinder(item["cylinder_id"], for_update=True)
            if not cylinder.is_active:
                raise PreconditionFailedError("Cylinder is inactive", details={"cylinder_id": cylinder.id})
            if cylinder.status != CylinderStatus.FULL:
                raise InvalidTransitionError(
                    cylinder.status,
                    CylinderStatus.RESERVED,
                    message=f"Cylinder {cylinder.serial_number} is not available for sale",
                    details={"cylinder_id": cylinder.id},
                )
            cylinders.append(cylinder)

        if dtype == DeliveryType.TRUCK_DELIVERY:
            _require_available_truck(truck_id)

        total = sum(i["unit_price_cents"] for i in clean_items)

        adjustment = 0
        if customer.payment_type == PaymentType.CREDIT:
            adjustment = total - paid
            new_balance = (customer.balance_cents or 0) + adjustment
            limit = customer.credit_limit_cents or 0
            if limit > 0 and new_balance > limit:
                raise PreconditionFailedError(
                    "Credit limit exceeded",
                    details={
                        "customer_id": customer.id,
                        "balance_cents": customer.balance_cents,
                        "credit_limit_cents": limit,
                        "sale_total_cents": total,
                    },
                )

        now = utcnow()
        sale = Sale(
            invoice_number=next_invoice_number(now),
            customer_id=customer.id,
            seller_user_id=seller_user_id,
            sale_date=now,
            delivery_type=dtype,
            truck_id=truck_id,
            total_cents=total,
            paid_cents=0,
            balance_adjustment_cents=adjustment,
            payment_status=PaymentStatus.UNPAID,
            delivery_status=DeliveryStatus.PENDING,
            notes=notes,
        )
        db.session.add(sale)
        db.session.flush()

        for item, cylinder in zip(clean_items, cylinders):
            db.session.add(SaleItem(
                sale_id=sale.id,
                cylinder_id=cylinder.id,
                unit_price_cents=item["unit_price_cents"],
                is_return=False,
                status=SaleItemStatus.RESERVED,
            ))
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.RESERVED,
                Trigger.SALE_CREATED,
                seller_user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
            )

        if paid > 0:
            add_payment_locked(sale, paid, method, seller_user_id, reference="Paid at sale")
        sale.payment_status = compute_payment_status(sale.total_cents, sale.paid_cents)

        customer.balance_cents = (customer.balance_cents or 0) + adjustment
        db.session.flush()

        notification_service.queue(notification_service.SALE_CREATED, sale.to_dict(include_items=False))
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info("Sale %s created for customer %s", sale.invoice_number, customer_id)
    return sale


def dispatch_delivery(sale_id: int, user_id: int | None = None) -> Sale:
    """Load a PENDING truck-delivery sale: truck and cylinders go IN_TRANSIT."""
    def _op() -> Sale:
        sale = _get_sale(sale_id, for_update=True)
        if sale.delivery_type != DeliveryType.TRUCK_DELIVERY:
            raise PreconditionFailedError(
                "Only TRUCK_DELIVERY sales can be dispatched",
                details={"sale_id": sale_id, "delivery_type": sale.delivery_type},
            )
        if sale.delivery_status != DeliveryStatus.PENDING:
            raise PreconditionFailedError(
                f"Sale is {sale.delivery_status}, expected PENDING",
                details={"sale_id": sale_id, "delivery_status": sale.delivery_status},
            )

        truck = _require_available_truck(sale.truck_id)

        for item in _open_items(sale):
            cylinder = lifecycle_service.get_cylinder(item.cylinder_id, for_update=True)
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.IN_TRANSIT,
                Trigger.DELIVERY_DISPATCHED,
                user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
                truck_id=truck.id,
            )
            item.status = SaleItemStatus.IN_TRANSIT

        truck.status = TruckStatus.IN_TRANSIT
        sale.delivery_status = DeliveryStatus.IN_TRANSIT
        sale.dispatched_at = utcnow()
        db.session.flush()

        _queue_status(sale)
        return sale

    return run_in_transaction(_op)


def complete_delivery(
    sale_id: int,
    customer_signature: bool = False,
    user_id: int | None = None,
) -> Sale:
    """
    Hand the cylinders to the customer.

    Truck deliveries must be IN_TRANSIT and signed for; pickups complete
    straight from PENDING.
    """
    def _op() -> Sale:
        sale = _get_sale(sale_id, for_update=True)

        if sale.delivery_type == DeliveryType.TRUCK_DELIVERY:
            if sale.delivery_status != DeliveryStatus.IN_TRANSIT:
                raise PreconditionFailedError(
                    f"Sale is {sale.delivery_status}, expected IN_TRANSIT",
                    details={"sale_id": sale_id, "delivery_status": sale.delivery_status},
                )
            if customer_signature is not True:
                raise PreconditionFailedError(
                    "Customer signature is required for truck delivery",
                    details={"sale_id": sale_id, "field": "customer_signature"},
                )
        elif sale.delivery_status != DeliveryStatus.PENDING:
            raise PreconditionFailedError(
                f"Sale is {sale.delivery_status}, expected PENDING",
                details={"sale_id": sale_id, "delivery_status": sale.delivery_status},
            )

        for item in _open_items(sale):
            cylinder = lifecycle_service.get_cylinder(item.cylinder_id, for_update=True)
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.AT_CUSTOMER,
                Trigger.DELIVERY_COMPLETED,
                user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
                customer_id=sale.customer_id,
            )
            item.status = SaleItemStatus.DELIVERED

        _release_truck(sale)
        sale.delivery_status = DeliveryStatus.DELIVERED
        sale.customer_signature = customer_signature is True
        sale.delivered_at = utcnow()
        db.session.flush()

        _queue_status(sale)
        return sale

    return run_in_transaction(_op)


def cancel_sale(sale_id: int, reason: str | None = None, user_id: int | None = None) -> Sale:
    """
    Undo a sale that has not been delivered.

    Cylinders go back to FULL at the factory, the truck is freed, and the
    customer balance moves back by exactly the adjustment made at creation.
    """
    def _op() -> Sale:
        sale = _get_sale(sale_id, for_update=True)
        if sale.delivery_status in (DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED):
            raise PreconditionFailedError(
                f"Cannot cancel a {sale.delivery_status} sale",
                details={"sale_id": sale_id, "delivery_status": sale.delivery_status},
            )

        for item in _open_items(sale):
            cylinder = lifecycle_service.get_cylinder(item.cylinder_id, for_update=True)
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.FULL,
                Trigger.SALE_CANCELLED,
                user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
                note=reason,
            )
            item.status = SaleItemStatus.CANCELLED

        if sale.delivery_status == DeliveryStatus.IN_TRANSIT:
            _release_truck(sale)

        if sale.balance_adjustment_cents:
            customer = lock_for_update(db.session.query(Customer).filter_by(id=sale.customer_id)).first()
            customer.balance_cents = (customer.balance_cents or 0) - sale.balance_adjustment_cents

        sale.delivery_status = DeliveryStatus.CANCELLED
        sale.cancelled_at = utcnow()
        sale.cancelled_by_user_id = user_id
        sale.cancel_reason = reason
        db.session.flush()

        _queue_status(sale)
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info("Sale %s cancelled", sale.invoice_number)
    return sale


def record_return(sale_id: int, cylinder_id: int, user_id: int | None = None) -> SaleItem:
    """
    Take an empty back from the sale's customer.

    The cylinder must be AT_CUSTOMER and held by this sale's customer. A
    return row is added to the sale and the original item (if this sale sold
    it) is marked RETURNED. Works whatever the sale's delivery status is.
    """
    def _op() -> SaleItem:
        sale = _get_sale(sale_id, for_update=True)
        cylinder = lifecycle_service.get_cylinder(cylinder_id, for_update=True)

        if cylinder.status != CylinderStatus.AT_CUSTOMER:
            raise InvalidTransitionError(
                cylinder.status,
                CylinderStatus.EMPTY,
                message=f"Cylinder {cylinder.serial_number} is not at a customer",
                details={"cylinder_id": cylinder.id},
            )
        if cylinder.current_customer_id != sale.customer_id:
            raise PreconditionFailedError(
                "Cylinder is not held by this sale's customer",
                details={
                    "cylinder_id": cylinder.id,
                    "holder_customer_id": cylinder.current_customer_id,
                    "sale_customer_id": sale.customer_id,
                },
            )

        lifecycle_service.transition(
            cylinder,
            CylinderStatus.EMPTY,
            Trigger.RETURNED_EMPTY,
            user_id,
            reference_type=REFERENCE_TYPE,
            reference_id=sale.id,
        )

        for item in sale.items:
            if item.cylinder_id == cylinder.id and not item.is_return and item.status == SaleItemStatus.DELIVERED:
                item.status = SaleItemStatus.RETURNED

        return_item = SaleItem(
            sale_id=sale.id,
            cylinder_id=cylinder.id,
            unit_price_cents=0,
            is_return=True,
            status=SaleItemStatus.RETURNED,
        )
        db.session.add(return_item)
        db.session.flush()

        _queue_status(sale)
        return return_item

    return run_in_transaction(_op)


def get_sale(sale_id: int) -> Sale:
    return _get_sale(sale_id)


def list_sales(
    *,
    customer_id: int | None = None,
    delivery_status: str | None = None,
    payment_status: str | None = None,
    delivery_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Sale], int]:
    query = db.session.query(Sale)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    if delivery_status:
        query = query.filter(Sale.delivery_status == delivery_status.upper())
    if payment_status:
        query = query.filter(Sale.payment_status == payment_status.upper())
    if delivery_type:
        query = query.filter(Sale.delivery_type == _normalize_delivery_type(delivery_type))
    if search:
        like = f"%{search.strip()}%"
        query = query.outerjoin(Customer, Customer.id == Sale.customer_id).filter(or_(
            Sale.invoice_number.ilike(like),
            Customer.name.ilike(like),
        ))

    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)
    total = query.count()
    items = (
        query.order_by(Sale.sale_date.desc(), Sale.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total
