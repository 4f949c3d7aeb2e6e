# Overview: Service-layer operations for factories, filling lines, trucks and customers.

"""
Attribute stores the workflows depend on.

These records carry no lifecycle of their own beyond is_active and, for
lines and trucks, an operational status that the workflows own:

- FillingLine.status goes ACTIVE only through filling_service; here it can
  be set to IDLE or MAINTENANCE while no batch is running.
- Truck.status goes IN_TRANSIT only through sales_service; here it can be
  set to AVAILABLE or MAINTENANCE while the truck is not on the road.
- Customer.balance_cents is never writable; it moves through sales and
  payments only.

Deactivation is soft everywhere.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..errors import DuplicateKeyError, NotFoundError, PreconditionFailedError
from ..extensions import db
from ..models import Customer, Factory, FillingLine, Truck
from ..models.customers import CustomerType, PaymentType
from ..models.cylinders import CylinderType
from ..models.filling import LineStatus
from ..models.fleet import TruckStatus
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_capacity,
    enforce_rules_customer,
    validate_payload,
)
from .concurrency import lock_for_update, run_in_transaction


FACTORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "contact_person", "contact_number", "email", "is_active"},
    required_on_create={"name"},
)

LINE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "factory_id", "capacity", "cylinder_type", "status", "is_active", "notes"},
    required_on_create={"name", "capacity"},
    choices={
        "cylinder_type": CylinderType.ALL,
        "status": (LineStatus.IDLE, LineStatus.MAINTENANCE),
    },
)

TRUCK_POLICY = ModelValidationPolicy(
    writable_fields={
        "license_number",
        "truck_type",
        "owner",
        "capacity",
        "driver_name",
        "driver_phone",
        "status",
        "last_maintenance_date",
        "is_active",
        "notes",
    },
    required_on_create={"license_number"},
    choices={"status": (TruckStatus.AVAILABLE, TruckStatus.MAINTENANCE)},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "customer_type",
        "address",
        "contact_person",
        "contact_number",
        "email",
        "payment_type",
        "price_group",
        "credit_limit_cents",
        "is_active",
        "notes",
    },
    required_on_create={"name", "customer_type"},
    choices={"customer_type": CustomerType.ALL, "payment_type": PaymentType.ALL},
)


def _get(model, record_id: int, label: str, *, for_update: bool = False):
    query = db.session.query(model).filter_by(id=record_id)
    if for_update:
        query = lock_for_update(query)
    record = query.first()
    if not record:
        raise NotFoundError(f"{label} not found", details={"id": record_id})
    return record


def _ensure_unique(model, column: str, value, label: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(model.id).filter(getattr(model, column) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise DuplicateKeyError(f"{label} {column} already exists", details={column: value})


def _page(query, order_by, page: int, per_page: int) -> tuple[list, int]:
    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)
    total = query.count()
    items = query.order_by(order_by).offset((page - 1) * per_page).limit(per_page).all()
    return items, total


# -----------------------------------------------------------------------------
# Factories
# -----------------------------------------------------------------------------


def create_factory(payload: dict) -> Factory:
    patch = validate_payload(model=Factory, payload=payload, policy=FACTORY_POLICY, partial=False)

    def _op() -> Factory:
        _ensure_unique(Factory, "name", patch["name"], "Factory")
        factory = Factory(**patch)
        db.session.add(factory)
        db.session.flush()
        return factory

    return run_in_transaction(_op)


def update_factory(factory_id: int, payload: dict) -> Factory:
    patch = validate_payload(model=Factory, payload=payload, policy=FACTORY_POLICY, partial=True)

    def _op() -> Factory:
        factory = _get(Factory, factory_id, "Factory", for_update=True)
        if "name" in patch:
            _ensure_unique(Factory, "name", patch["name"], "Factory", exclude_id=factory.id)
        for k, v in patch.items():
            setattr(factory, k, v)
        return factory

    return run_in_transaction(_op)


def get_factory(factory_id: int) -> Factory:
    return _get(Factory, factory_id, "Factory")


def list_factories(*, include_inactive: bool = False) -> list[Factory]:
    query = db.session.query(Factory)
    if not include_inactive:
        query = query.filter(Factory.is_active.is_(True))
    return query.order_by(Factory.name.asc()).all()


def deactivate_factory(factory_id: int) -> Factory:
    return update_factory(factory_id, {"is_active": False})


# -----------------------------------------------------------------------------
# Filling lines
# -----------------------------------------------------------------------------


def create_filling_line(payload: dict) -> FillingLine:
    patch = validate_payload(model=FillingLine, payload=payload, policy=LINE_POLICY, partial=False)
    enforce_rules_capacity(patch)

    def _op() -> FillingLine:
        _ensure_unique(FillingLine, "name", patch["name"], "Filling line")
        if patch.get("factory_id") is not None:
            _get(Factory, patch["factory_id"], "Factory")
        line = FillingLine(**patch)
        line.status = line.status or LineStatus.IDLE
        line.cylinder_type = line.cylinder_type or CylinderType.INDUSTRIAL
        db.session.add(line)
        db.session.flush()
        return line

    return run_in_transaction(_op)


def update_filling_line(line_id: int, payload: dict) -> FillingLine:
    patch = validate_payload(model=FillingLine, payload=payload, policy=LINE_POLICY, partial=True)
    enforce_rules_capacity(patch)

    def _op() -> FillingLine:
        line = _get(FillingLine, line_id, "Filling line", for_update=True)
        if line.status == LineStatus.ACTIVE:
            raise PreconditionFailedError(
                "Filling line has a batch in progress",
                details={"filling_line_id": line.id},
            )
        if "name" in patch:
            _ensure_unique(FillingLine, "name", patch["name"], "Filling line", exclude_id=line.id)
        if patch.get("factory_id") is not None:
            _get(Factory, patch["factory_id"], "Factory")
        for k, v in patch.items():
            setattr(line, k, v)
        return line

    return run_in_transaction(_op)


def get_filling_line(line_id: int) -> FillingLine:
    return _get(FillingLine, line_id, "Filling line")


def list_filling_lines(
    *,
    factory_id: int | None = None,
    status: str | None = None,
    include_inactive: bool = False,
) -> list[FillingLine]:
    query = db.session.query(FillingLine)
    if factory_id:
        query = query.filter(FillingLine.factory_id == factory_id)
    if status:
        query = query.filter(FillingLine.status == status.upper())
    if not include_inactive:
        query = query.filter(FillingLine.is_active.is_(True))
    return query.order_by(FillingLine.name.asc()).all()


def deactivate_filling_line(line_id: int) -> FillingLine:
    return update_filling_line(line_id, {"is_active": False})


# -----------------------------------------------------------------------------
# Trucks
# -----------------------------------------------------------------------------


def create_truck(payload: dict) -> Truck:
    patch = validate_payload(model=Truck, payload=payload, policy=TRUCK_POLICY, partial=False)
    enforce_rules_capacity(patch)
    patch["license_number"] = patch["license_number"].upper()

    def _op() -> Truck:
        _ensure_unique(Truck, "license_number", patch["license_number"], "Truck")
        truck = Truck(**patch)
        truck.status = truck.status or TruckStatus.AVAILABLE
        db.session.add(truck)
        db.session.flush()
        return truck

    return run_in_transaction(_op)


def update_truck(truck_id: int, payload: dict) -> Truck:
    patch = validate_payload(model=Truck, payload=payload, policy=TRUCK_POLICY, partial=True)
    enforce_rules_capacity(patch)
    if "license_number" in patch:
        patch["license_number"] = patch["license_number"].upper()

    def _op() -> Truck:
        truck = _get(Truck, truck_id, "Truck", for_update=True)
        if truck.status == TruckStatus.IN_TRANSIT:
            raise PreconditionFailedError(
                "Truck is out on a delivery",
                details={"truck_id": truck.id},
            )
        if "license_number" in patch:
            _ensure_unique(Truck, "license_number", patch["license_number"], "Truck", exclude_id=truck.id)
        for k, v in patch.items():
            setattr(truck, k, v)
        return truck

    return run_in_transaction(_op)


def get_truck(truck_id: int) -> Truck:
    return _get(Truck, truck_id, "Truck")


def list_trucks(*, status: str | None = None, include_inactive: bool = False) -> list[Truck]:
    query = db.session.query(Truck)
    if status:
        query = query.filter(Truck.status == status.upper())
    if not include_inactive:
        query = query.filter(Truck.is_active.is_(True))
    return query.order_by(Truck.license_number.asc()).all()


def deactivate_truck(truck_id: int) -> Truck:
    return update_truck(truck_id, {"is_active": False})


# -----------------------------------------------------------------------------
# Customers
# -----------------------------------------------------------------------------


def create_customer(payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    def _op() -> Customer:
        customer = Customer(**patch)
        customer.payment_type = customer.payment_type or PaymentType.CASH
        customer.balance_cents = 0
        db.session.add(customer)
        db.session.flush()
        return customer

    return run_in_transaction(_op)


def update_customer(customer_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)

    def _op() -> Customer:
        customer = _get(Customer, customer_id, "Customer", for_update=True)
        for k, v in patch.items():
            setattr(customer, k, v)
        return customer

    return run_in_transaction(_op)


def get_customer(customer_id: int) -> Customer:
    return _get(Customer, customer_id, "Customer")


def list_customers(
    *,
    customer_type: str | None = None,
    payment_type: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Customer], int]:
    query = db.session.query(Customer)
    if customer_type:
        query = query.filter(Customer.customer_type == customer_type.upper())
    if payment_type:
        query = query.filter(Customer.payment_type == payment_type.upper())
    if not include_inactive:
        query = query.filter(Customer.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(like),
            Customer.contact_person.ilike(like),
            Customer.contact_number.ilike(like),
        ))
    return _page(query, Customer.name.asc(), page, per_page)


def deactivate_customer(customer_id: int) -> Customer:
    return update_customer(customer_id, {"is_active": False})
