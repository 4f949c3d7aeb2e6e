# Overview: Service-layer operations for the cylinder lifecycle; the only writer of Cylinder.status.

"""
Cylinder Lifecycle Engine

================================================================================
PURPOSE: Every status change of every cylinder goes through transition()
================================================================================

STATE MACHINE (trigger in brackets):

    (new)       -> EMPTY        [intake]
    EMPTY       -> FILLING      [batch_add]
    FILLING     -> FULL         [fill_success]
    FILLING     -> ERROR        [fill_failure]
    FULL/EMPTY  -> INSPECTION   [inspection_requested]
    INSPECTION  -> FULL/EMPTY   [inspection_approved]   (restores prior fill state)
    INSPECTION  -> ERROR        [inspection_rejected]
    FULL        -> RESERVED     [sale_created]
    RESERVED    -> IN_TRANSIT   [delivery_dispatched]
    RESERVED    -> AT_CUSTOMER  [delivery_completed]    (pickup)
    IN_TRANSIT  -> AT_CUSTOMER  [delivery_completed]
    RESERVED/IN_TRANSIT -> FULL [sale_cancelled]
    AT_CUSTOMER -> EMPTY        [returned_empty]
    ERROR       -> MAINTENANCE  [maintenance_opened]
    MAINTENANCE -> EMPTY        [repair_completed]
    MAINTENANCE -> ERROR        [unrepairable]

RULES:
1. transition() is the single writer of Cylinder.status. Workflows call it;
   nothing else assigns the column.
2. Anything not in the table raises InvalidTransitionError and leaves the
   cylinder untouched.
3. The holder (location / customer / truck) is updated in the same call so
   it can never disagree with the status.
4. Each transition appends a CylinderEvent in the caller's transaction.
5. Inactive (retired) cylinders never transition.

================================================================================
"""

from __future__ import annotations

import hashlib
import re

from flask import current_app
from sqlalchemy import or_

from ..errors import (
    CylinderHubError,
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    Cylinder,
    CylinderEvent,
    Factory,
    FillingDetail,
    Inspection,
    MaintenanceRecord,
    SaleItem,
)
from ..models.cylinders import CylinderLocation, CylinderStatus, CylinderType
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_cylinder, validate_payload
from . import notification_service
from .concurrency import lock_for_update, run_in_transaction


S = CylinderStatus


class Trigger:
    INTAKE = "intake"
    BATCH_ADD = "batch_add"
    FILL_SUCCESS = "fill_success"
    FILL_FAILURE = "fill_failure"
    INSPECTION_REQUESTED = "inspection_requested"
    INSPECTION_APPROVED = "inspection_approved"
    INSPECTION_REJECTED = "inspection_rejected"
    SALE_CREATED = "sale_created"
    DELIVERY_DISPATCHED = "delivery_dispatched"
    DELIVERY_COMPLETED = "delivery_completed"
    SALE_CANCELLED = "sale_cancelled"
    RETURNED_EMPTY = "returned_empty"
    MAINTENANCE_OPENED = "maintenance_opened"
    REPAIR_COMPLETED = "repair_completed"
    UNREPAIRABLE = "unrepairable"


TRANSITIONS: dict[tuple[str | None, str], frozenset[str]] = {
    (None, S.EMPTY): frozenset({Trigger.INTAKE}),
    (S.EMPTY, S.FILLING): frozenset({Trigger.BATCH_ADD}),
    (S.FILLING, S.FULL): frozenset({Trigger.FILL_SUCCESS}),
    (S.FILLING, S.ERROR): frozenset({Trigger.FILL_FAILURE}),
    (S.FULL, S.INSPECTION): frozenset({Trigger.INSPECTION_REQUESTED}),
    (S.EMPTY, S.INSPECTION): frozenset({Trigger.INSPECTION_REQUESTED}),
    (S.INSPECTION, S.FULL): frozenset({Trigger.INSPECTION_APPROVED}),
    (S.INSPECTION, S.EMPTY): frozenset({Trigger.INSPECTION_APPROVED}),
    (S.INSPECTION, S.ERROR): frozenset({Trigger.INSPECTION_REJECTED}),
    (S.FULL, S.RESERVED): frozenset({Trigger.SALE_CREATED}),
    (S.RESERVED, S.IN_TRANSIT): frozenset({Trigger.DELIVERY_DISPATCHED}),
    (S.RESERVED, S.AT_CUSTOMER): frozenset({Trigger.DELIVERY_COMPLETED}),
    (S.IN_TRANSIT, S.AT_CUSTOMER): frozenset({Trigger.DELIVERY_COMPLETED}),
    (S.RESERVED, S.FULL): frozenset({Trigger.SALE_CANCELLED}),
    (S.IN_TRANSIT, S.FULL): frozenset({Trigger.SALE_CANCELLED}),
    (S.AT_CUSTOMER, S.EMPTY): frozenset({Trigger.RETURNED_EMPTY}),
    (S.ERROR, S.MAINTENANCE): frozenset({Trigger.MAINTENANCE_OPENED}),
    (S.MAINTENANCE, S.EMPTY): frozenset({Trigger.REPAIR_COMPLETED}),
    (S.MAINTENANCE, S.ERROR): frozenset({Trigger.UNREPAIRABLE}),
}

# Legacy and client spellings that do not normalize by case alone
STATUS_ALIASES = {
    "IN_MAINTENANCE": S.MAINTENANCE,
    "FILLED": S.FULL,
    "SCRAPPED": S.ERROR,
    "IN_DELIVERY": S.IN_TRANSIT,
}

# Targets a user may set directly through batch_update_status
MANUAL_TARGETS = (S.INSPECTION, S.MAINTENANCE, S.EMPTY)

# Statuses in which a cylinder sits idle at the factory
DEACTIVATABLE_STATUSES = (S.EMPTY, S.FULL, S.ERROR, S.MAINTENANCE)


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_status(value) -> str:
    """
    Map any accepted spelling of a status to its canonical form.

    Accepts canonical names, lowercase, CamelCase ("InTransit"), and the
    legacy aliases in STATUS_ALIASES. Raises ValidationError otherwise.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("status is required", field="status")

    raw = value.strip()
    key = _CAMEL_BOUNDARY.sub("_", raw).replace("-", "_").replace(" ", "_").upper()
    key = STATUS_ALIASES.get(key, key)
    if key not in S.ALL:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: {', '.join(S.ALL)}",
            field="status",
        )
    return key


def can_transition(from_status: str | None, to_status: str, trigger: str | None = None) -> bool:
    """
    True when (from_status -> to_status) is an edge of the lifecycle table,
    and, when trigger is given, that trigger is allowed on the edge.
    """
    triggers = TRANSITIONS.get((from_status, to_status))
    if not triggers:
        return False
    return trigger is None or trigger in triggers


def make_qr_code(serial_number: str) -> str:
    """Deterministic QR payload for a serial number."""
    digest = hashlib.sha256(serial_number.encode("utf-8")).hexdigest()
    return f"CYL-{digest[:16].upper()}"


def transition(
    cylinder: Cylinder,
    to_status: str,
    trigger: str,
    actor_user_id: int | None = None,
    *,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
    customer_id: int | None = None,
    truck_id: int | None = None,
) -> CylinderEvent:
    """
    Move a cylinder along one edge of the lifecycle table.

    Must run inside the caller's transaction (the cylinder should already be
    locked). Nothing is mutated unless every check passes.

    Raises:
        PreconditionFailedError: cylinder retired, or holder info missing
        InvalidTransitionError: not an edge of the table for this trigger
    """
    target = normalize_status(to_status)
    current = cylinder.status

    if cylinder.is_active is False:
        raise PreconditionFailedError(
            "Cylinder is inactive",
            details={"cylinder_id": cylinder.id},
        )

    if not can_transition(current, target, trigger):
        raise InvalidTransitionError(
            current,
            target,
            details={"cylinder_id": cylinder.id, "trigger": trigger},
        )

    if target == S.AT_CUSTOMER and customer_id is None:
        raise PreconditionFailedError(
            "A customer is required to hand over a cylinder",
            details={"cylinder_id": cylinder.id},
        )
    if target == S.IN_TRANSIT and truck_id is None:
        raise PreconditionFailedError(
            "A truck is required to move a cylinder in transit",
            details={"cylinder_id": cylinder.id},
        )

    now = utcnow()

    if target == S.AT_CUSTOMER:
        cylinder.location = CylinderLocation.CUSTOMER
        cylinder.current_customer_id = customer_id
        cylinder.current_truck_id = None
    elif target == S.IN_TRANSIT:
        cylinder.location = CylinderLocation.IN_TRANSIT
        cylinder.current_truck_id = truck_id
        cylinder.current_customer_id = None
    else:
        cylinder.location = CylinderLocation.FACTORY
        cylinder.current_customer_id = None
        cylinder.current_truck_id = None

    if target == S.INSPECTION:
        cylinder.pre_inspection_status = current
    elif current == S.INSPECTION:
        cylinder.pre_inspection_status = None
        cylinder.last_inspected_at = now

    if trigger == Trigger.FILL_SUCCESS:
        cylinder.last_filled_at = now

    cylinder.status = target

    event = CylinderEvent(
        cylinder=cylinder,
        from_status=current,
        to_status=target,
        trigger=trigger,
        actor_user_id=actor_user_id,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
        occurred_at=now,
    )
    db.session.add(event)

    current_app.logger.info(
        "Cylinder %s: %s -> %s (%s)",
        cylinder.serial_number,
        current or "NEW",
        target,
        trigger,
    )

    if current is not None:
        notification_service.queue(notification_service.CYLINDER_STATUS_UPDATED, {
            "id": cylinder.id,
            "serial_number": cylinder.serial_number,
            "previous_status": current,
            "status": target,
            "trigger": trigger,
            "notes": note,
        })
    return event


def append_note(cylinder: Cylinder, note: str) -> None:
    stamp = utcnow().strftime("%Y-%m-%d %H:%M")
    line = f"[{stamp}] {note}"
    cylinder.notes = f"{cylinder.notes}\n{line}" if cylinder.notes else line


# -----------------------------------------------------------------------------
# Lookups
# -----------------------------------------------------------------------------


def get_cylinder(cylinder_id: int, *, for_update: bool = False) -> Cylinder:
    query = db.session.query(Cylinder).filter_by(id=cylinder_id)
    if for_update:
        query = lock_for_update(query)
    cylinder = query.first()
    if not cylinder:
        raise NotFoundError("Cylinder not found", details={"cylinder_id": cylinder_id})
    return cylinder


def get_cylinder_by_qr(qr_code: str) -> Cylinder:
    cylinder = db.session.query(Cylinder).filter_by(qr_code=(qr_code or "").strip()).first()
    if not cylinder:
        raise NotFoundError("Cylinder not found", details={"qr_code": qr_code})
    return cylinder


def list_cylinders(
    *,
    status: str | None = None,
    factory_id: int | None = None,
    cylinder_type: str | None = None,
    search: str | None = None,
    is_active: bool | None = True,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Cylinder], int]:
    query = db.session.query(Cylinder)

    if status:
        query = query.filter(Cylinder.status == normalize_status(status))
    if factory_id:
        query = query.filter(Cylinder.factory_id == factory_id)
    if cylinder_type:
        query = query.filter(Cylinder.cylinder_type == cylinder_type.upper())
    if is_active is not None:
        query = query.filter(Cylinder.is_active.is_(is_active))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Cylinder.serial_number.ilike(like),
            Cylinder.qr_code.ilike(like),
            Cylinder.original_number.ilike(like),
        ))

    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)

    total = query.count()
    items = (
        query.order_by(Cylinder.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total


def get_history(cylinder_id: int) -> list[CylinderEvent]:
    get_cylinder(cylinder_id)
    return (
        db.session.query(CylinderEvent)
        .filter_by(cylinder_id=cylinder_id)
        .order_by(CylinderEvent.id.asc())
        .all()
    )


# -----------------------------------------------------------------------------
# Intake and attribute edits
# -----------------------------------------------------------------------------


_ATTRIBUTE_FIELDS = {
    "size_litres",
    "cylinder_type",
    "gas_type",
    "working_pressure",
    "design_pressure",
    "original_number",
    "production_date",
    "import_date",
    "factory_id",
    "notes",
}

INTAKE_POLICY = ModelValidationPolicy(
    writable_fields=_ATTRIBUTE_FIELDS | {"serial_number"},
    required_on_create={
        "serial_number",
        "size_litres",
        "working_pressure",
        "design_pressure",
        "factory_id",
    },
    choices={"cylinder_type": CylinderType.ALL},
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=_ATTRIBUTE_FIELDS,
    choices={"cylinder_type": CylinderType.ALL},
)

_IMMUTABLE_FIELDS = ("serial_number", "qr_code", "status")


def _require_factory(factory_id: int) -> Factory:
    factory = db.session.query(Factory).filter_by(id=factory_id).first()
    if not factory:
        raise NotFoundError("Factory not found", details={"factory_id": factory_id})
    if not factory.is_active:
        raise PreconditionFailedError("Factory is inactive", details={"factory_id": factory_id})
    return factory


def intake_cylinder(payload: dict, actor_user_id: int | None = None) -> Cylinder:
    """
    Register a new cylinder in EMPTY at the factory.

    The QR code is derived from the serial number. A serial that already
    exists (active or retired) is a DuplicateKeyError and nothing is created.
    """
    patch = validate_payload(model=Cylinder, payload=payload, policy=INTAKE_POLICY, partial=False)
    enforce_rules_cylinder(patch)

    def _op() -> Cylinder:
        _require_factory(patch["factory_id"])

        serial = patch["serial_number"]
        if db.session.query(Cylinder.id).filter_by(serial_number=serial).first():
            raise DuplicateKeyError(
                "Serial number already exists",
                details={"serial_number": serial},
            )

        qr_code = make_qr_code(serial)
        if db.session.query(Cylinder.id).filter_by(qr_code=qr_code).first():
            raise DuplicateKeyError("QR code already exists", details={"qr_code": qr_code})

        cylinder = Cylinder(
            **patch,
            qr_code=qr_code,
            status=None,
            is_active=True,
        )
        cylinder.cylinder_type = cylinder.cylinder_type or CylinderType.INDUSTRIAL
        db.session.add(cylinder)

        transition(cylinder, S.EMPTY, Trigger.INTAKE, actor_user_id)
        db.session.flush()

        notification_service.queue(notification_service.CYLINDER_CREATED, cylinder.to_dict())
        return cylinder

    return run_in_transaction(_op)


def update_cylinder(cylinder_id: int, payload: dict) -> Cylinder:
    """Edit non-lifecycle attributes. Identity and status are not writable here."""
    if isinstance(payload, dict):
        for key in _IMMUTABLE_FIELDS:
            if key in payload:
                raise ValidationError(f"{key} cannot be changed", field=key)

    patch = validate_payload(model=Cylinder, payload=payload, policy=UPDATE_POLICY, partial=True)

    def _op() -> Cylinder:
        cylinder = get_cylinder(cylinder_id, for_update=True)
        enforce_rules_cylinder(patch, existing=cylinder)
        if "factory_id" in patch:
            _require_factory(patch["factory_id"])

        for key, value in patch.items():
            setattr(cylinder, key, value)
        db.session.flush()

        notification_service.queue(notification_service.CYLINDER_UPDATED, cylinder.to_dict())
        return cylinder

    return run_in_transaction(_op)


# -----------------------------------------------------------------------------
# Manual lifecycle operations
# -----------------------------------------------------------------------------


def request_inspection_locked(cylinder: Cylinder, actor_user_id: int | None, note: str | None = None) -> None:
    transition(cylinder, S.INSPECTION, Trigger.INSPECTION_REQUESTED, actor_user_id, note=note)


def request_inspection(cylinder_id: int, actor_user_id: int | None = None, note: str | None = None) -> Cylinder:
    def _op() -> Cylinder:
        cylinder = get_cylinder(cylinder_id, for_update=True)
        request_inspection_locked(cylinder, actor_user_id, note)
        return cylinder

    return run_in_transaction(_op)


def _has_history(cylinder: Cylinder) -> bool:
    checks = (
        db.session.query(FillingDetail.id).filter_by(cylinder_id=cylinder.id),
        db.session.query(Inspection.id).filter_by(cylinder_id=cylinder.id),
        db.session.query(SaleItem.id).filter_by(cylinder_id=cylinder.id),
        db.session.query(MaintenanceRecord.id).filter_by(cylinder_id=cylinder.id),
        db.session.query(CylinderEvent.id).filter(
            CylinderEvent.cylinder_id == cylinder.id,
            CylinderEvent.trigger != Trigger.INTAKE,
        ),
    )
    return any(q.first() is not None for q in checks)


def deactivate_cylinder(cylinder_id: int, actor_user_id: int | None = None) -> dict:
    """
    Retire a cylinder.

    Soft delete (is_active = False) once any fill, inspection, sale,
    maintenance or status history references it; hard delete otherwise.
    Only allowed while the cylinder sits at the factory outside a workflow.
    """
    def _op() -> dict:
        cylinder = get_cylinder(cylinder_id, for_update=True)

        if not cylinder.is_active:
            raise PreconditionFailedError(
                "Cylinder is already inactive",
                details={"cylinder_id": cylinder_id},
            )
        if cylinder.status not in DEACTIVATABLE_STATUSES:
            raise PreconditionFailedError(
                f"Cannot deactivate a cylinder in {cylinder.status}",
                details={
                    "cylinder_id": cylinder_id,
                    "status": cylinder.status,
                    "allowed_statuses": list(DEACTIVATABLE_STATUSES),
                },
            )

        if _has_history(cylinder):
            cylinder.is_active = False
            append_note(cylinder, f"Deactivated by user {actor_user_id}")
            mode = "SOFT"
        else:
            db.session.query(CylinderEvent).filter_by(cylinder_id=cylinder.id).delete()
            db.session.delete(cylinder)
            mode = "HARD"

        notification_service.queue(notification_service.CYLINDER_DELETED, {
            "id": cylinder_id,
            "mode": mode,
        })
        return {"id": cylinder_id, "mode": mode}

    return run_in_transaction(_op)


def _apply_manual_target(cylinder: Cylinder, target: str, actor_user_id: int | None, note: str | None) -> None:
    # Local import: maintenance_service builds on this module.
    from . import maintenance_service

    if target == S.INSPECTION:
        request_inspection_locked(cylinder, actor_user_id, note)
    elif target == S.MAINTENANCE:
        maintenance_service.open_for_cylinder(
            cylinder,
            issue_description=note or "Sent to maintenance by status update",
            technician_user_id=actor_user_id,
        )
    else:
        maintenance_service.complete_for_cylinder(
            cylinder,
            action_taken=note or "Returned to service by status update",
            technician_user_id=actor_user_id,
        )


def batch_update_status(
    cylinder_ids: list[int],
    target_status: str,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> dict:
    """
    Apply a manual status change to many cylinders.

    Only INSPECTION, MAINTENANCE and EMPTY (from MAINTENANCE) are manual
    targets; everything else belongs to a workflow. Each cylinder is its own
    transaction: invalid ones are skipped and reported, valid ones commit.
    """
    target = normalize_status(target_status)
    if target not in MANUAL_TARGETS:
        raise ValidationError(
            f"{target} cannot be set manually. Allowed: {', '.join(MANUAL_TARGETS)}",
            field="status",
        )
    if not cylinder_ids:
        raise ValidationError("cylinder_ids must be a non-empty list", field="cylinder_ids")

    results = []
    for cylinder_id in cylinder_ids:
        def _op(cid=cylinder_id) -> Cylinder:
            cylinder = get_cylinder(cid, for_update=True)
            _apply_manual_target(cylinder, target, actor_user_id, note)
            return cylinder

        try:
            cylinder = run_in_transaction(_op)
        except CylinderHubError as exc:
            results.append({
                "cylinder_id": cylinder_id,
                "success": False,
                "error": exc.message,
                "code": exc.code,
            })
            continue
        results.append({
            "cylinder_id": cylinder_id,
            "success": True,
            "status": cylinder.status,
        })

    success_count = sum(1 for r in results if r["success"])
    return {
        "results": results,
        "total": len(results),
        "success_count": success_count,
        "failure_count": len(results) - success_count,
    }
