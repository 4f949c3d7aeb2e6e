# Overview: Service-layer operations for cylinder maintenance; encapsulates business logic and database work.

from __future__ import annotations

from ..errors import NotFoundError, PreconditionFailedError, ValidationError
from ..extensions import db
from ..models import Cylinder, MaintenanceRecord
from ..models.cylinders import CylinderStatus
from ..models.maintenance import MaintenanceStatus
from ..time_utils import utcnow
from ..validation import enforce_price_cents
from . import lifecycle_service
from .concurrency import lock_for_update, run_in_transaction
from .lifecycle_service import Trigger


REFERENCE_TYPE = "MAINTENANCE"


def _open_record_for(cylinder_id: int) -> MaintenanceRecord | None:
    return (
        lock_for_update(
            db.session.query(MaintenanceRecord).filter_by(
                cylinder_id=cylinder_id,
                status=MaintenanceStatus.OPEN,
            )
        )
        .order_by(MaintenanceRecord.id.desc())
        .first()
    )


def _get_record(record_id: int) -> MaintenanceRecord:
    record = lock_for_update(db.session.query(MaintenanceRecord).filter_by(id=record_id)).first()
    if not record:
        raise NotFoundError("Maintenance record not found", details={"record_id": record_id})
    if record.status != MaintenanceStatus.OPEN:
        raise PreconditionFailedError(
            "Maintenance record is already closed",
            details={"record_id": record_id, "status": record.status},
        )
    return record


def open_for_cylinder(
    cylinder: Cylinder,
    *,
    issue_description: str,
    technician_user_id: int | None = None,
    notes: str | None = None,
) -> MaintenanceRecord:
    """ERROR -> MAINTENANCE plus an OPEN record. Caller owns the transaction."""
    record = MaintenanceRecord(
        cylinder_id=cylinder.id,
        technician_user_id=technician_user_id,
        status=MaintenanceStatus.OPEN,
        issue_description=issue_description,
        opened_at=utcnow(),
        notes=notes,
    )
    db.session.add(record)
    db.session.flush()

    lifecycle_service.transition(
        cylinder,
        CylinderStatus.MAINTENANCE,
        Trigger.MAINTENANCE_OPENED,
        technician_user_id,
        reference_type=REFERENCE_TYPE,
        reference_id=record.id,
        note=issue_description,
    )
    return record


def _close(
    record: MaintenanceRecord,
    *,
    status: str,
    action_taken: str | None,
    cost_cents: int | None,
    notes: str | None,
    technician_user_id: int | None,
) -> MaintenanceRecord:
    record.status = status
    record.action_taken = action_taken
    record.cost_cents = cost_cents
    record.completed_at = utcnow()
    record.completed_by_user_id = technician_user_id
    if notes:
        record.notes = f"{record.notes}\n{notes}" if record.notes else notes
    return record


def complete_for_cylinder(
    cylinder: Cylinder,
    *,
    action_taken: str,
    technician_user_id: int | None = None,
    cost_cents: int | None = None,
    notes: str | None = None,
) -> MaintenanceRecord:
    """MAINTENANCE -> EMPTY; closes the open record (creating one if none was tracked)."""
    record = _open_record_for(cylinder.id)

    lifecycle_service.transition(
        cylinder,
        CylinderStatus.EMPTY,
        Trigger.REPAIR_COMPLETED,
        technician_user_id,
        reference_type=REFERENCE_TYPE,
        reference_id=record.id if record else None,
        note=action_taken,
    )

    if record is None:
        record = MaintenanceRecord(
            cylinder_id=cylinder.id,
            technician_user_id=technician_user_id,
            issue_description="Untracked repair",
            opened_at=utcnow(),
        )
        db.session.add(record)

    return _close(
        record,
        status=MaintenanceStatus.COMPLETED,
        action_taken=action_taken,
        cost_cents=cost_cents,
        notes=notes,
        technician_user_id=technician_user_id,
    )


def open_maintenance(
    cylinder_id: int,
    issue_description: str,
    technician_user_id: int | None = None,
    notes: str | None = None,
) -> MaintenanceRecord:
    if not issue_description or not str(issue_description).strip():
        raise ValidationError("issue_description is required", field="issue_description")

    def _op() -> MaintenanceRecord:
        cylinder = lifecycle_service.get_cylinder(cylinder_id, for_update=True)
        if _open_record_for(cylinder.id):
            raise PreconditionFailedError(
                "Cylinder already has an open maintenance record",
                details={"cylinder_id": cylinder_id},
            )
        return open_for_cylinder(
            cylinder,
            issue_description=str(issue_description).strip(),
            technician_user_id=technician_user_id,
            notes=notes,
        )

    return run_in_transaction(_op)


def complete_maintenance(
    record_id: int,
    action_taken: str,
    technician_user_id: int | None = None,
    cost_cents: int | None = None,
    notes: str | None = None,
) -> MaintenanceRecord:
    if not action_taken or not str(action_taken).strip():
        raise ValidationError("action_taken is required", field="action_taken")
    if cost_cents is not None:
        enforce_price_cents(cost_cents, "cost_cents")

    def _op() -> MaintenanceRecord:
        record = _get_record(record_id)
        cylinder = lifecycle_service.get_cylinder(record.cylinder_id, for_update=True)

        lifecycle_service.transition(
            cylinder,
            CylinderStatus.EMPTY,
            Trigger.REPAIR_COMPLETED,
            technician_user_id,
            reference_type=REFERENCE_TYPE,
            reference_id=record.id,
            note=action_taken,
        )
        return _close(
            record,
            status=MaintenanceStatus.COMPLETED,
            action_taken=str(action_taken).strip(),
            cost_cents=cost_cents,
            notes=notes,
            technician_user_id=technician_user_id,
        )

    return run_in_transaction(_op)


def mark_unrepairable(
    record_id: int,
    notes: str | None = None,
    technician_user_id: int | None = None,
) -> MaintenanceRecord:
    """MAINTENANCE -> ERROR and retire the cylinder for good."""
    def _op() -> MaintenanceRecord:
        record = _get_record(record_id)
        cylinder = lifecycle_service.get_cylinder(record.cylinder_id, for_update=True)

        lifecycle_service.transition(
            cylinder,
            CylinderStatus.ERROR,
            Trigger.UNREPAIRABLE,
            technician_user_id,
            reference_type=REFERENCE_TYPE,
            reference_id=record.id,
            note=notes,
        )
        cylinder.is_active = False
        lifecycle_service.append_note(
            cylinder,
            f"Marked as unrepairable: {notes or 'no details'}",
        )
        return _close(
            record,
            status=MaintenanceStatus.UNREPAIRABLE,
            action_taken=None,
            cost_cents=None,
            notes=notes,
            technician_user_id=technician_user_id,
        )

    return run_in_transaction(_op)


def get_record(record_id: int) -> MaintenanceRecord:
    record = db.session.query(MaintenanceRecord).filter_by(id=record_id).first()
    if not record:
        raise NotFoundError("Maintenance record not found", details={"record_id": record_id})
    return record


def list_maintenance(
    *,
    cylinder_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[MaintenanceRecord], int]:
    query = db.session.query(MaintenanceRecord)
    if cylinder_id:
        query = query.filter(MaintenanceRecord.cylinder_id == cylinder_id)
    if status:
        query = query.filter(MaintenanceRecord.status == status.upper())

    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)
    total = query.count()
    items = (
        query.order_by(MaintenanceRecord.opened_at.desc(), MaintenanceRecord.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total
