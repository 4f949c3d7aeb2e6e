# Overview: Service-layer operations for inspections; encapsulates business logic and database work.

from __future__ import annotations

from ..errors import CylinderHubError, PreconditionFailedError, ValidationError
from ..extensions import db
from ..models import Cylinder, Inspection
from ..models.cylinders import CylinderStatus
from ..models.inspections import InspectionResult
from ..time_utils import utcnow
from ..validation import optional_bool
from . import lifecycle_service, notification_service
from .concurrency import run_in_transaction
from .lifecycle_service import Trigger


REFERENCE_TYPE = "INSPECTION"

_RESULT_ALIASES = {
    "APPROVED": InspectionResult.APPROVED,
    "APPROVE": InspectionResult.APPROVED,
    "PASS": InspectionResult.APPROVED,
    "PASSED": InspectionResult.APPROVED,
    "REJECTED": InspectionResult.REJECTED,
    "REJECT": InspectionResult.REJECTED,
    "FAIL": InspectionResult.REJECTED,
    "FAILED": InspectionResult.REJECTED,
}


def _normalize_result(value) -> str:
    key = str(value or "").strip().upper()
    if key not in _RESULT_ALIASES:
        raise ValidationError("result must be APPROVED or REJECTED", field="result")
    return _RESULT_ALIASES[key]


def _normalize_readings(readings: dict | None) -> dict:
    readings = readings or {}
    if not isinstance(readings, dict):
        raise ValidationError("readings must be an object", field="readings")

    pressure = readings.get("pressure_reading")
    if pressure is not None and (isinstance(pressure, bool) or not isinstance(pressure, (int, float))):
        raise ValidationError("pressure_reading must be a number", field="pressure_reading")

    return {
        "pressure_reading": float(pressure) if pressure is not None else None,
        "visual_check": optional_bool(readings, "visual_check"),
        "valve_check": optional_bool(readings, "valve_check"),
        "notes": readings.get("notes"),
    }


def _check_reason(result: str, reason: str | None) -> str | None:
    reason = (reason or "").strip() or None
    if result == InspectionResult.REJECTED and not reason:
        raise PreconditionFailedError(
            "A rejection reason is required",
            details={"field": "rejection_reason"},
        )
    return reason if result == InspectionResult.REJECTED else None


def _inspect_locked(
    cylinder: Cylinder,
    readings: dict,
    result: str,
    reason: str | None,
    inspector_user_id: int | None,
) -> Inspection:
    if cylinder.status in (CylinderStatus.FULL, CylinderStatus.EMPTY):
        lifecycle_service.request_inspection_locked(cylinder, inspector_user_id)

    inspection = Inspection(
        cylinder_id=cylinder.id,
        inspector_user_id=inspector_user_id,
        inspected_at=utcnow(),
        pressure_reading=readings["pressure_reading"],
        visual_check=readings["visual_check"],
        valve_check=readings["valve_check"],
        result=result,
        rejection_reason=reason,
        notes=readings["notes"],
    )
    db.session.add(inspection)
    db.session.flush()

    if result == InspectionResult.APPROVED:
        target = cylinder.pre_inspection_status or CylinderStatus.FULL
        lifecycle_service.transition(
            cylinder,
            target,
            Trigger.INSPECTION_APPROVED,
            inspector_user_id,
            reference_type=REFERENCE_TYPE,
            reference_id=inspection.id,
        )
    else:
        lifecycle_service.transition(
            cylinder,
            CylinderStatus.ERROR,
            Trigger.INSPECTION_REJECTED,
            inspector_user_id,
            reference_type=REFERENCE_TYPE,
            reference_id=inspection.id,
            note=reason,
        )
        lifecycle_service.append_note(cylinder, f"Inspection rejected: {reason}")

    notification_service.queue(notification_service.INSPECTION_COMPLETED, {
        "inspection_id": inspection.id,
        "cylinder_id": cylinder.id,
        "result": result,
        "status": cylinder.status,
    })
    return inspection


def inspect(
    cylinder_id: int,
    readings: dict | None,
    result: str,
    rejection_reason: str | None = None,
    inspector_user_id: int | None = None,
) -> Inspection:
    """
    Record an inspection and apply its outcome.

    The cylinder may be waiting in INSPECTION, or be FULL/EMPTY in which case
    it passes through INSPECTION within the same transaction. APPROVED puts
    it back in its prior fill state; REJECTED sends it to ERROR.
    """
    outcome = _normalize_result(result)
    reason = _check_reason(outcome, rejection_reason)
    clean = _normalize_readings(readings)

    def _op() -> Inspection:
        cylinder = lifecycle_service.get_cylinder(cylinder_id, for_update=True)
        return _inspect_locked(cylinder, clean, outcome, reason, inspector_user_id)

    return run_in_transaction(_op)


def batch_inspect(
    cylinder_ids: list[int],
    readings: dict | None,
    result: str,
    rejection_reason: str | None = None,
    inspector_user_id: int | None = None,
) -> dict:
    """
    Apply one inspection result to many cylinders.

    Input is validated once up front. Each cylinder is then its own
    transaction; failures are reported per id and never block the others.
    """
    if not isinstance(cylinder_ids, list) or not cylinder_ids:
        raise ValidationError("cylinder_ids must be a non-empty list", field="cylinder_ids")
    outcome = _normalize_result(result)
    reason = _check_reason(outcome, rejection_reason)
    clean = _normalize_readings(readings)

    results = []
    for cylinder_id in cylinder_ids:
        def _op(cid=cylinder_id) -> Inspection:
            cylinder = lifecycle_service.get_cylinder(cid, for_update=True)
            return _inspect_locked(cylinder, clean, outcome, reason, inspector_user_id)

        try:
            inspection = run_in_transaction(_op)
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
            "inspection_id": inspection.id,
        })

    success_count = sum(1 for r in results if r["success"])
    return {
        "results": results,
        "total": len(results),
        "success_count": success_count,
        "failure_count": len(results) - success_count,
    }


def list_inspections(
    *,
    cylinder_id: int | None = None,
    result: str | None = None,
    inspector_user_id: int | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Inspection], int]:
    query = db.session.query(Inspection)
    if cylinder_id:
        query = query.filter(Inspection.cylinder_id == cylinder_id)
    if result:
        query = query.filter(Inspection.result == _normalize_result(result))
    if inspector_user_id:
        query = query.filter(Inspection.inspector_user_id == inspector_user_id)

    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)
    total = query.count()
    items = (
        query.order_by(Inspection.inspected_at.desc(), Inspection.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total


def get_cylinder_inspections(cylinder_id: int) -> list[Inspection]:
    lifecycle_service.get_cylinder(cylinder_id)
    return (
        db.session.query(Inspection)
        .filter_by(cylinder_id=cylinder_id)
        .order_by(Inspection.inspected_at.desc(), Inspection.id.desc())
        .all()
    )
