# Overview: Service-layer operations for filling batches; encapsulates business logic and database work.

"""
Filling workflow.

A batch runs on one line at a time:

    start_batch      line IDLE -> ACTIVE, every cylinder EMPTY -> FILLING
    record_outcome   one cylinder FILLING -> FULL (success) or ERROR (failed)
    end_batch        leftovers FILLING -> ERROR, line -> IDLE

When the last pending cylinder gets an outcome the batch completes by
itself and the line goes back to IDLE.
"""

from __future__ import annotations

from flask import current_app

from ..errors import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from ..extensions import db
from ..models import Cylinder, FillingBatch, FillingDetail, FillingLine
from ..models.cylinders import CylinderStatus
from ..models.filling import BatchStatus, FillOutcome, LineStatus
from ..time_utils import utcnow
from . import lifecycle_service, notification_service
from .concurrency import lock_for_update, run_in_transaction
from .lifecycle_service import Trigger


REFERENCE_TYPE = "FILLING_BATCH"
UNPROCESSED_NOTE = "Batch ended before processing"

_OUTCOME_ALIASES = {
    "SUCCESS": FillOutcome.SUCCESS,
    "SUCCEEDED": FillOutcome.SUCCESS,
    "FILLED": FillOutcome.SUCCESS,
    "FAILED": FillOutcome.FAILED,
    "FAILURE": FillOutcome.FAILED,
}


def _normalize_outcome(value) -> str:
    key = str(value or "").strip().upper()
    if key not in _OUTCOME_ALIASES:
        raise ValidationError("outcome must be SUCCESS or FAILED", field="outcome")
    return _OUTCOME_ALIASES[key]


def _normalize_entries(cylinders) -> list[dict]:
    """Accept [id, ...] or [{cylinder_id, initial_pressure?}, ...]."""
    if not isinstance(cylinders, list) or not cylinders:
        raise ValidationError("At least one cylinder is required", field="cylinders")

    entries = []
    for item in cylinders:
        if isinstance(item, dict):
            cylinder_id = item.get("cylinder_id")
            pressure = item.get("initial_pressure")
        else:
            cylinder_id, pressure = item, None

        if isinstance(cylinder_id, bool) or not isinstance(cylinder_id, int):
            raise ValidationError("cylinder_id must be an integer", field="cylinders")
        if pressure is not None and (isinstance(pressure, bool) or not isinstance(pressure, (int, float))):
            raise ValidationError("initial_pressure must be a number", field="cylinders")
        entries.append({"cylinder_id": cylinder_id, "initial_pressure": pressure})

    ids = [e["cylinder_id"] for e in entries]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(
            "Duplicate cylinders in batch",
            details={"duplicate_ids": duplicates},
            field="cylinders",
        )
    return entries


def _get_line(line_id: int) -> FillingLine:
    line = lock_for_update(db.session.query(FillingLine).filter_by(id=line_id)).first()
    if not line:
        raise NotFoundError("Filling line not found", details={"filling_line_id": line_id})
    return line


def _get_batch(batch_id: int, *, for_update: bool = False) -> FillingBatch:
    query = db.session.query(FillingBatch).filter_by(id=batch_id)
    if for_update:
        query = lock_for_update(query)
    batch = query.first()
    if not batch:
        raise NotFoundError("Filling batch not found", details={"batch_id": batch_id})
    return batch


def start_batch(
    line_id: int,
    cylinders,
    operator_user_id: int | None = None,
    notes: str | None = None,
) -> FillingBatch:
    """
    Open a batch on an idle line and put every listed cylinder into FILLING.

    Raises:
        ValidationError: empty list or duplicate cylinder ids
        NotFoundError: line or cylinder missing
        PreconditionFailedError: line inactive/busy, cylinder type mismatch
        CapacityExceededError: more cylinders than the line holds
        InvalidTransitionError: a cylinder is not EMPTY
    Nothing is written unless every cylinder qualifies.
    """
    entries = _normalize_entries(cylinders)

    def _op() -> FillingBatch:
        line = _get_line(line_id)
        if not line.is_active:
            raise PreconditionFailedError("Filling line is inactive", details={"filling_line_id": line_id})
        if line.status != LineStatus.IDLE:
            raise PreconditionFailedError(
                f"Filling line is {line.status}",
                details={"filling_line_id": line_id, "line_status": line.status},
            )
        if len(entries) > line.capacity:
            raise CapacityExceededError(
                f"Line capacity is {line.capacity}, got {len(entries)} cylinders",
                details={"capacity": line.capacity, "requested": len(entries)},
            )

        locked: list[Cylinder] = []
        for entry in entries:
            cylinder = lifecycle_service.get_cylinder(entry["cylinder_id"], for_update=True)
            if not cylinder.is_active:
                raise PreconditionFailedError("Cylinder is inactive", details={"cylinder_id": cylinder.id})
            if cylinder.status != CylinderStatus.EMPTY:
                raise InvalidTransitionError(
                    cylinder.status,
                    CylinderStatus.FILLING,
                    message=f"Cylinder {cylinder.serial_number} is not EMPTY",
                    details={"cylinder_id": cylinder.id},
                )
            if cylinder.cylinder_type != line.cylinder_type:
                raise PreconditionFailedError(
                    f"Cylinder {cylinder.serial_number} is {cylinder.cylinder_type}, line fills {line.cylinder_type}",
                    details={"cylinder_id": cylinder.id},
                )
            locked.append(cylinder)

        batch = FillingBatch(
            filling_line_id=line.id,
            status=BatchStatus.IN_PROGRESS,
            started_at=utcnow(),
            started_by_user_id=operator_user_id,
            notes=notes,
        )
        db.session.add(batch)
        db.session.flush()

        for entry, cylinder in zip(entries, locked):
            db.session.add(FillingDetail(
                filling_batch_id=batch.id,
                cylinder_id=cylinder.id,
                initial_pressure=entry["initial_pressure"],
                outcome=FillOutcome.PENDING,
            ))
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.FILLING,
                Trigger.BATCH_ADD,
                operator_user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=batch.id,
            )

        line.status = LineStatus.ACTIVE
        db.session.flush()

        notification_service.queue(notification_service.FILLING_STARTED, {
            "batch_id": batch.id,
            "filling_line_id": line.id,
            "cylinder_ids": [c.id for c in locked],
        })
        return batch

    batch = run_in_transaction(_op)
    current_app.logger.info("Filling batch %s started on line %s", batch.id, line_id)
    return batch


def _complete_batch(batch: FillingBatch, operator_user_id: int | None) -> None:
    batch.status = BatchStatus.COMPLETED
    batch.ended_at = utcnow()
    batch.ended_by_user_id = operator_user_id

    line = _get_line(batch.filling_line_id)
    line.status = LineStatus.IDLE

    notification_service.queue(notification_service.FILLING_COMPLETED, {
        "batch_id": batch.id,
        "filling_line_id": line.id,
        "counts": batch.outcome_counts(),
    })


def record_outcome(
    batch_id: int,
    cylinder_id: int,
    outcome: str,
    final_pressure: float | None = None,
    operator_user_id: int | None = None,
    notes: str | None = None,
) -> FillingDetail:
    """Record one cylinder's fill result and move it to FULL or ERROR."""
    result = _normalize_outcome(outcome)
    if final_pressure is not None and (isinstance(final_pressure, bool) or not isinstance(final_pressure, (int, float))):
        raise ValidationError("final_pressure must be a number", field="final_pressure")

    def _op() -> FillingDetail:
        batch = _get_batch(batch_id, for_update=True)
        if batch.status != BatchStatus.IN_PROGRESS:
            raise PreconditionFailedError(
                "Filling batch is not in progress",
                details={"batch_id": batch_id, "batch_status": batch.status},
            )

        detail = (
            lock_for_update(db.session.query(FillingDetail).filter_by(
                filling_batch_id=batch.id,
                cylinder_id=cylinder_id,
            ))
            .first()
        )
        if not detail:
            raise NotFoundError(
                "Cylinder is not part of this batch",
                details={"batch_id": batch_id, "cylinder_id": cylinder_id},
            )
        if detail.outcome != FillOutcome.PENDING:
            raise PreconditionFailedError(
                "Outcome already recorded for this cylinder",
                details={"batch_id": batch_id, "cylinder_id": cylinder_id, "outcome": detail.outcome},
            )

        cylinder = lifecycle_service.get_cylinder(cylinder_id, for_update=True)
        if result == FillOutcome.SUCCESS:
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.FULL,
                Trigger.FILL_SUCCESS,
                operator_user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=batch.id,
                note=notes,
            )
        else:
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.ERROR,
                Trigger.FILL_FAILURE,
                operator_user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=batch.id,
                note=notes,
            )

        detail.outcome = result
        detail.final_pressure = final_pressure
        detail.filled_at = utcnow()
        detail.filled_by_user_id = operator_user_id
        detail.notes = notes
        db.session.flush()

        if all(d.outcome in FillOutcome.TERMINAL for d in batch.details):
            _complete_batch(batch, operator_user_id)
        return detail

    return run_in_transaction(_op)


def end_batch(
    batch_id: int,
    operator_user_id: int | None = None,
    notes: str | None = None,
) -> FillingBatch:
    """
    Close a batch. Cylinders still pending are marked FAILED and go to
    ERROR; cylinders that already have an outcome are left alone.

    Ending a batch that is already COMPLETED returns it unchanged.
    """
    def _op() -> FillingBatch:
        batch = _get_batch(batch_id, for_update=True)
        if batch.status == BatchStatus.COMPLETED:
            return batch

        now = utcnow()
        for detail in batch.details:
            if detail.outcome != FillOutcome.PENDING:
                continue
            cylinder = lifecycle_service.get_cylinder(detail.cylinder_id, for_update=True)
            lifecycle_service.transition(
                cylinder,
                CylinderStatus.ERROR,
                Trigger.FILL_FAILURE,
                operator_user_id,
                reference_type=REFERENCE_TYPE,
                reference_id=batch.id,
                note=UNPROCESSED_NOTE,
            )
            detail.outcome = FillOutcome.FAILED
            detail.filled_at = now
            detail.filled_by_user_id = operator_user_id
            detail.notes = UNPROCESSED_NOTE

        if notes:
            batch.notes = f"{batch.notes}\n{notes}" if batch.notes else notes
        _complete_batch(batch, operator_user_id)
        return batch

    return run_in_transaction(_op)


def get_batch(batch_id: int) -> FillingBatch:
    return _get_batch(batch_id)


def list_batches(
    *,
    line_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[FillingBatch], int]:
    query = db.session.query(FillingBatch)
    if line_id:
        query = query.filter(FillingBatch.filling_line_id == line_id)
    if status:
        query = query.filter(FillingBatch.status == status.upper())

    page = max(page, 1)
    per_page = min(max(per_page, 1), 200)
    total = query.count()
    items = (
        query.order_by(FillingBatch.started_at.desc(), FillingBatch.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total
