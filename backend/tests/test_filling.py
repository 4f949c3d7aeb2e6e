"""
Filling workflow tests.

Verifies:
- start_batch is all-or-nothing (capacity, duplicates, status, type, busy line)
- record_outcome drives FILLING -> FULL / ERROR exactly once per cylinder
- The batch completes by itself once every cylinder has an outcome
- end_batch fails exactly the pending cylinders and frees the line
"""

import pytest

from cylinderhub.errors import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from cylinderhub.extensions import db
from cylinderhub.models import FillingBatch, FillingDetail
from cylinderhub.models.cylinders import CylinderStatus as S
from cylinderhub.models.filling import BatchStatus, FillOutcome, LineStatus
from cylinderhub.services import filling_service, lifecycle_service, registry_service


def _status(cylinder_id):
    return lifecycle_service.get_cylinder(cylinder_id).status


class TestStartBatch:

    def test_start_puts_cylinders_in_filling(self, line, make_cylinder, recent_events):
        cylinders = [make_cylinder() for _ in range(3)]

        batch = filling_service.start_batch(
            line.id,
            [{"cylinder_id": c.id, "initial_pressure": 0.5} for c in cylinders],
            notes="morning shift",
        )

        assert batch.status == BatchStatus.IN_PROGRESS
        assert registry_service.get_filling_line(line.id).status == LineStatus.ACTIVE
        assert batch.outcome_counts() == {"total": 3, "pending": 3, "success": 0, "failed": 0}
        assert all(d.initial_pressure == 0.5 for d in batch.details)
        assert all(_status(c.id) == S.FILLING for c in cylinders)
        assert "filling_started" in recent_events()

    def test_capacity_exceeded_creates_nothing(self, factory, make_cylinder):
        small = registry_service.create_filling_line({
            "name": "Small Line",
            "factory_id": factory.id,
            "capacity": 2,
            "cylinder_type": "INDUSTRIAL",
        })
        cylinders = [make_cylinder() for _ in range(3)]

        with pytest.raises(CapacityExceededError):
            filling_service.start_batch(small.id, [c.id for c in cylinders])

        assert db.session.query(FillingBatch).count() == 0
        assert db.session.query(FillingDetail).count() == 0
        assert registry_service.get_filling_line(small.id).status == LineStatus.IDLE
        assert all(_status(c.id) == S.EMPTY for c in cylinders)

    def test_duplicate_ids_rejected(self, line, make_cylinder):
        cylinder = make_cylinder()
        with pytest.raises(ValidationError):
            filling_service.start_batch(line.id, [cylinder.id, cylinder.id])

    def test_empty_list_rejected(self, line):
        with pytest.raises(ValidationError):
            filling_service.start_batch(line.id, [])

    def test_non_empty_cylinder_aborts_whole_batch(self, line, make_cylinder, full_cylinder):
        ok = make_cylinder()
        already_full = full_cylinder()

        with pytest.raises(InvalidTransitionError):
            filling_service.start_batch(line.id, [ok.id, already_full.id])

        assert _status(ok.id) == S.EMPTY
        assert registry_service.get_filling_line(line.id).status == LineStatus.IDLE
        # Only the batch that filled already_full exists
        assert db.session.query(FillingBatch).count() == 1

    def test_cylinder_type_must_match_line(self, line, make_cylinder):
        medical = make_cylinder(cylinder_type="MEDICAL")
        with pytest.raises(PreconditionFailedError):
            filling_service.start_batch(line.id, [medical.id])
        assert _status(medical.id) == S.EMPTY

    def test_busy_line_rejected(self, line, make_cylinder):
        filling_service.start_batch(line.id, [make_cylinder().id])
        with pytest.raises(PreconditionFailedError):
            filling_service.start_batch(line.id, [make_cylinder().id])

    def test_line_in_maintenance_rejected(self, line, make_cylinder):
        registry_service.update_filling_line(line.id, {"status": "MAINTENANCE"})
        with pytest.raises(PreconditionFailedError):
            filling_service.start_batch(line.id, [make_cylinder().id])

    def test_unknown_line(self, make_cylinder):
        with pytest.raises(NotFoundError):
            filling_service.start_batch(999999, [make_cylinder().id])


class TestRecordOutcome:

    def test_success_fills_cylinder(self, line, make_cylinder):
        cylinder = make_cylinder()
        batch = filling_service.start_batch(line.id, [cylinder.id])

        detail = filling_service.record_outcome(batch.id, cylinder.id, "SUCCESS", final_pressure=200)

        assert detail.outcome == FillOutcome.SUCCESS
        assert detail.final_pressure == 200
        reloaded = lifecycle_service.get_cylinder(cylinder.id)
        assert reloaded.status == S.FULL
        assert reloaded.last_filled_at is not None

    def test_failure_sends_cylinder_to_error(self, line, make_cylinder):
        cylinder = make_cylinder()
        batch = filling_service.start_batch(line.id, [cylinder.id])

        filling_service.record_outcome(batch.id, cylinder.id, "failed", notes="valve stuck")

        assert _status(cylinder.id) == S.ERROR

    def test_last_outcome_completes_batch(self, line, make_cylinder, recent_events):
        a, b = make_cylinder(), make_cylinder()
        batch = filling_service.start_batch(line.id, [a.id, b.id])

        filling_service.record_outcome(batch.id, a.id, "SUCCESS")
        assert filling_service.get_batch(batch.id).status == BatchStatus.IN_PROGRESS

        filling_service.record_outcome(batch.id, b.id, "FAILED")
        finished = filling_service.get_batch(batch.id)
        assert finished.status == BatchStatus.COMPLETED
        assert finished.ended_at is not None
        assert registry_service.get_filling_line(line.id).status == LineStatus.IDLE
        assert "filling_completed" in recent_events()

    def test_outcome_is_recorded_once(self, line, make_cylinder):
        a, b = make_cylinder(), make_cylinder()
        batch = filling_service.start_batch(line.id, [a.id, b.id])
        filling_service.record_outcome(batch.id, a.id, "SUCCESS")

        with pytest.raises(PreconditionFailedError):
            filling_service.record_outcome(batch.id, a.id, "FAILED")
        assert _status(a.id) == S.FULL

    def test_cylinder_not_in_batch(self, line, make_cylinder):
        member, outsider = make_cylinder(), make_cylinder()
        batch = filling_service.start_batch(line.id, [member.id])

        with pytest.raises(NotFoundError):
            filling_service.record_outcome(batch.id, outsider.id, "SUCCESS")

    def test_unknown_outcome(self, line, make_cylinder):
        cylinder = make_cylinder()
        batch = filling_service.start_batch(line.id, [cylinder.id])
        with pytest.raises(ValidationError):
            filling_service.record_outcome(batch.id, cylinder.id, "MAYBE")


class TestEndBatch:

    def test_pending_cylinders_fail(self, line, make_cylinder):
        done, *pending = [make_cylinder() for _ in range(3)]
        batch = filling_service.start_batch(line.id, [done.id] + [c.id for c in pending])
        filling_service.record_outcome(batch.id, done.id, "SUCCESS")

        ended = filling_service.end_batch(batch.id, notes="shift over")

        assert ended.status == BatchStatus.COMPLETED
        assert ended.outcome_counts() == {"total": 3, "pending": 0, "success": 1, "failed": 2}
        assert _status(done.id) == S.FULL
        assert [_status(c.id) for c in pending] == [S.ERROR, S.ERROR]
        assert registry_service.get_filling_line(line.id).status == LineStatus.IDLE
        assert "shift over" in ended.notes

    def test_ending_completed_batch_is_a_no_op(self, line, make_cylinder):
        cylinder = make_cylinder()
        batch = filling_service.start_batch(line.id, [cylinder.id])
        filling_service.end_batch(batch.id)
        ended_at = filling_service.get_batch(batch.id).ended_at

        again = filling_service.end_batch(batch.id)

        assert again.status == BatchStatus.COMPLETED
        assert again.ended_at == ended_at
        assert _status(cylinder.id) == S.ERROR

    def test_record_outcome_after_end(self, line, make_cylinder):
        cylinder = make_cylinder()
        batch = filling_service.start_batch(line.id, [cylinder.id])
        filling_service.end_batch(batch.id)

        with pytest.raises(PreconditionFailedError):
            filling_service.record_outcome(batch.id, cylinder.id, "SUCCESS")


class TestListBatches:

    def test_filters(self, line, make_cylinder, fill):
        fill([make_cylinder()])
        filling_service.start_batch(line.id, [make_cylinder().id])

        _items, total = filling_service.list_batches(line_id=line.id)
        assert total == 2

        items, total = filling_service.list_batches(status="in_progress")
        assert total == 1
        assert items[0].status == BatchStatus.IN_PROGRESS
