"""
Inspection tests.

An approved cylinder goes back to the fill state it had before inspection;
a rejected one goes to ERROR and must carry a reason.
"""

import pytest

from cylinderhub.errors import InvalidTransitionError, PreconditionFailedError, ValidationError
from cylinderhub.extensions import db
from cylinderhub.models import Inspection
from cylinderhub.models.cylinders import CylinderStatus as S
from cylinderhub.models.inspections import InspectionResult
from cylinderhub.services import filling_service, inspection_service, lifecycle_service


READINGS = {"pressure_reading": 198.5, "visual_check": True, "valve_check": True}


def _status(cylinder_id):
    return lifecycle_service.get_cylinder(cylinder_id).status


class TestInspect:

    def test_approve_full_returns_to_full(self, full_cylinder, recent_events):
        cylinder = full_cylinder()

        inspection = inspection_service.inspect(cylinder.id, READINGS, "APPROVED")

        assert inspection.result == InspectionResult.APPROVED
        assert inspection.rejection_reason is None
        assert inspection.pressure_reading == 198.5
        assert _status(cylinder.id) == S.FULL
        assert "inspection_completed" in recent_events()

    def test_approve_empty_returns_to_empty(self, make_cylinder):
        cylinder = make_cylinder()

        inspection_service.inspect(cylinder.id, READINGS, "pass")

        assert _status(cylinder.id) == S.EMPTY
        triggers = [e.trigger for e in lifecycle_service.get_history(cylinder.id)]
        assert triggers[-2:] == ["inspection_requested", "inspection_approved"]

    def test_approve_waiting_cylinder(self, full_cylinder):
        cylinder = full_cylinder()
        lifecycle_service.request_inspection(cylinder.id)
        assert _status(cylinder.id) == S.INSPECTION

        inspection_service.inspect(cylinder.id, READINGS, "APPROVED")

        assert _status(cylinder.id) == S.FULL

    def test_reject_requires_reason(self, full_cylinder):
        cylinder = full_cylinder()

        with pytest.raises(PreconditionFailedError):
            inspection_service.inspect(cylinder.id, READINGS, "REJECTED")

        assert db.session.query(Inspection).count() == 0
        assert _status(cylinder.id) == S.FULL

    def test_blank_reason_is_no_reason(self, full_cylinder):
        cylinder = full_cylinder()
        with pytest.raises(PreconditionFailedError):
            inspection_service.inspect(cylinder.id, READINGS, "REJECTED", rejection_reason="   ")

    def test_reject_sends_to_error(self, full_cylinder):
        cylinder = full_cylinder()

        inspection = inspection_service.inspect(
            cylinder.id, READINGS, "FAIL", rejection_reason="Corroded valve"
        )

        assert inspection.result == InspectionResult.REJECTED
        assert inspection.rejection_reason == "Corroded valve"
        reloaded = lifecycle_service.get_cylinder(cylinder.id)
        assert reloaded.status == S.ERROR
        assert "Corroded valve" in reloaded.notes

    def test_cylinder_in_filling_cannot_be_inspected(self, line, make_cylinder):
        cylinder = make_cylinder()
        filling_service.start_batch(line.id, [cylinder.id])

        with pytest.raises(InvalidTransitionError):
            inspection_service.inspect(cylinder.id, READINGS, "APPROVED")

        assert db.session.query(Inspection).count() == 0
        assert _status(cylinder.id) == S.FILLING

    def test_unknown_result(self, full_cylinder):
        cylinder = full_cylinder()
        with pytest.raises(ValidationError):
            inspection_service.inspect(cylinder.id, READINGS, "MAYBE")

    def test_bad_pressure_reading(self, full_cylinder):
        cylinder = full_cylinder()
        with pytest.raises(ValidationError):
            inspection_service.inspect(cylinder.id, {"pressure_reading": "high"}, "APPROVED")

    @pytest.mark.parametrize("readings", [
        {"visual_check": "false", "valve_check": True},
        {"visual_check": True, "valve_check": "no"},
        {"visual_check": 1, "valve_check": True},
    ])
    def test_checks_must_be_booleans(self, full_cylinder, readings):
        cylinder = full_cylinder()

        with pytest.raises(ValidationError):
            inspection_service.inspect(cylinder.id, readings, "APPROVED")

        assert db.session.query(Inspection).count() == 0
        assert _status(cylinder.id) == S.FULL

    def test_missing_checks_are_recorded_as_not_passed(self, full_cylinder):
        cylinder = full_cylinder()

        inspection = inspection_service.inspect(cylinder.id, {"pressure_reading": 200}, "APPROVED")

        assert inspection.visual_check is False
        assert inspection.valve_check is False


class TestBatchInspect:

    def test_inactive_cylinder_fails_alone(self, full_cylinder):
        first, retired, last = full_cylinder(), full_cylinder(), full_cylinder()
        lifecycle_service.deactivate_cylinder(retired.id)

        result = inspection_service.batch_inspect(
            [first.id, retired.id, last.id],
            READINGS,
            "REJECTED",
            rejection_reason="Failed hydro test",
        )

        assert result["total"] == 3
        assert result["success_count"] == 2
        assert result["failure_count"] == 1
        failed = [r for r in result["results"] if not r["success"]]
        assert failed[0]["cylinder_id"] == retired.id
        assert failed[0]["code"] == "PRECONDITION_FAILED"

        assert _status(first.id) == S.ERROR
        assert _status(last.id) == S.ERROR
        assert _status(retired.id) == S.FULL
        assert db.session.query(Inspection).filter_by(cylinder_id=retired.id).count() == 0

    def test_reason_checked_before_any_cylinder(self, full_cylinder):
        cylinder = full_cylinder()
        with pytest.raises(PreconditionFailedError):
            inspection_service.batch_inspect([cylinder.id], READINGS, "REJECTED")
        assert db.session.query(Inspection).count() == 0

    def test_empty_list(self):
        with pytest.raises(ValidationError):
            inspection_service.batch_inspect([], READINGS, "APPROVED")


class TestInspectionQueries:

    def test_listing(self, full_cylinder, make_cylinder):
        a, b = full_cylinder(), make_cylinder()
        inspection_service.inspect(a.id, READINGS, "APPROVED")
        inspection_service.inspect(b.id, READINGS, "REJECTED", rejection_reason="Dent")

        _items, total = inspection_service.list_inspections()
        assert total == 2

        items, total = inspection_service.list_inspections(result="reject")
        assert total == 1
        assert items[0].cylinder_id == b.id

        assert len(inspection_service.get_cylinder_inspections(a.id)) == 1
