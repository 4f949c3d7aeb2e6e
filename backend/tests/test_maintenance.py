"""
Maintenance workflow tests.

ERROR -> MAINTENANCE opens a record; the record closes either with a repair
(cylinder back to EMPTY) or as unrepairable (cylinder ERROR and retired).
"""

import pytest

from cylinderhub.errors import (
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from cylinderhub.extensions import db
from cylinderhub.models import MaintenanceRecord
from cylinderhub.models.cylinders import CylinderStatus as S
from cylinderhub.models.maintenance import MaintenanceStatus
from cylinderhub.services import lifecycle_service, maintenance_service


def _cylinder(cylinder_id):
    return lifecycle_service.get_cylinder(cylinder_id)


class TestOpenMaintenance:

    def test_open_moves_error_to_maintenance(self, error_cylinder):
        cylinder = error_cylinder()

        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve", notes="bay 3")

        assert record.status == MaintenanceStatus.OPEN
        assert record.issue_description == "Leaking valve"
        assert record.opened_at is not None
        assert _cylinder(cylinder.id).status == S.MAINTENANCE

    def test_only_error_cylinders(self, make_cylinder):
        cylinder = make_cylinder()

        with pytest.raises(InvalidTransitionError):
            maintenance_service.open_maintenance(cylinder.id, "Dented")

        assert db.session.query(MaintenanceRecord).count() == 0
        assert _cylinder(cylinder.id).status == S.EMPTY

    def test_issue_required(self, error_cylinder):
        cylinder = error_cylinder()
        with pytest.raises(ValidationError):
            maintenance_service.open_maintenance(cylinder.id, "  ")

    def test_one_open_record_per_cylinder(self, error_cylinder):
        cylinder = error_cylinder()
        maintenance_service.open_maintenance(cylinder.id, "Leaking valve")

        with pytest.raises(PreconditionFailedError):
            maintenance_service.open_maintenance(cylinder.id, "Still leaking")
        assert db.session.query(MaintenanceRecord).count() == 1

    def test_unknown_cylinder(self):
        with pytest.raises(NotFoundError):
            maintenance_service.open_maintenance(999999, "Leaking valve")


class TestCloseMaintenance:

    def test_complete_returns_cylinder_to_empty(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve")

        done = maintenance_service.complete_maintenance(
            record.id, "Replaced valve", cost_cents=4500
        )

        assert done.status == MaintenanceStatus.COMPLETED
        assert done.action_taken == "Replaced valve"
        assert done.cost_cents == 4500
        assert done.completed_at is not None
        repaired = _cylinder(cylinder.id)
        assert repaired.status == S.EMPTY
        assert repaired.is_active is True

    def test_action_required(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve")
        with pytest.raises(ValidationError):
            maintenance_service.complete_maintenance(record.id, "")

    def test_negative_cost(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve")
        with pytest.raises(ValidationError):
            maintenance_service.complete_maintenance(record.id, "Replaced valve", cost_cents=-1)

    def test_unrepairable_retires_cylinder(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Cracked neck")

        closed = maintenance_service.mark_unrepairable(record.id, notes="Scrap")

        assert closed.status == MaintenanceStatus.UNREPAIRABLE
        retired = _cylinder(cylinder.id)
        assert retired.status == S.ERROR
        assert retired.is_active is False
        assert "unrepairable" in retired.notes

    def test_closed_record_cannot_close_again(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve")
        maintenance_service.complete_maintenance(record.id, "Replaced valve")

        with pytest.raises(PreconditionFailedError):
            maintenance_service.complete_maintenance(record.id, "Again")
        with pytest.raises(PreconditionFailedError):
            maintenance_service.mark_unrepairable(record.id)

    def test_history_shows_repair_cycle(self, error_cylinder):
        cylinder = error_cylinder()
        record = maintenance_service.open_maintenance(cylinder.id, "Leaking valve")
        maintenance_service.complete_maintenance(record.id, "Replaced valve")

        triggers = [e.trigger for e in lifecycle_service.get_history(cylinder.id)]
        assert triggers[-2:] == ["maintenance_opened", "repair_completed"]


class TestListMaintenance:

    def test_filters(self, error_cylinder):
        a, b = error_cylinder(), error_cylinder()
        first = maintenance_service.open_maintenance(a.id, "Leaking valve")
        maintenance_service.open_maintenance(b.id, "Dented")
        maintenance_service.complete_maintenance(first.id, "Replaced valve")

        _items, total = maintenance_service.list_maintenance()
        assert total == 2

        items, total = maintenance_service.list_maintenance(status="open")
        assert total == 1
        assert items[0].cylinder_id == b.id

        _items, total = maintenance_service.list_maintenance(cylinder_id=a.id)
        assert total == 1
