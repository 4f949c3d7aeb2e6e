"""
Lifecycle engine tests.

Verifies:
- Status only moves along table edges; anything else leaves the cylinder untouched
- Status spellings normalize to the canonical names
- Intake assigns the QR code and rejects duplicate serials without writing
- Holder info always agrees with status
- Deactivation is soft once history exists, hard otherwise
- Manual batch status changes skip and report invalid ids
"""

import pytest

from cylinderhub.errors import (
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from cylinderhub.extensions import db
from cylinderhub.models import Cylinder, CylinderEvent, MaintenanceRecord
from cylinderhub.models.cylinders import CylinderLocation, CylinderStatus as S
from cylinderhub.services import lifecycle_service
from cylinderhub.services.lifecycle_service import Trigger, can_transition, make_qr_code, normalize_status


# =============================================================================
# TRANSITION TABLE
# =============================================================================


class TestTransitionTable:

    @pytest.mark.parametrize(
        "from_status,to_status,trigger",
        [
            (None, S.EMPTY, Trigger.INTAKE),
            (S.EMPTY, S.FILLING, Trigger.BATCH_ADD),
            (S.FILLING, S.FULL, Trigger.FILL_SUCCESS),
            (S.FILLING, S.ERROR, Trigger.FILL_FAILURE),
            (S.FULL, S.INSPECTION, Trigger.INSPECTION_REQUESTED),
            (S.EMPTY, S.INSPECTION, Trigger.INSPECTION_REQUESTED),
            (S.INSPECTION, S.FULL, Trigger.INSPECTION_APPROVED),
            (S.INSPECTION, S.EMPTY, Trigger.INSPECTION_APPROVED),
            (S.INSPECTION, S.ERROR, Trigger.INSPECTION_REJECTED),
            (S.FULL, S.RESERVED, Trigger.SALE_CREATED),
            (S.RESERVED, S.IN_TRANSIT, Trigger.DELIVERY_DISPATCHED),
            (S.RESERVED, S.AT_CUSTOMER, Trigger.DELIVERY_COMPLETED),
            (S.IN_TRANSIT, S.AT_CUSTOMER, Trigger.DELIVERY_COMPLETED),
            (S.RESERVED, S.FULL, Trigger.SALE_CANCELLED),
            (S.IN_TRANSIT, S.FULL, Trigger.SALE_CANCELLED),
            (S.AT_CUSTOMER, S.EMPTY, Trigger.RETURNED_EMPTY),
            (S.ERROR, S.MAINTENANCE, Trigger.MAINTENANCE_OPENED),
            (S.MAINTENANCE, S.EMPTY, Trigger.REPAIR_COMPLETED),
            (S.MAINTENANCE, S.ERROR, Trigger.UNREPAIRABLE),
        ],
    )
    def test_allowed_edges(self, from_status, to_status, trigger):
        assert can_transition(from_status, to_status, trigger)
        assert can_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (S.EMPTY, S.FULL),
            (S.EMPTY, S.RESERVED),
            (S.FULL, S.AT_CUSTOMER),
            (S.AT_CUSTOMER, S.FULL),
            (S.ERROR, S.EMPTY),
            (S.FILLING, S.EMPTY),
            (S.IN_TRANSIT, S.RESERVED),
            (S.MAINTENANCE, S.FULL),
        ],
    )
    def test_forbidden_edges(self, from_status, to_status):
        assert not can_transition(from_status, to_status)

    def test_wrong_trigger_on_valid_edge(self):
        assert not can_transition(S.FILLING, S.FULL, Trigger.SALE_CREATED)


class TestNormalizeStatus:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("FULL", S.FULL),
            ("full", S.FULL),
            ("Filled", S.FULL),
            ("InMaintenance", S.MAINTENANCE),
            ("maintenance", S.MAINTENANCE),
            ("Scrapped", S.ERROR),
            ("error", S.ERROR),
            ("InTransit", S.IN_TRANSIT),
            ("in_delivery", S.IN_TRANSIT),
            ("AtCustomer", S.AT_CUSTOMER),
            (" empty ", S.EMPTY),
        ],
    )
    def test_aliases(self, raw, expected):
        assert normalize_status(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "BROKEN", 3])
    def test_rejects_unknown(self, raw):
        with pytest.raises(ValidationError):
            normalize_status(raw)


# =============================================================================
# INTAKE / IDENTITY
# =============================================================================


class TestIntake:

    def test_intake_creates_empty_cylinder_at_factory(self, make_cylinder, factory):
        cylinder = make_cylinder(serial_number="OX-1001")

        assert cylinder.status == S.EMPTY
        assert cylinder.location == CylinderLocation.FACTORY
        assert cylinder.factory_id == factory.id
        assert cylinder.qr_code == make_qr_code("OX-1001")

        history = lifecycle_service.get_history(cylinder.id)
        assert len(history) == 1
        assert history[0].from_status is None
        assert history[0].to_status == S.EMPTY
        assert history[0].trigger == Trigger.INTAKE

    def test_duplicate_serial_rejected_without_row(self, make_cylinder):
        make_cylinder(serial_number="OX-2002")

        with pytest.raises(DuplicateKeyError):
            make_cylinder(serial_number="OX-2002")

        assert db.session.query(Cylinder).filter_by(serial_number="OX-2002").count() == 1

    def test_missing_required_fields(self, factory):
        with pytest.raises(ValidationError):
            lifecycle_service.intake_cylinder({"serial_number": "X-1", "factory_id": factory.id})

    def test_working_pressure_cannot_exceed_design(self, make_cylinder):
        with pytest.raises(ValidationError):
            make_cylinder(working_pressure=30, design_pressure=20)

    def test_unknown_factory(self, make_cylinder):
        with pytest.raises(NotFoundError):
            make_cylinder(factory_id=999999)

    def test_lookup_by_qr(self, make_cylinder):
        cylinder = make_cylinder()
        assert lifecycle_service.get_cylinder_by_qr(cylinder.qr_code).id == cylinder.id

        with pytest.raises(NotFoundError):
            lifecycle_service.get_cylinder_by_qr("CYL-NOPE")

    def test_update_rejects_identity_and_status(self, make_cylinder):
        cylinder = make_cylinder()

        for key, value in (("serial_number", "NEW"), ("qr_code", "NEW"), ("status", "FULL")):
            with pytest.raises(ValidationError):
                lifecycle_service.update_cylinder(cylinder.id, {key: value})

        updated = lifecycle_service.update_cylinder(cylinder.id, {"gas_type": "NITROGEN"})
        assert updated.gas_type == "NITROGEN"
        assert updated.status == S.EMPTY


# =============================================================================
# TRANSITION
# =============================================================================


class TestTransition:

    def test_invalid_edge_leaves_cylinder_unchanged(self, make_cylinder):
        cylinder = make_cylinder()
        events_before = db.session.query(CylinderEvent).filter_by(cylinder_id=cylinder.id).count()

        with pytest.raises(InvalidTransitionError) as exc:
            lifecycle_service.transition(cylinder, S.FULL, Trigger.FILL_SUCCESS)
        db.session.rollback()

        assert exc.value.details["current_status"] == S.EMPTY
        assert exc.value.details["requested_status"] == S.FULL

        reloaded = lifecycle_service.get_cylinder(cylinder.id)
        assert reloaded.status == S.EMPTY
        assert db.session.query(CylinderEvent).filter_by(cylinder_id=cylinder.id).count() == events_before

    def test_handover_requires_customer(self, full_cylinder):
        cylinder = full_cylinder()
        lifecycle_service.transition(cylinder, S.RESERVED, Trigger.SALE_CREATED)

        with pytest.raises(PreconditionFailedError):
            lifecycle_service.transition(cylinder, S.AT_CUSTOMER, Trigger.DELIVERY_COMPLETED)
        assert cylinder.status == S.RESERVED
        db.session.rollback()

    def test_in_transit_requires_truck(self, full_cylinder):
        cylinder = full_cylinder()
        lifecycle_service.transition(cylinder, S.RESERVED, Trigger.SALE_CREATED)

        with pytest.raises(PreconditionFailedError):
            lifecycle_service.transition(cylinder, S.IN_TRANSIT, Trigger.DELIVERY_DISPATCHED)
        db.session.rollback()

    def test_holder_follows_status(self, full_cylinder, customer, truck):
        cylinder = full_cylinder()

        lifecycle_service.transition(cylinder, S.RESERVED, Trigger.SALE_CREATED)
        lifecycle_service.transition(cylinder, S.IN_TRANSIT, Trigger.DELIVERY_DISPATCHED, truck_id=truck.id)
        assert cylinder.location == CylinderLocation.IN_TRANSIT
        assert cylinder.current_truck_id == truck.id
        assert cylinder.current_customer_id is None

        lifecycle_service.transition(cylinder, S.AT_CUSTOMER, Trigger.DELIVERY_COMPLETED, customer_id=customer.id)
        assert cylinder.location == CylinderLocation.CUSTOMER
        assert cylinder.current_customer_id == customer.id
        assert cylinder.current_truck_id is None

        lifecycle_service.transition(cylinder, S.EMPTY, Trigger.RETURNED_EMPTY)
        assert cylinder.location == CylinderLocation.FACTORY
        assert cylinder.current_customer_id is None
        db.session.rollback()

    def test_inactive_cylinder_never_transitions(self, full_cylinder):
        cylinder = full_cylinder()
        lifecycle_service.deactivate_cylinder(cylinder.id)

        with pytest.raises(PreconditionFailedError):
            lifecycle_service.request_inspection(cylinder.id)

        assert lifecycle_service.get_cylinder(cylinder.id).status == S.FULL

    def test_history_is_ordered(self, full_cylinder):
        cylinder = full_cylinder()
        lifecycle_service.request_inspection(cylinder.id, note="routine")

        history = lifecycle_service.get_history(cylinder.id)
        assert [e.to_status for e in history] == [S.EMPTY, S.FILLING, S.FULL, S.INSPECTION]
        assert history[-1].note == "routine"


# =============================================================================
# LISTING
# =============================================================================


class TestListing:

    def test_filters_and_search(self, make_cylinder, full_cylinder):
        make_cylinder(serial_number="LST-A")
        full_cylinder(serial_number="LST-B")
        make_cylinder(serial_number="OTHER-C")

        items, total = lifecycle_service.list_cylinders(search="LST")
        assert total == 2
        assert {c.serial_number for c in items} == {"LST-A", "LST-B"}

        items, total = lifecycle_service.list_cylinders(status="Filled")
        assert total == 1
        assert items[0].serial_number == "LST-B"

    def test_pagination(self, make_cylinder):
        for _ in range(5):
            make_cylinder()

        items, total = lifecycle_service.list_cylinders(page=2, per_page=2)
        assert total == 5
        assert len(items) == 2


# =============================================================================
# DEACTIVATION
# =============================================================================


class TestDeactivation:

    def test_without_history_is_hard_delete(self, make_cylinder):
        cylinder = make_cylinder()
        cylinder_id = cylinder.id

        result = lifecycle_service.deactivate_cylinder(cylinder_id)

        assert result == {"id": cylinder_id, "mode": "HARD"}
        assert db.session.query(Cylinder).filter_by(id=cylinder_id).first() is None

    def test_with_history_is_soft_delete(self, full_cylinder):
        cylinder = full_cylinder()

        result = lifecycle_service.deactivate_cylinder(cylinder.id)

        assert result["mode"] == "SOFT"
        reloaded = lifecycle_service.get_cylinder(cylinder.id)
        assert reloaded.is_active is False
        assert reloaded.status == S.FULL

    def test_not_while_in_a_workflow(self, make_cylinder, line):
        from cylinderhub.services import filling_service

        cylinder = make_cylinder()
        filling_service.start_batch(line.id, [cylinder.id])

        with pytest.raises(PreconditionFailedError):
            lifecycle_service.deactivate_cylinder(cylinder.id)
        assert lifecycle_service.get_cylinder(cylinder.id).is_active is True


# =============================================================================
# MANUAL BATCH STATUS
# =============================================================================


class TestBatchUpdateStatus:

    def test_invalid_ids_are_skipped_and_reported(self, make_cylinder, error_cylinder):
        broken = error_cylinder()
        empty = make_cylinder()

        result = lifecycle_service.batch_update_status(
            [broken.id, empty.id, 999999],
            "InMaintenance",
            note="valve leak",
        )

        assert result["total"] == 3
        assert result["success_count"] == 1
        assert result["failure_count"] == 2

        by_id = {r["cylinder_id"]: r for r in result["results"]}
        assert by_id[broken.id]["success"] is True
        assert by_id[broken.id]["status"] == S.MAINTENANCE
        assert by_id[empty.id]["code"] == "INVALID_TRANSITION"
        assert by_id[999999]["code"] == "NOT_FOUND"

        assert lifecycle_service.get_cylinder(empty.id).status == S.EMPTY
        assert db.session.query(MaintenanceRecord).filter_by(cylinder_id=empty.id).count() == 0
        assert db.session.query(MaintenanceRecord).filter_by(cylinder_id=broken.id).count() == 1

    def test_back_to_empty_closes_maintenance(self, error_cylinder):
        cylinder = error_cylinder()
        lifecycle_service.batch_update_status([cylinder.id], "MAINTENANCE")

        result = lifecycle_service.batch_update_status([cylinder.id], "EMPTY", note="valve replaced")

        assert result["success_count"] == 1
        assert lifecycle_service.get_cylinder(cylinder.id).status == S.EMPTY
        record = db.session.query(MaintenanceRecord).filter_by(cylinder_id=cylinder.id).one()
        assert record.status == "COMPLETED"
        assert record.action_taken == "valve replaced"

    @pytest.mark.parametrize("target", ["FULL", "RESERVED", "AT_CUSTOMER", "FILLING"])
    def test_workflow_targets_are_not_manual(self, make_cylinder, target):
        cylinder = make_cylinder()
        with pytest.raises(ValidationError):
            lifecycle_service.batch_update_status([cylinder.id], target)

    def test_empty_id_list(self):
        with pytest.raises(ValidationError):
            lifecycle_service.batch_update_status([], "INSPECTION")
