"""
Notification hub and transaction boundary tests.

Verifies:
- Subscribers receive published events; a failing one never blocks others
- Events are published only after a successful commit
- run_in_transaction maps store failures onto the domain error taxonomy
"""

import logging

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cylinderhub.errors import DuplicateKeyError, StoreError, ValidationError
from cylinderhub.extensions import db
from cylinderhub.models import Cylinder, Truck
from cylinderhub.models.cylinders import CylinderStatus
from cylinderhub.services import lifecycle_service, notification_service, sales_service
from cylinderhub.services.concurrency import run_in_transaction
from cylinderhub.services.notification_service import NotificationHub, RecentEventBuffer


class TestNotificationHub:

    def test_publish_reaches_subscribers(self):
        hub = NotificationHub()
        received = []
        hub.subscribe(received.append)
        hub.subscribe(received.append)  # subscribing twice is a no-op

        event = hub.publish(notification_service.CYLINDER_CREATED, {"id": 1})

        assert received == [event]
        assert event["type"] == "cylinder_created"
        assert event["data"] == {"id": 1}
        assert event["timestamp"].endswith("Z")

    def test_failing_subscriber_is_isolated(self, caplog):
        hub = NotificationHub(logger=logging.getLogger("test.hub"))
        received = []

        def broken(_event):
            raise RuntimeError("observer down")

        hub.subscribe(broken)
        hub.subscribe(received.append)

        with caplog.at_level(logging.WARNING, logger="test.hub"):
            hub.publish(notification_service.SALE_CREATED, {"id": 7})

        assert len(received) == 1
        assert "failed" in caplog.text

    def test_unsubscribe(self):
        hub = NotificationHub()
        received = []
        hub.subscribe(received.append)
        hub.unsubscribe(received.append)

        hub.publish(notification_service.SALE_CREATED, {})
        assert received == []

    def test_unknown_type(self):
        hub = NotificationHub()
        with pytest.raises(ValueError):
            hub.publish("cylinder_exploded", {})
        with pytest.raises(ValueError):
            notification_service.queue("cylinder_exploded", {})


class TestRecentEventBuffer:

    def test_since_and_limit(self):
        buffer = RecentEventBuffer(limit=10)
        for i in range(5):
            buffer({"type": "cylinder_updated", "data": {"i": i}})

        assert [e["seq"] for e in buffer.since(0)] == [1, 2, 3, 4, 5]
        assert [e["seq"] for e in buffer.since(3)] == [4, 5]
        assert [e["seq"] for e in buffer.since(0, limit=2)] == [4, 5]

    def test_bounded(self):
        buffer = RecentEventBuffer(limit=3)
        for i in range(5):
            buffer({"type": "cylinder_updated", "data": {"i": i}})

        assert [e["data"]["i"] for e in buffer.since(0)] == [2, 3, 4]

    def test_app_buffer_is_subscribed(self, app):
        buffer = notification_service.get_recent_buffer()
        assert buffer in notification_service.get_hub().subscribers


class TestPublishAfterCommit:

    def test_intake_publishes_created(self, make_cylinder, recent_events):
        make_cylinder()
        assert recent_events() == ["cylinder_created"]

    def test_failed_intake_publishes_nothing(self, factory, recent_events):
        with pytest.raises(ValidationError):
            lifecycle_service.intake_cylinder({
                "serial_number": "SN-BAD",
                "size_litres": 40,
                "working_pressure": 30,
                "design_pressure": 25,
                "factory_id": factory.id,
            })
        assert recent_events() == []

    def test_queued_events_dropped_on_rollback(self, recent_events):
        def _op():
            notification_service.queue(notification_service.CYLINDER_UPDATED, {"id": 1})
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            run_in_transaction(_op)

        notification_service.flush_pending()
        assert recent_events() == []

    def test_status_change_events(self, full_cylinder, recent_events):
        full_cylinder()
        types = recent_events()
        assert types.count("cylinder_status_updated") == 2
        assert types.index("filling_started") < types.index("filling_completed")


class TestRunInTransaction:

    def test_returns_result_and_commits(self):
        def _op():
            truck = Truck(license_number="TX-1", capacity=1)
            db.session.add(truck)
            return truck

        truck_id = run_in_transaction(_op).id

        db.session.expunge_all()
        assert db.session.query(Truck).filter_by(id=truck_id).count() == 1

    def test_unique_violation_becomes_duplicate_key(self):
        run_in_transaction(lambda: db.session.add(Truck(license_number="TX-2", capacity=1)))

        def _op():
            db.session.add(Truck(license_number="TX-2", capacity=1))
            db.session.flush()

        with pytest.raises(DuplicateKeyError):
            run_in_transaction(_op)
        assert db.session.query(Truck).filter_by(license_number="TX-2").count() == 1

    def test_stale_data_becomes_retryable_store_error(self):
        def _op():
            raise StaleDataError("row version changed")

        with pytest.raises(StoreError) as exc_info:
            run_in_transaction(_op)

        assert exc_info.value.code == "STORE_ERROR"
        assert exc_info.value.to_dict()["retryable"] is True

    def test_stale_cylinder_copy_cannot_commit(self, customer, full_cylinder):
        cylinder = full_cylinder()
        other = Session(bind=db.engine)
        try:
            stale = other.get(Cylinder, cylinder.id)
            assert stale.status == CylinderStatus.FULL

            sales_service.create_sale(customer.id, [cylinder.id])

            stale.notes = "sold twice"
            with pytest.raises(StaleDataError):
                other.commit()
            other.rollback()
        finally:
            other.close()

        db.session.expunge_all()
        assert lifecycle_service.get_cylinder(cylinder.id).status == CylinderStatus.RESERVED

    def test_stale_write_in_transaction_is_store_error(self, make_cylinder, recent_events):
        cylinder_id = make_cylinder().id
        cylinder = lifecycle_service.get_cylinder(cylinder_id)

        other = Session(bind=db.engine)
        try:
            other.get(Cylinder, cylinder_id).notes = "edited elsewhere"
            other.commit()
        finally:
            other.close()

        def _op():
            cylinder.notes = "edited here"
            notification_service.queue(notification_service.CYLINDER_UPDATED, {"id": cylinder_id})

        with pytest.raises(StoreError):
            run_in_transaction(_op)

        db.session.expunge_all()
        assert lifecycle_service.get_cylinder(cylinder_id).notes == "edited elsewhere"
        assert recent_events() == ["cylinder_created"]
