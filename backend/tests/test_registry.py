"""
Registry tests: factories, filling lines, trucks and customers.
"""

import pytest

from cylinderhub.errors import DuplicateKeyError, NotFoundError, PreconditionFailedError, ValidationError
from cylinderhub.models.filling import LineStatus
from cylinderhub.models.fleet import TruckStatus
from cylinderhub.services import filling_service, registry_service, sales_service


class TestFactories:

    def test_duplicate_name(self, factory):
        with pytest.raises(DuplicateKeyError):
            registry_service.create_factory({"name": "Main Factory"})

    def test_name_required(self):
        with pytest.raises(ValidationError):
            registry_service.create_factory({"location": "Nowhere"})

    def test_deactivated_factory_hidden_from_list(self, factory):
        registry_service.create_factory({"name": "North Plant"})
        registry_service.deactivate_factory(factory.id)

        names = [f.name for f in registry_service.list_factories()]
        assert names == ["North Plant"]
        assert len(registry_service.list_factories(include_inactive=True)) == 2


class TestFillingLines:

    def test_capacity_must_be_positive(self, factory):
        with pytest.raises(ValidationError):
            registry_service.create_filling_line({"name": "Zero", "factory_id": factory.id, "capacity": 0})

    def test_unknown_factory(self):
        with pytest.raises(NotFoundError):
            registry_service.create_filling_line({"name": "Orphan", "factory_id": 999999, "capacity": 3})

    def test_status_cannot_be_set_active(self, line):
        with pytest.raises(ValidationError):
            registry_service.update_filling_line(line.id, {"status": "ACTIVE"})

    def test_no_edits_while_batch_running(self, line, make_cylinder):
        filling_service.start_batch(line.id, [make_cylinder().id])

        with pytest.raises(PreconditionFailedError):
            registry_service.update_filling_line(line.id, {"capacity": 10})
        assert registry_service.get_filling_line(line.id).capacity == 5

    def test_maintenance_round_trip(self, line):
        registry_service.update_filling_line(line.id, {"status": "maintenance"})
        assert registry_service.list_filling_lines(status="MAINTENANCE")[0].id == line.id

        registry_service.update_filling_line(line.id, {"status": "IDLE"})
        assert registry_service.get_filling_line(line.id).status == LineStatus.IDLE


class TestTrucks:

    def test_license_uppercased(self, truck):
        assert truck.license_number == "ABC-123"
        assert truck.status == TruckStatus.AVAILABLE

    def test_duplicate_license_ignores_case(self, truck):
        with pytest.raises(DuplicateKeyError):
            registry_service.create_truck({"license_number": "ABC-123"})

    def test_truck_on_delivery_is_locked(self, truck, customer, full_cylinder):
        sale = sales_service.create_sale(
            customer.id, [full_cylinder().id], delivery_type="TRUCK_DELIVERY", truck_id=truck.id
        )
        sales_service.dispatch_delivery(sale.id)

        with pytest.raises(PreconditionFailedError):
            registry_service.update_truck(truck.id, {"driver_name": "Someone Else"})

    def test_status_filter(self, truck):
        registry_service.create_truck({"license_number": "xyz-999"})
        registry_service.update_truck(truck.id, {"status": "MAINTENANCE"})

        available = registry_service.list_trucks(status="available")
        assert [t.license_number for t in available] == ["XYZ-999"]


class TestCustomers:

    def test_defaults(self):
        customer = registry_service.create_customer({"name": "Corner Shop", "customer_type": "shop"})
        assert customer.customer_type == "SHOP"
        assert customer.payment_type == "CASH"
        assert customer.balance_cents == 0

    def test_balance_not_writable(self, customer):
        with pytest.raises(ValidationError):
            registry_service.update_customer(customer.id, {"balance_cents": 500})
        with pytest.raises(ValidationError):
            registry_service.create_customer({
                "name": "Sneaky",
                "customer_type": "SHOP",
                "balance_cents": -100,
            })

    def test_is_active_must_be_boolean(self, customer):
        with pytest.raises(ValidationError):
            registry_service.update_customer(customer.id, {"is_active": "false"})
        assert registry_service.get_customer(customer.id).is_active is True

    def test_negative_credit_limit(self):
        with pytest.raises(ValidationError):
            registry_service.create_customer({
                "name": "Bad Credit",
                "customer_type": "INDIVIDUAL",
                "payment_type": "CREDIT",
                "credit_limit_cents": -1,
            })

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            registry_service.create_customer({"name": "Mystery", "customer_type": "SPACESHIP"})

    def test_search_and_filters(self, customer, credit_customer):
        items, total = registry_service.list_customers(search="harbour")
        assert total == 1
        assert items[0].id == customer.id

        items, total = registry_service.list_customers(payment_type="credit")
        assert [c.id for c in items] == [credit_customer.id]

        registry_service.deactivate_customer(customer.id)
        _items, total = registry_service.list_customers()
        assert total == 1
        _items, total = registry_service.list_customers(include_inactive=True)
        assert total == 2

    def test_inactive_customer_cannot_buy(self, customer, full_cylinder):
        registry_service.deactivate_customer(customer.id)
        with pytest.raises(PreconditionFailedError):
            sales_service.create_sale(customer.id, [full_cylinder().id])
