"""
Pytest fixtures for CylinderHub backend tests.

Provides the in-memory app, a per-test table wipe, registry records
(factory, lines, customers, truck), cylinder helpers and per-role auth headers.
"""

import itertools

import pytest

from cylinderhub import create_app
from cylinderhub.extensions import db
from cylinderhub.permissions import RoleName
from cylinderhub.services import (
    auth_service,
    filling_service,
    lifecycle_service,
    notification_service,
    registry_service,
    session_service,
)


PASSWORD = "Password123!"

_serials = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_CYLINDER_PRICE_CENTS': 10000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data (same schema) and an empty event buffer for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()
    notification_service.discard_pending()
    notification_service.get_recent_buffer().clear()

    yield db.session

    db.session.rollback()
    notification_service.discard_pending()


@pytest.fixture(scope='function')
def recent_events(app):
    buffer = notification_service.get_recent_buffer()

    def _types():
        return [e["type"] for e in buffer.since(0)]

    return _types


# =============================================================================
# Registry records
# =============================================================================


@pytest.fixture(scope='function')
def factory(db_session):
    return registry_service.create_factory({"name": "Main Factory", "location": "Harbour Road"})


@pytest.fixture(scope='function')
def line(factory):
    """Industrial line with room for five cylinders."""
    return registry_service.create_filling_line({
        "name": "Industrial Line 1",
        "factory_id": factory.id,
        "capacity": 5,
        "cylinder_type": "INDUSTRIAL",
    })


@pytest.fixture(scope='function')
def customer(db_session):
    return registry_service.create_customer({
        "name": "Harbour Welding",
        "customer_type": "WORKSHOP",
        "payment_type": "CASH",
    })


@pytest.fixture(scope='function')
def credit_customer(db_session):
    """CREDIT customer, balance 0, limit 1000 cents."""
    return registry_service.create_customer({
        "name": "City Hospital",
        "customer_type": "HOSPITAL",
        "payment_type": "CREDIT",
        "credit_limit_cents": 1000,
    })


@pytest.fixture(scope='function')
def truck(db_session):
    return registry_service.create_truck({
        "license_number": "abc-123",
        "capacity": 20,
        "driver_name": "Sam Driver",
    })


# =============================================================================
# Cylinders
# =============================================================================


@pytest.fixture(scope='function')
def make_cylinder(factory):
    """Intake a new EMPTY cylinder; keyword args override the payload."""
    def _make(**overrides):
        payload = {
            "serial_number": f"SN-{next(_serials):05d}",
            "size_litres": 40,
            "working_pressure": 15,
            "design_pressure": 25,
            "factory_id": factory.id,
            "cylinder_type": "INDUSTRIAL",
            "gas_type": "OXYGEN",
        }
        payload.update(overrides)
        return lifecycle_service.intake_cylinder(payload)

    return _make


@pytest.fixture(scope='function')
def fill(line):
    """Run cylinders through one batch with the given outcome (default SUCCESS)."""
    def _fill(cylinders, outcome="SUCCESS"):
        batch = filling_service.start_batch(line.id, [c.id for c in cylinders])
        for cylinder in cylinders:
            filling_service.record_outcome(batch.id, cylinder.id, outcome, final_pressure=200)
        return batch

    return _fill


@pytest.fixture(scope='function')
def full_cylinder(make_cylinder, fill):
    def _full(**overrides):
        cylinder = make_cylinder(**overrides)
        fill([cylinder])
        return cylinder

    return _full


@pytest.fixture(scope='function')
def error_cylinder(make_cylinder, fill):
    def _error(**overrides):
        cylinder = make_cylinder(**overrides)
        fill([cylinder], outcome="FAILED")
        return cylinder

    return _error


# =============================================================================
# Users and tokens
# =============================================================================


@pytest.fixture(scope='function')
def make_user(db_session):
    def _make(role: RoleName, username: str | None = None):
        return auth_service.create_user(
            username=username or role.value.lower(),
            password=PASSWORD,
            role=role.value,
        )

    return _make


@pytest.fixture(scope='function')
def headers_for(make_user):
    """Bearer headers for a freshly created user of the given role."""
    cache = {}

    def _headers(role: RoleName) -> dict:
        if role not in cache:
            user = make_user(role)
            _session, token = session_service.create_session(user.id)
            cache[role] = auth_headers(token)
        return cache[role]

    return _headers


@pytest.fixture(scope='function')
def admin_headers(headers_for):
    return headers_for(RoleName.ADMIN)


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
