"""
HTTP authentication and authorization tests.

Verifies:
- Unauthenticated requests return 401
- Roles are denied operations outside their job (403) and denials are logged
- Domain errors map onto status codes with a machine-readable code
- Login / logout / me round trip
"""

import pytest

from cylinderhub.models import SecurityEvent
from cylinderhub.extensions import db
from cylinderhub.permissions import RoleName
from cylinderhub.services import auth_service, lifecycle_service

from conftest import PASSWORD, auth_headers, get_auth_token


def _intake_payload(factory, serial="HTTP-0001"):
    return {
        "serial_number": serial,
        "size_litres": 40,
        "working_pressure": 15,
        "design_pressure": 25,
        "factory_id": factory.id,
    }


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/cylinders"),
            ("POST", "/api/cylinders"),
            ("POST", "/api/cylinders/batch-status"),
            ("GET", "/api/filling/lines"),
            ("POST", "/api/filling/batches"),
            ("POST", "/api/inspections"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/maintenance"),
            ("GET", "/api/customers"),
            ("GET", "/api/trucks"),
            ("GET", "/api/factories"),
            ("GET", "/api/events/recent"),
            ("GET", "/api/auth/me"),
            ("GET", "/api/auth/users"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, client):
        resp = client.get("/api/cylinders", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401

    def test_malformed_header(self, client):
        resp = client.get("/api/cylinders", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLoginFlow:

    def test_login_me_logout(self, client, make_user):
        make_user(RoleName.SELLER)

        token = get_auth_token(client, "seller", PASSWORD)
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "seller"
        assert "CREATE_SALE" in me.json["permissions"]

        logout = client.post("/api/auth/logout", headers=auth_headers(token))
        assert logout.status_code == 200

        again = client.get("/api/auth/me", headers=auth_headers(token))
        assert again.status_code == 401

    def test_bad_password_is_logged(self, client, make_user):
        make_user(RoleName.SELLER)

        resp = client.post("/api/auth/login", json={"username": "seller", "password": "WrongPass1!"})

        assert resp.status_code == 401
        assert resp.json["code"] == "UNAUTHORIZED"
        events = db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").all()
        assert len(events) == 1

    def test_logout_without_token(self, client):
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 401
        assert resp.json["code"] == "UNAUTHORIZED"

    def test_missing_credentials(self, client):
        resp = client.post("/api/auth/login", json={"username": "seller"})
        assert resp.status_code == 400

    def test_deactivated_user_token_rejected(self, client, headers_for):
        headers = headers_for(RoleName.FILLER)
        filler = auth_service.list_users(role="FILLER")[0]

        auth_service.update_user(filler.id, {"is_active": False})

        resp = client.get("/api/cylinders", headers=headers)
        assert resp.status_code == 401


# =============================================================================
# ROLE DENIALS (403)
# =============================================================================


class TestRoleDenials:

    def test_filler_cannot_sell(self, client, headers_for):
        resp = client.post("/api/sales", json={"customer_id": 1, "items": [1]}, headers=headers_for(RoleName.FILLER))

        assert resp.status_code == 403
        assert resp.json["code"] == "FORBIDDEN"
        assert resp.json["required_permission"] == "CREATE_SALE"

        denial = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert denial.action == "CREATE_SALE"
        assert denial.resource == "/api/sales"

    def test_seller_cannot_fill(self, client, headers_for):
        resp = client.post(
            "/api/filling/batches",
            json={"filling_line_id": 1, "cylinders": [1]},
            headers=headers_for(RoleName.SELLER),
        )
        assert resp.status_code == 403

    def test_viewer_cannot_intake(self, client, factory, headers_for):
        resp = client.post("/api/cylinders", json=_intake_payload(factory), headers=headers_for(RoleName.VIEWER))
        assert resp.status_code == 403

    def test_viewer_can_read(self, client, headers_for):
        resp = client.get("/api/cylinders", headers=headers_for(RoleName.VIEWER))
        assert resp.status_code == 200

    def test_manager_cannot_create_users(self, client, headers_for):
        resp = client.post(
            "/api/auth/users",
            json={"username": "x", "password": PASSWORD},
            headers=headers_for(RoleName.MANAGER),
        )
        assert resp.status_code == 403

    def test_inspector_cannot_delete_cylinders(self, client, make_cylinder, headers_for):
        cylinder = make_cylinder()
        resp = client.delete(f"/api/cylinders/{cylinder.id}", headers=headers_for(RoleName.INSPECTOR))
        assert resp.status_code == 403


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:

    def test_intake_created(self, client, factory, admin_headers):
        resp = client.post("/api/cylinders", json=_intake_payload(factory), headers=admin_headers)

        assert resp.status_code == 201
        body = resp.json["cylinder"]
        assert body["status"] == "EMPTY"
        assert body["qr_code"].startswith("CYL-")

    def test_duplicate_serial_is_409(self, client, factory, admin_headers):
        client.post("/api/cylinders", json=_intake_payload(factory), headers=admin_headers)

        resp = client.post("/api/cylinders", json=_intake_payload(factory), headers=admin_headers)

        assert resp.status_code == 409
        assert resp.json["code"] == "DUPLICATE_KEY"

    def test_validation_is_400(self, client, factory, admin_headers):
        payload = _intake_payload(factory)
        del payload["design_pressure"]

        resp = client.post("/api/cylinders", json=payload, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"

    def test_selling_empty_cylinder_is_409(self, client, customer, make_cylinder, admin_headers):
        cylinder = make_cylinder()

        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [cylinder.id]},
            headers=admin_headers,
        )

        assert resp.status_code == 409
        assert resp.json["code"] == "INVALID_TRANSITION"
        assert resp.json["details"]["current_status"] == "EMPTY"
        assert lifecycle_service.get_cylinder(cylinder.id).status == "EMPTY"

    def test_unknown_cylinder_is_404(self, client, admin_headers):
        resp = client.get("/api/cylinders/999999", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["code"] == "NOT_FOUND"

    def test_capacity_is_422(self, client, line, make_cylinder, admin_headers):
        ids = [make_cylinder().id for _ in range(6)]

        resp = client.post(
            "/api/filling/batches",
            json={"filling_line_id": line.id, "cylinders": ids},
            headers=admin_headers,
        )

        assert resp.status_code == 422
        assert resp.json["code"] == "CAPACITY_EXCEEDED"

    def test_missing_rejection_reason_is_412(self, client, full_cylinder, admin_headers):
        cylinder = full_cylinder()

        resp = client.post(
            "/api/inspections",
            json={"cylinder_id": cylinder.id, "result": "REJECTED"},
            headers=admin_headers,
        )

        assert resp.status_code == 412
        assert resp.json["code"] == "PRECONDITION_FAILED"


# =============================================================================
# OPERATIONAL ENDPOINTS
# =============================================================================


class TestOperationalEndpoints:

    def test_health(self, client):
        resp = client.get("/api/system/health")
        assert resp.status_code == 200
        assert resp.json["status"] in ("healthy", "degraded")
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_recent_events(self, client, factory, admin_headers):
        client.post("/api/cylinders", json=_intake_payload(factory), headers=admin_headers)

        resp = client.get("/api/events/recent?since=0", headers=admin_headers)

        assert resp.status_code == 200
        types = [e["type"] for e in resp.json["events"]]
        assert "cylinder_created" in types
        last_seq = resp.json["last_seq"]

        later = client.get(f"/api/events/recent?since={last_seq}", headers=admin_headers)
        assert later.json["events"] == []

    def test_batch_status_counts(self, client, make_cylinder, admin_headers):
        cylinder = make_cylinder()

        resp = client.post(
            "/api/cylinders/batch-status",
            json={"cylinder_ids": [cylinder.id, 999999], "status": "INSPECTION"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["total"] == 2
        assert resp.json["success_count"] == 1
        assert resp.json["failure_count"] == 1
