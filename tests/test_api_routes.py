"""
tests/test_api_routes.py -- Integration tests for the /api/v1 routes.

These tests exercise the full stack: FastAPI routing -> auth dependency injection
-> services -> stores -> response model serialization. Unit testing individual
route functions would miss middleware, dependency injection, exception
handlers, and response model validation -- integration tests are the right tool here.

Coverage:
  - Login: envelope shape, camelCase token fields, wrong password 401, wrong role 401
  - Dealer onboarding: create -> tempPassword -> requiresPasswordChange -> change-password
  - Dealer listing: a created dealer is listed once and never with its temp password
  - Password length is checked in UTF-8 bytes (bcrypt limit), not characters
  - forgot-password answers identically for known and unknown emails
  - Validation failures: 400 with per-field details
  - Employees: create, duplicate aadhar, cross-tenant 403, 404, terminate twice 400
  - Customers: create, type filter, status toggle
  - check-aadhar on both paths; search shape
  - Audit logs for admin and dealer
  - A deleted dealer's token stops working
  - Refresh tokens

Fixtures used (from conftest.py):
  - api_client: (client, seed, services) -- TestClient on an isolated seeded DB.
    State persists across the tests of this module, so every test creates the
    rows it mutates (fresh dealers, unique aadhar numbers).
"""

from __future__ import annotations

import itertools

from fastapi.testclient import TestClient

from auth.tokens import decode_access_token

_aadhar_counter = itertools.count(900000000001)
_dealer_counter = itertools.count(1)


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _next_aadhar() -> str:
    return str(next(_aadhar_counter))


def _employee_body(**overrides) -> dict:
    body = {
        "first_name": "Bashir",
        "last_name": "Dar",
        "phone": "9419555555",
        "email": "bashir@mail.example",
        "aadhar": _next_aadhar(),
        "position": "Cashier",
        "hire_date": "2024-02-01",
    }
    body.update(overrides)
    return body


def _create_dealer(client: TestClient, admin_token: str) -> dict:
    """POST a fresh dealer and return the response data (dealer + tempPassword)."""
    n = next(_dealer_counter)
    body = {
        "name": f"Fresh Owner {n}",
        "username": f"fresh_owner_{n}",
        "email": f"fresh{n}@union.example",
        "company_name": f"Fresh Fuels {n}",
        "primary_contact_name": "Desk",
        "primary_contact_phone": "9419666666",
        "primary_contact_email": f"desk{n}@union.example",
        "address": "Boulevard Road",
    }
    resp = client.post("/api/v1/dealers", json=body, headers=_auth(admin_token))
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    data["email"] = body["email"]
    return data


class TestLogin:
    def test_admin_login_envelope(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/auth/admin/login", json={"email": seed.admin.email, "password": seed.admin_password}
        )
        assert resp.status_code == 200, resp.text
        assert resp.headers["Cache-Control"] == "no-store"
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["token"]
        assert data["refreshToken"]
        assert data["user"]["role"] == "admin"
        assert decode_access_token(data["token"]).role == "admin"
        assert "password_hash" not in data["user"]

    def test_wrong_password_is_401(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post("/api/v1/auth/admin/login", json={"email": seed.admin.email, "password": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid credentials", "code": "unauthorized"}

    def test_dealer_credentials_on_admin_endpoint_is_401(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/auth/admin/login",
            json={"email": seed.dealer_a_user.email, "password": seed.dealer_password},
        )
        assert resp.status_code == 401

    def test_dealer_login_without_temp_password(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/auth/dealer/login",
            json={"email": seed.dealer_a_user.email, "password": seed.dealer_password},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["requiresPasswordChange"] is False

    def test_refresh(self, api_client) -> None:
        client, seed, _svc = api_client
        login = client.post(
            "/api/v1/auth/admin/login", json={"email": seed.admin.email, "password": seed.admin_password}
        ).json()["data"]
        resp = client.post("/api/v1/auth/refresh", json={"refreshToken": login["refreshToken"]})
        assert resp.status_code == 200
        new_token = resp.json()["data"]["token"]
        assert client.get("/api/v1/auth/me", headers=_auth(new_token)).status_code == 200

    def test_refresh_rejects_access_token(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post("/api/v1/auth/refresh", json={"refreshToken": seed.admin_token})
        assert resp.status_code == 401

    def test_me(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/auth/me", headers=_auth(seed.dealer_a_token))
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["dealer_id"] == seed.dealer_a.id

    def test_logout_is_audited(self, api_client) -> None:
        client, seed, svc = api_client
        resp = client.post("/api/v1/auth/logout", headers=_auth(seed.dealer_b_token))
        assert resp.status_code == 200
        assert svc.audit.list_all(1)[0].action_type == "logout"


class TestValidation:
    def test_bad_email_returns_field_details(self, api_client) -> None:
        client, _seed, _svc = api_client
        resp = client.post("/api/v1/auth/admin/login", json={"email": "not-an-email", "password": "x"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "validation_error"
        assert [d["field"] for d in body["details"]] == ["email"]

    def test_missing_body_fields(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post("/api/v1/employees", json={"first_name": "Only"}, headers=_auth(seed.dealer_a_token))
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.json()["details"]}
        assert {"last_name", "aadhar", "hire_date"} <= fields

    def test_aadhar_must_be_twelve_digits(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/employees", json=_employee_body(aadhar="12345"), headers=_auth(seed.dealer_a_token)
        )
        assert resp.status_code == 400

    def test_unknown_route_uses_error_envelope(self, api_client) -> None:
        client, _seed, _svc = api_client
        resp = client.get("/api/v1/no-such-route")
        assert resp.status_code == 404
        assert resp.json()["success"] is False


class TestDealerOnboarding:
    def test_create_login_and_change_password(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        assert created["dealer"]["user_email"] == created["email"]
        temp = created["tempPassword"]

        login = client.post("/api/v1/auth/dealer/login", json={"email": created["email"], "password": temp})
        assert login.status_code == 200
        data = login.json()["data"]
        assert data["requiresPasswordChange"] is True

        resp = client.post(
            "/api/v1/users/change-password",
            json={"currentPassword": temp, "newPassword": "settled-pass"},
            headers=_auth(data["token"]),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["user"]["temp_pass"] is False

        again = client.post(
            "/api/v1/auth/dealer/login", json={"email": created["email"], "password": "settled-pass"}
        )
        assert again.json()["data"]["requiresPasswordChange"] is False

    def test_duplicate_email_is_400(self, api_client) -> None:
        client, seed, _svc = api_client
        body = {
            "name": "Dup",
            "username": "dup_owner",
            "email": seed.dealer_a_user.email,
            "company_name": "Dup Fuels",
            "primary_contact_name": "Desk",
            "primary_contact_phone": "1",
            "primary_contact_email": "dup@union.example",
            "address": "Somewhere",
        }
        resp = client.post("/api/v1/dealers", json=body, headers=_auth(seed.admin_token))
        assert resp.status_code == 400
        assert resp.json()["code"] == "conflict"

    def test_suspend_dealer(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        dealer_id = created["dealer"]["id"]
        resp = client.patch(
            f"/api/v1/dealers/{dealer_id}", json={"status": "suspended"}, headers=_auth(seed.admin_token)
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["dealer"]["status"] == "suspended"

    def test_invalid_dealer_status(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.patch(
            f"/api/v1/dealers/{seed.dealer_b.id}", json={"status": "closed"}, headers=_auth(seed.admin_token)
        )
        assert resp.status_code == 400

    def test_missing_dealer_is_404(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/dealers/no-such-dealer", headers=_auth(seed.admin_token))
        assert resp.status_code == 404

    def test_admin_reset_password(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        resp = client.post(
            "/api/v1/dealers/reset-password",
            json={"userId": created["dealer"]["user_id"]},
            headers=_auth(seed.admin_token),
        )
        assert resp.status_code == 200
        temp = resp.json()["data"]["tempPass"]
        login = client.post("/api/v1/auth/dealer/login", json={"email": created["email"], "password": temp})
        assert login.json()["data"]["requiresPasswordChange"] is True

    def test_deleted_dealer_token_stops_working(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        token = client.post(
            "/api/v1/auth/dealer/login", json={"email": created["email"], "password": created["tempPassword"]}
        ).json()["data"]["token"]
        assert client.get("/api/v1/dealer/profile", headers=_auth(token)).status_code == 200

        resp = client.delete(f"/api/v1/dealers/{created['dealer']['id']}", headers=_auth(seed.admin_token))
        assert resp.status_code == 200
        assert client.get("/api/v1/dealer/profile", headers=_auth(token)).status_code == 401


class TestDealerListing:
    def test_created_dealer_appears_once_without_temp_password(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        company = created["dealer"]["company_name"]
        assert created["tempPassword"]

        resp = client.get("/api/v1/dealers", headers=_auth(seed.admin_token))
        assert resp.status_code == 200
        dealers = resp.json()["data"]["dealers"]
        assert [d["company_name"] for d in dealers].count(company) == 1
        for dealer in dealers:
            assert "tempPassword" not in dealer
            assert "temp_password" not in dealer
            assert "password_hash" not in dealer


class TestChangePassword:
    """bcrypt caps passwords at 72 bytes, so multi-byte text hits the limit early."""

    def test_multibyte_new_password_over_limit_is_400(self, api_client) -> None:
        client, seed, _svc = api_client
        # 40 characters, 80 bytes.
        resp = client.post(
            "/api/v1/users/change-password",
            json={"currentPassword": seed.dealer_password, "newPassword": "é" * 40},
            headers=_auth(seed.dealer_b_token),
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert [d["field"] for d in body["details"]] == ["newPassword"]

    def test_multibyte_new_password_within_limit(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        token = client.post(
            "/api/v1/auth/dealer/login", json={"email": created["email"], "password": created["tempPassword"]}
        ).json()["data"]["token"]
        # 36 characters, 72 bytes.
        resp = client.post(
            "/api/v1/users/change-password",
            json={"currentPassword": created["tempPassword"], "newPassword": "é" * 36},
            headers=_auth(token),
        )
        assert resp.status_code == 200, resp.text
        login = client.post("/api/v1/auth/dealer/login", json={"email": created["email"], "password": "é" * 36})
        assert login.status_code == 200

    def test_multibyte_login_password_over_limit_is_400(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post("/api/v1/auth/admin/login", json={"email": seed.admin.email, "password": "é" * 40})
        assert resp.status_code == 400


class TestForgotPassword:
    def test_same_answer_for_known_and_unknown_email(self, api_client) -> None:
        client, seed, _svc = api_client
        created = _create_dealer(client, seed.admin_token)
        known = client.post("/api/v1/auth/forgot-password", json={"email": created["email"]})
        unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@union.example"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_background_reset_issues_temp_password(self, api_client) -> None:
        client, seed, svc = api_client
        created = _create_dealer(client, seed.admin_token)
        user_id = created["dealer"]["user_id"]
        client.post(
            "/api/v1/auth/dealer/login", json={"email": created["email"], "password": created["tempPassword"]}
        )
        client.post("/api/v1/auth/forgot-password", json={"email": created["email"]})
        # TestClient runs background tasks before returning the response.
        assert svc.users.get_by_id(user_id).temp_pass is True
        old = client.post(
            "/api/v1/auth/dealer/login", json={"email": created["email"], "password": created["tempPassword"]}
        )
        assert old.status_code == 401


class TestProfile:
    def test_update_profile_on_both_paths(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.patch("/api/v1/users/profile", json={"name": "Alpha Owner"}, headers=_auth(seed.dealer_a_token))
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["name"] == "Alpha Owner"

        resp = client.put("/api/v1/auth/profile", json={"name": "Alpha Again"}, headers=_auth(seed.dealer_a_token))
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["name"] == "Alpha Again"

    def test_taken_username_is_400(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.patch(
            "/api/v1/users/profile",
            json={"username": seed.dealer_b_user.username},
            headers=_auth(seed.dealer_a_token),
        )
        assert resp.status_code == 400

    def test_wrong_current_password_is_401(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/users/change-password",
            json={"currentPassword": "wrong", "newPassword": "whatever1"},
            headers=_auth(seed.dealer_b_token),
        )
        assert resp.status_code == 401

    def test_short_new_password_is_400(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.post(
            "/api/v1/users/change-password",
            json={"currentPassword": seed.dealer_password, "newPassword": "abc"},
            headers=_auth(seed.dealer_b_token),
        )
        assert resp.status_code == 400


class TestEmployeeRoutes:
    def test_create_list_get(self, api_client) -> None:
        client, seed, _svc = api_client
        headers = _auth(seed.dealer_a_token)
        resp = client.post("/api/v1/employees", json=_employee_body(), headers=headers)
        assert resp.status_code == 201, resp.text
        emp = resp.json()["data"]["employee"]
        assert emp["dealer_id"] == seed.dealer_a.id
        assert emp["hire_date"] == "2024-02-01"
        assert emp["status"] == "active"

        listed = client.get("/api/v1/employees", headers=headers).json()["data"]["employees"]
        assert emp["id"] in [e["id"] for e in listed]
        assert client.get(f"/api/v1/employees/{emp['id']}", headers=headers).status_code == 200

    def test_duplicate_aadhar_across_dealers(self, api_client) -> None:
        client, seed, _svc = api_client
        aadhar = _next_aadhar()
        first = client.post(
            "/api/v1/employees", json=_employee_body(aadhar=aadhar), headers=_auth(seed.dealer_a_token)
        )
        assert first.status_code == 201
        second = client.post(
            "/api/v1/employees", json=_employee_body(aadhar=aadhar), headers=_auth(seed.dealer_b_token)
        )
        assert second.status_code == 400
        assert second.json()["error"] == "Employee with this Aadhar number already exists"

    def test_cross_tenant_access_is_403(self, api_client) -> None:
        client, seed, _svc = api_client
        emp = client.post(
            "/api/v1/employees", json=_employee_body(), headers=_auth(seed.dealer_a_token)
        ).json()["data"]["employee"]
        other = _auth(seed.dealer_b_token)
        assert client.get(f"/api/v1/employees/{emp['id']}", headers=other).status_code == 403
        assert client.patch(f"/api/v1/employees/{emp['id']}", json={"position": "X"}, headers=other).status_code == 403

    def test_missing_employee_is_404(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/employees/no-such-employee", headers=_auth(seed.dealer_a_token))
        assert resp.status_code == 404

    def test_terminate_twice(self, api_client) -> None:
        client, seed, _svc = api_client
        headers = _auth(seed.dealer_a_token)
        emp = client.post("/api/v1/employees", json=_employee_body(), headers=headers).json()["data"]["employee"]
        body = {"termination_date": "2025-05-31", "termination_reason": "Moved away"}

        resp = client.post(f"/api/v1/employees/{emp['id']}/terminate", json=body, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["employee"]["status"] == "terminated"

        resp = client.post(f"/api/v1/employees/{emp['id']}/terminate", json=body, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Employee is already terminated"

        active = client.get("/api/v1/employees", params={"status": "active"}, headers=headers).json()
        assert emp["id"] not in [e["id"] for e in active["data"]["employees"]]

    def test_patch_cannot_set_status(self, api_client) -> None:
        client, seed, _svc = api_client
        headers = _auth(seed.dealer_a_token)
        emp = client.post("/api/v1/employees", json=_employee_body(), headers=headers).json()["data"]["employee"]
        resp = client.patch(f"/api/v1/employees/{emp['id']}", json={"status": "terminated"}, headers=headers)
        # Unknown fields are ignored; the employee stays active.
        assert resp.status_code == 200
        assert resp.json()["data"]["employee"]["status"] == "active"


class TestCustomerRoutes:
    def test_create_filter_and_toggle(self, api_client) -> None:
        client, seed, _svc = api_client
        headers = _auth(seed.dealer_b_token)
        body = {
            "type": "government",
            "name_or_entity": "Forest Department",
            "phone": "0194000111",
            "email": "forest@gov.example",
            "official_id": "FD-1",
            "address": "Rajbagh",
        }
        resp = client.post("/api/v1/customers", json=body, headers=headers)
        assert resp.status_code == 201, resp.text
        cust = resp.json()["data"]["customer"]

        gov = client.get("/api/v1/customers", params={"type": "government"}, headers=headers).json()
        assert cust["id"] in [c["id"] for c in gov["data"]["customers"]]
        private = client.get("/api/v1/customers", params={"type": "private"}, headers=headers).json()
        assert cust["id"] not in [c["id"] for c in private["data"]["customers"]]

        resp = client.patch(f"/api/v1/customers/{cust['id']}", json={"status": "inactive"}, headers=headers)
        assert resp.json()["data"]["customer"]["status"] == "inactive"
        resp = client.patch(f"/api/v1/customers/{cust['id']}", json={"status": "active"}, headers=headers)
        assert resp.json()["data"]["customer"]["status"] == "active"

        assert client.get(f"/api/v1/customers/{cust['id']}", headers=_auth(seed.dealer_a_token)).status_code == 403

    def test_invalid_customer_type(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/customers", params={"type": "corporate"}, headers=_auth(seed.dealer_b_token))
        assert resp.status_code == 400


class TestSearchRoutes:
    def test_check_aadhar_both_paths(self, api_client) -> None:
        client, seed, _svc = api_client
        aadhar = _next_aadhar()
        client.post("/api/v1/employees", json=_employee_body(aadhar=aadhar), headers=_auth(seed.dealer_a_token))

        for path in ("/api/v1/check-aadhar", "/api/v1/employees/check-aadhar"):
            resp = client.get(path, params={"aadhar": aadhar}, headers=_auth(seed.dealer_b_token))
            assert resp.status_code == 200, path
            data = resp.json()["data"]
            assert data["aadhar"] == aadhar
            assert data["dealer_id"] == seed.dealer_a.id

    def test_check_aadhar_no_match(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get(
            "/api/v1/check-aadhar", params={"aadhar": "000000000000"}, headers=_auth(seed.admin_token)
        )
        assert resp.status_code == 200
        assert resp.json()["data"] is None

    def test_search_results_are_tenant_filtered(self, api_client) -> None:
        client, seed, _svc = api_client
        client.post(
            "/api/v1/employees",
            json=_employee_body(first_name="Qaisar", last_name="Wani"),
            headers=_auth(seed.dealer_a_token),
        )
        mine = client.get("/api/v1/search", params={"q": "qaisar"}, headers=_auth(seed.dealer_a_token)).json()
        assert [r["type"] for r in mine["data"]["results"]] == ["employee"]
        assert mine["data"]["results"][0]["dealer_name"] == "Alpha Fuels"

        theirs = client.get("/api/v1/search", params={"q": "qaisar"}, headers=_auth(seed.dealer_b_token)).json()
        assert theirs["data"]["results"] == []

        admin = client.get("/api/v1/search", params={"q": "qaisar"}, headers=_auth(seed.admin_token)).json()
        assert len(admin["data"]["results"]) == 1

    def test_search_requires_query(self, api_client) -> None:
        client, seed, _svc = api_client
        assert client.get("/api/v1/search", headers=_auth(seed.admin_token)).status_code == 400
        resp = client.get("/api/v1/search", params={"q": "   "}, headers=_auth(seed.admin_token))
        assert resp.status_code == 400


class TestAuditRoutes:
    def test_admin_sees_all_entries(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/admin/audit-logs", params={"limit": 5}, headers=_auth(seed.admin_token))
        assert resp.status_code == 200
        logs = resp.json()["data"]["logs"]
        assert 0 < len(logs) <= 5
        assert logs == sorted(logs, key=lambda e: e["timestamp"], reverse=True)

    def test_limit_out_of_range(self, api_client) -> None:
        client, seed, _svc = api_client
        resp = client.get("/api/v1/admin/audit-logs", params={"limit": 5000}, headers=_auth(seed.admin_token))
        assert resp.status_code == 400

    def test_dealer_sees_only_own_entries(self, api_client) -> None:
        client, seed, _svc = api_client
        client.post("/api/v1/employees", json=_employee_body(), headers=_auth(seed.dealer_b_token))
        resp = client.get("/api/v1/dealer/audit-logs", headers=_auth(seed.dealer_b_token))
        assert resp.status_code == 200
        logs = resp.json()["data"]["logs"]
        assert logs
        assert {e["dealer_id"] for e in logs} == {seed.dealer_b.id}
