"""
HTTP tests against the FastAPI app.

Requests share the test's session, so fixtures and endpoints see the same
uncommitted data.
"""
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from servicedesk.core.database import get_db
from servicedesk.main import app
from servicedesk.services.system_setting_service import SystemSettingService

from tests.conftest import TEST_PASSWORD


@pytest_asyncio.fixture
async def client(db_session):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin(admin_role, permissions, make_employee):
    return await make_employee(role=admin_role, email="admin@example.com", name="Admin")


async def open_request(client, headers, service, title="Acoustic survey"):
    response = await client.post(
        "/api/requests", json={"service_id": service.id, "title": title}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_then_me(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "fresh@example.com", "password": "Secret123!", "name": "Fresh Customer",
        })
        assert response.status_code == 201
        tokens = response.json()
        assert tokens["user_type"] == "customer"

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "fresh@example.com"

    @pytest.mark.asyncio
    async def test_employee_login(self, client, admin):
        response = await client.post(
            "/api/auth/employee/login", json={"email": admin.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["user_type"] == "employee"

    @pytest.mark.asyncio
    async def test_bad_login_is_bilingual_401(self, client, customer):
        response = await client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Invalid credentials"
        assert body["message_ar"]

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/requests")

        assert response.status_code == 401
        assert response.json()["message_ar"] == "غير مصادق"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get("/api/requests", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_validation_error_shape(self, client):
        response = await client.post("/api/auth/login", json={"email": "not-an-email"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert {error["field"] for error in body["errors"]} >= {"email", "password"}


class TestAuthorization:

    @pytest.mark.asyncio
    async def test_customer_refused_on_employee_endpoint(self, client, customer, bearer):
        response = await client.get("/api/roles", headers=bearer(customer))

        assert response.status_code == 403
        body = response.json()
        assert body["message"] == "Employee access required"
        assert body["message_ar"]

    @pytest.mark.asyncio
    async def test_missing_permission_lists_what_is_missing(
        self, client, permissions, make_role, make_employee, bearer
    ):
        role = await make_role(permission_names=["roles:read"], registry=permissions)
        employee = await make_employee(role=role)

        response = await client.post("/api/roles", json={"name": "Auditors"}, headers=bearer(employee))

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "permission_denied"
        assert body["required_permissions"] == ["roles:create"]
        assert body["missing_permissions"] == ["roles:create"]

    @pytest.mark.asyncio
    async def test_admin_creates_role(self, client, admin, permissions, bearer):
        response = await client.post("/api/roles", json={
            "name": "Auditors",
            "name_ar": "المراجعون",
            "permission_ids": [permissions["audit:read"].id],
        }, headers=bearer(admin))

        assert response.status_code == 201
        assert [p["name"] for p in response.json()["permissions"]] == ["audit:read"]


class TestRequestEndpoints:

    @pytest.mark.asyncio
    async def test_customer_opens_and_submits(self, client, customer, service, bearer):
        created = await open_request(client, bearer(customer), service)
        assert created["status"] == "DRAFT"
        assert created["customer_id"] == customer.id

        response = await client.patch(
            f"/api/requests/{created['id']}/status", json={"status": "SUBMITTED"}, headers=bearer(customer)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "SUBMITTED"
        assert body["allowed_transitions"] == ["UNDER_REVIEW", "REJECTED", "CANCELLED"]

    @pytest.mark.asyncio
    async def test_illegal_transition_is_400_with_allowed_list(self, client, customer, admin, service, bearer):
        created = await open_request(client, bearer(customer), service)
        await client.patch(
            f"/api/requests/{created['id']}/status", json={"status": "SUBMITTED"}, headers=bearer(admin)
        )

        response = await client.patch(
            f"/api/requests/{created['id']}/status", json={"status": "DELIVERED"}, headers=bearer(admin)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_status_transition"
        assert body["current_status"] == "SUBMITTED"
        assert body["allowed_transitions"] == ["UNDER_REVIEW", "REJECTED", "CANCELLED"]
        assert body["message_ar"]

        current = await client.get(f"/api/requests/{created['id']}", headers=bearer(admin))
        assert current.json()["status"] == "SUBMITTED"

    @pytest.mark.asyncio
    async def test_customer_cannot_approve(self, client, customer, admin, service, bearer):
        created = await open_request(client, bearer(customer), service)
        for status in ("SUBMITTED", "UNDER_REVIEW"):
            await client.patch(
                f"/api/requests/{created['id']}/status", json={"status": status}, headers=bearer(admin)
            )

        response = await client.patch(
            f"/api/requests/{created['id']}/status", json={"status": "APPROVED"}, headers=bearer(customer)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_customers_only_see_their_own(self, client, customer, make_customer, service, bearer):
        other = await make_customer(email="other@example.com")
        mine = await open_request(client, bearer(customer), service, title="Mine")
        await open_request(client, bearer(other), service, title="Theirs")

        listed = await client.get("/api/requests", headers=bearer(customer))
        assert listed.json()["total"] == 1
        assert listed.json()["items"][0]["id"] == mine["id"]

        foreign = await client.get(f"/api/requests/{mine['id']}", headers=bearer(other))
        assert foreign.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_must_name_customer(self, client, admin, service, bearer):
        response = await client.post(
            "/api/requests", json={"service_id": service.id, "title": "Walk-in"}, headers=bearer(admin)
        )

        assert response.status_code == 400
        assert response.json()["message_ar"] == "يجب تحديد العميل"

    @pytest.mark.asyncio
    async def test_assign(self, client, customer, admin, service, make_employee, bearer):
        engineer = await make_employee(email="engineer@example.com")
        created = await open_request(client, bearer(customer), service)

        response = await client.post(
            f"/api/requests/{created['id']}/assign", json={"employee_id": engineer.id}, headers=bearer(admin)
        )

        assert response.status_code == 200
        assert response.json()["assigned_to_id"] == engineer.id

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, client, customer, admin, service, bearer):
        created = await open_request(client, bearer(customer), service)
        await client.patch(
            f"/api/requests/{created['id']}/status", json={"status": "SUBMITTED"}, headers=bearer(customer)
        )

        response = await client.get(
            f"/api/audit-logs/entity/ServiceRequest/{created['id']}", headers=bearer(admin)
        )

        assert response.status_code == 200
        actions = {entry["action"] for entry in response.json()}
        assert actions == {"CREATE", "STATUS_CHANGE"}


class TestSettingsEndpoints:

    @pytest.mark.asyncio
    async def test_public_settings_need_no_token(self, client, db_session):
        await SystemSettingService(db_session).seed_defaults()

        response = await client.get("/api/settings/system/public")

        assert response.status_code == 200
        assert [s["key"] for s in response.json()] == ["company.name", "company.phone"]

    @pytest.mark.asyncio
    async def test_customer_refused_on_reference_data(self, client, customer, bearer):
        response = await client.get("/api/settings/test-types", headers=bearer(customer))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_sets_up_distance_rates_and_quotes(self, client, admin, bearer):
        for body in (
            {"from_km": 0, "to_km": 10, "rate": "100"},
            {"from_km": 10, "to_km": 50, "rate": "200", "rate_per_km": "5"},
        ):
            response = await client.post("/api/settings/distance-rates", json=body, headers=bearer(admin))
            assert response.status_code == 201, response.text

        overlap = await client.post(
            "/api/settings/distance-rates", json={"from_km": 40, "to_km": 60, "rate": "300"}, headers=bearer(admin)
        )
        quote = await client.get("/api/settings/distance-rates/quote", params={"km": 25}, headers=bearer(admin))

        assert overlap.status_code == 409
        assert overlap.json()["message_ar"] == "نطاق المسافة يتداخل مع تعريفة موجودة"
        assert quote.status_code == 200
        assert Decimal(quote.json()["fee"]) == Decimal("275.00")

    @pytest.mark.asyncio
    async def test_bulk_update_reports_each_key(self, client, db_session, admin, bearer):
        await SystemSettingService(db_session).seed_defaults()

        response = await client.patch(
            "/api/settings/system",
            json={"settings": [
                {"key": "billing.tax_rate", "value": "12"},
                {"key": "billing.missing", "value": "1"},
            ]},
            headers=bearer(admin),
        )

        assert response.status_code == 200
        results = response.json()
        assert [r["success"] for r in results] == [True, False]
        assert results[0]["setting"]["value"] == "12"
        assert results[1]["error"] == "Setting not found"

    @pytest.mark.asyncio
    async def test_lookup_category_by_code_hides_inactive_items(self, client, admin, bearer):
        created = await client.post(
            "/api/settings/lookup-categories",
            json={
                "code": "soil_types", "name": "Soil types", "name_ar": "أنواع التربة",
                "items": [
                    {"code": "clay", "name": "Clay", "name_ar": "طينية"},
                    {"code": "peat", "name": "Peat", "name_ar": "خثية", "is_active": False},
                ],
            },
            headers=bearer(admin),
        )
        assert created.status_code == 201, created.text

        response = await client.get("/api/settings/lookup-categories/code/soil_types", headers=bearer(admin))

        assert response.status_code == 200
        assert [item["code"] for item in response.json()["items"]] == ["clay"]
