"""
Tests for customer, employee and catalog administration and the dashboard.
"""
from decimal import Decimal

import pytest

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.core.security import verify_password
from servicedesk.models.enums import CustomerType, RequestStatus, ServiceStatus
from servicedesk.schemas.account import CustomerCreate, CustomerUpdate, EmployeeCreate, EmployeeUpdate
from servicedesk.schemas.catalog import ServiceCreate, ServiceUpdate
from servicedesk.schemas.request import RequestCreate
from servicedesk.services.catalog_service import CatalogService
from servicedesk.services.customer_service import CustomerService
from servicedesk.services.dashboard_service import DashboardService
from servicedesk.services.employee_service import EmployeeService
from servicedesk.services.request_service import RequestService


class TestCustomerService:

    @pytest.mark.asyncio
    async def test_staff_create(self, db_session):
        customer = await CustomerService(db_session).create(CustomerCreate(
            email="Office@Builders.com", password="Secret123!", name="Builders Co",
            customer_type=CustomerType.CORPORATE, company_name="Builders Co",
        ))

        assert customer.email == "office@builders.com"
        assert verify_password("Secret123!", customer.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session, customer):
        with pytest.raises(ConflictError):
            await CustomerService(db_session).create(CustomerCreate(
                email=customer.email, password="Secret123!", name="Again",
            ))

    @pytest.mark.asyncio
    async def test_switching_to_consultant_needs_license(self, db_session, customer):
        with pytest.raises(BadRequestError):
            await CustomerService(db_session).update(
                customer.id, CustomerUpdate(customer_type=CustomerType.CONSULTANT)
            )

    @pytest.mark.asyncio
    async def test_delete_blocked_by_requests(self, db_session, customer, service):
        await RequestService(db_session).create(customer.id, RequestCreate(service_id=service.id, title="Keep me"))

        with pytest.raises(BadRequestError):
            await CustomerService(db_session).delete(customer.id)

    @pytest.mark.asyncio
    async def test_list_search(self, db_session, customer, make_customer):
        await make_customer(email="someone@example.com", name="Nour Hassan")

        customers, total = await CustomerService(db_session).list_customers(search="nour")

        assert total == 1
        assert customers[0].name == "Nour Hassan"


class TestEmployeeService:

    @pytest.mark.asyncio
    async def test_create_with_role(self, db_session, admin_role):
        employee = await EmployeeService(db_session).create(EmployeeCreate(
            email="lab@example.com", password="Secret123!", name="Lab Lead", role_id=admin_role.id,
        ))

        assert employee.role_id == admin_role.id

    @pytest.mark.asyncio
    async def test_unknown_role(self, db_session):
        with pytest.raises(NotFoundError):
            await EmployeeService(db_session).create(EmployeeCreate(
                email="lab@example.com", password="Secret123!", name="Lab Lead", role_id="missing",
            ))

    @pytest.mark.asyncio
    async def test_password_change_rehashes(self, db_session, make_employee):
        employee = await make_employee()

        await EmployeeService(db_session).update(employee.id, EmployeeUpdate(password="Another123!"))

        assert verify_password("Another123!", employee.password_hash)

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, db_session, make_employee):
        employee = await make_employee()

        with pytest.raises(BadRequestError):
            await EmployeeService(db_session).delete(employee.id, acting_employee_id=employee.id)

    @pytest.mark.asyncio
    async def test_delete_releases_assignments(self, db_session, customer, service, make_employee):
        requests = RequestService(db_session)
        employee = await make_employee()
        request = await requests.create(customer.id, RequestCreate(service_id=service.id, title="Orphaned"))
        await requests.assign_employee(request.id, employee.id)

        await EmployeeService(db_session).delete(employee.id)
        await db_session.refresh(request)

        assert request.assigned_to_id is None


class TestCatalogService:

    @pytest.mark.asyncio
    async def test_public_listing_hides_inactive(self, db_session, service):
        catalog = CatalogService(db_session)
        await catalog.create(ServiceCreate(
            code="OLD-01", name="Retired test", name_ar="اختبار ملغى", status=ServiceStatus.ARCHIVED,
        ))

        public, public_total = await catalog.list_services(active_only=True)
        _, all_total = await catalog.list_services()

        assert public_total == 1
        assert public[0].id == service.id
        assert all_total == 2

    @pytest.mark.asyncio
    async def test_duplicate_code(self, db_session, service):
        with pytest.raises(ConflictError):
            await CatalogService(db_session).create(ServiceCreate(code=service.code, name="Copy", name_ar="نسخة"))

    @pytest.mark.asyncio
    async def test_update(self, db_session, service):
        updated = await CatalogService(db_session).update(service.id, ServiceUpdate(base_price=Decimal("1800")))

        assert updated.base_price == Decimal("1800")

    @pytest.mark.asyncio
    async def test_delete_blocked_by_requests(self, db_session, customer, service):
        await RequestService(db_session).create(customer.id, RequestCreate(service_id=service.id, title="In use"))

        with pytest.raises(BadRequestError):
            await CatalogService(db_session).delete(service.id)


class TestDashboard:

    @pytest.mark.asyncio
    async def test_summary(self, db_session, customer, service):
        requests = RequestService(db_session)
        first = await requests.create(customer.id, RequestCreate(service_id=service.id, title="First"))
        await requests.create(customer.id, RequestCreate(service_id=service.id, title="Second"))
        await requests.update_status(first.id, RequestStatus.SUBMITTED)

        summary = await DashboardService(db_session).get_summary()

        assert summary["requests"]["total"] == 2
        assert summary["requests"]["pending"] == 1
        assert summary["customers"]["total"] == 1
        assert summary["revenue"]["total"] == Decimal("0.00")
        assert summary["services"]["top"][0]["request_count"] == 2
        assert summary["services"]["top"][0]["id"] == service.id

    @pytest.mark.asyncio
    async def test_recent_requests_limit(self, db_session, customer, service):
        requests = RequestService(db_session)
        for title in ("One", "Two", "Three"):
            await requests.create(customer.id, RequestCreate(service_id=service.id, title=f"Request {title}"))

        assert len(await DashboardService(db_session).recent_requests(limit=2)) == 2
