"""
Tests for authentication flows.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from servicedesk.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from servicedesk.core.security import decode_token, hash_token
from servicedesk.models.audit_log import AuditLog
from servicedesk.models.enums import AccountStatus, AuditAction, CustomerType, PrincipalKind
from servicedesk.models.password_reset import PasswordResetToken
from servicedesk.models.refresh_token import RefreshToken
from servicedesk.schemas.auth import CustomerRegister
from servicedesk.services.auth_service import AuthService

from tests.conftest import TEST_PASSWORD


@pytest.fixture
def auth_service(db_session, mock_mailer):
    return AuthService(db_session, mailer=mock_mailer)


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_issues_tokens_and_mails(self, auth_service, mock_mailer):
        customer, tokens = await auth_service.register_customer(CustomerRegister(
            email="New.Client@Example.com", password="Secret123!", name="New Client",
        ))

        assert customer.email == "new.client@example.com"
        assert customer.is_verified is False
        assert tokens["user_type"] == PrincipalKind.CUSTOMER
        claims = decode_token(tokens["access_token"])
        assert claims["sub"] == customer.id
        assert claims["kind"] == "customer"
        assert "role_id" not in claims
        mock_mailer.send_verification_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_email_case_insensitive(self, auth_service, customer):
        with pytest.raises(ConflictError):
            await auth_service.register_customer(CustomerRegister(
                email=customer.email.upper(), password="Secret123!", name="Copy Cat",
            ))

    @pytest.mark.asyncio
    async def test_corporate_needs_company_name(self, auth_service):
        with pytest.raises(BadRequestError):
            await auth_service.register_customer(CustomerRegister(
                email="corp@example.com", password="Secret123!", name="Corp",
                customer_type=CustomerType.CORPORATE,
            ))

    @pytest.mark.asyncio
    async def test_consultant_needs_license(self, auth_service):
        with pytest.raises(BadRequestError):
            await auth_service.register_customer(CustomerRegister(
                email="eng@example.com", password="Secret123!", name="Consulting Eng",
                customer_type=CustomerType.CONSULTANT,
            ))


class TestLogin:

    @pytest.mark.asyncio
    async def test_customer_login(self, db_session, auth_service, customer):
        account, tokens = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)

        assert account.id == customer.id
        assert account.login_count == 1
        assert account.last_login_at is not None
        audit = (await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.LOGIN)
        )).scalar_one()
        assert audit.entity_id == customer.id

    @pytest.mark.asyncio
    async def test_employee_token_carries_role(self, auth_service, admin_role, make_employee):
        employee = await make_employee(role=admin_role)

        _, tokens = await auth_service.login(PrincipalKind.EMPLOYEE, employee.email, TEST_PASSWORD)

        claims = decode_token(tokens["access_token"])
        assert claims["kind"] == "employee"
        assert claims["role_id"] == admin_role.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth_service, customer):
        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.login(PrincipalKind.CUSTOMER, customer.email, "not-the-password")
        assert exc_info.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_kinds_do_not_cross(self, auth_service, customer):
        with pytest.raises(UnauthorizedError):
            await auth_service.login(PrincipalKind.EMPLOYEE, customer.email, TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_inactive_account(self, auth_service, make_employee):
        employee = await make_employee(status=AccountStatus.SUSPENDED)

        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.login(PrincipalKind.EMPLOYEE, employee.email, TEST_PASSWORD)
        assert exc_info.value.message == "Employee account is inactive"


class TestRefreshTokens:

    @pytest.mark.asyncio
    async def test_refresh_rotates(self, auth_service, customer):
        _, tokens = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)

        rotated = await auth_service.refresh(tokens["refresh_token"])

        assert rotated["refresh_token"] != tokens["refresh_token"]
        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.refresh(tokens["refresh_token"])
        assert exc_info.value.message == "Refresh token has been revoked"

    @pytest.mark.asyncio
    async def test_unknown_token(self, auth_service):
        with pytest.raises(UnauthorizedError):
            await auth_service.refresh("not-a-token")

    @pytest.mark.asyncio
    async def test_only_hash_is_stored(self, db_session, auth_service, customer):
        _, tokens = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)

        stored = (await db_session.execute(select(RefreshToken))).scalar_one()

        assert stored.token_hash == hash_token(tokens["refresh_token"])
        assert stored.token_hash != tokens["refresh_token"]

    @pytest.mark.asyncio
    async def test_expired_token(self, db_session, auth_service, customer):
        _, tokens = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)
        stored = (await db_session.execute(select(RefreshToken))).scalar_one()
        stored.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db_session.flush()

        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.refresh(tokens["refresh_token"])
        assert exc_info.value.message == "Refresh token has expired"

    @pytest.mark.asyncio
    async def test_logout_revokes_everything(self, auth_service, customer, principal_of):
        _, first = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)
        _, second = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)

        revoked = await auth_service.logout(principal_of(customer))

        assert revoked == 2
        for tokens in (first, second):
            with pytest.raises(UnauthorizedError):
                await auth_service.refresh(tokens["refresh_token"])


class TestPasswordReset:

    @pytest.mark.asyncio
    async def test_unknown_email_is_silent(self, auth_service, mock_mailer):
        assert await auth_service.forgot_password("nobody@example.com", PrincipalKind.CUSTOMER) is None
        mock_mailer.send_password_reset_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_flow(self, auth_service, customer, mock_mailer):
        _, tokens = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, TEST_PASSWORD)
        token = await auth_service.forgot_password(customer.email, PrincipalKind.CUSTOMER)
        mock_mailer.send_password_reset_email.assert_awaited_once()

        await auth_service.reset_password(token, "BrandNew123!", "BrandNew123!")

        account, _ = await auth_service.login(PrincipalKind.CUSTOMER, customer.email, "BrandNew123!")
        assert account.id == customer.id
        with pytest.raises(UnauthorizedError):
            await auth_service.refresh(tokens["refresh_token"])
        with pytest.raises(BadRequestError):
            await auth_service.reset_password(token, "Another123!", "Another123!")

    @pytest.mark.asyncio
    async def test_new_request_replaces_old_token(self, db_session, auth_service, customer):
        first = await auth_service.forgot_password(customer.email, PrincipalKind.CUSTOMER)
        await auth_service.forgot_password(customer.email, PrincipalKind.CUSTOMER)

        stored = (await db_session.execute(select(PasswordResetToken))).scalars().all()
        assert len(stored) == 1
        with pytest.raises(BadRequestError):
            await auth_service.reset_password(first, "BrandNew123!", "BrandNew123!")

    @pytest.mark.asyncio
    async def test_mismatched_passwords(self, auth_service, customer):
        token = await auth_service.forgot_password(customer.email, PrincipalKind.CUSTOMER)

        with pytest.raises(BadRequestError):
            await auth_service.reset_password(token, "BrandNew123!", "Different123!")

    @pytest.mark.asyncio
    async def test_change_password(self, auth_service, customer, principal_of):
        principal = principal_of(customer)

        with pytest.raises(BadRequestError):
            await auth_service.change_password(principal, "wrong", "BrandNew123!", "BrandNew123!")

        await auth_service.change_password(principal, TEST_PASSWORD, "BrandNew123!", "BrandNew123!")
        await auth_service.login(PrincipalKind.CUSTOMER, customer.email, "BrandNew123!")


class TestEmailVerification:

    @pytest.mark.asyncio
    async def test_verify(self, auth_service, customer, mock_mailer):
        token = await auth_service.send_verification(customer)

        verified = await auth_service.verify_email(token)

        assert verified.is_verified is True
        assert verified.verified_at is not None
        mock_mailer.send_welcome_email.assert_awaited_once()
        with pytest.raises(BadRequestError):
            await auth_service.verify_email(token)

    @pytest.mark.asyncio
    async def test_resend_for_verified_customer(self, auth_service, customer):
        customer.is_verified = True

        with pytest.raises(BadRequestError):
            await auth_service.resend_verification(customer.email)

    @pytest.mark.asyncio
    async def test_resend_invalidates_pending(self, auth_service, customer):
        old_token = await auth_service.send_verification(customer)

        new_token = await auth_service.resend_verification(customer.email)

        with pytest.raises(BadRequestError):
            await auth_service.verify_email(old_token)
        assert (await auth_service.verify_email(new_token)).is_verified


class TestProfile:

    @pytest.mark.asyncio
    async def test_employee_profile_lists_permissions(
        self, auth_service, permissions, make_role, make_employee, principal_of
    ):
        role = await make_role(permission_names=["requests:read", "roles:read"], registry=permissions)
        employee = await make_employee(role=role)

        profile = await auth_service.get_profile(principal_of(employee))

        assert profile["user_type"] == PrincipalKind.EMPLOYEE
        assert profile["role_name"] == "Engineer"
        assert profile["is_admin"] is False
        assert profile["permissions"] == ["requests:read", "roles:read"]

    @pytest.mark.asyncio
    async def test_customer_profile(self, auth_service, customer, principal_of):
        profile = await auth_service.get_profile(principal_of(customer))

        assert profile["user_type"] == PrincipalKind.CUSTOMER
        assert profile["is_verified"] is False
        assert "permissions" not in profile
