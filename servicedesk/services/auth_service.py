"""
Auth Service

Login, registration and token lifecycle for both principal kinds.

Customers and employees authenticate against their own tables and receive
the same token shapes:
- access token: JWT with sub, email, kind (and role_id for employees)
- refresh token: opaque, stored hashed, rotated on every use
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union, Dict, Any

from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.config import settings
from servicedesk.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from servicedesk.core.permissions import resolve_effective_permissions
from servicedesk.core.principal import Principal
from servicedesk.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    generate_opaque_token,
    hash_token,
)
from servicedesk.models.customer import Customer
from servicedesk.models.employee import Employee
from servicedesk.models.email_verification import EmailVerificationToken
from servicedesk.models.enums import AuditAction, CustomerType, PrincipalKind
from servicedesk.models.password_reset import PasswordResetToken
from servicedesk.models.refresh_token import RefreshToken
from servicedesk.schemas.auth import CustomerRegister
from servicedesk.services.audit_service import AuditService
from servicedesk.services.mail_service import MailService, mail_service

logger = logging.getLogger(__name__)

Account = Union[Customer, Employee]


def principal_for(account: Account) -> Principal:
    """Build the request principal for a loaded customer or employee."""
    if isinstance(account, Employee):
        return Principal(
            id=account.id,
            kind=PrincipalKind.EMPLOYEE,
            email=account.email,
            role_id=account.role_id,
        )
    return Principal(id=account.id, kind=PrincipalKind.CUSTOMER, email=account.email)


def validate_customer_type_fields(customer_type: CustomerType, company_name: Optional[str],
                                  license_number: Optional[str]) -> None:
    """Registration fields required by customer type."""
    if customer_type == CustomerType.CORPORATE and not company_name:
        raise BadRequestError("Company name is required for CORPORATE customer type")
    if customer_type == CustomerType.CONSULTANT and not license_number:
        raise BadRequestError("License number is required for CONSULTANT customer type")


class AuthService:
    """
    Service for authentication flows.

    Features:
    - Customer self-registration with email verification
    - Separate customer / employee login
    - Refresh token rotation and revocation
    - Password reset without account enumeration
    """

    def __init__(self, db: AsyncSession, mailer: Optional[MailService] = None):
        self.db = db
        self.mailer = mailer or mail_service
        self.audit = AuditService(db)

    # ============================================================
    # Account lookup
    # ============================================================

    async def get_account(self, kind: PrincipalKind, account_id: str) -> Optional[Account]:
        model = Employee if kind == PrincipalKind.EMPLOYEE else Customer
        result = await self.db.execute(select(model).where(model.id == account_id))
        return result.scalar_one_or_none()

    async def get_account_by_email(self, kind: PrincipalKind, email: str) -> Optional[Account]:
        model = Employee if kind == PrincipalKind.EMPLOYEE else Customer
        result = await self.db.execute(
            select(model).where(func.lower(model.email) == email.lower())
        )
        return result.scalar_one_or_none()

    # ============================================================
    # Registration & login
    # ============================================================

    async def register_customer(
        self,
        data: CustomerRegister,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[Customer, Dict[str, Any]]:
        """
        Self-registration.

        Raises:
            ConflictError: Email already registered
            BadRequestError: Missing type-specific fields
        """
        if await self.get_account_by_email(PrincipalKind.CUSTOMER, data.email):
            raise ConflictError("Email already registered")

        validate_customer_type_fields(data.customer_type, data.company_name, data.license_number)

        fields = data.model_dump(exclude={"password", "email"})
        customer = Customer(
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            **fields,
        )
        self.db.add(customer)
        await self.db.flush()

        await self.send_verification(customer)
        tokens = await self.issue_tokens(customer, ip_address=ip_address, user_agent=user_agent)

        await self.audit.log_create(
            "Customer", customer.id,
            new_values={"email": customer.email, "customer_type": customer.customer_type},
            principal=principal_for(customer), ip_address=ip_address, user_agent=user_agent,
        )
        logger.info(f"Customer registered: {customer.id}")
        return customer, tokens

    async def login(
        self,
        kind: PrincipalKind,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[Account, Dict[str, Any]]:
        """
        Password login for either principal kind.

        Raises:
            UnauthorizedError: Unknown email, wrong password or inactive account
        """
        account = await self.get_account_by_email(kind, email)
        if not account or not verify_password(password, account.password_hash):
            logger.warning(f"Failed {kind.value} login for {email} from {ip_address}")
            raise UnauthorizedError("Invalid credentials")

        if not account.is_active:
            logger.warning(f"Login attempt on inactive {kind.value} account {account.id}")
            if kind == PrincipalKind.EMPLOYEE:
                raise UnauthorizedError("Employee account is inactive")
            raise UnauthorizedError("Customer account is inactive")

        account.last_login_at = datetime.now(timezone.utc)
        account.login_count = (account.login_count or 0) + 1
        await self.db.flush()

        tokens = await self.issue_tokens(account, ip_address=ip_address, user_agent=user_agent)
        await self.audit.log(
            AuditAction.LOGIN, kind.value.capitalize(), account.id,
            principal=principal_for(account), ip_address=ip_address, user_agent=user_agent,
        )
        return account, tokens

    # ============================================================
    # Tokens
    # ============================================================

    async def issue_tokens(
        self,
        account: Account,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an access token and a stored refresh token."""
        principal = principal_for(account)

        if principal.is_employee:
            minutes = settings.EMPLOYEE_ACCESS_TOKEN_EXPIRE_MINUTES
        else:
            minutes = settings.CUSTOMER_ACCESS_TOKEN_EXPIRE_MINUTES

        claims = {"sub": principal.id, "email": principal.email, "kind": principal.kind.value}
        if principal.role_id:
            claims["role_id"] = principal.role_id
        access_token = create_access_token(claims, expires_delta=timedelta(minutes=minutes))

        refresh_token = generate_opaque_token(64)
        self.db.add(RefreshToken(
            token_hash=hash_token(refresh_token),
            user_id=principal.id,
            user_type=principal.kind,
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        ))
        await self.db.flush()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": minutes * 60,
            "user_type": principal.kind,
        }

    async def refresh(
        self,
        refresh_token: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Rotate a refresh token: the presented token is revoked and a new pair issued.

        Raises:
            UnauthorizedError: Unknown, revoked or expired token, or owner gone / inactive
        """
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
        )
        stored = result.scalar_one_or_none()

        if not stored:
            raise UnauthorizedError("Invalid refresh token")
        if stored.revoked_at is not None:
            logger.warning(f"Revoked refresh token presented for {stored.user_type.value} {stored.user_id}")
            raise UnauthorizedError("Refresh token has been revoked")
        if stored.is_expired:
            raise UnauthorizedError("Refresh token has expired")

        # Weak reference: the owner may have been deleted since issuance
        account = await self.get_account(stored.user_type, stored.user_id)
        if not account:
            raise UnauthorizedError("Invalid refresh token")
        if not account.is_active:
            raise UnauthorizedError("Account is inactive")

        stored.revoke()
        await self.db.flush()
        return await self.issue_tokens(account, ip_address=ip_address, user_agent=user_agent)

    async def revoke_all_refresh_tokens(self, user_id: str, user_type: PrincipalKind) -> int:
        result = await self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.user_type == user_type,
                RefreshToken.revoked_at.is_(None),
            )
            .values(revoked_at=datetime.now(timezone.utc))
        )
        return result.rowcount

    async def logout(self, principal: Principal, ip_address: Optional[str] = None) -> int:
        """Revoke every refresh token the principal holds."""
        revoked = await self.revoke_all_refresh_tokens(principal.id, principal.kind)
        await self.audit.log(
            AuditAction.LOGOUT, principal.kind.value.capitalize(), principal.id,
            principal=principal, ip_address=ip_address,
        )
        return revoked

    # ============================================================
    # Password reset
    # ============================================================

    async def forgot_password(self, email: str, user_type: PrincipalKind) -> Optional[str]:
        """
        Start a password reset.

        Unknown emails are ignored silently so callers cannot discover
        which accounts exist. Returns the plaintext token (for mailing) or None.
        """
        account = await self.get_account_by_email(user_type, email)
        if not account:
            logger.info(f"Password reset requested for unknown {user_type.value} email")
            return None

        await self.db.execute(
            delete(PasswordResetToken).where(
                PasswordResetToken.email == account.email,
                PasswordResetToken.user_type == user_type,
            )
        )

        token = generate_opaque_token(32)
        self.db.add(PasswordResetToken(
            email=account.email,
            user_type=user_type,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        ))
        await self.db.flush()

        await self.mailer.send_password_reset_email(account.email, account.name, token)
        return token

    async def reset_password(self, token: str, new_password: str, confirm_password: str) -> Account:
        """
        Complete a password reset and revoke all refresh tokens.

        Raises:
            BadRequestError: Mismatched passwords, or invalid / used / expired token
        """
        if new_password != confirm_password:
            raise BadRequestError("Passwords do not match")

        result = await self.db.execute(
            select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(token))
        )
        reset = result.scalar_one_or_none()
        if not reset:
            raise BadRequestError("Invalid reset token")
        if reset.used_at is not None:
            raise BadRequestError("Reset token has already been used")
        if reset.is_expired:
            raise BadRequestError("Reset token has expired")

        account = await self.get_account_by_email(reset.user_type, reset.email)
        if not account:
            raise BadRequestError("Invalid reset token")

        account.password_hash = get_password_hash(new_password)
        reset.mark_used()
        await self.revoke_all_refresh_tokens(account.id, reset.user_type)
        await self.db.flush()

        await self.audit.log(
            AuditAction.PASSWORD_RESET, reset.user_type.value.capitalize(), account.id,
            principal=principal_for(account),
        )
        logger.info(f"Password reset completed for {reset.user_type.value} {account.id}")
        return account

    async def change_password(
        self,
        principal: Principal,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        if new_password != confirm_password:
            raise BadRequestError("Passwords do not match")

        account = await self.get_account(principal.kind, principal.id)
        if not account:
            raise UnauthorizedError("Unauthorized")
        if not verify_password(current_password, account.password_hash):
            raise BadRequestError("Current password is incorrect")

        account.password_hash = get_password_hash(new_password)
        await self.revoke_all_refresh_tokens(account.id, principal.kind)
        await self.db.flush()

    # ============================================================
    # Email verification (customers)
    # ============================================================

    async def send_verification(self, customer: Customer) -> str:
        """Issue a verification token and mail it. Returns the plaintext token."""
        token = generate_opaque_token(32)
        self.db.add(EmailVerificationToken(
            email=customer.email,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
        ))
        await self.db.flush()
        await self.mailer.send_verification_email(customer.email, customer.name, token)
        return token

    async def verify_email(self, token: str) -> Customer:
        result = await self.db.execute(
            select(EmailVerificationToken).where(EmailVerificationToken.token_hash == hash_token(token))
        )
        verification = result.scalar_one_or_none()
        if not verification:
            raise BadRequestError("Invalid verification token")
        if verification.used_at is not None:
            raise BadRequestError("Verification token has already been used")
        if verification.is_expired:
            raise BadRequestError("Verification token has expired")

        customer = await self.get_account_by_email(PrincipalKind.CUSTOMER, verification.email)
        if not customer:
            raise BadRequestError("Invalid verification token")

        customer.is_verified = True
        customer.verified_at = datetime.now(timezone.utc)
        verification.mark_used()
        await self.db.flush()

        await self.audit.log(
            AuditAction.EMAIL_VERIFY, "Customer", customer.id, principal=principal_for(customer),
        )
        await self.mailer.send_welcome_email(customer.email, customer.name)
        return customer

    async def resend_verification(self, email: str) -> Optional[str]:
        """Re-issue a verification token. Unknown emails are ignored."""
        customer = await self.get_account_by_email(PrincipalKind.CUSTOMER, email)
        if not customer:
            return None
        if customer.is_verified:
            raise BadRequestError("Email is already verified")

        await self.db.execute(
            delete(EmailVerificationToken).where(
                EmailVerificationToken.email == customer.email,
                EmailVerificationToken.used_at.is_(None),
            )
        )
        return await self.send_verification(customer)

    # ============================================================
    # Profile
    # ============================================================

    async def get_profile(self, principal: Principal) -> Dict[str, Any]:
        account = await self.get_account(principal.kind, principal.id)
        if not account:
            raise UnauthorizedError("Unauthorized")

        profile = {
            "id": account.id,
            "user_type": principal.kind,
            "email": account.email,
            "name": account.name,
            "name_ar": account.name_ar,
            "phone": account.phone,
            "status": account.status,
            "last_login_at": account.last_login_at,
        }
        if isinstance(account, Customer):
            profile.update({
                "customer_type": account.customer_type,
                "company_name": account.company_name,
                "is_verified": account.is_verified,
            })
        else:
            permissions = await resolve_effective_permissions(self.db, principal)
            profile.update({
                "role_id": account.role_id,
                "role_name": account.role.name if account.role else None,
                "is_admin": bool(account.role and account.role.is_admin),
                "permissions": sorted(permissions),
            })
        return profile
