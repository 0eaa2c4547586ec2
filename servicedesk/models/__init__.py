from servicedesk.models.enums import (
    PrincipalKind,
    AccountStatus,
    CustomerType,
    ServiceCategory,
    ServiceStatus,
    PricingType,
    RequestStatus,
    RequestPriority,
    InvoiceStatus,
    PaymentStatus,
    PaymentMethod,
    DocumentType,
    NotificationType,
    NotificationChannel,
    NotificationStatus,
    AuditAction,
    StandardType,
    SettingType,
)
from servicedesk.models.permission import Permission
from servicedesk.models.role import Role, RolePermission, ADMIN_ROLE_NAME
from servicedesk.models.employee import Employee
from servicedesk.models.customer import Customer
from servicedesk.models.service import Service
from servicedesk.models.service_request import ServiceRequest
from servicedesk.models.refresh_token import RefreshToken
from servicedesk.models.password_reset import PasswordResetToken
from servicedesk.models.email_verification import EmailVerificationToken
from servicedesk.models.invoice import Invoice
from servicedesk.models.payment import Payment
from servicedesk.models.document import Document
from servicedesk.models.notification import Notification
from servicedesk.models.audit_log import AuditLog
from servicedesk.models.lookup import (
    TestType,
    SampleType,
    Standard,
    PriceList,
    PriceListItem,
    DistanceRate,
    MixerType,
    LookupCategory,
    LookupItem,
)
from servicedesk.models.system_setting import SystemSetting

__all__ = [
    "PrincipalKind",
    "AccountStatus",
    "CustomerType",
    "ServiceCategory",
    "ServiceStatus",
    "PricingType",
    "RequestStatus",
    "RequestPriority",
    "InvoiceStatus",
    "PaymentStatus",
    "PaymentMethod",
    "DocumentType",
    "NotificationType",
    "NotificationChannel",
    "NotificationStatus",
    "AuditAction",
    "Permission",
    "Role",
    "RolePermission",
    "ADMIN_ROLE_NAME",
    "Employee",
    "Customer",
    "Service",
    "ServiceRequest",
    "RefreshToken",
    "PasswordResetToken",
    "EmailVerificationToken",
    "Invoice",
    "Payment",
    "Document",
    "Notification",
    "AuditLog",
    "StandardType",
    "SettingType",
    "TestType",
    "SampleType",
    "Standard",
    "PriceList",
    "PriceListItem",
    "DistanceRate",
    "MixerType",
    "LookupCategory",
    "LookupItem",
    "SystemSetting",
]
