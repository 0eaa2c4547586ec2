"""
Enumerations shared by models, schemas and services.

Values equal names so they serialize the same way in the database, the JSON
API and log lines.
"""
import enum


class PrincipalKind(str, enum.Enum):
    """The two disjoint kinds of authenticated actor."""
    CUSTOMER = "customer"
    EMPLOYEE = "employee"


class AccountStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"


class CustomerType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    CORPORATE = "CORPORATE"
    CONSULTANT = "CONSULTANT"
    SPONSOR = "SPONSOR"


class ServiceCategory(str, enum.Enum):
    LAB_TESTS = "LAB_TESTS"
    CONSULTANCY = "CONSULTANCY"
    STATIONS_APPROVAL = "STATIONS_APPROVAL"
    FIRE_SAFETY = "FIRE_SAFETY"
    GREEN_BUILDING = "GREEN_BUILDING"
    TRAINING = "TRAINING"
    SOIL_TESTING = "SOIL_TESTING"
    CONCRETE_TESTING = "CONCRETE_TESTING"
    STRUCTURAL_REVIEW = "STRUCTURAL_REVIEW"
    SEISMIC_ANALYSIS = "SEISMIC_ANALYSIS"
    THERMAL_INSULATION = "THERMAL_INSULATION"
    ACOUSTIC_TESTING = "ACOUSTIC_TESTING"
    OTHER = "OTHER"


class ServiceStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class PricingType(str, enum.Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"
    CUSTOM = "CUSTOM"


class RequestStatus(str, enum.Enum):
    """Service request lifecycle status"""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"  # final
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"  # final
    CANCELLED = "CANCELLED"  # final
    ON_HOLD = "ON_HOLD"


class RequestPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"
    FAWRY = "FAWRY"
    VODAFONE_CASH = "VODAFONE_CASH"
    OTHER = "OTHER"


class DocumentType(str, enum.Enum):
    CONTRACT = "CONTRACT"
    CERTIFICATE = "CERTIFICATE"
    REPORT = "REPORT"
    INVOICE_PDF = "INVOICE_PDF"
    RECEIPT = "RECEIPT"
    TEST_RESULT = "TEST_RESULT"
    TECHNICAL_DRAWING = "TECHNICAL_DRAWING"
    PHOTO = "PHOTO"
    VIDEO = "VIDEO"
    OTHER = "OTHER"


class NotificationType(str, enum.Enum):
    REQUEST_CREATED = "REQUEST_CREATED"
    REQUEST_STATUS_CHANGED = "REQUEST_STATUS_CHANGED"
    REQUEST_ASSIGNED = "REQUEST_ASSIGNED"
    INVOICE_CREATED = "INVOICE_CREATED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    ACCOUNT_VERIFIED = "ACCOUNT_VERIFIED"
    PASSWORD_RESET = "PASSWORD_RESET"
    WELCOME = "WELCOME"
    REMINDER = "REMINDER"
    SYSTEM = "SYSTEM"


class NotificationChannel(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"
    IN_APP = "IN_APP"
    PUSH = "PUSH"


class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    READ = "READ"


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET = "PASSWORD_RESET"
    EMAIL_VERIFY = "EMAIL_VERIFY"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGN = "ASSIGN"
    UPLOAD = "UPLOAD"
    DOWNLOAD = "DOWNLOAD"
    EXPORT = "EXPORT"


class StandardType(str, enum.Enum):
    EGYPTIAN = "EGYPTIAN"
    BRITISH = "BRITISH"
    AMERICAN = "AMERICAN"
    EUROPEAN = "EUROPEAN"
    INTERNATIONAL = "INTERNATIONAL"
    OTHER = "OTHER"


class SettingType(str, enum.Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    DATE = "DATE"
