"""Shared constants and enums used across the application."""

from enum import StrEnum


class InsuranceType(StrEnum):
    """Lines of business used for lead interest and policy templates."""

    LIFE = "Life"
    HEALTH = "Health"
    AUTO = "Auto"
    HOME = "Home"
    BUSINESS = "Business"


class LeadStatus(StrEnum):
    """Sales pipeline stage of a lead."""

    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    WON = "Won"
    LOST = "Lost"


class LeadPriority(StrEnum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"


class PolicyStatus(StrEnum):
    """Lifecycle status of a client's policy instance."""

    ACTIVE = "Active"
    EXPIRED = "Expired"


class Gender(StrEnum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class MaritalStatus(StrEnum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"
    DIVORCED = "DIVORCED"
    WIDOWED = "WIDOWED"


class Relationship(StrEnum):
    """Relationship of a client record to the primary policyholder."""

    SPOUSE = "SPOUSE"
    CHILD = "CHILD"
    PARENT = "PARENT"
    SIBLING = "SIBLING"
    EMPLOYEE = "EMPLOYEE"
    DEPENDENT = "DEPENDENT"
    OTHER = "OTHER"


class DocumentType(StrEnum):
    """Category of an uploaded client document."""

    IDENTITY_PROOF = "IDENTITY_PROOF"
    ADDRESS_PROOF = "ADDRESS_PROOF"
    INCOME_PROOF = "INCOME_PROOF"
    MEDICAL_REPORT = "MEDICAL_REPORT"
    POLICY_DOCUMENT = "POLICY_DOCUMENT"
    OTHER = "OTHER"


class MessageChannel(StrEnum):
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"


class MessageType(StrEnum):
    """Purpose of an outbound automated message."""

    BIRTHDAY_WISH = "BIRTHDAY_WISH"
    POLICY_RENEWAL = "POLICY_RENEWAL"
    CUSTOM = "CUSTOM"


class MessageStatus(StrEnum):
    """Delivery status of a logged message."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class AutomationTrigger(StrEnum):
    BIRTHDAY = "BIRTHDAY"
    POLICY_EXPIRY = "POLICY_EXPIRY"


class WarningLevel(StrEnum):
    """Urgency bucket of an expiring policy."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


# ── Validation patterns ──────────────────────
INDIAN_MOBILE_PATTERN = r"^[6-9]\d{9}$"
PAN_PATTERN = r"^[A-Z]{5}[0-9]{4}[A-Z]$"
GST_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$"
POLICY_NUMBER_PATTERN = r"^[A-Za-z0-9\-_]+$"

# ── Expiry warning thresholds (days) ─────────
CRITICAL_DAYS = 7
WARNING_DAYS = 30
INFO_DAYS = 60

# ── Pagination ───────────────────────────────
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
