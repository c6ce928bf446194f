from enum import Enum

# Enums
class RequestStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"

class ReviewStatus(str, Enum):
    """Sub-status owned by one of the two purchase request reviewers"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER-ADMIN"
    ADMIN = "ADMIN"
    REVIEWER = "REVIEWER"
    STAFF = "STAFF"

class RequestType(str, Enum):
    CONCEPT_NOTE = "concept_note"
    PURCHASE_REQUEST = "purchase_request"
    PAYMENT_REQUEST = "payment_request"
    ADVANCE_REQUEST = "advance_request"
    TRAVEL_REQUEST = "travel_request"
    EXPENSE_CLAIM = "expense_claim"
    PAYMENT_VOUCHER = "payment_voucher"
    PURCHASE_ORDER = "purchase_order"
    STAFF_STRATEGY = "staff_strategy"
    LEAVE = "leave"

class LeaveType(str, Enum):
    ANNUAL = "Annual leave"
    COMPASSIONATE = "Compassionate leave"
    SICK = "Sick leave"
    MATERNITY = "Maternity leave"
    PATERNITY = "Paternity leave"
    EMERGENCY = "Emergency leave"
    STUDY = "Study Leave"
    WITHOUT_PAY = "Leave without pay"

class NotificationReason(str, Enum):
    ASSIGNED = "assigned"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUS_UPDATED = "status_updated"
    COPIED = "copied"

class SettingDataType(str, Enum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
