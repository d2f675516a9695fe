"""Enums for alert types, severity, alert status and ticket state."""
from enum import Enum


class AlertType(str, Enum):
    HIGH_FAULT_RATE_PER_PRODUCT = "HIGH_FAULT_RATE_PER_PRODUCT"
    DELAYED_REPAIRS = "DELAYED_REPAIRS"
    HIGH_RETURN_RATE = "HIGH_RETURN_RATE"
    REPAIR_CENTER_UNDERPERFORMANCE = "REPAIR_CENTER_UNDERPERFORMANCE"
    DUPLICATE_SERIAL_CLAIMS = "DUPLICATE_SERIAL_CLAIMS"
    OUT_OF_WARRANTY_SPIKE = "OUT_OF_WARRANTY_SPIKE"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AlertStatus(str, Enum):
    OPEN = "OPEN"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


class ApplyResult(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class TicketType(str, Enum):
    REPAIR = "REPAIR"
    RETURN = "RETURN"


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    IN_REPAIR = "IN_REPAIR"
    AWAITING_CUSTOMER = "AWAITING_CUSTOMER"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    RETURN_REQUESTED = "RETURN_REQUESTED"
    RETURN_APPROVED = "RETURN_APPROVED"
    RETURN_COMPLETED = "RETURN_COMPLETED"
    REPLACEMENT_APPROVED = "REPLACEMENT_APPROVED"
    REJECTED_OUT_OF_WARRANTY = "REJECTED_OUT_OF_WARRANTY"


# Statuses that count as a favourable outcome for a repair center.
TERMINAL_SUCCESS_STATUSES = frozenset({
    TicketStatus.RESOLVED,
    TicketStatus.RETURN_COMPLETED,
    TicketStatus.REPLACEMENT_APPROVED,
})
