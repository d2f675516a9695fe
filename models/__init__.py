"""Data models."""
from models.enums import AlertType, Severity, AlertStatus, ApplyResult, TicketType, TicketStatus
from models.tickets import Product, RepairCenter, Ticket
from models.alerts import Alert, Finding
from models.settings import EvaluatorConfig
