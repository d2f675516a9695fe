"""Dataclasses for detector findings and persisted alert records."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.enums import AlertStatus, AlertType, Severity
from models.tickets import format_db_timestamp, parse_timestamp

GLOBAL_KEY = "global"


@dataclass
class Finding:
    """A candidate alert produced by a detector before deduplication."""
    rule_type: AlertType
    correlation_key: str
    metric_value: float
    threshold: float
    severity: Severity
    title: str
    description: str
    product_id: Optional[str] = None
    ticket_id: Optional[str] = None
    repair_center_id: Optional[str] = None


@dataclass
class Alert:
    id: Optional[int] = None
    rule_type: AlertType = AlertType.HIGH_FAULT_RATE_PER_PRODUCT
    correlation_key: str = ""
    severity: Severity = Severity.MEDIUM
    title: str = ""
    description: str = ""
    product_id: Optional[str] = None
    ticket_id: Optional[str] = None
    repair_center_id: Optional[str] = None
    metric_value: float = 0.0
    threshold: float = 0.0
    status: AlertStatus = AlertStatus.OPEN
    resolution_note: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_finding(cls, finding, now=None):
        now = now or datetime.now(timezone.utc)
        return cls(
            rule_type=finding.rule_type,
            correlation_key=finding.correlation_key,
            severity=finding.severity,
            title=finding.title,
            description=finding.description,
            product_id=finding.product_id,
            ticket_id=finding.ticket_id,
            repair_center_id=finding.repair_center_id,
            metric_value=finding.metric_value,
            threshold=finding.threshold,
            status=AlertStatus.OPEN,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def from_row(cls, row):
        d = dict(row)
        return cls(
            id=d["id"],
            rule_type=AlertType(d["type"]),
            correlation_key=d["correlation_key"],
            severity=Severity(d["severity"]),
            title=d["title"],
            description=d.get("description") or "",
            product_id=d.get("product_id"),
            ticket_id=d.get("ticket_id"),
            repair_center_id=d.get("repair_center_id"),
            metric_value=d.get("metric_value") or 0.0,
            threshold=d.get("threshold") or 0.0,
            status=AlertStatus(d["status"]),
            resolution_note=d.get("resolution_note"),
            created_at=parse_timestamp(d["created_at"]),
            updated_at=parse_timestamp(d["updated_at"]),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.rule_type.value,
            "correlation_key": self.correlation_key,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "product_id": self.product_id,
            "ticket_id": self.ticket_id,
            "repair_center_id": self.repair_center_id,
            "metric_value": self.metric_value,
            "threshold": self.threshold,
            "status": self.status.value,
            "resolution_note": self.resolution_note,
            "created_at": format_db_timestamp(self.created_at),
            "updated_at": format_db_timestamp(self.updated_at),
        }
