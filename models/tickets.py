"""Dataclasses for the read-only ticket snapshot: products, repair centers, tickets."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.enums import TicketStatus, TicketType


def parse_timestamp(value):
    """Coerce an ISO string or datetime to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_db_timestamp(value):
    """UTC ISO string used for every stored timestamp so string order matches time order."""
    return parse_timestamp(value).isoformat(timespec="microseconds")


_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}


def parse_flag(value, default=True):
    """Coerce a stored or imported boolean. Strings like "false" are parsed, not truth-tested."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


@dataclass
class Product:
    id: str = ""
    name: str = ""
    sku: str = ""


@dataclass
class RepairCenter:
    id: str = ""
    name: str = ""


@dataclass
class Ticket:
    id: str = ""
    ticket_number: int = 0
    product_id: str = ""
    repair_center_id: Optional[str] = None
    owner_id: str = ""
    customer_email: str = ""
    serial_number: str = ""
    ticket_type: TicketType = TicketType.REPAIR
    status: TicketStatus = TicketStatus.OPEN
    warranty_eligible: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Resolved references, filled in by ticket queries
    product_sku: str = ""
    product_name: str = ""
    repair_center_name: str = ""

    def to_dict(self):
        """Flatten to the column layout of the tickets table."""
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "product_id": self.product_id,
            "repair_center_id": self.repair_center_id,
            "owner_id": self.owner_id,
            "customer_email": self.customer_email,
            "serial_number": self.serial_number,
            "ticket_type": TicketType(self.ticket_type).value,
            "status": TicketStatus(self.status).value,
            "warranty_eligible": int(bool(self.warranty_eligible)),
            "created_at": format_db_timestamp(self.created_at),
            "updated_at": format_db_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, d):
        """Build from a DB row or an import record."""
        now = datetime.now(timezone.utc)
        created = parse_timestamp(d.get("created_at")) or now
        return cls(
            id=str(d["id"]),
            ticket_number=int(d.get("ticket_number") or 0),
            product_id=str(d["product_id"]),
            repair_center_id=d.get("repair_center_id"),
            owner_id=str(d.get("owner_id") or ""),
            customer_email=d.get("customer_email") or "",
            serial_number=d.get("serial_number") or "",
            ticket_type=TicketType(d.get("ticket_type", "REPAIR")),
            status=TicketStatus(d.get("status", "OPEN")),
            warranty_eligible=parse_flag(d.get("warranty_eligible")),
            created_at=created,
            updated_at=parse_timestamp(d.get("updated_at")) or created,
            product_sku=d.get("product_sku") or "",
            product_name=d.get("product_name") or "",
            repair_center_name=d.get("repair_center_name") or "",
        )
