"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone

from alerts.settings import SETTINGS_KEY
from models.database import Database
from models.enums import TicketStatus, TicketType
from models.settings import EvaluatorConfig
from models.tickets import Product, RepairCenter, Ticket

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

DEFAULT_SETTINGS = {
    "windows": {
        "faultRateDays": 30,
        "duplicateSerialDays": 90,
        "delayedRepairDays": 10,
        "outOfWarrantyDays": 7,
        "returnRateDays": 30,
    },
    "thresholds": {
        "faultyRequestsPerProduct": 10,
        "repairCenterOverdueCount": 3,
        "repairCenterResolvedRatioMin": 0.5,
        "duplicateSerialCount": 3,
        "outOfWarrantySpikeCount": 5,
        "returnRatePercent": 0.3,
    },
}


def make_ticket(tid, product_id="p1", days_ago=1, ticket_type=TicketType.REPAIR,
                status=TicketStatus.OPEN, updated_days_ago=None, warranty_eligible=True,
                serial=None, owner="owner-1", center=None, now=NOW):
    """Build a ticket created `days_ago` days before `now`. Serials default to unique per ticket."""
    created = now - timedelta(days=days_ago)
    updated = now - timedelta(days=updated_days_ago) if updated_days_ago is not None else created
    return Ticket(
        id=tid,
        ticket_number=int("".join(ch for ch in tid if ch.isdigit()) or 0),
        product_id=product_id,
        repair_center_id=center,
        owner_id=owner,
        customer_email=f"{owner}@example.com",
        serial_number=f"SN-{tid}" if serial is None else serial,
        ticket_type=ticket_type,
        status=status,
        warranty_eligible=warranty_eligible,
        created_at=created,
        updated_at=updated,
        product_sku=f"SKU-{product_id}",
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    os.unlink(db_path)


@pytest.fixture
def config():
    return EvaluatorConfig.from_dict(DEFAULT_SETTINGS)


@pytest.fixture
def seeded_db(temp_db):
    """Database with settings, two products and two repair centers."""
    temp_db.put_setting(SETTINGS_KEY, DEFAULT_SETTINGS)
    temp_db.save_products([
        Product(id="p1", name="Blender 3000", sku="BL-3000"),
        Product(id="p2", name="Toaster Pro", sku="TP-200"),
    ])
    temp_db.save_repair_centers([
        RepairCenter(id="rc1", name="North Service Hub"),
        RepairCenter(id="rc2", name="South Service Hub"),
    ])
    return temp_db
