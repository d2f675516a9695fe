"""Tests for the alert upsert/dedup coordinator."""
import threading
import pytest
from datetime import timedelta
from unittest.mock import patch

from conftest import NOW
from alerts.coordinator import AlertCoordinator
from models.alerts import Finding, GLOBAL_KEY
from models.enums import AlertStatus, AlertType, ApplyResult, Severity
from models.errors import PersistenceConflict


def _finding(metric, rule_type=AlertType.HIGH_FAULT_RATE_PER_PRODUCT, key="p1",
             severity=Severity.MEDIUM):
    return Finding(
        rule_type=rule_type,
        correlation_key=key,
        product_id=key if rule_type == AlertType.HIGH_FAULT_RATE_PER_PRODUCT else None,
        metric_value=metric,
        threshold=10,
        severity=severity,
        title=f"High Fault Rate: {key}",
        description=f"{metric} faulty requests in last 30 days",
    )


def _rows(db):
    return [a.to_dict() for a in db.list_alerts()]


def test_creates_when_no_open_alert(temp_db):
    coord = AlertCoordinator(temp_db)
    status, alert = coord.apply(_finding(12), NOW)
    assert status == ApplyResult.CREATED
    assert alert.id is not None
    stored = temp_db.get_alert(alert.id)
    assert stored.status == AlertStatus.OPEN
    assert stored.metric_value == 12
    assert stored.severity == Severity.MEDIUM
    assert stored.created_at == NOW


def test_non_material_change_writes_nothing(temp_db):
    coord = AlertCoordinator(temp_db)
    coord.apply(_finding(12), NOW)
    before = _rows(temp_db)
    status, _ = coord.apply(_finding(14), NOW + timedelta(hours=1))
    assert status == ApplyResult.UNCHANGED
    assert _rows(temp_db) == before


def test_material_change_updates_in_place(temp_db):
    coord = AlertCoordinator(temp_db)
    _, created = coord.apply(_finding(12), NOW)
    later = NOW + timedelta(hours=1)
    status, alert = coord.apply(_finding(21, severity=Severity.HIGH), later)
    assert status == ApplyResult.UPDATED
    stored = temp_db.get_alert(created.id)
    assert stored.id == created.id
    assert stored.metric_value == 21
    assert stored.severity == Severity.HIGH
    assert stored.description == "21 faulty requests in last 30 days"
    assert stored.created_at == NOW
    assert stored.updated_at == later
    assert stored.status == AlertStatus.OPEN
    assert len(temp_db.list_alerts()) == 1


def test_decrease_beyond_delta_also_updates(temp_db):
    coord = AlertCoordinator(temp_db)
    coord.apply(_finding(20), NOW)
    status, alert = coord.apply(_finding(15), NOW)
    assert status == ApplyResult.UPDATED
    assert alert.metric_value == 15


def test_warranty_spike_uses_wider_delta(temp_db):
    coord = AlertCoordinator(temp_db)
    rt = AlertType.OUT_OF_WARRANTY_SPIKE
    coord.apply(_finding(20, rule_type=rt, key=GLOBAL_KEY, severity=Severity.LOW), NOW)
    status, _ = coord.apply(_finding(23, rule_type=rt, key=GLOBAL_KEY, severity=Severity.LOW), NOW)
    assert status == ApplyResult.UNCHANGED
    status, alert = coord.apply(_finding(24, rule_type=rt, key=GLOBAL_KEY,
                                         severity=Severity.LOW), NOW)
    assert status == ApplyResult.UPDATED
    assert alert.metric_value == 24


@pytest.mark.parametrize("rule_type", [
    AlertType.HIGH_RETURN_RATE, AlertType.REPAIR_CENTER_UNDERPERFORMANCE,
])
def test_ratio_alerts_never_refreshed(temp_db, rule_type):
    coord = AlertCoordinator(temp_db)
    coord.apply(_finding(0.3, rule_type=rule_type), NOW)
    status, alert = coord.apply(_finding(0.9, rule_type=rule_type), NOW)
    assert status == ApplyResult.UNCHANGED
    assert alert.metric_value == 0.3


def test_is_material():
    assert AlertCoordinator.is_material(AlertType.DELAYED_REPAIRS, 12, 15) is True
    assert AlertCoordinator.is_material(AlertType.DELAYED_REPAIRS, 12, 14) is False
    assert AlertCoordinator.is_material(AlertType.DUPLICATE_SERIAL_CLAIMS, 5, 2) is True
    assert AlertCoordinator.is_material(AlertType.HIGH_RETURN_RATE, 0.1, 0.9) is False


def test_acknowledged_alert_not_matched(temp_db):
    coord = AlertCoordinator(temp_db)
    _, first = coord.apply(_finding(12), NOW)
    temp_db.set_alert_status(first.id, AlertStatus.OPEN, AlertStatus.ACKNOWLEDGED, NOW)
    status, second = coord.apply(_finding(12), NOW)
    assert status == ApplyResult.CREATED
    assert second.id != first.id
    assert temp_db.get_alert(first.id).status == AlertStatus.ACKNOWLEDGED


def test_resolved_alert_not_reopened(temp_db):
    coord = AlertCoordinator(temp_db)
    _, first = coord.apply(_finding(12), NOW)
    temp_db.set_alert_status(first.id, AlertStatus.OPEN, AlertStatus.RESOLVED, NOW, "fixed")
    status, second = coord.apply(_finding(30), NOW)
    assert status == ApplyResult.CREATED
    resolved = temp_db.get_alert(first.id)
    assert resolved.status == AlertStatus.RESOLVED
    assert resolved.metric_value == 12
    assert resolved.resolution_note == "fixed"


def test_keys_are_independent(temp_db):
    coord = AlertCoordinator(temp_db)
    coord.apply(_finding(12, key="p1"), NOW)
    status, _ = coord.apply(_finding(12, key="p2"), NOW)
    assert status == ApplyResult.CREATED
    status, _ = coord.apply(_finding(12, key="p1", rule_type=AlertType.HIGH_RETURN_RATE), NOW)
    assert status == ApplyResult.CREATED


def test_database_rejects_second_open_alert(temp_db):
    coord = AlertCoordinator(temp_db)
    _, alert = coord.apply(_finding(12), NOW)
    alert.id = None
    with pytest.raises(PersistenceConflict):
        temp_db.insert_alert(alert)


def test_conflict_on_insert_retries_as_update(temp_db):
    """A concurrent writer inserts between our lookup and insert."""
    coord = AlertCoordinator(temp_db)
    coord.apply(_finding(12), NOW)

    real_find = temp_db.find_open_alert
    calls = {"n": 0}

    def stale_then_real(*args):
        calls["n"] += 1
        return None if calls["n"] == 1 else real_find(*args)

    with patch.object(temp_db, "find_open_alert", side_effect=stale_then_real):
        status, alert = coord.apply(_finding(20), NOW)

    assert status == ApplyResult.UPDATED
    assert alert.metric_value == 20
    assert len(temp_db.list_alerts(status=AlertStatus.OPEN)) == 1


def test_conflict_on_update_retries_as_insert(temp_db):
    """The open alert gets resolved between our lookup and update."""
    coord = AlertCoordinator(temp_db)
    _, first = coord.apply(_finding(12), NOW)

    real_update = temp_db.update_open_alert

    def resolve_first(*args, **kwargs):
        temp_db.set_alert_status(first.id, AlertStatus.OPEN, AlertStatus.RESOLVED, NOW)
        return real_update(*args, **kwargs)

    with patch.object(temp_db, "update_open_alert", side_effect=resolve_first):
        status, alert = coord.apply(_finding(20), NOW)

    assert status == ApplyResult.CREATED
    assert alert.id != first.id
    assert temp_db.get_alert(first.id).status == AlertStatus.RESOLVED


def test_second_conflict_propagates(temp_db):
    coord = AlertCoordinator(temp_db)
    with patch.object(temp_db, "insert_alert", side_effect=PersistenceConflict("busy")):
        with pytest.raises(PersistenceConflict):
            coord.apply(_finding(12), NOW)


def test_key_locks_released_after_apply(temp_db):
    coord = AlertCoordinator(temp_db)
    for i in range(50):
        coord.apply(_finding(12, rule_type=AlertType.DELAYED_REPAIRS, key=f"t{i}"), NOW)
    assert coord._key_locks == {}


def test_key_lock_released_on_error(temp_db):
    coord = AlertCoordinator(temp_db)
    with patch.object(temp_db, "insert_alert", side_effect=PersistenceConflict("busy")):
        with pytest.raises(PersistenceConflict):
            coord.apply(_finding(12), NOW)
    assert coord._key_locks == {}


def test_concurrent_apply_same_key(temp_db):
    coord = AlertCoordinator(temp_db)
    results = []

    def worker():
        results.append(coord.apply(_finding(12), NOW)[0])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(ApplyResult.CREATED) == 1
    assert results.count(ApplyResult.UNCHANGED) == 7
    assert coord._key_locks == {}
