"""Alert upsert/dedup: turn detector findings into at most one OPEN alert per key."""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

from models.alerts import Alert
from models.enums import AlertType, ApplyResult
from models.errors import PersistenceConflict

logger = logging.getLogger("repairwatch.alerts.coordinator")

# Minimum absolute metric change before an OPEN alert is refreshed in place.
# None means the alert is created once and never refreshed (ratio rules).
REFRESH_DELTAS = {
    AlertType.HIGH_FAULT_RATE_PER_PRODUCT: 2,
    AlertType.DELAYED_REPAIRS: 2,
    AlertType.DUPLICATE_SERIAL_CLAIMS: 2,
    AlertType.OUT_OF_WARRANTY_SPIKE: 3,
    AlertType.HIGH_RETURN_RATE: None,
    AlertType.REPAIR_CENTER_UNDERPERFORMANCE: None,
}


class AlertCoordinator:
    def __init__(self, db):
        self.db = db
        # (rule_type, key) -> [lock, holders]; entries are dropped when the last holder leaves
        self._key_locks = {}
        self._key_locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, rule_type, key):
        with self._key_locks_guard:
            entry = self._key_locks.setdefault((rule_type, key), [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._key_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[(rule_type, key)]

    def apply(self, finding, now=None):
        """Create, refresh or ignore. Returns (ApplyResult, Alert)."""
        now = now or datetime.now(timezone.utc)
        with self._locked(finding.rule_type, finding.correlation_key):
            try:
                return self._apply_once(finding, now)
            except PersistenceConflict as e:
                # Another writer got there first; re-read and decide again.
                logger.info(f"Write conflict on {finding.rule_type.value}/"
                            f"{finding.correlation_key}, retrying: {e}")
                return self._apply_once(finding, now)

    def _apply_once(self, finding, now):
        existing = self.db.find_open_alert(finding.rule_type, finding.correlation_key)
        if existing is None:
            alert = self.db.insert_alert(Alert.from_finding(finding, now))
            logger.info(f"Created {finding.rule_type.value} alert #{alert.id} "
                        f"for {finding.correlation_key} (metric={finding.metric_value})")
            return ApplyResult.CREATED, alert

        if not self.is_material(finding.rule_type, existing.metric_value, finding.metric_value):
            logger.debug(f"{finding.rule_type.value}/{finding.correlation_key}: "
                         f"{existing.metric_value} -> {finding.metric_value} not material")
            return ApplyResult.UNCHANGED, existing

        self.db.update_open_alert(
            existing.id, finding.metric_value, finding.severity, finding.description, now,
        )
        logger.info(f"Updated alert #{existing.id}: metric "
                    f"{existing.metric_value} -> {finding.metric_value}")
        existing.metric_value = finding.metric_value
        existing.severity = finding.severity
        existing.description = finding.description
        existing.updated_at = now
        return ApplyResult.UPDATED, existing

    @staticmethod
    def is_material(rule_type, stored, new):
        delta = REFRESH_DELTAS.get(rule_type)
        if delta is None:
            return False
        return abs(new - stored) > delta
