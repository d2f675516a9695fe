"""Alert lifecycle: OPEN -> ACKNOWLEDGED -> RESOLVED, with OPEN -> RESOLVED allowed.

RESOLVED is terminal. Status writes are conditional on the status that was
read, so two operators acting on one alert at once always leave it in a
valid state; the loser re-reads and re-checks once.
"""
import logging
from datetime import datetime, timezone

from models.enums import AlertStatus
from models.errors import AlertNotFound, InvalidTransition

logger = logging.getLogger("repairwatch.alerts.lifecycle")

ALLOWED_TRANSITIONS = {
    AlertStatus.OPEN: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED},
    AlertStatus.RESOLVED: set(),
}


class AlertLifecycle:
    def __init__(self, db):
        self.db = db

    def acknowledge(self, alert_id):
        """Mark an alert ACKNOWLEDGED. A no-op if it already is."""
        return self._transition(alert_id, AlertStatus.ACKNOWLEDGED, "acknowledge")

    def resolve(self, alert_id, note=None):
        """Mark an alert RESOLVED with an optional resolution note."""
        return self._transition(alert_id, AlertStatus.RESOLVED, "resolve", note)

    def _transition(self, alert_id, target, action, note=None, _retry=True):
        alert = self.db.get_alert(alert_id)
        if alert is None:
            raise AlertNotFound(alert_id)

        if alert.status == target == AlertStatus.ACKNOWLEDGED:
            return alert
        if target not in ALLOWED_TRANSITIONS[alert.status]:
            raise InvalidTransition(alert_id, alert.status.value, action)

        now = datetime.now(timezone.utc)
        if not self.db.set_alert_status(alert_id, alert.status, target, now, resolution_note=note):
            if not _retry:
                raise InvalidTransition(alert_id, "changed concurrently", action)
            logger.info(f"Alert {alert_id} changed while trying to {action}, re-checking")
            return self._transition(alert_id, target, action, note, _retry=False)

        logger.info(f"Alert {alert_id}: {alert.status.value} -> {target.value}")
        return self.db.get_alert(alert_id)
