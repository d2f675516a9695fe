"""Errors raised by the alert engine and its store."""


class AlertEngineError(Exception):
    """Base class for alert engine failures."""


class ConfigurationMissing(AlertEngineError):
    """No usable evaluator config record; the pass cannot run."""


class DataSourceUnavailable(AlertEngineError):
    """A ticket/product/repair-center read failed."""


class InvalidTransition(AlertEngineError):
    """Lifecycle operation not allowed from the alert's current status."""

    def __init__(self, alert_id, current, action):
        self.alert_id = alert_id
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} alert {alert_id}: status is {current}")


class AlertNotFound(AlertEngineError):
    def __init__(self, alert_id):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class PersistenceConflict(AlertEngineError):
    """A concurrent writer changed the alert row between read and write."""
