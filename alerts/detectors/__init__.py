# Detectors are plain Python classes, one per file.
#
# Each detector splits its work in two: fetch() performs the reads it needs
# against the ticket store, evaluate() is a pure function of that data, the
# evaluator config and the pass timestamp. Tests drive evaluate() with
# synthetic tickets; the engine calls scan() and treats a failing fetch() as
# a data-source outage for that one rule.
from datetime import timedelta


class Detector:
    """Base detector. Subclass and implement fetch() + evaluate()."""

    id: str
    name: str
    rule_type = None  # models.enums.AlertType

    def fetch(self, source, config, now):
        """Read whatever this rule needs from the store."""
        raise NotImplementedError

    def evaluate(self, data, config, now):
        """Return the list of Findings for the fetched data."""
        raise NotImplementedError

    def scan(self, source, config, now):
        return self.evaluate(self.fetch(source, config, now), config, now)


def window_start(now, days):
    """Start of a trailing window; tickets created exactly at this instant are inside it."""
    return now - timedelta(days=days)


def days_between(earlier, later):
    """Whole days elapsed, rounded down."""
    return int((later - earlier).total_seconds() // 86400)


from alerts.detectors.fault_rate import HighFaultRate
from alerts.detectors.delayed_repairs import DelayedRepairs
from alerts.detectors.return_rate import HighReturnRate
from alerts.detectors.center_performance import RepairCenterUnderperformance
from alerts.detectors.duplicate_serials import DuplicateSerialClaims
from alerts.detectors.warranty_spike import OutOfWarrantySpike

ALL_DETECTORS = [
    HighFaultRate(),
    DelayedRepairs(),
    HighReturnRate(),
    RepairCenterUnderperformance(),
    DuplicateSerialClaims(),
    OutOfWarrantySpike(),
]
