"""Out-of-warranty spike: global count of non-eligible tickets in the window."""
from alerts.detectors import Detector, window_start
from models.alerts import Finding, GLOBAL_KEY
from models.enums import AlertType, Severity


class OutOfWarrantySpike(Detector):
    id = "out_of_warranty_spike"
    name = "Out-of-Warranty Spike"
    rule_type = AlertType.OUT_OF_WARRANTY_SPIKE

    def fetch(self, source, config, now):
        return source.get_tickets_created_since(
            window_start(now, config.out_of_warranty_days), warranty_eligible=False,
        )

    def evaluate(self, tickets, config, now):
        cutoff = window_start(now, config.out_of_warranty_days)
        count = sum(1 for t in tickets if not t.warranty_eligible and t.created_at >= cutoff)
        threshold = config.out_of_warranty_spike_count
        if count == 0 or count < threshold:
            return []
        return [Finding(
            rule_type=self.rule_type,
            correlation_key=GLOBAL_KEY,
            metric_value=count,
            threshold=threshold,
            severity=Severity.LOW,
            title="Out-of-Warranty Spike",
            description=(f"{count} out-of-warranty requests in last "
                         f"{config.out_of_warranty_days} days"),
        )]
