"""High fault rate per product: too many REPAIR tickets for one product in the window.

Severity escalates to HIGH once the count reaches twice the threshold.
"""
from alerts.detectors import Detector, window_start
from models.alerts import Finding
from models.enums import AlertType, Severity, TicketType


class HighFaultRate(Detector):
    id = "high_fault_rate"
    name = "High Fault Rate per Product"
    rule_type = AlertType.HIGH_FAULT_RATE_PER_PRODUCT

    def fetch(self, source, config, now):
        return source.get_tickets_created_since(
            window_start(now, config.fault_rate_days), ticket_type=TicketType.REPAIR,
        )

    def evaluate(self, tickets, config, now):
        cutoff = window_start(now, config.fault_rate_days)
        counts = {}
        skus = {}
        for t in tickets:
            if t.ticket_type != TicketType.REPAIR or t.created_at < cutoff:
                continue
            counts[t.product_id] = counts.get(t.product_id, 0) + 1
            skus.setdefault(t.product_id, t.product_sku or t.product_id)

        threshold = config.faulty_requests_per_product
        findings = []
        for product_id in sorted(counts):
            count = counts[product_id]
            if count < threshold:
                continue
            findings.append(Finding(
                rule_type=self.rule_type,
                correlation_key=product_id,
                product_id=product_id,
                metric_value=count,
                threshold=threshold,
                severity=Severity.HIGH if count >= threshold * 2 else Severity.MEDIUM,
                title=f"High Fault Rate: {skus[product_id]}",
                description=f"{count} faulty requests in last {config.fault_rate_days} days",
            ))
        return findings
