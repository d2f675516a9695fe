"""High return rate per product: RETURN share of all tickets in the window.

Products with fewer than MIN_SAMPLE tickets are ignored so one or two
returns on a low-volume product do not fire.
"""
from alerts.detectors import Detector, window_start
from models.alerts import Finding
from models.enums import AlertType, Severity, TicketType

MIN_SAMPLE = 10


class HighReturnRate(Detector):
    id = "high_return_rate"
    name = "High Return Rate"
    rule_type = AlertType.HIGH_RETURN_RATE

    def fetch(self, source, config, now):
        return source.get_tickets_created_since(window_start(now, config.return_rate_days))

    def evaluate(self, tickets, config, now):
        cutoff = window_start(now, config.return_rate_days)
        stats = {}
        for t in tickets:
            if t.created_at < cutoff:
                continue
            s = stats.setdefault(t.product_id, {
                "total": 0, "returns": 0, "sku": t.product_sku or t.product_id,
            })
            s["total"] += 1
            if t.ticket_type == TicketType.RETURN:
                s["returns"] += 1

        threshold = config.return_rate_min
        findings = []
        for product_id in sorted(stats):
            s = stats[product_id]
            if s["total"] < MIN_SAMPLE:
                continue
            rate = s["returns"] / s["total"]
            if s["returns"] == 0 or rate < threshold:
                continue
            findings.append(Finding(
                rule_type=self.rule_type,
                correlation_key=product_id,
                product_id=product_id,
                metric_value=rate,
                threshold=threshold,
                severity=Severity.MEDIUM,
                title=f"High Return Rate: {s['sku']}",
                description=f"{rate * 100:.1f}% returns in last {config.return_rate_days} days",
            ))
        return findings
