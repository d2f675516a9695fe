"""Duplicate serial claims: one owner filing repeatedly against the same serial.

Tickets are grouped by (serial, owner) but the alert correlates on the
serial number alone, matched exactly. When several owners of one serial
cross the threshold, the owner with the most claims is reported.
"""
from alerts.detectors import Detector, window_start
from models.alerts import Finding
from models.enums import AlertType, Severity


class DuplicateSerialClaims(Detector):
    id = "duplicate_serial_claims"
    name = "Duplicate Serial Claims"
    rule_type = AlertType.DUPLICATE_SERIAL_CLAIMS

    def fetch(self, source, config, now):
        return source.get_tickets_created_since(window_start(now, config.duplicate_serial_days))

    def evaluate(self, tickets, config, now):
        cutoff = window_start(now, config.duplicate_serial_days)
        groups = {}
        for t in tickets:
            serial = (t.serial_number or "").strip()
            # no serial, nothing to correlate on
            if not serial or t.created_at < cutoff:
                continue
            g = groups.setdefault((serial, t.owner_id), {"count": 0, "email": t.customer_email})
            g["count"] += 1

        threshold = config.duplicate_serial_count
        # One finding per serial: the worst owner wins, ties go to the first owner id.
        worst = {}
        for (serial, owner_id) in sorted(groups):
            g = groups[(serial, owner_id)]
            if g["count"] < threshold:
                continue
            if serial not in worst or g["count"] > worst[serial][1]["count"]:
                worst[serial] = (owner_id, g)

        findings = []
        for serial in sorted(worst):
            owner_id, g = worst[serial]
            customer = g["email"] or owner_id
            findings.append(Finding(
                rule_type=self.rule_type,
                correlation_key=serial,
                metric_value=g["count"],
                threshold=threshold,
                severity=Severity.MEDIUM,
                title=f"Duplicate Serial Claims: {serial}",
                description=(f"Customer {customer} filed {g['count']} claims "
                             f"in {config.duplicate_serial_days} days"),
            ))
        return findings
