"""Delayed repairs: tickets stuck in IN_REPAIR with no update for too long.

A point-in-time staleness check on last-updated time, not windowed by
creation time. One finding per stale ticket.
"""
from alerts.detectors import Detector, days_between, window_start
from models.alerts import Finding
from models.enums import AlertType, Severity, TicketStatus


class DelayedRepairs(Detector):
    id = "delayed_repairs"
    name = "Delayed Repairs"
    rule_type = AlertType.DELAYED_REPAIRS

    def fetch(self, source, config, now):
        return source.get_tickets_by_status(
            TicketStatus.IN_REPAIR, updated_before=window_start(now, config.delayed_repair_days),
        )

    def evaluate(self, tickets, config, now):
        cutoff = window_start(now, config.delayed_repair_days)
        findings = []
        for t in sorted(tickets, key=lambda t: t.id):
            if t.status != TicketStatus.IN_REPAIR or not t.updated_at < cutoff:
                continue
            days = days_between(t.updated_at, now)
            label = t.ticket_number or t.id
            findings.append(Finding(
                rule_type=self.rule_type,
                correlation_key=t.id,
                ticket_id=t.id,
                repair_center_id=t.repair_center_id,
                metric_value=days,
                threshold=config.delayed_repair_days,
                severity=Severity.HIGH,
                title=f"Delayed Repair: Ticket #{label}",
                description=f"In Repair for {days} days (> {config.delayed_repair_days})",
            ))
        return findings
