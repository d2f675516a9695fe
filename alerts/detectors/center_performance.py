"""Repair-center underperformance over each center's whole ticket history.

Fires when a center has too many overdue repairs or resolves too small a
share of its tickets. Centers with no tickets, or whose tickets cannot be read, are skipped.
"""
import logging

from alerts.detectors import Detector, window_start
from models.alerts import Finding
from models.enums import AlertType, Severity, TicketStatus, TERMINAL_SUCCESS_STATUSES
from models.errors import DataSourceUnavailable

logger = logging.getLogger("repairwatch.alerts.detectors.center_performance")


class RepairCenterUnderperformance(Detector):
    id = "repair_center_underperformance"
    name = "Repair Center Underperformance"
    rule_type = AlertType.REPAIR_CENTER_UNDERPERFORMANCE

    def fetch(self, source, config, now):
        data = []
        for center in source.get_repair_centers():
            try:
                tickets = source.get_tickets_for_center(center.id)
            except DataSourceUnavailable as e:
                logger.warning(f"Skipping repair center {center.id}: {e}")
                continue
            data.append((center, tickets))
        return data

    def evaluate(self, centers, config, now):
        overdue_cutoff = window_start(now, config.delayed_repair_days)
        findings = []
        for center, tickets in centers:
            total = len(tickets)
            if total == 0:
                continue
            resolved = sum(1 for t in tickets if t.status in TERMINAL_SUCCESS_STATUSES)
            overdue = sum(
                1 for t in tickets
                if t.status == TicketStatus.IN_REPAIR and t.updated_at < overdue_cutoff
            )
            ratio = resolved / total

            if (overdue < config.repair_center_overdue_count
                    and ratio >= config.repair_center_resolved_ratio_min):
                continue
            findings.append(Finding(
                rule_type=self.rule_type,
                correlation_key=center.id,
                repair_center_id=center.id,
                metric_value=ratio,
                threshold=config.repair_center_resolved_ratio_min,
                severity=Severity.HIGH,
                title=f"Underperforming Center: {center.name}",
                description=f"Resolved {ratio * 100:.0f}%, overdue {overdue}",
            ))
        return findings
