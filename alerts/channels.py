"""Notification channels for newly created alerts."""
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger("repairwatch.alerts.channels")

_SEVERITY_ORDER = {"LOW": 0, "MEDIUM": 1, "HIGH": 2}


@runtime_checkable
class AlertChannel(Protocol):
    def send(self, alert) -> None: ...


def _meets(alert, min_severity):
    return _SEVERITY_ORDER.get(alert.severity.value, 0) >= _SEVERITY_ORDER.get(min_severity, 0)


class ConsoleChannel:
    """Print alerts to terminal with rich formatting."""

    def __init__(self, min_severity="LOW"):
        self.min_severity = min_severity

    def send(self, alert):
        if not _meets(alert, self.min_severity):
            return
        from rich.console import Console
        console = Console()

        severity_styles = {
            "HIGH": "bold white on red",
            "MEDIUM": "bold yellow",
            "LOW": "bold blue",
        }
        sev = alert.severity.value
        style = severity_styles.get(sev, "")
        console.print(f"[{style}] [{sev}] {alert.title}: {alert.description}[/]")


class FileChannel:
    """Append alerts to a JSON lines log file."""

    def __init__(self, log_path="data/alerts.jsonl", min_severity="LOW"):
        self.log_path = log_path
        self.min_severity = min_severity

    def send(self, alert):
        if not _meets(alert, self.min_severity):
            return
        entry = alert.to_dict()
        try:
            Path(self.log_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write alert to file: {e}")
