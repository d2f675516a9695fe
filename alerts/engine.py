"""Alert evaluation engine: one batch pass over every detector."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from alerts.detectors import ALL_DETECTORS
from models.enums import ApplyResult
from models.errors import ConfigurationMissing, DataSourceUnavailable

logger = logging.getLogger("repairwatch.alerts.engine")


@dataclass
class RuleOutcome:
    rule_id: str
    findings: int = 0
    created: list = field(default_factory=list)
    updated: list = field(default_factory=list)
    unchanged: int = 0
    error: Optional[str] = None


@dataclass
class PassResult:
    success: bool = True
    findings: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed_rules: dict = field(default_factory=dict)
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "success": self.success,
            "findings": self.findings,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed_rules": dict(self.failed_rules),
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class AlertEngine:
    def __init__(self, settings, source, coordinator, detectors=None, channels=None,
                 max_workers=1):
        self.settings = settings
        self.source = source
        self.coordinator = coordinator
        self.detectors = detectors if detectors is not None else ALL_DETECTORS
        self.channels = channels or []
        self.max_workers = max(1, max_workers)
        self._pass_lock = threading.Lock()

    def run_pass(self, now=None):
        """Main entry point: evaluate every detector once. Never raises."""
        now = now or datetime.now(timezone.utc)
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("Evaluation pass already running, skipping this one")
            return PassResult(success=False, error="evaluation pass already in progress",
                              started_at=now, finished_at=now)
        try:
            return self._run(now)
        except Exception as e:
            logger.exception(f"Evaluation pass at {now.isoformat()} failed: {e}")
            return PassResult(success=False, error=str(e), started_at=now,
                              finished_at=datetime.now(timezone.utc))
        finally:
            self._pass_lock.release()

    def _run(self, now):
        result = PassResult(started_at=now)
        try:
            config = self.settings.load()
        except ConfigurationMissing as e:
            logger.error(f"Evaluation pass at {now.isoformat()} aborted: {e}")
            result.success = False
            result.error = str(e)
            result.finished_at = datetime.now(timezone.utc)
            return result

        if self.max_workers > 1 and len(self.detectors) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(
                    lambda d: self._run_detector(d, config, now), self.detectors,
                ))
        else:
            outcomes = [self._run_detector(d, config, now) for d in self.detectors]

        for outcome in outcomes:
            result.findings += outcome.findings
            result.created += len(outcome.created)
            result.updated += len(outcome.updated)
            result.unchanged += outcome.unchanged
            if outcome.error:
                result.failed_rules[outcome.rule_id] = outcome.error
            for alert in outcome.created:
                self._dispatch(alert)

        result.success = not result.failed_rules
        result.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Evaluation pass done: {result.findings} findings, {result.created} created, "
            f"{result.updated} updated, {result.unchanged} unchanged, "
            f"{len(result.failed_rules)} rule(s) failed"
        )
        return result

    def _run_detector(self, detector, config, now):
        """Scan one rule and apply its findings. Failures stay inside this rule."""
        outcome = RuleOutcome(rule_id=detector.id)
        try:
            findings = detector.scan(self.source, config, now)
        except DataSourceUnavailable as e:
            logger.error(f"[{now.isoformat()}] {detector.id}: data source unavailable, "
                         f"skipping rule: {e}")
            outcome.error = str(e)
            return outcome
        except Exception as e:
            logger.exception(f"[{now.isoformat()}] {detector.id}: detector failed: {e}")
            outcome.error = str(e)
            return outcome

        outcome.findings = len(findings)
        for finding in findings:
            try:
                status, alert = self.coordinator.apply(finding, now)
            except Exception as e:
                # Findings already applied for this rule stay committed.
                logger.error(f"[{now.isoformat()}] {detector.id}: could not apply finding "
                             f"for {finding.correlation_key}: {e}")
                outcome.error = str(e)
                return outcome
            if status == ApplyResult.CREATED:
                outcome.created.append(alert)
            elif status == ApplyResult.UPDATED:
                outcome.updated.append(alert)
            else:
                outcome.unchanged += 1
        return outcome

    def format_pass_summary(self, result):
        """Format a pass result for display."""
        if result.error:
            return f"Evaluation failed: {result.error}"
        lines = [f"{result.findings} finding(s): {result.created} new, "
                 f"{result.updated} updated, {result.unchanged} unchanged"]
        for rule_id, err in result.failed_rules.items():
            lines.append(f"[!!] {rule_id} skipped: {err}")
        if not result.findings and not result.failed_rules:
            lines[0] = "All clear - no findings."
        return "\n".join(lines)

    def _dispatch(self, alert):
        for channel in self.channels:
            try:
                channel.send(alert)
            except Exception as e:
                logger.warning(f"Channel dispatch error: {e}")
