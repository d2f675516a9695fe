"""Alert evaluation: detectors, dedup coordinator, lifecycle and scheduling."""
from alerts.engine import AlertEngine, PassResult
from alerts.coordinator import AlertCoordinator
from alerts.lifecycle import AlertLifecycle
from alerts.settings import SettingsManager
from alerts.channels import ConsoleChannel, FileChannel
from alerts.scheduler import EvaluationScheduler
