"""Evaluator settings: load, validate and replace the single config record."""
import logging
import yaml
from pathlib import Path

from models.errors import ConfigurationMissing
from models.settings import EvaluatorConfig

logger = logging.getLogger("repairwatch.alerts.settings")

SETTINGS_KEY = "manager.config"
DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent / "config" / "alert_settings.yaml"


class SettingsManager:
    def __init__(self, db):
        self.db = db

    def load(self):
        """Fetch and validate the config record. Raises ConfigurationMissing."""
        raw = self.db.get_setting(SETTINGS_KEY)
        if raw is None:
            raise ConfigurationMissing(f"No '{SETTINGS_KEY}' settings record found")
        try:
            config = EvaluatorConfig.from_dict(raw)
        except ValueError as e:
            raise ConfigurationMissing(f"Invalid '{SETTINGS_KEY}' record: {e}") from e
        logger.debug(f"Loaded evaluator config: {config}")
        return config

    def get(self):
        """Raw stored record, or None."""
        return self.db.get_setting(SETTINGS_KEY)

    def replace(self, value):
        """Validate then store a new record (EvaluatorConfig or wire-format dict)."""
        if isinstance(value, EvaluatorConfig):
            config = value
        else:
            config = EvaluatorConfig.from_dict(value)
        self.db.put_setting(SETTINGS_KEY, config.to_dict())
        logger.info("Evaluator settings replaced")
        return config

    def replace_from_file(self, path):
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return self.replace(data)

    def install_defaults(self, path=None, overwrite=False):
        """Seed the record from the bundled YAML. Returns None if one already exists."""
        if self.get() is not None and not overwrite:
            logger.info("Settings record already present, leaving it unchanged")
            return None
        return self.replace_from_file(path or DEFAULT_SETTINGS_PATH)
