"""Application configuration: database location, evaluation cadence, alert output, logging.

The evaluator's windows and thresholds are not here; they live in the
database record managed by alerts.settings.SettingsManager.
"""
import logging
import os
import yaml
from pathlib import Path

logger = logging.getLogger("repairwatch.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    "REPAIRWATCH_DB_PATH": ("database", "path", str),
    "REPAIRWATCH_EVAL_INTERVAL": ("evaluator", "interval_seconds", int),
    "REPAIRWATCH_LOG_LEVEL": ("logging", "level", str),
}

REQUIRED_SECTIONS = ("database", "evaluator", "alerts", "logging")
MIN_INTERVAL_SECONDS = 60


def load_config(path=None):
    """Bundled defaults, then the optional YAML file at `path`, then environment."""
    with open(DEFAULT_CONFIG_PATH) as f:
        config = yaml.safe_load(f)

    if path:
        if Path(path).exists():
            with open(path) as f:
                config = _deep_merge(config, yaml.safe_load(f) or {})
        else:
            logger.warning(f"Config file {path} not found, using defaults")

    _apply_env(config, os.environ)
    _validate_config(config)
    return config


def _apply_env(config, environ):
    for var, (section, key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if not raw:
            continue
        try:
            config.setdefault(section, {})[key] = cast(raw)
        except ValueError:
            raise ValueError(f"{var} must be {cast.__name__}, got {raw!r}")


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    missing = [s for s in REQUIRED_SECTIONS if not isinstance(config.get(s), dict)]
    if missing:
        raise ValueError(f"Missing required config section(s): {', '.join(missing)}")

    evaluator = config["evaluator"]
    if evaluator.get("interval_seconds", 0) < MIN_INTERVAL_SECONDS:
        raise ValueError(f"evaluator.interval_seconds must be >= {MIN_INTERVAL_SECONDS} seconds")
    if evaluator.get("max_workers", 1) < 1:
        raise ValueError("evaluator.max_workers must be >= 1")
    if not config["database"].get("path"):
        raise ValueError("database.path is required")
