"""Utility modules for Repair Watch."""
from utils.logger import setup_logging
from utils.formatters import format_metric, time_ago
