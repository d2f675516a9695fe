"""Logging configuration."""
import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level="INFO", log_file=None):
    """Configure logging with rich console and optional file handler."""
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    root = logging.getLogger("repairwatch")
    root.setLevel(numeric_level)

    if not root.handlers:
        # stderr, so `--json` output on stdout stays parseable
        console_handler = RichHandler(console=Console(stderr=True), level=numeric_level,
                                      rich_tracebacks=True, markup=False)
        root.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            file_handler.setFormatter(file_formatter)
            root.addHandler(file_handler)

    return root
