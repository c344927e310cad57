"""Logging set-up for command-line use.

The library itself only creates module-level loggers; applications decide
how records are formatted and where they go.
"""

import json
import logging
import logging.config
import os
from pathlib import Path

LOGGING_CONFIG_ENV = "AREAL_LOGGING_CONFIG"


def configure_logging(level: str = "INFO", config_path: Path | None = None) -> None:
    """Configure logging from a dictConfig JSON file, or a plain-text fallback.

    The config file is taken from ``config_path``, then from the
    AREAL_LOGGING_CONFIG environment variable. Without a readable file,
    records are written as plain text lines at ``level``.

    Args:
        level: Log level name used by the fallback configuration
        config_path: Optional path to a logging dictConfig JSON file
    """
    if config_path is None and os.environ.get(LOGGING_CONFIG_ENV):
        config_path = Path(os.environ[LOGGING_CONFIG_ENV])

    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
        return

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=True,
    )
