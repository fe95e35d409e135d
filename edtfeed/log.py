"""
Logging configuration for the command line.

Library modules only create `logging.getLogger(__name__)` loggers; handlers
are installed here, once, by the CLI.

Environment Variables:
    EDTFEED_LOG_LEVEL: override the package level (DEBUG, INFO, WARNING, ERROR)
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("urllib3", "requests", "charset_normalizer")


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING

    env_level = os.getenv("EDTFEED_LOG_LEVEL", "").upper()
    if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        level = getattr(logging, env_level)

    package_logger = logging.getLogger("edtfeed")
    package_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
