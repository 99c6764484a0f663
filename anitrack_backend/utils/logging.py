from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger for CLI entrypoints.

    Existing handlers are replaced so repeated calls do not duplicate output.
    """

    root_logger = logging.getLogger()
    level = getattr(logging, str(log_level or "INFO").upper(), logging.INFO)
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    # requests/urllib3 are chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
