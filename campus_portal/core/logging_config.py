import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_configured = False


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> None:
    """
    Set up console logging for the API process.

    Args:
        log_level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string
    """
    global _configured
    if _configured:
        return

    level = _LEVEL_MAP.get(log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # pymongo's heartbeat chatter drowns out request logs at DEBUG
    logging.getLogger("pymongo").setLevel(max(level, logging.INFO))

    _configured = True
    logging.getLogger(__name__).info(f"Logging configured - level {log_level.upper()}")
