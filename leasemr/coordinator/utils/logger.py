import logging
from typing import Optional

BASE_LOGGER = "leasemr.coordinator"


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Retrieve a configured logger for the specified module.

    The console handler lives on the 'leasemr.coordinator' base logger; module
    loggers named under it (``__name__`` inside the package) propagate to it.
    The handler uses a standardized format with timestamp, level, logger name,
    and message.

    Args:
        name (Optional[str]): Name of the logger (usually the module name).
        level (Optional[str]): Level name to apply to the base logger.

    Returns:
        logging.Logger: Configured logger instance.
    """
    base = logging.getLogger(BASE_LOGGER)
    if not base.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        base.addHandler(handler)
        base.setLevel(logging.INFO)
    if level:
        base.setLevel(level.upper())
    return logging.getLogger(name) if name else base


def setup_logger(level: Optional[str] = None) -> logging.Logger:
    """
    Initialize and configure the global coordinator logger.

    Called once during process startup.

    Returns:
        logging.Logger: Global coordinator logger.
    """
    logger = get_logger(level=level)
    logger.info("leasemr coordinator logger initialized")
    return logger
