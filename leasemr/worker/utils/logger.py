import logging
from typing import Optional

BASE_LOGGER = "leasemr.worker"

def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
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

def setup_logger(level: Optional[str] = None):
	logger = get_logger(level=level)
	logger.info("leasemr worker logger initialized")
	return logger
