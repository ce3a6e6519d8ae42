# logging_config.py
import logging
import logging.config
from pathlib import Path
from typing import Optional

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# logger name -> level; None follows the configured application level
LOGGER_LEVELS = {
    '': None,
    'learnhub': None,
    'pymongo': 'WARNING',
    'apscheduler': 'WARNING',
    'uvicorn': 'INFO',
    'uvicorn.access': 'INFO',
}


def build_logging_config(log_level: str = "INFO", log_file: Optional[str] = None) -> dict:
    """
    dictConfig mapping: console always, a rotating file when log_file is set.

    Driver and server loggers keep fixed levels; everything else follows
    log_level.
    """
    handlers = {
        'console': {
            'level': log_level,
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
            'stream': 'ext://sys.stdout',
        }
    }
    if log_file:
        handlers['file'] = {
            'level': log_level,
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': 10 * 1024 * 1024,
            'backupCount': 5,
        }

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s', 'datefmt': DATE_FORMAT},
            'detailed': {'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s', 'datefmt': DATE_FORMAT},
        },
        'handlers': handlers,
        'loggers': {
            name: {'handlers': list(handlers), 'level': level or log_level, 'propagate': False}
            for name, level in LOGGER_LEVELS.items()
        },
    }


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Setup logging configuration for the application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, rotated at 10MB
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_file))
    logging.getLogger(__name__).info(f"Logging configured at {log_level}" + (f", file {log_file}" if log_file else ""))
