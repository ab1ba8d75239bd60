import logging
import os
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "polytrans.log"

LOG_MODES = ("off", "info", "debug")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Cache for log mode to avoid repeated environment/config reads
_log_mode_cache = None

# Names of loggers handed out by get_logger
_managed_loggers = set()


def _get_log_mode():
    """Get log mode from the environment, falling back to 'info'."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    log_mode = os.environ.get('POLYTRANS_LOG_MODE', 'info').strip().lower()
    if log_mode not in LOG_MODES:
        log_mode = 'info'
    _log_mode_cache = log_mode
    return log_mode


def _levels_for(log_mode):
    """Return (logger_level, console_level) for a log mode."""
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _file_handler():
    LOG_DIR.mkdir(exist_ok=True)
    f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    f_handler.setLevel(logging.DEBUG)
    f_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return f_handler


def _console_handler(level):
    c_handler = logging.StreamHandler()
    c_handler.setLevel(level)
    c_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return c_handler


def _apply_mode(logger, log_mode):
    """Bring an already configured logger in line with the log mode."""
    logger_level, console_level = _levels_for(log_mode)
    logger.setLevel(logger_level)

    if log_mode == 'off':
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        return

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        logger.addHandler(_file_handler())
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        logger.addHandler(_console_handler(console_level))

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)


def set_log_mode(log_mode: str):
    """Switch the log mode and update all loggers created by get_logger."""
    global _log_mode_cache
    if log_mode not in LOG_MODES:
        raise ValueError(f"Unknown log mode: {log_mode}")
    _log_mode_cache = log_mode

    for logger_name in sorted(_managed_loggers):
        _apply_mode(logging.getLogger(logger_name), log_mode)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    _managed_loggers.add(name)
    _apply_mode(logger, _get_log_mode())
    return logger


def apply_configured_mode(log_mode: str):
    """Apply the log mode stored in settings unless POLYTRANS_LOG_MODE overrides it."""
    if os.environ.get('POLYTRANS_LOG_MODE'):
        return
    set_log_mode(log_mode)
