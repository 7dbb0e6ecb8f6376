import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "[%(asctime)s] [%(name)s] %(message)s"

# Third-party loggers that log every request at INFO/DEBUG.
_QUIET_LOGGERS = ("urllib3", "urllib3.connectionpool", "httpx")


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, "%H:%M:%S")


def _file_handler(log_path: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(_formatter())
    handler.setLevel(logging.DEBUG)
    handler.name = "relay_file"
    return handler


def _console_handler(level: int) -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setFormatter(_formatter())
    handler.setLevel(level)
    handler.name = "relay_console"
    return handler


def _install(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False


def configure_logging(logs_dir: str, console_level: str = "INFO") -> str:
    """Send every log record to a rotating server log and the console.

    The file gets DEBUG and up; the console gets ``console_level`` and up.
    Returns the path of the new server log.
    """
    os.makedirs(logs_dir, exist_ok=True)
    started = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_path = os.path.join(logs_dir, f"server_{started}.log")

    level = logging.getLevelName(console_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    handlers = [_file_handler(log_path), _console_handler(level)]

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    _install(root_logger, handlers)

    # uvicorn installs its own handlers; route its records through ours.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.setLevel(logging.INFO)
        _install(uv_logger, handlers)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("relay").info("Logging initialized: %s (console=%s)", log_path, console_level)
    return log_path
