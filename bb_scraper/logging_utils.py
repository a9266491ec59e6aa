# logging_utils.py
import logging
import os
from typing import Optional, Union

_CONFIGURED = False

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    """
    Accept 'debug' / 'INFO' / logging.WARNING and return a logging level.
    Unknown names fall back to `default`.
    """
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return LEVELS.get(str(value).strip().upper(), default)


def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging once.

    - Always logs to console (StreamHandler)
    - If log_file is provided, ALSO logs to that file (FileHandler)
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    # Console handler
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    # Optional file handler; the store dir may not exist on a first run
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=parse_level(level),
        handlers=handlers,
        force=True,  # override any previous root logger config
    )

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
