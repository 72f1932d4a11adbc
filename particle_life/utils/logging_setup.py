from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "particle_life"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(level: int | str = logging.INFO, log_file: str | Path | None = None) -> logging.Logger:
    """
    Configure the dedicated application logger.

    Only the "particle_life" logger is touched, never the root logger, so
    numba's own loggers stay quiet. Calling it again replaces the handlers.

    Args:
        level: Logging level name or number
        log_file: Optional file that receives the same records as the console

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    formatter = logging.Formatter(DEFAULT_FORMAT)
    if logger.hasHandlers():
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info("Logging to %s", path)

    return logger
