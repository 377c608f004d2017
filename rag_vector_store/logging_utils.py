"""
Logging configuration helpers shared by the CLI and the library modules.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

# Third-party loggers that are chatty at INFO (HTTP calls, model downloads)
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "sentence_transformers", "urllib3")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    numeric_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or __name__)


@contextmanager
def log_duration(logger: logging.Logger, action: str) -> Iterator[None]:
    """
    Log how long the wrapped block took, at INFO.

    Nothing is logged if the block raises; the caller reports the failure.
    """
    started = time.perf_counter()
    yield
    logger.info("%s took %.2fs", action, time.perf_counter() - started)
