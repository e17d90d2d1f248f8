"""
Console logging with context folded into each message.

ContextAwareLogger formats the ``extra`` dict into the message text as
pipe-delimited ``key=value`` pairs, so the context survives any formatter a
hosting process installs, while still passing ``extra`` to the handlers.
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_service_logger = None


class ContextAwareLogger:
    """Logger wrapper that formats extra attributes in message while preserving them."""

    def __init__(self, logger):
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        extra = kwargs.pop("extra", {})

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        # Reserved LogRecord attribute names in extra would raise KeyError
        safe_extra = {k: v for k, v in extra.items() if k not in _RESERVED_ATTRS}
        log_method(full_msg, extra=safe_extra, **kwargs)

    def info(self, msg, **kwargs):
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        self._log_with_formatted_extra("exception", msg, **kwargs)


_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "asctime"}
)


def _resolve_level(log_level: Optional[Union[int, str]]) -> int:
    if log_level is None:
        log_level = get_config().logging.level
    if isinstance(log_level, str):
        return getattr(logging, log_level.upper(), logging.INFO)
    return log_level


def configure_logging(
    service_name: str,
    log_level: Optional[Union[int, str]] = None,
) -> ContextAwareLogger:
    """
    Configure console logging for a service process.

    Args:
        service_name: Name used for the ``pastebin.<service_name>`` logger
        log_level: Logging level (default: from config.logging.level)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _service_logger

    level = _resolve_level(log_level)

    logger = logging.getLogger(f"pastebin.{service_name}")
    logger.setLevel(level)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(get_config().logging.format))
    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.info(
        "Service logger configured",
        extra={"service_name": service_name, "log_level": logging.getLevelName(level)},
    )
    _service_logger = wrapped_logger
    return wrapped_logger


def get_logger(log_level: Optional[Union[int, str]] = None) -> ContextAwareLogger:
    """
    Get the service logger, or a wrapped ``pastebin`` logger if none was configured.

    Args:
        log_level: Optional log level to set on the fallback logger
    """
    if _service_logger is not None:
        return _service_logger

    logger = logging.getLogger("pastebin")
    logger.setLevel(_resolve_level(log_level))
    return ContextAwareLogger(logger)


def reset_logging() -> None:
    """Forget the configured service logger."""
    global _service_logger
    _service_logger = None
