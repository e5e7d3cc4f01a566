"""Helpers for logging with structured fields."""

import logging
import re
from typing import Any

# LogRecord attributes; passing any of these in extra raises KeyError
_RESERVED_LOG_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

MAX_ERROR_MESSAGE_LENGTH = 500

# user:password@ in URLs quoted back by aiohttp and aiokafka errors
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/\s:@]+:[^/\s@]+@", re.IGNORECASE)


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (mode, token, schema_id, etc.)
                  Note: exc_info=True is supported and handled specially.

    Example:
        log_with_context(
            logger, logging.DEBUG, "Discarded stale completion",
            event="SchemaFetched",
            token=event.token,
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    logger.log(level, msg, exc_info=exc_info, extra=extra)


def describe_error(exc: BaseException) -> str:
    """Single-line error text with URL credentials masked, truncated."""
    text = _URL_CREDENTIALS.sub(r"\g<scheme>***@", str(exc))
    if len(text) > MAX_ERROR_MESSAGE_LENGTH:
        text = text[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    return text


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    error_category and retryable are taken from AvrodeskError subclasses
    unless given.

    Example:
        try:
            await producer.publish(...)
        except BrokerError as e:
            log_exception(logger, e, "Publish failed", message_topic=topic)
    """
    category = getattr(exc, "category", None)
    if category is not None:
        kwargs.setdefault("error_category", getattr(category, "value", str(category)))
    retryable = getattr(exc, "is_retryable", None)
    if retryable is not None:
        kwargs.setdefault("retryable", retryable)
    kwargs["error_message"] = describe_error(exc)
    if include_traceback:
        kwargs["exc_info"] = exc
    log_with_context(logger, level, msg, **kwargs)
