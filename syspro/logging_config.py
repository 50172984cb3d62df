"""
logging_config.py
------------------

This module defines a shared logging configuration and utilities for
structured logging throughout the SYSPRO client.  It uses Python's
built‑in ``logging`` module so that log output can be captured by
standard logging handlers or external systems such as ELK, Grafana or
Datadog.  Messages are serialised as JSON to make them easier to parse
downstream.

The request executor uses :func:`log_info`, :func:`log_debug` and
:func:`log_error` to record every attempt.  The ``log_call`` decorator
can be applied to functions to record entry and exit points at the
DEBUG level without leaking sensitive information such as operator
passwords or session ids.
"""

from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Callable, Dict
from urllib.parse import parse_qsl, urlencode

# Expose a module level logger.  The library does not install handlers;
# embedding applications decide where the JSON lines go.
logger = logging.getLogger("syspro")

_SENSITIVE_KEYWORDS = ("token", "password", "secret")


def configure_logging(level: str | int = "INFO") -> None:
    """Set the level of the ``syspro`` logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)


def _sanitize(obj: Any) -> Any:
    """Recursively sanitise objects for logging.

    Dictionaries will have keys containing 'token', 'password' or
    'secret' removed.  Lists and tuples are processed element‑wise.
    Binary payloads are replaced with a short placeholder.  Anything
    that cannot be serialised as JSON is logged through ``str``.
    """
    if isinstance(obj, (bytes, bytearray)):
        return f"<binary {len(obj)} bytes>"
    if isinstance(obj, dict):
        clean: Dict[str, Any] = {}
        for k, v in obj.items():
            if any(keyword in str(k).lower() for keyword in _SENSITIVE_KEYWORDS):
                continue
            clean[str(k)] = _sanitize(v)
        return clean
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    return str(obj)


def redact_query(query: str | None) -> str | None:
    """Drop sensitive keys (e.g. ``OperatorPassword``) from an encoded query string."""
    if not query:
        return query
    pairs = parse_qsl(query, keep_blank_values=True)
    kept = [
        (k, v) for k, v in pairs
        if not any(keyword in k.lower() for keyword in _SENSITIVE_KEYWORDS)
    ]
    return urlencode(kept, safe="[]")


def _emit(level: int, message: str, fields: Dict[str, Any]) -> None:
    if not logger.isEnabledFor(level):
        return
    data: Dict[str, Any] = {"message": message}
    data.update(_sanitize(fields))
    logger.log(level, json.dumps(data))


def log_info(message: str, **fields: Any) -> None:
    """Log ``message`` and its fields as a JSON line at INFO level."""
    _emit(logging.INFO, message, fields)


def log_debug(message: str, **fields: Any) -> None:
    _emit(logging.DEBUG, message, fields)


def log_error(message: str, **fields: Any) -> None:
    _emit(logging.ERROR, message, fields)


def log_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to log entry and exit of functions.

    This decorator logs a DEBUG level message before a function is
    executed and another after it returns.  The messages include the
    function name and a sanitised snapshot of the keyword arguments and
    return value.  Positional arguments are not logged because service
    functions receive credentials positionally.

    Examples
    --------

    >>> @log_call
    ... def add(a, b):
    ...     return a + b
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        log_debug("call_start", function=func.__name__, kwargs=kwargs)
        result = func(*args, **kwargs)
        log_debug("call_end", function=func.__name__)
        return result

    return wrapper
