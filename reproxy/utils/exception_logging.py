"""
Exception logging helpers that never raise, so a failing log call can not
keep a response from being delivered.
"""

import logging


def _safe_str(obj) -> str:
    """
    Convert an object to string, falling back when __str__ or __repr__ fails.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _safe_get_exceptions(exception_group) -> list:
    try:
        return list(exception_group.exceptions)
    except Exception:
        return []


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception as ``Type: message``, including the sub-exceptions of
    an exception group.
    """
    try:
        if exception is None:
            return "None"
        message = f"{type(exception).__name__}: {_safe_str(exception)}"
        sub_exceptions = (
            _safe_get_exceptions(exception) if hasattr(exception, "exceptions") else []
        )
        if sub_exceptions:
            parts = "; ".join(
                f"{type(sub).__name__}: {_safe_str(sub)}" for sub in sub_exceptions
            )
            message = f"{message} (Sub-exceptions: {parts})"
        return message
    except Exception:
        return "<exception (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its traceback and any sub-exceptions.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Forward]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        logger.log(
            level,
            f"{safe_prefix} {format_exception_message(exception)}",
            exc_info=exception if exception is not None else False,
        )
    except Exception:
        try:
            logger.log(level, f"{prefix} Exception (logging failed)")
        except Exception:
            # Logging is best-effort
            pass
