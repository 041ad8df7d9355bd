"""
Exception logging helpers for the prerender bridge.

These never raise themselves: they run while the bridge is already handling
a failure and is about to fall back to the wrapped application.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back when __str__ or __repr__ fail."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _exception_chain(exception: BaseException) -> list[BaseException]:
    """The exception followed by its causes, oldest last."""
    chain = []
    current = exception
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception together with the exceptions that caused it.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Prerender]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        if exception is None:
            logger.log(level, f"{safe_prefix} Exception: None")
            return

        chain = _exception_chain(exception)
        logger.log(
            level,
            f"{safe_prefix} Exception: {type(exception).__name__}: {_safe_str(exception)}",
            exc_info=exception,
        )
        for i, cause in enumerate(chain[1:], start=1):
            logger.log(
                level,
                f"{safe_prefix} Caused by ({i}): {type(cause).__name__}: {_safe_str(cause)}",
            )
    except Exception:
        try:
            logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            pass


def format_exception_message(exception: BaseException) -> str:
    """
    Format an exception and its causes on a single line.

    Args:
        exception: The exception to format

    Returns:
        "Type: message <- CauseType: cause message ..."
    """
    try:
        if exception is None:
            return "None"
        return " <- ".join(
            f"{type(exc).__name__}: {_safe_str(exc)}"
            for exc in _exception_chain(exception)
        )
    except Exception:
        return f"<{type(exception).__name__} (formatting failed)>"
