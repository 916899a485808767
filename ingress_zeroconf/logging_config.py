"""Logging configuration for ingress-zeroconf using structlog."""

import logging
import os
import sys
from typing import Any

import structlog


def setup_logging(verbose: bool = False) -> None:
    """Configure process-wide structured logging once at startup.

    Args:
        verbose: If True, enables DEBUG logging regardless of LOG_LEVEL env var
    """
    if verbose:
        log_level = "DEBUG"
    else:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        log_level = "INFO"
        numeric_level = logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    # zeroconf and the kubernetes client are chatty at DEBUG
    for noisy in ("zeroconf", "urllib3", "kubernetes"):
        logging.getLogger(noisy).setLevel(max(numeric_level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _get_renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger(__name__)
    logger.debug("Logging configured", log_level=log_level, verbose=verbose)


def _get_renderer() -> Any:
    """Pick JSON output when LOG_FORMAT=json, console output otherwise."""
    log_format = os.getenv("LOG_FORMAT", "console").lower()

    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_function_entry(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    logger.debug("Function entry", function=func_name, **kwargs)


def log_function_exit(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    logger.debug("Function exit", function=func_name, **kwargs)


def log_k8s_operation(logger: structlog.stdlib.BoundLogger, operation: str, **kwargs: Any) -> None:
    """Log a Kubernetes API operation at debug level.

    Args:
        logger: The logger instance
        operation: Type of K8s operation (list, watch, connect)
        **kwargs: Additional operation details
    """
    logger.debug("Kubernetes operation", operation=operation, **kwargs)


def log_watch_event(logger: structlog.stdlib.BoundLogger, kind: str, ingress: str, **kwargs: Any) -> None:
    """Log a watch event received for an Ingress.

    Args:
        logger: The logger instance
        kind: ADDED, MODIFIED or DELETED
        ingress: Ingress key as namespace/name
        **kwargs: Event details
    """
    logger.debug("Watch event", kind=kind, ingress=ingress, **kwargs)
