from __future__ import annotations

import socket

from ..logging_config import log_structured_error
from .internal import (
    ConfigError,
    ConnectionErrorCause,
    InternalError,
    NetworkError,
    ParsingError,
    ProtocolViolationError,
)


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Logs an error message with the associated exception details.

    The exception is mapped onto an error category so repeated failures of the
    same kind are aggregated together by the structured error log.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    error_type = "unknown"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        error_type = "network"
    elif isinstance(error, ParsingError):
        error_type = "parsing"
    elif isinstance(error, ProtocolViolationError):
        error_type = "protocol"
    elif isinstance(error, ConfigError):
        error_type = "config"
    elif isinstance(error, InternalError):
        error_type = "internal"

    log_structured_error(
        error_type=error_type,
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


def classify_connection_error(error: BaseException) -> ConnectionErrorCause:
    """Map a transport exception onto a ``ConnectionErrorCause``.

    Order matters: ``ConnectionRefusedError`` and ``ConnectionResetError`` are
    both ``OSError`` subclasses, and ``socket.gaierror`` is too.
    """
    if isinstance(error, NetworkError):
        return error.cause
    if isinstance(error, ConnectionRefusedError):
        return ConnectionErrorCause.REFUSED
    if isinstance(
        error, ConnectionResetError | ConnectionAbortedError | BrokenPipeError
    ):
        return ConnectionErrorCause.RESET
    if isinstance(error, TimeoutError):
        return ConnectionErrorCause.TIMEOUT
    if isinstance(error, socket.gaierror):
        return ConnectionErrorCause.HOST_NOT_FOUND
    if isinstance(error, OSError) and "Connection reset by peer" in str(error):
        return ConnectionErrorCause.RESET
    return ConnectionErrorCause.OTHER


def to_network_error(
    error: BaseException, host: str | None = None, port: int | None = None
) -> NetworkError:
    """Wrap a raw transport exception into a classified ``NetworkError``."""
    cause = classify_connection_error(error)
    return NetworkError(
        f"Connection to {host}:{port} failed ({cause.value}): {error}",
        cause=cause,
        data={"host": host, "port": port, "error_type": type(error).__name__},
    )
