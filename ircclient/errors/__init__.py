"""Error hierarchy and error handling helpers."""

from .handling import classify_connection_error, log_error, to_network_error
from .internal import (
    ConfigError,
    ConnectionErrorCause,
    InternalError,
    InvalidOperationError,
    LineTooLongError,
    MalformedLineError,
    NetworkError,
    ParsingError,
    ProtocolViolationError,
)

__all__ = [
    "InternalError",
    "ConnectionErrorCause",
    "NetworkError",
    "ParsingError",
    "MalformedLineError",
    "LineTooLongError",
    "ProtocolViolationError",
    "InvalidOperationError",
    "ConfigError",
    "classify_connection_error",
    "log_error",
    "to_network_error",
]
