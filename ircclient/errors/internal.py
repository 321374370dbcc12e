"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the IRC core. Raw socket and
asyncio errors never escape the client boundary; they are classified and
reported through ``connection_error`` events instead.

Classes:
  InternalError          – Base for all internal errors.
  NetworkError           – Transport failures (refused, reset, timeout).
  ParsingError           – Wire data that could not be interpreted.
  MalformedLineError     – A single protocol line violating the line grammar.
  LineTooLongError       – A line exceeding the 512 byte limit.
  ProtocolViolationError – A well-formed line the server should not have sent.
  InvalidOperationError  – A command issued in a state that cannot honour it.
  ConfigError            – Configuration could not be loaded or validated.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class InternalError(Exception):
    """Base class for all internal errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class ConnectionErrorCause(str, Enum):
    """Classified reason for a transport failure."""

    REFUSED = "refused"
    RESET = "reset"
    TIMEOUT = "timeout"
    HOST_NOT_FOUND = "host_not_found"
    OTHER = "other"


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors.

    Args:
        message: Descriptive error message.
        cause: The classified cause of the failure.
        data: Optional mapping of additional context data.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: ConnectionErrorCause = ConnectionErrorCause.OTHER,
        data: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, data=data)
        self.cause = cause


class ParsingError(InternalError):
    """Exception raised when wire data cannot be interpreted."""


class MalformedLineError(ParsingError):
    """Exception raised for a protocol line that violates the line grammar.

    The offending line is kept in ``data["line"]`` so the caller can log it
    before discarding it.
    """

    def __init__(self, message: str, line: bytes | str | None = None) -> None:
        super().__init__(message, data={"line": line})
        self.line = line


class LineTooLongError(MalformedLineError):
    """Exception raised for a line longer than the 512 byte protocol limit."""


class ProtocolViolationError(InternalError):
    """Exception raised when the server sends a message that makes no sense
    in the current state (e.g. a JOIN whose source is a server)."""


class InvalidOperationError(InternalError):
    """Exception raised when a command is issued in the wrong connection state."""


class ConfigError(InternalError):
    """Exception raised when the client configuration is missing or invalid."""


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
]
