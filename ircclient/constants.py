"""
Configuration constants for the IRC client core

This module contains all tunable constants used throughout the package.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Wire format limits (RFC 1459 / RFC 2812)
MAX_LINE_LENGTH = 512  # Bytes, including the CRLF terminator
MAX_PARAMS = 15  # Middle parameters plus trailing
LINE_TERMINATOR = b"\r\n"

# Network timeouts
CONNECT_TIMEOUT = _get_env_float(
    "CONNECT_TIMEOUT", 30.0
)  # Seconds allowed for the TCP connection to be established
READ_TIMEOUT = _get_env_float(
    "READ_TIMEOUT", 120.0
)  # Silence (seconds) before a keepalive PING is sent; a second silent period is a timeout
READ_CHUNK_SIZE = _get_env_int("READ_CHUNK_SIZE", 4096)
WRITE_DRAIN_TIMEOUT = _get_env_float("WRITE_DRAIN_TIMEOUT", 30.0)

# Flood control (token bucket)
FLOOD_MAX_BURST = _get_env_int(
    "FLOOD_MAX_BURST", 4
)  # Lines that may be written back-to-back before throttling kicks in
FLOOD_COUNTER_PERIOD = _get_env_float(
    "FLOOD_COUNTER_PERIOD", 2.0
)  # Seconds needed to regain one line of burst allowance

# CTCP
CTCP_PENDING_TTL = _get_env_float(
    "CTCP_PENDING_TTL", 120.0
)  # Seconds an unanswered CTCP query is kept before it is expired
CTCP_CLIENT_NAME = os.getenv("CTCP_CLIENT_NAME", "ircclient")
CTCP_CLIENT_VERSION = os.getenv("CTCP_CLIENT_VERSION", "0.1.0")

# Defaults used until the server advertises its own values via ISUPPORT
DEFAULT_CASEMAPPING = "ascii"
DEFAULT_CHANTYPES = "#&"
DEFAULT_PREFIX = "(ov)@+"
DEFAULT_CHANMODES = "beI,k,l,imnpst"

# Configuration file
DEFAULT_CONFIG_FILE = "ircclient.conf"
CONFIG_FILE_ENV = "IRCCLIENT_CONF_FILE"
