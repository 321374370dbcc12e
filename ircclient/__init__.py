"""Client-side IRC protocol core."""

from .config import ClientConfig, RegistrationInfo, load_config
from .ctcp import CtcpClient, CtcpReply
from .irc import IrcClient, IrcEvent

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "CtcpClient",
    "CtcpReply",
    "IrcClient",
    "IrcEvent",
    "RegistrationInfo",
    "load_config",
]
