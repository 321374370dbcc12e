"""IRC subsystem package.

Contains the wire codec, entity store, registration state machine,
dispatcher, listener and the ``IrcClient`` facade.
"""

from .client import IrcClient  # noqa: F401
from .dispatcher import IRCDispatcher  # noqa: F401
from .events import EventEmitter, IrcEvent, MessageEventArgs, Subscription  # noqa: F401
from .listener import IRCListener  # noqa: F401
from .message import Prefix, RawMessage, parse_message, serialize_message  # noqa: F401
from .models import (  # noqa: F401
    Channel,
    ChannelType,
    ChannelUser,
    ConnectionState,
    LocalUser,
    ModeChange,
    Server,
    User,
)
from .registration import RegistrationStateMachine  # noqa: F401
from .store import EntityStore  # noqa: F401

__all__ = [
    "Channel",
    "ChannelType",
    "ChannelUser",
    "ConnectionState",
    "EntityStore",
    "EventEmitter",
    "IRCDispatcher",
    "IRCListener",
    "IrcClient",
    "IrcEvent",
    "LocalUser",
    "MessageEventArgs",
    "ModeChange",
    "Prefix",
    "RawMessage",
    "RegistrationStateMachine",
    "Server",
    "Subscription",
    "User",
    "parse_message",
    "serialize_message",
]
