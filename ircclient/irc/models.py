"""Shared IRC data models.

Records hold plain keys (nicknames, channel names) rather than references to
each other; the ``EntityStore`` resolves them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    REGISTERING = auto()
    REGISTERED = auto()
    CLOSING = auto()


class ChannelType(Enum):
    UNSPECIFIED = auto()
    PUBLIC = auto()
    PRIVATE = auto()
    SECRET = auto()

    @classmethod
    def from_symbol(cls, symbol: str) -> ChannelType:
        return {"=": cls.PUBLIC, "*": cls.PRIVATE, "@": cls.SECRET}.get(
            symbol, cls.UNSPECIFIED
        )


@dataclass(slots=True)
class User:
    nickname: str
    username: str | None = None
    hostname: str | None = None
    realname: str | None = None
    server_name: str | None = None
    server_info: str | None = None
    is_operator: bool = False
    is_away: bool = False
    away_message: str | None = None
    idle_seconds: int | None = None
    hop_count: int | None = None
    channel_names: list[str] = field(default_factory=list)

    @property
    def hostmask(self) -> str:
        return f"{self.nickname}!{self.username or '*'}@{self.hostname or '*'}"

    def __str__(self) -> str:
        return self.nickname


@dataclass(slots=True)
class LocalUser(User):
    modes: set[str] = field(default_factory=set)
    joined_channels: set[str] = field(default_factory=set)


@dataclass(slots=True)
class Server:
    hostname: str

    def __str__(self) -> str:
        return self.hostname


@dataclass(slots=True)
class Topic:
    text: str | None = None
    set_by: str | None = None
    set_at: int | None = None


@dataclass(slots=True)
class ChannelUser:
    """A user's membership of one channel, with its membership modes."""

    channel_name: str
    nickname: str
    modes: set[str] = field(default_factory=set)


@dataclass(slots=True)
class Channel:
    name: str
    channel_type: ChannelType = ChannelType.UNSPECIFIED
    topic: Topic = field(default_factory=Topic)
    modes: set[str] = field(default_factory=set)
    mode_params: dict[str, str] = field(default_factory=dict)
    list_modes: dict[str, list[str]] = field(default_factory=dict)
    created_at: int | None = None
    members: dict[str, ChannelUser] = field(default_factory=dict)
    # Set while a NAMES listing is being received
    names_in_progress: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(slots=True)
class ServerInfo:
    your_host: str | None = None
    created: str | None = None
    server_name: str | None = None
    version: str | None = None
    user_modes: str | None = None
    channel_modes: str | None = None


@dataclass(slots=True)
class NetworkInfo:
    visible_users: int | None = None
    invisible_users: int | None = None
    servers: int | None = None
    operators: int | None = None
    unknown_connections: int | None = None
    channels: int | None = None
    server_clients: int | None = None
    server_servers: int | None = None


@dataclass(slots=True)
class ServerVersion:
    version: str
    debug_level: str | None
    server: str
    comments: str | None


@dataclass(slots=True)
class StatsEntry:
    code: str
    params: list[str]


@dataclass(slots=True)
class ChannelListEntry:
    name: str
    visible_users: int
    topic: str


@dataclass(slots=True)
class ServerLink:
    mask: str
    server: str
    hop_count: int | None
    info: str


@dataclass(slots=True)
class BanEntry:
    mask: str
    set_by: str | None = None
    set_at: int | None = None


@dataclass(frozen=True, slots=True)
class ModeChange:
    adding: bool
    mode: str
    param: str | None = None

    def __str__(self) -> str:
        sign = "+" if self.adding else "-"
        return f"{sign}{self.mode}" + (f" {self.param}" if self.param else "")
