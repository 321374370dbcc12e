"""Entity store: users, channels, memberships and servers for one connection."""

from __future__ import annotations

import logging

from ..constants import DEFAULT_CASEMAPPING
from ..logs.logger import logger
from .models import Channel, ChannelUser, LocalUser, Server, User
from .modes import ModeClasses

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"

CASEMAPPINGS: dict[str, dict[int, int]] = {
    "ascii": str.maketrans(_UPPER, _LOWER),
    "rfc1459": str.maketrans(_UPPER + "[]\\~", _LOWER + "{}|^"),
    "strict-rfc1459": str.maketrans(_UPPER + "[]\\", _LOWER + "{}|"),
}


class EntityStore:
    """Owns every User, Channel and ChannelUser record of a connection.

    Records are keyed by their casemapping-folded name, so ``Nick[a]`` and
    ``nick{a}`` resolve to the same user under ``rfc1459``. Other components
    only keep names and look records up again when they need them.
    """

    def __init__(self, casemapping: str = DEFAULT_CASEMAPPING) -> None:
        self.casemapping = casemapping
        self._table = CASEMAPPINGS[casemapping]
        self.mode_classes = ModeClasses.from_tokens()
        self.users: dict[str, User] = {}
        self.channels: dict[str, Channel] = {}
        self.servers: dict[str, Server] = {}
        self.local_user: LocalUser | None = None

    def fold(self, name: str) -> str:
        return name.translate(self._table)

    def set_casemapping(self, casemapping: str) -> None:
        """Switch casemapping and re-key every record under the new fold.

        A stricter fold can map two records onto one key. Such collisions are
        merged into the record seen first (the local user always wins) and
        logged, so no membership disappears silently.
        """
        table = CASEMAPPINGS.get(casemapping.lower())
        if table is None:
            logger.log_event(
                "store",
                "unknown_casemapping",
                level=logging.WARNING,
                casemapping=casemapping,
            )
            return
        self.casemapping = casemapping.lower()
        self._table = table

        users: dict[str, User] = {}
        ordered = sorted(self.users.values(), key=lambda u: u is not self.local_user)
        for user in ordered:
            key = self.fold(user.nickname)
            kept = users.get(key)
            if kept is None:
                users[key] = user
                continue
            self._log_collision("user", kept.nickname, user.nickname)
            kept.username = kept.username or user.username
            kept.hostname = kept.hostname or user.hostname
        self.users = users

        channels: dict[str, Channel] = {}
        for channel in self.channels.values():
            key = self.fold(channel.name)
            kept_channel = channels.setdefault(key, channel)
            if kept_channel is not channel:
                self._log_collision("channel", kept_channel.name, channel.name)
            members = {} if kept_channel is channel else kept_channel.members
            for member in channel.members.values():
                self._merge_member(kept_channel, members, member)
            kept_channel.members = members
        self.channels = channels
        if self.local_user is not None:
            self.local_user.joined_channels = {
                self.fold(name) for name in self.local_user.joined_channels
            }

    def _merge_member(
        self, channel: Channel, members: dict[str, ChannelUser], member: ChannelUser
    ) -> None:
        key = self.fold(member.nickname)
        user = self.users.get(key)
        kept = members.get(key)
        if kept is None:
            member.channel_name = channel.name
            if user is not None:
                member.nickname = user.nickname
            members[key] = member
            return
        self._log_collision("member", kept.nickname, member.nickname, channel.name)
        kept.modes.update(member.modes)

    def _log_collision(
        self, kind: str, kept: str, dropped: str, channel: str | None = None
    ) -> None:
        logger.log_event(
            "store",
            "casemapping_collision",
            level=logging.WARNING,
            kind=kind,
            kept=kept,
            dropped=dropped,
            casemapping=self.casemapping,
            channel=channel,
        )

    # Users ---------------------------------------------------------------

    def get_user(self, nickname: str) -> User | None:
        return self.users.get(self.fold(nickname))

    def get_or_create_user(
        self,
        nickname: str,
        username: str | None = None,
        hostname: str | None = None,
    ) -> User:
        key = self.fold(nickname)
        user = self.users.get(key)
        if user is None:
            user = User(nickname)
            self.users[key] = user
        if username:
            user.username = username
        if hostname:
            user.hostname = hostname
        return user

    def create_local_user(
        self,
        nickname: str,
        username: str | None = None,
        hostname: str | None = None,
        realname: str | None = None,
    ) -> LocalUser:
        key = self.fold(nickname)
        existing = self.users.pop(key, None)
        if existing is not None and not isinstance(existing, LocalUser):
            username = username or existing.username
            hostname = hostname or existing.hostname
        local = LocalUser(
            nickname, username=username, hostname=hostname, realname=realname
        )
        self.users[key] = local
        self.local_user = local
        return local

    def is_local(self, nickname: str) -> bool:
        return self.local_user is not None and self.fold(nickname) == self.fold(
            self.local_user.nickname
        )

    def rename_user(self, old_nickname: str, new_nickname: str) -> User | None:
        """Re-key a user and every membership it holds.

        A stale record already registered under the new key (a user we never
        saw leave) is dropped in favour of the renamed one.
        """
        old_key = self.fold(old_nickname)
        new_key = self.fold(new_nickname)
        user = self.users.pop(old_key, None)
        if user is None:
            return None
        if new_key != old_key:
            stale = self.users.pop(new_key, None)
            if stale is not None:
                for channel in self.channels.values():
                    channel.members.pop(new_key, None)
        user.nickname = new_nickname
        self.users[new_key] = user
        for channel in self.channels.values():
            member = channel.members.pop(old_key, None)
            if member is not None:
                member.nickname = new_nickname
                channel.members[new_key] = member
        return user

    def remove_user(self, nickname: str) -> list[Channel]:
        """Remove a user from every channel at once; returns those channels."""
        key = self.fold(nickname)
        left: list[Channel] = []
        for channel in self.channels.values():
            if channel.members.pop(key, None) is not None:
                left.append(channel)
        user = self.users.pop(key, None)
        if user is not None and user is self.local_user:
            self.local_user = None
        return left

    # Channels ------------------------------------------------------------

    def get_channel(self, name: str) -> Channel | None:
        return self.channels.get(self.fold(name))

    def get_or_create_channel(self, name: str) -> Channel:
        key = self.fold(name)
        channel = self.channels.get(key)
        if channel is None:
            channel = Channel(name)
            self.channels[key] = channel
        return channel

    def remove_channel(self, name: str) -> Channel | None:
        key = self.fold(name)
        channel = self.channels.pop(key, None)
        if channel is None:
            return None
        if self.local_user is not None:
            self.local_user.joined_channels.discard(key)
        for member_key in list(channel.members):
            self._prune_user(member_key)
        channel.members.clear()
        return channel

    def _prune_user(self, key: str) -> None:
        user = self.users.get(key)
        if user is None or user is self.local_user:
            return
        if any(key in channel.members for channel in self.channels.values()):
            return
        del self.users[key]

    # Memberships ---------------------------------------------------------

    def get_member(self, channel_name: str, nickname: str) -> ChannelUser | None:
        channel = self.get_channel(channel_name)
        if channel is None:
            return None
        return channel.members.get(self.fold(nickname))

    def add_member(
        self, channel: Channel, user: User, modes: set[str] | None = None
    ) -> ChannelUser:
        key = self.fold(user.nickname)
        member = channel.members.get(key)
        if member is None:
            member = ChannelUser(channel.name, user.nickname)
            channel.members[key] = member
        if modes:
            member.modes.update(modes)
        return member

    def remove_member(self, channel: Channel, nickname: str) -> ChannelUser | None:
        key = self.fold(nickname)
        member = channel.members.pop(key, None)
        if member is not None:
            self._prune_user(key)
        return member

    def channels_of(self, nickname: str) -> list[Channel]:
        key = self.fold(nickname)
        return [c for c in self.channels.values() if key in c.members]

    def user_of(self, member: ChannelUser) -> User | None:
        return self.get_user(member.nickname)

    def sorted_members(self, channel: Channel) -> list[ChannelUser]:
        """Members ordered by membership rank, then case-insensitive nickname."""
        classes = self.mode_classes
        return sorted(
            channel.members.values(),
            key=lambda m: (classes.rank(m.modes), m.nickname.lower()),
        )

    # Servers -------------------------------------------------------------

    def get_or_create_server(self, hostname: str) -> Server:
        key = hostname.lower()
        server = self.servers.get(key)
        if server is None:
            server = Server(hostname)
            self.servers[key] = server
        return server

    def clear(self) -> None:
        """Drop every record and return to the pre-ISUPPORT defaults."""
        self.users.clear()
        self.channels.clear()
        self.servers.clear()
        self.local_user = None
        self.casemapping = DEFAULT_CASEMAPPING
        self._table = CASEMAPPINGS[DEFAULT_CASEMAPPING]
        self.mode_classes = ModeClasses.from_tokens()
