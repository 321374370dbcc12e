"""Inbound message routing.

``IRCDispatcher.dispatch`` interprets one ``RawMessage``: it mutates the
entity store and emits events on the client. It performs no I/O itself;
replies such as PONG go through the client's send queue.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..constants import DEFAULT_CASEMAPPING, DEFAULT_CHANMODES, DEFAULT_PREFIX
from ..errors import ProtocolViolationError
from ..logs.logger import logger
from .events import IrcEvent, MessageEventArgs
from .message import Prefix, RawMessage
from .models import (
    BanEntry,
    Channel,
    ChannelListEntry,
    ChannelType,
    ConnectionState,
    NetworkInfo,
    ServerLink,
    ServerVersion,
    StatsEntry,
    User,
)
from .modes import ModeClasses, apply_channel_modes, apply_user_modes, parse_mode_string
from .numerics import is_error_numeric, numeric_name

if TYPE_CHECKING:  # pragma: no cover
    from .client import IrcClient

_BOUNCE_RE = re.compile(r"try server (\S+?),? port (\d+)", re.IGNORECASE)
_LUSER_CLIENT_RE = re.compile(
    r"There are (\d+) users? and (\d+) (?:services|invisible) on (\d+) servers?",
    re.IGNORECASE,
)
_LUSER_ME_RE = re.compile(r"I have (\d+) clients? and (\d+) servers?", re.IGNORECASE)
_ISUPPORT_ESCAPE_RE = re.compile(r"\\x([0-9A-Fa-f]{2})")

_STATS_CODES = frozenset(
    {"211", "212", "213", "214", "215", "216", "217", "218", "241", "242", "243", "244"}
)

Handler = Callable[[RawMessage], None]


def _to_int(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _unescape_isupport(value: str) -> str:
    return _ISUPPORT_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), value)


class IRCDispatcher:
    def __init__(self, client: IrcClient):
        self.client = client
        self._whois: dict[str, User] = {}
        self._whowas: dict[str, User] = {}
        self._motd_lines: list[str] = []
        self._channel_list: list[ChannelListEntry] = []
        self._links: list[ServerLink] = []
        self._stats: list[StatsEntry] = []
        self._ban_lists: dict[str, list[BanEntry]] = {}
        self._commands: dict[str, Handler] = {
            "PRIVMSG": self._handle_privmsg,
            "NOTICE": self._handle_notice,
            "JOIN": self._handle_join,
            "PART": self._handle_part,
            "KICK": self._handle_kick,
            "TOPIC": self._handle_topic,
            "MODE": self._handle_mode,
            "NICK": self._handle_nick,
            "QUIT": self._handle_quit,
            "INVITE": self._handle_invite,
            "PING": self._handle_ping,
            "PONG": self._handle_pong,
            "ERROR": self._handle_error,
        }
        self._numerics: dict[str, Handler] = {
            "001": self._handle_welcome,
            "002": self._handle_your_host,
            "003": self._handle_created,
            "004": self._handle_my_info,
            "005": self._handle_isupport,
            "219": self._handle_end_of_stats,
            "221": self._handle_user_mode_is,
            "251": self._handle_luser_client,
            "252": self._handle_luser_count,
            "253": self._handle_luser_count,
            "254": self._handle_luser_count,
            "255": self._handle_luser_me,
            "301": self._handle_away,
            "305": self._handle_unaway,
            "306": self._handle_now_away,
            "311": self._handle_whois_user,
            "312": self._handle_whois_server,
            "313": self._handle_whois_operator,
            "314": self._handle_whowas_user,
            "315": self._handle_end_of_who,
            "317": self._handle_whois_idle,
            "318": self._handle_end_of_whois,
            "319": self._handle_whois_channels,
            "321": self._handle_list_start,
            "322": self._handle_list,
            "323": self._handle_list_end,
            "324": self._handle_channel_mode_is,
            "329": self._handle_creation_time,
            "331": self._handle_no_topic,
            "332": self._handle_topic_reply,
            "333": self._handle_topic_who_time,
            "341": self._handle_inviting,
            "351": self._handle_version,
            "352": self._handle_who_reply,
            "353": self._handle_names_reply,
            "364": self._handle_links,
            "365": self._handle_end_of_links,
            "366": self._handle_end_of_names,
            "367": self._handle_ban_list,
            "368": self._handle_end_of_ban_list,
            "369": self._handle_end_of_whowas,
            "372": self._handle_motd,
            "375": self._handle_motd_start,
            "376": self._handle_end_of_motd,
            "391": self._handle_time,
        }
        for code in _STATS_CODES:
            self._numerics[code] = self._handle_stats

    # ------------------------------------------------------------------ #
    # Routing
    # ------------------------------------------------------------------ #
    @property
    def store(self):
        return self.client.store

    def dispatch(self, message: RawMessage) -> None:
        command = message.command
        if message.is_numeric:
            handler = self._numerics.get(command)
            if handler is None or is_error_numeric(command):
                self._emit_protocol_error(message)
                return
            handler(message)
            return
        handler = self._commands.get(command)
        if handler is None:
            logger.log_event(
                "irc",
                "unhandled_command",
                level=logging.DEBUG,
                connection=self.client.label,
                command=command,
            )
            return
        handler(message)

    def reset(self) -> None:
        """Forget partially received multi-line replies."""
        self._whois.clear()
        self._whowas.clear()
        self._motd_lines.clear()
        self._channel_list = []
        self._links = []
        self._stats = []
        self._ban_lists.clear()

    def _emit_protocol_error(self, message: RawMessage) -> None:
        code = message.command
        name = numeric_name(code)
        params = message.params[1:]
        text = message.trailing or ""
        logger.log_event(
            "irc",
            "protocol_error",
            level=logging.WARNING if is_error_numeric(code) else logging.DEBUG,
            connection=self.client.label,
            code=code,
            name=name,
            text=text,
        )
        self.client.emit(IrcEvent.PROTOCOL_ERROR, code, name, params, text)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _source(self, message: RawMessage) -> Any:
        """Resolve a message prefix to a User (known or transient) or Server."""
        prefix = message.prefix
        if prefix is None:
            return None
        if prefix.is_server:
            return self.store.get_or_create_server(prefix.raw)
        user = self.store.get_user(prefix.nickname)
        if user is None:
            return User(prefix.nickname, prefix.username, prefix.hostname)
        if prefix.username:
            user.username = prefix.username
        if prefix.hostname:
            user.hostname = prefix.hostname
        return user

    def _require_user_prefix(self, message: RawMessage) -> Prefix:
        prefix = message.prefix
        if prefix is None or prefix.is_server:
            raise ProtocolViolationError(
                f"{message.command} without a user prefix",
                data={"command": message.command},
            )
        return prefix

    def _require_params(self, message: RawMessage, count: int) -> list[str]:
        params = message.all_params
        if len(params) < count:
            raise ProtocolViolationError(
                f"{message.command} needs {count} parameters, got {len(params)}",
                data={"command": message.command, "params": params},
            )
        return params

    def _is_local(self, nickname: str | None) -> bool:
        return nickname is not None and self.store.is_local(nickname)

    def _known_or_transient(self, pending: dict[str, User], nickname: str) -> User:
        key = self.store.fold(nickname)
        user = pending.get(key)
        if user is None:
            user = self.store.get_user(nickname) or User(nickname)
            pending[key] = user
        return user

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def _handle_privmsg(self, message: RawMessage) -> None:
        self._handle_chat(message, IrcEvent.PREVIEW_MESSAGE, IrcEvent.MESSAGE)

    def _handle_notice(self, message: RawMessage) -> None:
        self._handle_chat(message, IrcEvent.PREVIEW_NOTICE, IrcEvent.NOTICE)

    def _handle_chat(
        self, message: RawMessage, preview: IrcEvent, event: IrcEvent
    ) -> None:
        params = self._require_params(message, 2)
        source = self._source(message)
        targets = [t for t in params[0].split(",") if t]
        text = params[1]
        logger.log_event(
            "irc",
            "privmsg" if event is IrcEvent.MESSAGE else "notice",
            level=logging.DEBUG,
            connection=self.client.label,
            human=f"{source}: {text}",
            targets=targets,
        )
        args = MessageEventArgs(source, targets, text)
        self.client.emit(preview, args)
        if not args.handled:
            self.client.emit(event, source, targets, text)

    def _handle_join(self, message: RawMessage) -> None:
        prefix = self._require_user_prefix(message)
        params = self._require_params(message, 1)
        for name in params[0].split(","):
            if not name:
                continue
            if self._is_local(prefix.nickname):
                channel = self.store.get_or_create_channel(name)
                local = self.store.local_user
                local.joined_channels.add(self.store.fold(name))
                if prefix.username:
                    local.username = prefix.username
                if prefix.hostname:
                    local.hostname = prefix.hostname
                self.store.add_member(channel, local)
                logger.log_event(
                    "irc", "join", connection=self.client.label, channel=channel.name
                )
                self.client.emit(IrcEvent.JOINED_CHANNEL, channel)
                continue
            channel = self.store.get_channel(name)
            if channel is None:
                logger.log_event(
                    "irc",
                    "unknown_channel",
                    level=logging.DEBUG,
                    connection=self.client.label,
                    channel=name,
                    command="JOIN",
                )
                continue
            user = self.store.get_or_create_user(
                prefix.nickname, prefix.username, prefix.hostname
            )
            member = self.store.add_member(channel, user)
            self.client.emit(IrcEvent.USER_JOINED_CHANNEL, channel, member)

    def _handle_part(self, message: RawMessage) -> None:
        prefix = self._require_user_prefix(message)
        params = self._require_params(message, 1)
        comment = params[1] if len(params) > 1 else None
        for name in params[0].split(","):
            if not name:
                continue
            if self._is_local(prefix.nickname):
                channel = self.store.remove_channel(name)
                if channel is not None:
                    logger.log_event(
                        "irc", "part", connection=self.client.label, channel=channel.name
                    )
                    self.client.emit(IrcEvent.PARTED_CHANNEL, channel)
                continue
            channel = self.store.get_channel(name)
            if channel is None:
                continue
            member = self.store.remove_member(channel, prefix.nickname)
            if member is not None:
                self.client.emit(IrcEvent.USER_LEFT_CHANNEL, channel, member, comment)

    def _handle_kick(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        source = self._source(message)
        comment = params[2] if len(params) > 2 else None
        channel = self.store.get_channel(params[0])
        if channel is None:
            return
        for nickname in params[1].split(","):
            if not nickname:
                continue
            if self._is_local(nickname):
                member = channel.members.get(self.store.fold(nickname))
                self.store.remove_channel(channel.name)
                logger.log_event(
                    "irc",
                    "kicked",
                    level=logging.WARNING,
                    connection=self.client.label,
                    channel=channel.name,
                    source=str(source),
                    comment=comment,
                )
                self.client.emit(IrcEvent.USER_KICKED, channel, source, member, comment)
                self.client.emit(IrcEvent.PARTED_CHANNEL, channel)
                return
            member = self.store.remove_member(channel, nickname)
            if member is not None:
                self.client.emit(IrcEvent.USER_KICKED, channel, source, member, comment)

    def _handle_topic(self, message: RawMessage) -> None:
        params = self._require_params(message, 1)
        source = self._source(message)
        channel = self.store.get_channel(params[0])
        if channel is None:
            return
        text = params[1] if len(params) > 1 else None
        channel.topic.text = text or None
        channel.topic.set_by = str(source) if source is not None else None
        channel.topic.set_at = int(time.time())
        self.client.emit(IrcEvent.TOPIC, channel, source, channel.topic.text)

    def _handle_mode(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        source = self._source(message)
        target = params[0]
        if self.client.is_channel_name(target):
            channel = self.store.get_channel(target)
            if channel is None:
                return
            changes = self._apply_channel_mode_string(channel, params[1], params[2:])
            self.client.emit(IrcEvent.MODES_CHANGED, channel, source, changes)
            return
        local = self.store.local_user
        if local is None or not self._is_local(target):
            return
        changes = parse_mode_string(params[1], params[2:], ModeClasses())
        apply_user_modes(local.modes, changes)
        self.client.emit(IrcEvent.MODES_CHANGED, local, source, changes)

    def _apply_channel_mode_string(
        self, channel: Channel, modes: str, args: list[str]
    ):
        classes = self.store.mode_classes
        changes = parse_mode_string(modes, args, classes)

        def lookup(nickname: str):
            return channel.members.get(self.store.fold(nickname))

        apply_channel_modes(channel, changes, classes, lookup)
        return changes

    def _handle_nick(self, message: RawMessage) -> None:
        prefix = self._require_user_prefix(message)
        params = self._require_params(message, 1)
        old_nickname = prefix.nickname
        new_nickname = params[0]
        user = self.store.rename_user(old_nickname, new_nickname)
        if user is None:
            user = User(new_nickname, prefix.username, prefix.hostname)
        logger.log_event(
            "irc",
            "nick_change",
            level=logging.DEBUG,
            connection=self.client.label,
            old_nickname=old_nickname,
            new_nickname=new_nickname,
        )
        self.client.emit(IrcEvent.NICKNAME_CHANGED, user, old_nickname)

    def _handle_quit(self, message: RawMessage) -> None:
        prefix = self._require_user_prefix(message)
        params = message.all_params
        comment = params[0] if params else None
        user = self.store.get_user(prefix.nickname) or User(
            prefix.nickname, prefix.username, prefix.hostname
        )
        channels = self.store.remove_user(prefix.nickname)
        self.client.emit(IrcEvent.USER_QUIT, user, channels, comment)

    def _handle_invite(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        source = self._source(message)
        self.client.emit(IrcEvent.INVITE, params[1], source)

    def _handle_ping(self, message: RawMessage) -> None:
        params = message.all_params
        server = params[0] if params else ""
        if self.client.state_machine.is_live:
            self.client.send_command("PONG", trailing=server)
        self.client.emit(IrcEvent.PING, server)

    def _handle_pong(self, message: RawMessage) -> None:
        params = message.all_params
        server = params[0] if params else (message.prefix.raw if message.prefix else "")
        self.client.emit(IrcEvent.PONG, server)

    def _handle_error(self, message: RawMessage) -> None:
        params = message.all_params
        text = params[0] if params else ""
        logger.log_event(
            "irc",
            "server_error",
            level=logging.WARNING,
            connection=self.client.label,
            text=text,
        )
        self.client.begin_closing()
        self.client.emit(IrcEvent.SERVER_ERROR, text)

    # ------------------------------------------------------------------ #
    # Registration numerics
    # ------------------------------------------------------------------ #
    def _handle_welcome(self, message: RawMessage) -> None:
        params = self._require_params(message, 1)
        nickname = params[0]
        text = params[1] if len(params) > 1 else ""
        info = self.client.registration_info
        username = info.username if info else None
        hostname = None
        words = text.split()
        if words and "!" in words[-1] and "@" in words[-1]:
            mask = Prefix.parse(words[-1])
            username = mask.username or username
            hostname = mask.hostname
        local = self.store.create_local_user(
            nickname,
            username=username,
            hostname=hostname,
            realname=info.realname if info else None,
        )
        if self.client.state is ConnectionState.REGISTERING:
            self.client.state_machine.transition(ConnectionState.REGISTERED)
        logger.log_event(
            "irc", "registered", connection=self.client.label, nickname=nickname
        )
        self.client.emit(IrcEvent.REGISTERED, local)

    def _handle_your_host(self, message: RawMessage) -> None:
        self.client.server_info.your_host = message.param(1)

    def _handle_created(self, message: RawMessage) -> None:
        self.client.server_info.created = message.param(1)

    def _handle_my_info(self, message: RawMessage) -> None:
        info = self.client.server_info
        info.server_name = message.param(1)
        info.version = message.param(2)
        info.user_modes = message.param(3)
        info.channel_modes = message.param(4)
        self.client.emit(IrcEvent.CLIENT_INFO, info)

    def _handle_isupport(self, message: RawMessage) -> None:
        text = message.trailing or ""
        bounce = _BOUNCE_RE.search(text)
        if bounce:
            self.client.emit(IrcEvent.BOUNCE, bounce.group(1), int(bounce.group(2)))
            return
        features = self.client.features
        for token in message.params[1:]:
            if token.startswith("-"):
                name = token[1:].upper()
                features.pop(name, None)
                self._apply_feature(name, None)
                continue
            name, _, value = token.partition("=")
            name = name.upper()
            value = _unescape_isupport(value)
            features[name] = value
            self._apply_feature(name, value)
        self.client.emit(IrcEvent.SERVER_SUPPORTED_FEATURES, features)

    def _apply_feature(self, name: str, value: str | None) -> None:
        classes = self.store.mode_classes
        try:
            if name == "PREFIX":
                classes.update_prefix(DEFAULT_PREFIX if value is None else value)
            elif name == "CHANMODES":
                classes.update_chanmodes(value or DEFAULT_CHANMODES)
            elif name == "CASEMAPPING":
                self.store.set_casemapping(value or DEFAULT_CASEMAPPING)
        except ValueError as e:
            logger.log_event(
                "irc",
                "isupport_invalid",
                level=logging.WARNING,
                connection=self.client.label,
                token=name,
                value=value,
                error=str(e),
            )

    def _handle_user_mode_is(self, message: RawMessage) -> None:
        local = self.store.local_user
        modes = message.param(1) or ""
        if local is None:
            return
        changes = parse_mode_string(modes, [], ModeClasses())
        local.modes = {c.mode for c in changes if c.adding}
        self.client.emit(IrcEvent.MODES_CHANGED, local, None, changes)

    # ------------------------------------------------------------------ #
    # Server queries
    # ------------------------------------------------------------------ #
    def _handle_luser_client(self, message: RawMessage) -> None:
        match = _LUSER_CLIENT_RE.search(message.trailing or "")
        if not match:
            return
        info = self.client.network_info
        info.visible_users = int(match.group(1))
        info.invisible_users = int(match.group(2))
        info.servers = int(match.group(3))

    def _handle_luser_count(self, message: RawMessage) -> None:
        count = _to_int(message.param(1))
        info = self.client.network_info
        if message.command == "252":
            info.operators = count
        elif message.command == "253":
            info.unknown_connections = count
        else:
            info.channels = count

    def _handle_luser_me(self, message: RawMessage) -> None:
        info = self.client.network_info
        match = _LUSER_ME_RE.search(message.trailing or "")
        if match:
            info.server_clients = int(match.group(1))
            info.server_servers = int(match.group(2))
        self.client.emit(IrcEvent.NETWORK_INFO, info)
        self.client.network_info = NetworkInfo()

    def _handle_version(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        version, dot, debug_level = params[1].rpartition(".")
        if not dot:
            version, debug_level = params[1], ""
        comments = params[3] if len(params) > 3 else None
        self.client.emit(
            IrcEvent.SERVER_VERSION,
            ServerVersion(version, debug_level or None, params[2], comments),
        )

    def _handle_time(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        self.client.emit(IrcEvent.SERVER_TIME, params[1], params[-1])

    def _handle_stats(self, message: RawMessage) -> None:
        self._stats.append(StatsEntry(message.command, message.all_params[1:]))

    def _handle_end_of_stats(self, message: RawMessage) -> None:
        entries, self._stats = self._stats, []
        self.client.emit(IrcEvent.SERVER_STATISTICS, entries)

    def _handle_links(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        hops, _, info = (params[3] if len(params) > 3 else "").partition(" ")
        self._links.append(ServerLink(params[1], params[2], _to_int(hops), info))

    def _handle_end_of_links(self, message: RawMessage) -> None:
        links, self._links = self._links, []
        self.client.emit(IrcEvent.SERVER_LINKS, links)

    def _handle_list_start(self, message: RawMessage) -> None:
        self._channel_list = []

    def _handle_list(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        topic = params[3] if len(params) > 3 else ""
        self._channel_list.append(
            ChannelListEntry(params[1], _to_int(params[2]) or 0, topic)
        )

    def _handle_list_end(self, message: RawMessage) -> None:
        entries, self._channel_list = self._channel_list, []
        self.client.emit(IrcEvent.CHANNEL_LIST, entries)

    def _handle_motd_start(self, message: RawMessage) -> None:
        self._motd_lines = []

    def _handle_motd(self, message: RawMessage) -> None:
        text = message.param(1) or ""
        self._motd_lines.append(text[2:] if text.startswith("- ") else text)

    def _handle_end_of_motd(self, message: RawMessage) -> None:
        text = "\n".join(self._motd_lines)
        self._motd_lines = []
        self.client.motd = text
        self.client.emit(IrcEvent.MOTD, text)

    # ------------------------------------------------------------------ #
    # Away / WHOIS / WHOWAS / WHO
    # ------------------------------------------------------------------ #
    def _handle_away(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        key = self.store.fold(params[1])
        user = self._whois.get(key) or self.store.get_user(params[1])
        if user is None:
            return
        user.is_away = True
        user.away_message = params[2] if len(params) > 2 else None

    def _handle_unaway(self, message: RawMessage) -> None:
        local = self.store.local_user
        if local is not None:
            local.is_away = False
            local.away_message = None

    def _handle_now_away(self, message: RawMessage) -> None:
        local = self.store.local_user
        if local is not None:
            local.is_away = True

    def _handle_whois_user(self, message: RawMessage) -> None:
        params = self._require_params(message, 6)
        user = self._known_or_transient(self._whois, params[1])
        user.username = params[2]
        user.hostname = params[3]
        user.realname = params[5]

    def _handle_whois_server(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        user = self._known_or_transient(self._whois, params[1])
        user.server_name = params[2]
        user.server_info = params[3] if len(params) > 3 else None

    def _handle_whois_operator(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        self._known_or_transient(self._whois, params[1]).is_operator = True

    def _handle_whois_idle(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        user = self._known_or_transient(self._whois, params[1])
        user.idle_seconds = _to_int(params[2])

    def _handle_whois_channels(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        user = self._known_or_transient(self._whois, params[1])
        symbols = self.store.mode_classes.prefix_symbols
        user.channel_names = [name.lstrip(symbols) for name in params[2].split() if name]

    def _handle_end_of_whois(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        user = self._whois.pop(self.store.fold(params[1]), None)
        if user is None:
            user = self.store.get_user(params[1]) or User(params[1])
        self.client.emit(IrcEvent.WHOIS_REPLY, user)

    def _handle_whowas_user(self, message: RawMessage) -> None:
        params = self._require_params(message, 6)
        # WHOWAS describes a user who is gone; never touch the store
        key = self.store.fold(params[1])
        user = self._whowas.setdefault(key, User(params[1]))
        user.username = params[2]
        user.hostname = params[3]
        user.realname = params[5]

    def _handle_end_of_whowas(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        user = self._whowas.pop(self.store.fold(params[1]), None)
        if user is not None:
            self.client.emit(IrcEvent.WHOWAS_REPLY, user)

    def _handle_who_reply(self, message: RawMessage) -> None:
        params = self._require_params(message, 8)
        channel_name, username, hostname, server, nickname, flags = params[1:7]
        user = self.store.get_user(nickname)
        if user is None:
            return
        user.username = username
        user.hostname = hostname
        user.server_name = server
        user.is_away = flags.startswith("G")
        user.is_operator = "*" in flags
        hops, _, realname = params[7].partition(" ")
        user.hop_count = _to_int(hops)
        user.realname = realname
        member = self.store.get_member(channel_name, nickname)
        if member is not None:
            classes = self.store.mode_classes
            modes = {classes.symbol_to_mode(s) for s in flags[1:]}
            member.modes.update(m for m in modes if m)

    def _handle_end_of_who(self, message: RawMessage) -> None:
        self.client.emit(IrcEvent.WHO_REPLY, message.param(1))

    # ------------------------------------------------------------------ #
    # Channel numerics
    # ------------------------------------------------------------------ #
    def _handle_channel_mode_is(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        channel = self.store.get_channel(params[1])
        if channel is None:
            return
        changes = self._apply_channel_mode_string(channel, params[2], params[3:])
        self.client.emit(IrcEvent.MODES_CHANGED, channel, None, changes)

    def _handle_creation_time(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        channel = self.store.get_channel(params[1])
        if channel is not None:
            channel.created_at = _to_int(params[2])

    def _handle_no_topic(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        channel = self.store.get_channel(params[1])
        if channel is None:
            return
        channel.topic.text = None
        self.client.emit(IrcEvent.TOPIC, channel, None, None)

    def _handle_topic_reply(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        channel = self.store.get_channel(params[1])
        if channel is None:
            return
        channel.topic.text = params[2]
        self.client.emit(IrcEvent.TOPIC, channel, None, params[2])

    def _handle_topic_who_time(self, message: RawMessage) -> None:
        params = self._require_params(message, 4)
        channel = self.store.get_channel(params[1])
        if channel is None:
            return
        channel.topic.set_by = params[2]
        channel.topic.set_at = _to_int(params[3])

    def _handle_inviting(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        first, second = params[1], params[2]
        # RFC 1459 sends "<channel> <nick>", RFC 2812 "<nick> <channel>"
        if self.client.is_channel_name(first):
            channel_name, nickname = first, second
        else:
            nickname, channel_name = first, second
        self.client.emit(IrcEvent.USER_INVITED, channel_name, nickname)

    def _handle_names_reply(self, message: RawMessage) -> None:
        params = self._require_params(message, 4)
        channel = self.store.get_channel(params[2])
        local = self.store.local_user
        if (
            channel is None
            or local is None
            or self.store.fold(channel.name) not in local.joined_channels
        ):
            logger.log_event(
                "irc",
                "names_ignored",
                level=logging.DEBUG,
                connection=self.client.label,
                channel=params[2],
            )
            return
        channel.channel_type = ChannelType.from_symbol(params[1])
        channel.names_in_progress = True
        classes = self.store.mode_classes
        symbols = classes.prefix_symbols
        for entry in params[3].split():
            name = entry.lstrip(symbols)
            if not name:
                continue
            modes = {classes.symbol_to_mode(s) for s in entry[: len(entry) - len(name)]}
            mask = Prefix.parse(name)
            nickname = mask.nickname or name
            user = self.store.get_or_create_user(nickname, mask.username, mask.hostname)
            self.store.add_member(channel, user, {m for m in modes if m})

    def _handle_end_of_names(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        channel = self.store.get_channel(params[1])
        local = self.store.local_user
        if (
            channel is None
            or local is None
            or self.store.fold(channel.name) not in local.joined_channels
        ):
            return
        channel.names_in_progress = False
        self.client.emit(IrcEvent.USER_LIST, channel)

    def _handle_ban_list(self, message: RawMessage) -> None:
        params = self._require_params(message, 3)
        entry = BanEntry(
            params[2],
            params[3] if len(params) > 3 else None,
            _to_int(params[4]) if len(params) > 4 else None,
        )
        self._ban_lists.setdefault(self.store.fold(params[1]), []).append(entry)

    def _handle_end_of_ban_list(self, message: RawMessage) -> None:
        params = self._require_params(message, 2)
        entries = self._ban_lists.pop(self.store.fold(params[1]), [])
        channel = self.store.get_channel(params[1])
        if channel is not None:
            channel.list_modes["b"] = [entry.mask for entry in entries]
        self.client.emit(IrcEvent.BAN_LIST, channel or params[1], entries)
