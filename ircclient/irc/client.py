"""IRC client facade: connection lifecycle and the outbound command surface."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..config.model import FloodSettings, RegistrationInfo
from ..constants import (
    CONNECT_TIMEOUT,
    DEFAULT_CHANTYPES,
    READ_TIMEOUT,
    WRITE_DRAIN_TIMEOUT,
)
from ..errors import InvalidOperationError, classify_connection_error, log_error
from ..logs.logger import logger
from ..rate import FloodPreventer, SendQueue
from .dispatcher import IRCDispatcher
from .events import EventEmitter, Handler, IrcEvent, Subscription
from .listener import IRCListener
from .message import parse_message, serialize_message
from .models import ConnectionState, LocalUser, NetworkInfo, ServerInfo
from .registration import LIVE_STATES, RegistrationStateMachine
from .store import EntityStore

_S = ConnectionState
_LIVE = LIVE_STATES


def _join_targets(targets: str | Iterable[str]) -> str:
    if isinstance(targets, str):
        joined = targets
    else:
        joined = ",".join(t for t in targets if t)
    if not joined:
        raise ValueError("at least one target is required")
    return joined


class IrcClient:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """One IRC connection: state machine, entity store, send queue and events.

    Collaborators observe the client through ``on``/``once``/``off`` and drive
    it through the command methods. The client never reconnects on its own.
    """

    def __init__(
        self,
        *,
        flood: FloodSettings | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.host: str | None = None
        self.port: int | None = None
        self.registration_info: RegistrationInfo | None = None
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.flood = flood or FloodSettings()
        self.connect_timeout = connect_timeout
        self._clock = clock
        self._sleep = sleep
        self.state_machine = RegistrationStateMachine()
        self.events = EventEmitter()
        self.store = EntityStore()
        self.features: dict[str, str] = {}
        self.server_info = ServerInfo()
        self.network_info = NetworkInfo()
        self.motd: str | None = None
        self.send_queue: SendQueue | None = None
        self.closing_requested = False
        self._teardown_task: asyncio.Task[None] | None = None
        self.dispatcher = IRCDispatcher(self)
        self.listener = IRCListener(self, read_timeout)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> ConnectionState:
        return self.state_machine.state

    @property
    def local_user(self) -> LocalUser | None:
        return self.store.local_user

    @property
    def label(self) -> str | None:
        if self.host is None:
            return None
        local = self.store.local_user
        nick = local.nickname if local else (
            self.registration_info.nickname if self.registration_info else "?"
        )
        return f"{nick}@{self.host}:{self.port}"

    def is_channel_name(self, name: str) -> bool:
        chantypes = self.features.get("CHANTYPES", DEFAULT_CHANTYPES)
        return bool(name) and name[0] in chantypes

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #
    def on(
        self, event: str | IrcEvent, handler: Handler, *, once: bool = False
    ) -> Subscription:
        return self.events.on(event, handler, once=once)

    def once(self, event: str | IrcEvent, handler: Handler) -> Subscription:
        return self.events.once(event, handler)

    def off(self, event: str | IrcEvent, handler: Handler | None = None) -> None:
        self.events.off(event, handler)

    def emit(self, event: str | IrcEvent, *args: Any) -> None:
        self.events.emit(event, *args)

    def _set_state(self, new_state: ConnectionState) -> None:
        self.state_machine.label = self.label
        self.state_machine.transition(new_state)

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #
    async def connect(
        self,
        host: str,
        port: int,
        registration_info: RegistrationInfo | Mapping[str, Any],
    ) -> bool:
        """Open the connection and start registration.

        Returns False (after emitting ``connection_error``) when the transport
        cannot be established. Never retries.
        """
        self.state_machine.require(_S.DISCONNECTED, action="connect")
        if not isinstance(registration_info, RegistrationInfo):
            registration_info = RegistrationInfo.model_validate(registration_info)
        self.host = host
        self.port = port
        self.registration_info = registration_info
        self.closing_requested = False
        self._teardown_task = None
        self.listener = IRCListener(self, self.listener.read_timeout)
        self._set_state(_S.CONNECTING)
        logger.log_event("irc", "connect_start", connection=self.label, server=host, port=port)
        self.emit(IrcEvent.CONNECTING, host, port)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.connect_timeout
            )
        except asyncio.CancelledError:
            self._set_state(_S.DISCONNECTED)
            raise
        except (OSError, TimeoutError) as e:
            cause = classify_connection_error(e)
            log_error(
                "Connection failed",
                e,
                {"host": host, "port": port, "cause": cause.value},
            )
            self._set_state(_S.DISCONNECTED)
            self.emit(IrcEvent.CONNECTION_ERROR, cause, host, port, e)
            return False

        self._set_state(_S.CONNECTED)
        logger.log_event("irc", "connection_established", connection=self.label)
        self.emit(IrcEvent.CONNECTED)
        self.send_queue = SendQueue(
            self._write,
            FloodPreventer(self.flood.max_burst, self.flood.counter_period, self._clock),
            sleep=self._sleep,
            on_error=self._on_write_error,
            label=self.label,
        )
        self.send_queue.start()
        self._register()
        return True

    def _register(self) -> None:
        info = self.registration_info
        if info.password:
            self.send_command("PASS", info.password)
        self.send_command("NICK", info.nickname)
        self.send_command(
            "USER", info.username, str(info.mode_bitmask), "*", trailing=info.realname
        )
        self._set_state(_S.REGISTERING)
        logger.log_event(
            "irc", "registration_sent", level=logging.DEBUG, connection=self.label
        )

    async def listen(self) -> None:
        """Run the read loop until the connection ends, then tear down."""
        if self.state not in _LIVE and self.state is not _S.CLOSING:
            raise InvalidOperationError(
                f"Cannot listen while {self.state.name}", data={"state": self.state.name}
            )
        await self.listener.listen()
        await self._close(
            self.listener.close_reason or "Connection closed", self.listener.had_error
        )

    async def disconnect(self, reason: str = "Disconnected") -> None:
        if self.state is _S.DISCONNECTED:
            return
        self.closing_requested = True
        await self._close(reason, False)

    async def quit(self, comment: str | None = None, timeout: float = 5.0) -> None:
        """Send QUIT, give the queue a chance to flush it, then disconnect."""
        self.state_machine.require(*_LIVE, action="quit")
        self.send_command("QUIT", trailing=comment)
        if self.send_queue is not None:
            await self.send_queue.join(timeout)
        await self.disconnect(comment or "Quit")

    def begin_closing(self) -> None:
        """Mark the connection as closing; the server is about to drop it."""
        if self.state in _LIVE:
            self._set_state(_S.CLOSING)

    async def _close(self, reason: str, had_error: bool) -> None:
        if self._teardown_task is None:
            self._teardown_task = asyncio.get_running_loop().create_task(
                self._teardown(reason, had_error)
            )
        await asyncio.shield(self._teardown_task)

    async def _teardown(self, reason: str, had_error: bool) -> None:
        if self.state is _S.DISCONNECTED:
            return
        if self.state is not _S.CLOSING:
            self._set_state(_S.CLOSING)
        if self.send_queue is not None:
            self.send_queue.close()
            await self.send_queue.wait_closed()
        await self._close_writer()
        local = self.store.local_user
        if local is not None:
            for key in list(local.joined_channels):
                channel = self.store.channels.get(key)
                if channel is not None:
                    self.emit(IrcEvent.PARTED_CHANNEL, channel)
        self.store.clear()
        self.dispatcher.reset()
        self.features.clear()
        self.server_info = ServerInfo()
        self.network_info = NetworkInfo()
        self.emit(IrcEvent.CONNECTION_CLOSED, had_error)
        self._set_state(_S.DISCONNECTED)
        logger.log_event(
            "irc",
            "disconnected",
            level=logging.WARNING if had_error else logging.INFO,
            connection=self.label,
            reason=reason,
        )
        self.emit(IrcEvent.DISCONNECTED, reason)

    async def _close_writer(self) -> None:
        writer, self.writer = self.writer, None
        self.reader = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, ConnectionError) as e:
            logger.log_event(
                "irc",
                "writer_close_error",
                level=logging.DEBUG,
                connection=self.label,
                error=str(e),
            )

    async def _write(self, line: bytes) -> None:
        if self.writer is None:
            raise ConnectionResetError("writer is closed")
        self.writer.write(line)
        await asyncio.wait_for(self.writer.drain(), timeout=WRITE_DRAIN_TIMEOUT)

    def _on_write_error(self, error: BaseException) -> None:
        self.listener.had_error = True
        self.listener.error_cause = classify_connection_error(error)
        self.listener.close_reason = f"Transport failure: {error}"
        self.closing_requested = True
        if self.writer is not None:
            self.writer.transport.abort()

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #
    def send_command(
        self, command: str, *params: str | None, trailing: str | None = None
    ) -> None:
        """Serialize and enqueue a command; ``None`` middle params are dropped."""
        if self.state not in _LIVE:
            raise InvalidOperationError(
                f"Cannot send {command} while {self.state.name}",
                data={"state": self.state.name, "command": command},
            )
        line = serialize_message(
            command, [p for p in params if p is not None], trailing
        )
        self._enqueue(line)

    def _enqueue(self, line: bytes) -> None:
        logger.log_event(
            "irc",
            "line_out",
            level=logging.DEBUG,
            connection=self.label,
            line=line.rstrip(b"\r\n").decode("utf-8", errors="replace"),
        )
        self.send_queue.enqueue(line)

    def _require_registered(self, action: str) -> None:
        self.state_machine.require(_S.REGISTERED, action=action)

    def send_raw_message(self, line: str) -> None:
        """Send a pre-formatted protocol line (validated by parsing it first)."""
        if any(ch in line.rstrip("\r\n") for ch in ("\r", "\n", "\0")):
            raise ValueError("raw line may not contain CR, LF or NUL")
        message = parse_message(line)
        if self.state not in _LIVE:
            raise InvalidOperationError(
                f"Cannot send {message.command} while {self.state.name}",
                data={"state": self.state.name},
            )
        self._enqueue(message.serialize())

    def send_message(self, targets: str | Iterable[str], text: str) -> None:
        self._require_registered("send message")
        joined = _join_targets(targets)
        self.send_command("PRIVMSG", joined, trailing=text)
        self.emit(IrcEvent.MESSAGE_SENT, joined.split(","), text)

    def send_notice(self, targets: str | Iterable[str], text: str) -> None:
        self._require_registered("send notice")
        self.send_command("NOTICE", _join_targets(targets), trailing=text)

    # Channels ---------------------------------------------------------

    def join_channel(self, name: str, key: str | None = None) -> None:
        self._require_registered("join channel")
        self.send_command("JOIN", name, key)

    def part(self, channel: str, comment: str | None = None) -> None:
        self._require_registered("part channel")
        self.send_command("PART", channel, trailing=comment)

    def set_topic(self, channel: str, text: str | None = None) -> None:
        """Set the topic, or query it when ``text`` is None."""
        self._require_registered("set topic")
        self.send_command("TOPIC", channel, trailing=text)

    def kick(
        self, channel: str, nicknames: str | Iterable[str], reason: str | None = None
    ) -> None:
        self._require_registered("kick")
        self.send_command("KICK", channel, _join_targets(nicknames), trailing=reason)

    def invite(self, channel: str, nickname: str) -> None:
        self._require_registered("invite")
        self.send_command("INVITE", nickname, channel)

    def get_channel_modes(self, channel: str) -> None:
        self._require_registered("get channel modes")
        self.send_command("MODE", channel)

    def set_channel_modes(self, channel: str, modes: str, *params: str) -> None:
        self._require_registered("set channel modes")
        self.send_command("MODE", channel, modes, *params)

    def op(self, channel: str, nickname: str) -> None:
        self.set_channel_modes(channel, "+o", nickname)

    def deop(self, channel: str, nickname: str) -> None:
        self.set_channel_modes(channel, "-o", nickname)

    def voice(self, channel: str, nickname: str) -> None:
        self.set_channel_modes(channel, "+v", nickname)

    def devoice(self, channel: str, nickname: str) -> None:
        self.set_channel_modes(channel, "-v", nickname)

    def ban(self, channel: str, mask: str) -> None:
        self.set_channel_modes(channel, "+b", mask)

    def unban(self, channel: str, mask: str) -> None:
        self.set_channel_modes(channel, "-b", mask)

    def list_channels(self, channels: str | Iterable[str] | None = None) -> None:
        self._require_registered("list channels")
        self.send_command("LIST", _join_targets(channels) if channels else None)

    # Users ------------------------------------------------------------

    def set_nickname(self, name: str) -> None:
        """Request a nickname change; allowed while registering (after 433)."""
        self.state_machine.require(_S.REGISTERING, _S.REGISTERED, action="set nickname")
        if not name or " " in name or "," in name:
            raise ValueError(f"invalid nickname {name!r}")
        self.send_command("NICK", name)

    def set_user_modes(self, modes: str) -> None:
        self._require_registered("set user modes")
        self.send_command("MODE", self.store.local_user.nickname, modes)

    def set_away(self, text: str) -> None:
        self._require_registered("set away")
        if not text:
            raise ValueError("away text must not be empty")
        self.send_command("AWAY", trailing=text)

    def unset_away(self) -> None:
        self._require_registered("unset away")
        self.send_command("AWAY")

    def oper(self, username: str, password: str) -> None:
        self._require_registered("oper")
        self.send_command("OPER", username, password)

    def query_who(self, mask: str | None = None, only_operators: bool = False) -> None:
        self._require_registered("query who")
        self.send_command("WHO", mask, "o" if only_operators and mask else None)

    def query_whois(self, names: str | Iterable[str]) -> None:
        self._require_registered("query whois")
        self.send_command("WHOIS", _join_targets(names))

    def query_whowas(
        self,
        names: str | Iterable[str],
        count: int | None = None,
        server: str | None = None,
    ) -> None:
        self._require_registered("query whowas")
        if server is not None and count is None:
            count = -1
        self.send_command(
            "WHOWAS",
            _join_targets(names),
            str(count) if count is not None else None,
            server,
        )

    # Server -----------------------------------------------------------

    def get_network_info(
        self, server_mask: str | None = None, target: str | None = None
    ) -> None:
        self._require_registered("get network info")
        self.send_command("LUSERS", server_mask, target if server_mask else None)

    def get_server_version(self, server: str | None = None) -> None:
        self._require_registered("get server version")
        self.send_command("VERSION", server)

    def get_server_time(self, server: str | None = None) -> None:
        self._require_registered("get server time")
        self.send_command("TIME", server)

    def get_message_of_the_day(self, server: str | None = None) -> None:
        self._require_registered("get message of the day")
        self.send_command("MOTD", server)

    def get_server_statistics(
        self, query: str | None = None, server: str | None = None
    ) -> None:
        self._require_registered("get server statistics")
        self.send_command("STATS", query, server if query else None)

    def get_server_links(
        self, server_mask: str | None = None, remote_server: str | None = None
    ) -> None:
        self._require_registered("get server links")
        if remote_server is not None and server_mask is None:
            server_mask = "*"
        self.send_command("LINKS", remote_server, server_mask)

    def ping(self, server: str | None = None) -> None:
        self.state_machine.require(*_LIVE, action="ping")
        self.send_command("PING", trailing=server or self.host)
