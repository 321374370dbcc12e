"""Event names and the emitter collaborators subscribe through."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..logs.logger import logger

Handler = Callable[..., Any]


class IrcEvent(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CONNECTION_ERROR = "connection_error"
    CONNECTION_CLOSED = "connection_closed"
    DISCONNECTED = "disconnected"
    REGISTERED = "registered"
    CLIENT_INFO = "client_info"
    SERVER_SUPPORTED_FEATURES = "server_supported_features"
    MOTD = "motd"
    PROTOCOL_ERROR = "protocol_error"
    PREVIEW_MESSAGE = "preview_message"
    PREVIEW_NOTICE = "preview_notice"
    MESSAGE = "message"
    NOTICE = "notice"
    MESSAGE_SENT = "message_sent"
    TOPIC = "topic"
    USER_LIST = "user_list"
    USER_JOINED_CHANNEL = "user_joined_channel"
    USER_LEFT_CHANNEL = "user_left_channel"
    USER_KICKED = "user_kicked"
    USER_QUIT = "user_quit"
    JOINED_CHANNEL = "joined_channel"
    PARTED_CHANNEL = "parted_channel"
    NICKNAME_CHANGED = "nickname_changed"
    MODES_CHANGED = "modes_changed"
    INVITE = "invite"
    USER_INVITED = "user_invited"
    PING = "ping"
    PONG = "pong"
    SERVER_ERROR = "server_error"
    NETWORK_INFO = "network_info"
    SERVER_VERSION = "server_version"
    SERVER_TIME = "server_time"
    SERVER_STATISTICS = "server_statistics"
    SERVER_LINKS = "server_links"
    CHANNEL_LIST = "channel_list"
    WHO_REPLY = "who_reply"
    WHOIS_REPLY = "whois_reply"
    WHOWAS_REPLY = "whowas_reply"
    BAN_LIST = "ban_list"
    BOUNCE = "bounce"
    ACTION = "action"
    CTCP_QUERY = "ctcp_query"
    CTCP_REPLY = "ctcp_reply"
    CTCP_UNSOLICITED = "ctcp_unsolicited"
    CTCP_QUERY_EXPIRED = "ctcp_query_expired"


@dataclass(slots=True)
class MessageEventArgs:
    """Mutable argument of the preview events.

    A subscriber that consumes the message sets ``handled``; the ordinary
    ``message``/``notice`` event is then not raised.
    """

    source: Any
    targets: list[str]
    text: str
    handled: bool = False


@dataclass(eq=False, slots=True)
class _Listener:
    handler: Handler
    once: bool = False
    active: bool = True


@dataclass(slots=True)
class Subscription:
    emitter: EventEmitter
    event: str
    listener: _Listener = field(repr=False)

    def cancel(self) -> None:
        self.emitter._remove(self.event, self.listener)  # noqa: SLF001


def _event_key(event: str | IrcEvent) -> str:
    return event.value if isinstance(event, IrcEvent) else str(event)


class EventEmitter:
    """Synchronous event fan-out.

    Handlers run in subscription order. A handler that raises is logged and
    the remaining handlers still run. Coroutine handlers are scheduled as
    tasks on the running loop.
    """

    def __init__(self, label: str | None = None) -> None:
        self._listeners: dict[str, list[_Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self.label = label

    def on(
        self, event: str | IrcEvent, handler: Handler, *, once: bool = False
    ) -> Subscription:
        key = _event_key(event)
        listener = _Listener(handler, once)
        self._listeners.setdefault(key, []).append(listener)
        return Subscription(self, key, listener)

    def once(self, event: str | IrcEvent, handler: Handler) -> Subscription:
        return self.on(event, handler, once=True)

    def off(self, event: str | IrcEvent, handler: Handler | None = None) -> None:
        """Remove ``handler`` (every registration of it) or all handlers."""
        key = _event_key(event)
        listeners = self._listeners.get(key, [])
        for listener in list(listeners):
            if handler is None or listener.handler == handler:
                self._remove(key, listener)

    def _remove(self, key: str, listener: _Listener) -> None:
        listener.active = False
        listeners = self._listeners.get(key)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[key]

    def listener_count(self, event: str | IrcEvent) -> int:
        return len(self._listeners.get(_event_key(event), []))

    def emit(self, event: str | IrcEvent, *args: Any) -> None:
        key = _event_key(event)
        for listener in list(self._listeners.get(key, [])):
            if not listener.active:
                continue
            if listener.once:
                self._remove(key, listener)
            try:
                result = listener.handler(*args)
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "irc",
                    "event_handler_error",
                    level=logging.ERROR,
                    connection=self.label,
                    event=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            if inspect.isawaitable(result):
                self._schedule(key, result)

    def _schedule(self, key: str, awaitable: Any) -> None:
        async def runner() -> None:
            try:
                await awaitable
            except asyncio.CancelledError:
                raise
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "irc",
                    "event_handler_error",
                    level=logging.ERROR,
                    connection=self.label,
                    event=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        task = asyncio.get_running_loop().create_task(runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_pending(self) -> None:
        """Wait until handler tasks scheduled so far have finished."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
