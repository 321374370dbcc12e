"""CTCP queries and replies layered on PRIVMSG/NOTICE."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..config.model import CtcpSettings
from ..irc.events import IrcEvent, MessageEventArgs
from ..irc.models import ConnectionState
from ..logs.logger import logger
from .quoting import decode_ctcp, encode_ctcp, is_ctcp

if TYPE_CHECKING:  # pragma: no cover
    from ..irc.client import IrcClient

SUPPORTED_TAGS = ("ACTION", "CLIENTINFO", "FINGER", "PING", "TIME", "VERSION")
TIME_FORMAT = "%a %b %d %H:%M:%S %Y"


@dataclass(frozen=True, slots=True)
class CtcpReply:
    source: Any
    tag: str
    data: str | None
    elapsed: float


@dataclass(slots=True)
class PendingCtcpQuery:
    target: str
    tag: str
    token: str | None
    sent_at: float
    future: asyncio.Future[CtcpReply] = field(repr=False)


def _nickname_of(source: Any) -> str | None:
    # Servers and prefix-less lines have no nickname to match or answer
    return getattr(source, "nickname", None)


def _split_targets(targets: str | Iterable[str]) -> list[str]:
    items = targets.split(",") if isinstance(targets, str) else list(targets)
    items = [t for t in items if t]
    if not items:
        raise ValueError("at least one target is required")
    return items


class CtcpClient:
    """Sends CTCP queries, answers incoming ones and matches replies.

    Framed PRIVMSG/NOTICE payloads are claimed through the client's preview
    events, so they never surface as ordinary ``message``/``notice`` events.
    Each outgoing query returns one future per target; it resolves with a
    ``CtcpReply`` or is cancelled when the query expires or the connection
    goes away.
    """

    def __init__(
        self,
        client: IrcClient,
        settings: CtcpSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.settings = settings or CtcpSettings()
        self._clock = clock
        self._pending: dict[tuple[str, str], deque[PendingCtcpQuery]] = {}
        self._subscriptions = [
            client.on(IrcEvent.PREVIEW_MESSAGE, self._on_preview_message),
            client.on(IrcEvent.PREVIEW_NOTICE, self._on_preview_notice),
            client.on(IrcEvent.DISCONNECTED, self._on_disconnected),
        ]

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.cancel_pending()

    @property
    def pending_count(self) -> int:
        return sum(len(entries) for entries in self._pending.values())

    # ------------------------------------------------------------------ #
    # Outgoing
    # ------------------------------------------------------------------ #
    def action(self, targets: str | Iterable[str], text: str) -> None:
        self._send("PRIVMSG", _split_targets(targets), encode_ctcp("ACTION", text))

    def ping(self, targets: str | Iterable[str]) -> list[asyncio.Future[CtcpReply]]:
        token = str(time.time_ns() // 1_000_000)
        return self._query(targets, "PING", token)

    def time(self, targets: str | Iterable[str]) -> list[asyncio.Future[CtcpReply]]:
        return self._query(targets, "TIME")

    def version(self, targets: str | Iterable[str]) -> list[asyncio.Future[CtcpReply]]:
        return self._query(targets, "VERSION")

    def finger(self, targets: str | Iterable[str]) -> list[asyncio.Future[CtcpReply]]:
        return self._query(targets, "FINGER")

    def client_info(
        self, targets: str | Iterable[str]
    ) -> list[asyncio.Future[CtcpReply]]:
        return self._query(targets, "CLIENTINFO")

    def _query(
        self, targets: str | Iterable[str], tag: str, data: str | None = None
    ) -> list[asyncio.Future[CtcpReply]]:
        names = _split_targets(targets)
        self._send("PRIVMSG", names, encode_ctcp(tag, data))
        self.sweep()
        loop = asyncio.get_running_loop()
        now = self._clock()
        futures: list[asyncio.Future[CtcpReply]] = []
        for name in names:
            future: asyncio.Future[CtcpReply] = loop.create_future()
            entry = PendingCtcpQuery(name, tag, data if tag == "PING" else None, now, future)
            self._pending.setdefault(self._key(name, tag), deque()).append(entry)
            futures.append(future)
        logger.log_event(
            "ctcp",
            "query_sent",
            level=logging.DEBUG,
            connection=self.client.label,
            tag=tag,
            targets=names,
        )
        return futures

    def _send(self, command: str, targets: list[str], payload: str) -> None:
        self.client.state_machine.require(ConnectionState.REGISTERED, action="send CTCP")
        self.client.send_command(command, ",".join(targets), trailing=payload)

    def _key(self, nickname: str, tag: str) -> tuple[str, str]:
        return self.client.store.fold(nickname), tag

    # ------------------------------------------------------------------ #
    # Pending bookkeeping
    # ------------------------------------------------------------------ #
    def sweep(self) -> int:
        """Expire queries older than the TTL; returns how many were dropped."""
        now = self._clock()
        ttl = self.settings.pending_ttl
        expired: list[PendingCtcpQuery] = []
        for key in list(self._pending):
            entries = self._pending[key]
            while entries and now - entries[0].sent_at > ttl:
                expired.append(entries.popleft())
            if not entries:
                del self._pending[key]
        for entry in expired:
            entry.future.cancel()
            logger.log_event(
                "ctcp",
                "query_expired",
                level=logging.DEBUG,
                connection=self.client.label,
                target=entry.target,
                tag=entry.tag,
            )
            self.client.emit(IrcEvent.CTCP_QUERY_EXPIRED, entry.target, entry.tag)
        return len(expired)

    def cancel_pending(self) -> None:
        pending, self._pending = self._pending, {}
        for entries in pending.values():
            for entry in entries:
                entry.future.cancel()

    def _match(self, nickname: str, tag: str, data: str | None) -> PendingCtcpQuery | None:
        key = self._key(nickname, tag)
        entries = self._pending.get(key)
        if not entries:
            return None
        found: PendingCtcpQuery | None = None
        if tag == "PING":
            for entry in entries:
                if entry.token == data:
                    found = entry
                    break
            if found is not None:
                entries.remove(found)
        else:
            found = entries.popleft()
        if not entries:
            del self._pending[key]
        return found

    # ------------------------------------------------------------------ #
    # Incoming
    # ------------------------------------------------------------------ #
    def _on_disconnected(self, reason: str) -> None:
        if self._pending:
            logger.log_event(
                "ctcp",
                "pending_cancelled",
                level=logging.DEBUG,
                count=self.pending_count,
                reason=reason,
            )
        self.cancel_pending()

    def _on_preview_notice(self, args: MessageEventArgs) -> None:
        if not is_ctcp(args.text):
            return
        args.handled = True
        tag, data = decode_ctcp(args.text)
        self.sweep()
        nickname = _nickname_of(args.source)
        entry = self._match(nickname, tag, data) if nickname else None
        if entry is None:
            logger.log_event(
                "ctcp",
                "unsolicited",
                level=logging.DEBUG,
                connection=self.client.label,
                source=nickname or "server",
                tag=tag,
            )
            self.client.emit(IrcEvent.CTCP_UNSOLICITED, args.source, tag, data)
            return
        reply = CtcpReply(args.source, tag, data, max(0.0, self._clock() - entry.sent_at))
        if not entry.future.done():
            entry.future.set_result(reply)
        self.client.emit(IrcEvent.CTCP_REPLY, reply)

    def _on_preview_message(self, args: MessageEventArgs) -> None:
        if not is_ctcp(args.text):
            return
        args.handled = True
        tag, data = decode_ctcp(args.text)
        if tag == "ACTION":
            self.client.emit(IrcEvent.ACTION, args.source, args.targets, data or "")
            return
        nickname = _nickname_of(args.source)
        self.client.emit(IrcEvent.CTCP_QUERY, args.source, tag, data)
        response = self._response_for(tag, data)
        if response is None:
            logger.log_event(
                "ctcp",
                "unsupported_query",
                level=logging.DEBUG,
                connection=self.client.label,
                source=nickname or "server",
                tag=tag,
            )
            return
        if nickname is None or not self.client.state_machine.is_live:
            return
        self.client.send_command("NOTICE", nickname, trailing=encode_ctcp(tag, response))

    def _response_for(self, tag: str, data: str | None) -> str | None:
        if tag == "PING":
            return data or ""
        if tag == "VERSION":
            return f"{self.settings.client_name} {self.settings.client_version}"
        if tag == "FINGER":
            info = self.client.registration_info
            if info is None:
                return None
            return f"{info.realname} ({info.username})"
        if tag == "CLIENTINFO":
            return " ".join(SUPPORTED_TAGS)
        if tag == "TIME":
            return datetime.now().strftime(TIME_FORMAT)
        return None
