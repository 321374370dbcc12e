"""Read loop: bytes to lines to messages to the dispatcher."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..constants import MAX_LINE_LENGTH, READ_CHUNK_SIZE, READ_TIMEOUT
from ..errors import (
    ConnectionErrorCause,
    InternalError,
    MalformedLineError,
    classify_connection_error,
)
from ..logs.logger import logger
from .message import parse_message
from .registration import LIVE_STATES

if TYPE_CHECKING:  # pragma: no cover
    from .client import IrcClient


class IRCListener:
    """Owns the read loop and hands every complete line to the dispatcher.

    A silent period of ``read_timeout`` seconds triggers a keepalive PING; a
    second consecutive silent period closes the connection with cause
    TIMEOUT.
    """

    def __init__(self, client: IrcClient, read_timeout: float = READ_TIMEOUT):
        self.client = client
        self.read_timeout = read_timeout
        self.buffer = b""
        self.close_reason: str | None = None
        self.had_error = False
        self.error_cause: ConnectionErrorCause | None = None
        self._keepalive_sent = False

    async def listen(self) -> None:
        if not self._can_start_listening():
            return
        logger.log_event("irc", "listener_start", connection=self.client.label)
        self.buffer = b""
        self._keepalive_sent = False
        try:
            while not self.client.closing_requested:
                should_break = await self._process_read_cycle()
                if should_break:
                    break
        finally:
            logger.log_event(
                "irc",
                "listener_stopped",
                level=logging.DEBUG,
                connection=self.client.label,
                reason=self.close_reason,
            )

    def _can_start_listening(self) -> bool:
        if self.client.reader is None:
            logger.log_event(
                "irc", "listen_start_failed", level=logging.ERROR, connection=self.client.label
            )
            return False
        return True

    async def _process_read_cycle(self) -> bool:
        try:
            return await self._handle_data_read()
        except TimeoutError:
            return self._handle_read_timeout()
        except asyncio.CancelledError:
            raise
        except (OSError, asyncio.IncompleteReadError) as e:
            self.error_cause = classify_connection_error(e)
            self.close_reason = f"Transport failure: {e}"
            self.had_error = True
            logger.log_event(
                "irc",
                "connection_reset",
                level=logging.ERROR,
                connection=self.client.label,
                error=str(e),
                cause=self.error_cause.value,
            )
            return True

    async def _handle_data_read(self) -> bool:
        data = await asyncio.wait_for(
            self.client.reader.read(READ_CHUNK_SIZE), timeout=self.read_timeout
        )
        if not data:
            self.close_reason = self.close_reason or "Connection closed by server"
            logger.log_event(
                "irc", "connection_lost", level=logging.WARNING, connection=self.client.label
            )
            return True
        self._keepalive_sent = False
        self.process_data(data)
        return False

    def process_data(self, data: bytes) -> None:
        """Split buffered bytes into lines and handle each complete one."""
        self.buffer += data
        while b"\n" in self.buffer:
            line, self.buffer = self.buffer.split(b"\n", 1)
            line = line.rstrip(b"\r")
            if line.strip():
                self.handle_line(line)
        if len(self.buffer) > MAX_LINE_LENGTH * 8:
            logger.log_event(
                "irc",
                "buffer_overflow",
                level=logging.WARNING,
                connection=self.client.label,
                size=len(self.buffer),
            )
            self.buffer = b""

    def handle_line(self, line: bytes) -> None:
        logger.log_event(
            "irc",
            "line_in",
            level=logging.DEBUG,
            connection=self.client.label,
            line=line.decode("utf-8", errors="replace"),
        )
        try:
            message = parse_message(line)
        except MalformedLineError as e:
            logger.log_event(
                "irc",
                "malformed_line",
                level=logging.WARNING,
                connection=self.client.label,
                error=str(e),
                line=line[:80],
            )
            return
        try:
            self.client.dispatcher.dispatch(message)
        except InternalError as e:
            logger.log_event(
                "irc",
                "dispatch_error",
                level=logging.WARNING,
                connection=self.client.label,
                command=message.command,
                error=str(e),
                error_type=type(e).__name__,
            )
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "dispatch_error",
                level=logging.ERROR,
                connection=self.client.label,
                command=message.command,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    def _handle_read_timeout(self) -> bool:
        if self.client.state not in LIVE_STATES:
            self.close_reason = self.close_reason or "Connection closed"
            return True
        if not self._keepalive_sent:
            logger.log_event(
                "irc",
                "keepalive",
                level=logging.DEBUG,
                connection=self.client.label,
                timeout=self.read_timeout,
            )
            self._keepalive_sent = True
            self.client.send_command("PING", trailing=self.client.host or "keepalive")
            return False
        logger.log_event(
            "irc", "connection_stale", level=logging.WARNING, connection=self.client.label
        )
        self.error_cause = ConnectionErrorCause.TIMEOUT
        self.close_reason = "Ping timeout"
        self.had_error = True
        return True
