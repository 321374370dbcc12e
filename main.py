#!/usr/bin/env python3
"""
Main entry point: connect with the configured identity and log what happens.
"""

import asyncio
import logging
import sys

from ircclient.config import ClientConfig, load_config
from ircclient.ctcp import CtcpClient
from ircclient.errors import ConfigError, log_error
from ircclient.irc import IrcClient, IrcEvent
from ircclient.logging_config import LoggerConfigurator, error_aggregator
from ircclient.logs.logger import logger


def _log_event(name: str):
    def handler(*args):
        details = " ".join(str(a) for a in args if a is not None)
        logger.log_event("app", "event", event=name, details=details)

    return handler


def build_client(config: ClientConfig) -> tuple[IrcClient, CtcpClient]:
    client = IrcClient(flood=config.flood, connect_timeout=config.connect_timeout)
    ctcp = CtcpClient(client, config.ctcp)

    def on_registered(local_user):
        if config.autojoin:
            logger.log_event("app", "autojoin", count=len(config.autojoin))
        for channel in config.autojoin:
            client.join_channel(channel)

    client.on(IrcEvent.REGISTERED, on_registered)
    for event in (
        IrcEvent.CONNECTION_ERROR,
        IrcEvent.MOTD,
        IrcEvent.PROTOCOL_ERROR,
        IrcEvent.MESSAGE,
        IrcEvent.NOTICE,
        IrcEvent.ACTION,
        IrcEvent.TOPIC,
        IrcEvent.USER_JOINED_CHANNEL,
        IrcEvent.USER_LEFT_CHANNEL,
        IrcEvent.USER_QUIT,
        IrcEvent.NICKNAME_CHANGED,
        IrcEvent.SERVER_ERROR,
    ):
        client.on(event, _log_event(event.value))
    return client, ctcp


async def main(config: ClientConfig) -> int:
    """Main function"""
    client, ctcp = build_client(config)
    try:
        logger.log_event("app", "start")
        connected = await client.connect(
            config.host, config.port, config.registration
        )
        if not connected:
            return 1
        await client.listen()
        return 0
    except asyncio.CancelledError:
        await client.disconnect("Interrupted")
        raise
    finally:
        ctcp.close()
        error_aggregator.log_summary_report()


def run(argv: list[str]) -> int:
    LoggerConfigurator().configure()
    try:
        config = load_config()
    except ConfigError as e:
        logger.log_event("app", "config_error", level=logging.ERROR, error=str(e))
        return 1

    # Simple health check mode
    if len(argv) > 1 and argv[1] == "--health-check":
        logger.log_event("app", "health_check_ok")
        return 0

    try:
        return asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.log_event("app", "shutdown", reason="interrupted by user")
        return 0
    except Exception as e:
        log_error("Top-level error", e)
        logging.critical(f"Critical error occurred: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(run(sys.argv))
