import os

import pytest
import pytest_asyncio

from ircclient.config import RegistrationInfo
from ircclient.irc import ConnectionState, IrcClient

# Keep test output free of debug-format noise regardless of the caller's env
os.environ.setdefault("DEBUG", "false")

WELCOME = ":irc.test 001 me :Welcome to the Test Network me!meuser@host.example"


class DummyIRC(IrcClient):
    """IrcClient with the network replaced by an in-memory line list."""

    def __init__(self) -> None:  # keep base init
        super().__init__()
        self.host = "irc.test"
        self.port = 6667
        self.registration_info = RegistrationInfo(
            nickname="me", username="meuser", realname="Me Real"
        )
        self.sent: list[str] = []

    def _enqueue(self, line: bytes) -> None:  # capture instead of network
        self.sent.append(line.decode("utf-8").rstrip("\r\n"))

    def force_registering(self) -> None:
        for state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.REGISTERING,
        ):
            self.state_machine.transition(state)

    def feed(self, *lines: str) -> None:
        for line in lines:
            self.listener.handle_line(line.encode("utf-8"))

    def record(self, event) -> list[tuple]:
        seen: list[tuple] = []
        self.on(event, lambda *args: seen.append(args))
        return seen


@pytest.fixture
def idle() -> DummyIRC:
    return DummyIRC()


@pytest.fixture
def irc() -> DummyIRC:
    client = DummyIRC()
    client.force_registering()
    return client


@pytest.fixture
def registered(irc: DummyIRC) -> DummyIRC:
    irc.feed(WELCOME)
    irc.sent.clear()
    return irc


@pytest.fixture
def in_channel(registered: DummyIRC) -> DummyIRC:
    registered.feed(":me!meuser@host.example JOIN #chan")
    return registered


@pytest_asyncio.fixture
async def async_registered() -> DummyIRC:
    client = DummyIRC()
    client.force_registering()
    client.feed(WELCOME)
    client.sent.clear()
    return client
