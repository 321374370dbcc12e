"""End-to-end tests against a scripted server on the loopback interface."""

import asyncio

import pytest
import pytest_asyncio

from ircclient.errors import ConnectionErrorCause
from ircclient.irc import ConnectionState, IrcClient, IrcEvent

REGISTRATION = {"nickname": "me", "username": "meuser", "realname": "Me Real"}


class ScriptedServer:
    """Accepts one client, records its lines and sends whatever the test says."""

    def __init__(self) -> None:
        self.received: asyncio.Queue[str] = asyncio.Queue()
        self.writer: asyncio.StreamWriter | None = None
        self.connected = asyncio.Event()
        self.server: asyncio.AbstractServer | None = None

    async def start(self) -> int:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.writer = writer
        self.connected.set()
        while True:
            line = await reader.readline()
            if not line:
                break
            await self.received.put(line.decode("utf-8").rstrip("\r\n"))

    async def expect(self, timeout: float = 2.0) -> str:
        return await asyncio.wait_for(self.received.get(), timeout)

    async def send(self, *lines: str) -> None:
        for line in lines:
            self.writer.write(line.encode("utf-8") + b"\r\n")
        await self.writer.drain()

    async def drop(self) -> None:
        self.writer.close()

    async def stop(self) -> None:
        if self.writer is not None:
            self.writer.close()
        self.server.close()
        await self.server.wait_closed()


@pytest_asyncio.fixture
async def server():
    srv = ScriptedServer()
    srv.port = await srv.start()
    yield srv
    await srv.stop()


async def _wait_event(client: IrcClient, event: IrcEvent, timeout: float = 2.0):
    fut = asyncio.get_running_loop().create_future()

    def handler(*args):
        if not fut.done():
            fut.set_result(args)

    client.once(event, handler)
    return await asyncio.wait_for(fut, timeout)


async def _connect_and_register(server: ScriptedServer, client: IrcClient):
    assert await client.connect("127.0.0.1", server.port, REGISTRATION)
    listen_task = asyncio.create_task(client.listen())
    assert await server.expect() == "NICK me"
    assert await server.expect() == "USER meuser 0 * :Me Real"
    registered = asyncio.ensure_future(_wait_event(client, IrcEvent.REGISTERED))
    await server.send(":irc.test 001 me :Welcome to the Test Network me!meuser@127.0.0.1")
    await registered
    return listen_task


@pytest.mark.asyncio
async def test_register_join_and_quit(server):
    client = IrcClient(read_timeout=5)
    states: list[ConnectionState] = []
    client.on(IrcEvent.CONNECTING, lambda host, port: states.append(client.state))
    client.on(IrcEvent.CONNECTED, lambda: states.append(client.state))
    listen_task = await _connect_and_register(server, client)
    assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
    assert client.state is ConnectionState.REGISTERED
    assert client.local_user.hostname == "127.0.0.1"

    user_list = asyncio.ensure_future(_wait_event(client, IrcEvent.USER_LIST))
    client.join_channel("#chan")
    assert await server.expect() == "JOIN #chan"
    await server.send(
        ":me!meuser@127.0.0.1 JOIN #chan",
        ":irc.test 353 me = #chan :me @alice",
        ":irc.test 366 me #chan :End of /NAMES list.",
    )
    (channel,) = await user_list
    assert sorted(channel.members) == ["alice", "me"]

    order: list[str] = []
    client.on(IrcEvent.PARTED_CHANNEL, lambda ch: order.append(f"parted {ch.name}"))
    client.on(IrcEvent.CONNECTION_CLOSED, lambda had_error: order.append(f"closed {had_error}"))
    client.on(IrcEvent.DISCONNECTED, lambda reason: order.append(f"disconnected {reason}"))
    await client.quit("bye")
    assert await server.expect() == "QUIT :bye"
    await asyncio.wait_for(listen_task, 2)
    assert order == ["parted #chan", "closed False", "disconnected bye"]
    assert client.state is ConnectionState.DISCONNECTED
    assert client.store.channels == {}


@pytest.mark.asyncio
async def test_server_ping_gets_pong(server):
    client = IrcClient(read_timeout=5)
    listen_task = await _connect_and_register(server, client)
    await server.send("PING :irc.test")
    assert await server.expect() == "PONG :irc.test"
    await client.disconnect()
    await asyncio.wait_for(listen_task, 2)


@pytest.mark.asyncio
async def test_server_close_tears_down(server):
    client = IrcClient(read_timeout=5)
    listen_task = await _connect_and_register(server, client)
    disconnected = asyncio.ensure_future(_wait_event(client, IrcEvent.DISCONNECTED))
    await server.send("ERROR :Closing Link: 127.0.0.1 (Bye)")
    await server.drop()
    (reason,) = await disconnected
    assert reason == "Connection closed by server"
    await asyncio.wait_for(listen_task, 2)
    assert client.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_silent_server_gets_keepalive_then_timeout(server):
    client = IrcClient(read_timeout=0.2)
    listen_task = await _connect_and_register(server, client)
    closed = asyncio.ensure_future(_wait_event(client, IrcEvent.CONNECTION_CLOSED))
    assert await server.expect() == "PING :127.0.0.1"
    (had_error,) = await closed
    assert had_error is True
    await asyncio.wait_for(listen_task, 2)
    assert client.listener.error_cause is ConnectionErrorCause.TIMEOUT


@pytest.mark.asyncio
async def test_client_can_reconnect_after_disconnect(server):
    client = IrcClient(read_timeout=5)
    listen_task = await _connect_and_register(server, client)
    await client.disconnect("first")
    await asyncio.wait_for(listen_task, 2)
    listen_task = await _connect_and_register(server, client)
    assert client.state is ConnectionState.REGISTERED
    await client.disconnect("second")
    await asyncio.wait_for(listen_task, 2)


@pytest.mark.asyncio
async def test_connection_refused_reports_cause():
    probe = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = probe.sockets[0].getsockname()[1]
    probe.close()
    await probe.wait_closed()

    client = IrcClient()
    errors: list[tuple] = []
    client.on(IrcEvent.CONNECTION_ERROR, lambda *args: errors.append(args))
    assert await client.connect("127.0.0.1", port, REGISTRATION) is False
    assert client.state is ConnectionState.DISCONNECTED
    cause, host, err_port, error = errors[0]
    assert cause is ConnectionErrorCause.REFUSED
    assert (host, err_port) == ("127.0.0.1", port)
    assert isinstance(error, ConnectionRefusedError)
