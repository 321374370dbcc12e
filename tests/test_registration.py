import pytest

from ircclient.errors import InvalidOperationError
from ircclient.irc import ConnectionState, IrcEvent
from ircclient.irc.registration import RegistrationStateMachine


def test_full_lifecycle_transitions():
    machine = RegistrationStateMachine()
    for state in (
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.REGISTERING,
        ConnectionState.REGISTERED,
        ConnectionState.CLOSING,
        ConnectionState.DISCONNECTED,
    ):
        machine.transition(state)
        assert machine.state is state


def test_connect_failure_returns_to_disconnected():
    machine = RegistrationStateMachine()
    machine.transition(ConnectionState.CONNECTING)
    machine.transition(ConnectionState.DISCONNECTED)
    assert machine.state is ConnectionState.DISCONNECTED


@pytest.mark.parametrize(
    "path",
    [
        (ConnectionState.REGISTERED,),
        (ConnectionState.CONNECTING, ConnectionState.REGISTERING),
        (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.REGISTERING,
            ConnectionState.CONNECTED,
        ),
    ],
)
def test_illegal_transitions_raise(path):
    machine = RegistrationStateMachine()
    with pytest.raises(InvalidOperationError) as info:
        for state in path:
            machine.transition(state)
    assert info.value.data["new_state"] == path[-1].name


def test_liveness_flags():
    machine = RegistrationStateMachine()
    assert not machine.is_live
    machine.transition(ConnectionState.CONNECTING)
    assert not machine.is_live
    machine.transition(ConnectionState.CONNECTED)
    assert machine.is_live and not machine.is_registered


def test_register_sends_pass_nick_user(irc):
    irc.registration_info = irc.registration_info.model_copy(
        update={"password": "hunter2", "user_modes": frozenset({"i", "w"})}
    )
    irc._register()
    assert irc.sent == ["PASS hunter2", "NICK me", "USER meuser 12 * :Me Real"]


def test_register_without_password_or_modes(idle):
    client = idle
    for state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
        client.state_machine.transition(state)
    client._register()
    assert client.sent == ["NICK me", "USER meuser 0 * :Me Real"]
    assert client.state is ConnectionState.REGISTERING


def test_nickname_in_use_then_retry(irc):
    errors = irc.record(IrcEvent.PROTOCOL_ERROR)
    irc.feed(":irc.test 433 * me :Nickname is already in use")
    assert irc.state is ConnectionState.REGISTERING
    assert len(errors) == 1
    # No automatic nickname mutation
    assert irc.sent == []
    irc.set_nickname("me_")
    assert irc.sent == ["NICK me_"]
    irc.feed(":irc.test 001 me_ :Welcome me_!meuser@host.example")
    assert irc.state is ConnectionState.REGISTERED
    assert irc.local_user.nickname == "me_"


def test_server_info_does_not_change_state(registered):
    registered.feed(
        ":irc.test 005 me CHANTYPES=# :are supported",
        ":irc.test 375 me :- motd -",
        ":irc.test 376 me :End",
    )
    assert registered.state is ConnectionState.REGISTERED


def test_commands_need_registration(irc):
    with pytest.raises(InvalidOperationError):
        irc.join_channel("#chan")
    with pytest.raises(InvalidOperationError):
        irc.send_message("#chan", "hi")
    assert irc.sent == []


def test_commands_rejected_when_disconnected(idle):
    client = idle
    with pytest.raises(InvalidOperationError):
        client.send_raw_message("PING :x")
    with pytest.raises(InvalidOperationError):
        client.ping()
    with pytest.raises(InvalidOperationError):
        client.set_nickname("other")


def test_command_surface_lines(registered):
    registered.join_channel("#chan", "key")
    registered.part("#chan", "bye")
    registered.set_topic("#chan")
    registered.set_topic("#chan", "")
    registered.kick("#chan", ["a", "b"], "out")
    registered.invite("#chan", "alice")
    registered.op("#chan", "alice")
    registered.unban("#chan", "*!*@bad")
    registered.list_channels(["#a", "#b"])
    registered.query_whowas("old", server="irc.test")
    registered.get_server_links(remote_server="hub.test")
    registered.set_away("lunch")
    registered.unset_away()
    assert registered.sent == [
        "JOIN #chan key",
        "PART #chan :bye",
        "TOPIC #chan",
        "TOPIC #chan :",
        "KICK #chan a,b :out",
        "INVITE alice #chan",
        "MODE #chan +o alice",
        "MODE #chan -b *!*@bad",
        "LIST #a,#b",
        "WHOWAS old -1 irc.test",
        "LINKS hub.test *",
        "AWAY :lunch",
        "AWAY",
    ]


def test_send_message_emits_message_sent(registered):
    sent = registered.record(IrcEvent.MESSAGE_SENT)
    registered.send_message(["#a", "bob"], "hello")
    assert registered.sent == ["PRIVMSG #a,bob :hello"]
    assert sent == [(["#a", "bob"], "hello")]


def test_invalid_arguments_raise_value_error(registered):
    with pytest.raises(ValueError):
        registered.send_message([], "hi")
    with pytest.raises(ValueError):
        registered.send_raw_message("PRIVMSG #a :x\r\nQUIT")
    with pytest.raises(ValueError):
        registered.set_nickname("bad nick")
    with pytest.raises(ValueError):
        registered.join_channel("#has space")
    assert registered.sent == []


def test_send_raw_message_is_normalized(registered):
    registered.send_raw_message("privmsg #a :hi there")
    assert registered.sent == ["PRIVMSG #a :hi there"]


@pytest.mark.asyncio
async def test_disconnect_tears_down_in_order(async_registered):
    client = async_registered
    client.feed(":me!meuser@host.example JOIN #one", ":me!meuser@host.example JOIN #two")
    order: list[tuple] = []
    client.on(IrcEvent.PARTED_CHANNEL, lambda ch: order.append(("parted", ch.name)))
    client.on(IrcEvent.CONNECTION_CLOSED, lambda err: order.append(("closed", err)))
    client.on(IrcEvent.DISCONNECTED, lambda reason: order.append(("disconnected", reason)))
    await client.disconnect("bye")
    assert sorted(order[:2]) == [("parted", "#one"), ("parted", "#two")]
    assert order[2:] == [("closed", False), ("disconnected", "bye")]
    assert client.state is ConnectionState.DISCONNECTED
    assert client.store.channels == {} and client.local_user is None
    # Idempotent
    await client.disconnect("again")
    assert len(order) == 4
