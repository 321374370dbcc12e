import pytest

from ircclient.errors import LineTooLongError, MalformedLineError
from ircclient.irc.message import Prefix, parse_message, serialize_message


def test_privmsg_with_user_prefix():
    msg = parse_message(":nick!user@host PRIVMSG #chan :hello world")
    assert msg.prefix.nickname == "nick"
    assert msg.prefix.username == "user"
    assert msg.prefix.hostname == "host"
    assert msg.command == "PRIVMSG"
    assert msg.params == ["#chan"]
    assert msg.trailing == "hello world"
    assert msg.all_params == ["#chan", "hello world"]


def test_server_prefix_and_numeric():
    msg = parse_message(b":irc.example.net 005 me NETWORK=FooNet :are supported\r\n")
    assert msg.prefix.is_server
    assert msg.prefix.raw == "irc.example.net"
    assert msg.is_numeric
    assert msg.params == ["me", "NETWORK=FooNet"]


def test_command_is_upper_cased_and_no_prefix():
    msg = parse_message("ping :server")
    assert msg.prefix is None
    assert msg.command == "PING"
    assert msg.trailing == "server"


def test_runs_of_spaces_separate_tokens():
    msg = parse_message(":a!b@c   MODE   #chan  +o   alice")
    assert msg.command == "MODE"
    assert msg.params == ["#chan", "+o", "alice"]
    assert msg.trailing is None


def test_empty_trailing_is_kept():
    msg = parse_message("TOPIC #chan :")
    assert msg.trailing == ""


def test_trailing_may_contain_colons():
    msg = parse_message("PRIVMSG #c :a :b: c")
    assert msg.trailing == "a :b: c"


def test_fifteenth_parameter_takes_remainder():
    middles = " ".join(f"p{i}" for i in range(14))
    msg = parse_message(f"CMD {middles} rest of line")
    assert len(msg.params) == 14
    assert msg.trailing == "rest of line"
    assert len(msg.all_params) == 15


def test_tags_are_parsed_and_unescaped():
    msg = parse_message("@time=2024-01-01T00:00:00Z;msg=a\\sb\\:c;flag :n!u@h PRIVMSG #c :x")
    assert msg.tags == {"time": "2024-01-01T00:00:00Z", "msg": "a b;c", "flag": ""}
    assert msg.prefix.nickname == "n"


def test_invalid_utf8_never_raises():
    msg = parse_message(b"PRIVMSG #c :caf\xe9")
    assert msg.trailing.startswith("caf")


@pytest.mark.parametrize(
    "line",
    ["", "   ", ":prefixonly", ":prefix 12 x", "PRIV-MSG #c", "1234 x", ": PRIVMSG x"],
)
def test_malformed_lines_raise(line):
    with pytest.raises(MalformedLineError):
        parse_message(line)


def test_oversized_line_rejected_not_truncated():
    text = "x" * 520
    with pytest.raises(LineTooLongError):
        parse_message(f"PRIVMSG #c :{text}")


def test_tags_do_not_count_towards_length():
    tags = "@" + "k=" + "v" * 600
    body = "PRIVMSG #c :" + "x" * 400
    msg = parse_message(f"{tags} {body}")
    assert msg.trailing == "x" * 400


def test_prefix_parse_forms():
    assert Prefix.parse("nick").nickname == "nick"
    assert Prefix.parse("nick@host").hostname == "host"
    assert Prefix.parse("irc.server.net").is_server
    full = Prefix.parse("n!u@h.example")
    assert (full.nickname, full.username, full.hostname) == ("n", "u", "h.example")


def test_serialize_always_uses_trailing_sentinel():
    assert serialize_message("PRIVMSG", ["#chan"], "hi") == b"PRIVMSG #chan :hi\r\n"
    assert serialize_message("TOPIC", ["#chan"], "") == b"TOPIC #chan :\r\n"
    assert serialize_message("NICK", ["me"]) == b"NICK me\r\n"


def test_serialize_with_prefix_and_tags():
    line = serialize_message("PING", (), "x", prefix="srv", tags={"a": "b c"})
    assert line == b"@a=b\\sc :srv PING :x\r\n"


@pytest.mark.parametrize(
    "params,trailing",
    [
        (["has space"], None),
        ([":colon"], None),
        ([""], None),
        (["#c"], "line\r\nbreak"),
        (["nul\0"], None),
        ([f"p{i}" for i in range(15)], "x"),
    ],
)
def test_serialize_rejects_invalid_params(params, trailing):
    with pytest.raises(ValueError):
        serialize_message("PRIVMSG", params, trailing)


def test_serialize_rejects_invalid_command():
    with pytest.raises(ValueError):
        serialize_message("PRIV MSG")


def test_serialize_rejects_line_over_512_bytes():
    with pytest.raises(LineTooLongError):
        serialize_message("PRIVMSG", ["#c"], "x" * 510)
    # 510 bytes of content plus CRLF fits exactly
    text = "x" * (510 - len("PRIVMSG #c :"))
    assert len(serialize_message("PRIVMSG", ["#c"], text)) == 512


def test_high_byte_line_is_measured_on_the_wire():
    line = b"PRIVMSG #c :" + b"\xe9" * 300
    msg = parse_message(line)
    assert len(msg.trailing) == 300
    assert msg.serialize() == line + b"\r\n"


def test_high_byte_line_at_the_limit():
    body = b"PRIVMSG #c :" + b"\xe9" * (510 - len(b"PRIVMSG #c :"))
    assert len(parse_message(body + b"\r\n").serialize()) == 512
    with pytest.raises(LineTooLongError):
        parse_message(body + b"\xe9")


@pytest.mark.parametrize(
    "line", [b"PRIVMSG #c :a\x00b", b"PRIVMSG #c :a\rb", "PRIVMSG #c :a\nb", b"NICK a\x00"]
)
def test_embedded_cr_lf_nul_are_malformed(line):
    with pytest.raises(MalformedLineError):
        parse_message(line)


def test_bare_fifteenth_parameter_must_fit_with_its_sentinel():
    base = "CMD " + " ".join(f"p{i}" for i in range(14)) + " "
    with pytest.raises(LineTooLongError):
        parse_message(base + "x" * (510 - len(base)))
    msg = parse_message(base + "x" * (509 - len(base)))
    assert len(msg.serialize()) == 512


@pytest.mark.parametrize(
    "line",
    [
        ":nick!user@host PRIVMSG #chan :hello world",
        "PING :irc.example.net",
        ":srv 353 me = #chan :@alice +bob carol",
        ":a!b@c MODE #chan +ov alice bob",
        "JOIN #chan",
        "CMD " + " ".join(f"p{i}" for i in range(14)) + " rest of line",
        ":a!b@c   MODE   #chan  +o   alice",
        "TOPIC #chan :",
        "@time=2024-01-01T00:00:00Z;msg=a\\sb\\:c;flag :n!u@h PRIVMSG #c :x",
        b"PRIVMSG #c :caf\xe9",
        b"PRIVMSG #c :" + b"\xe9" * 300,
        b":n!u@h PRIVMSG \xff\xfe :\x80 mixed \xc3\xa9 bytes\r\n",
    ],
)
def test_round_trip(line):
    first = parse_message(line)
    assert parse_message(first.serialize()) == first
