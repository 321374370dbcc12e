import pytest

from ircclient.irc.models import Channel, ChannelUser, ModeChange
from ircclient.irc.modes import (
    ModeClasses,
    apply_channel_modes,
    apply_user_modes,
    parse_mode_string,
    parse_prefix_token,
)


def test_parse_prefix_token():
    assert parse_prefix_token("(ov)@+") == [("o", "@"), ("v", "+")]
    assert parse_prefix_token("") == []
    with pytest.raises(ValueError):
        parse_prefix_token("(ov)@")
    with pytest.raises(ValueError):
        parse_prefix_token("ov@+")


def test_parameters_consumed_by_class():
    classes = ModeClasses.from_tokens("beI,k,l,imnpst", "(ov)@+")
    changes = parse_mode_string("+ovkl-l+b", ["alice", "bob", "secret", "10", "*!*@bad"], classes)
    assert changes == [
        ModeChange(True, "o", "alice"),
        ModeChange(True, "v", "bob"),
        ModeChange(True, "k", "secret"),
        ModeChange(True, "l", "10"),
        ModeChange(False, "l", None),
        ModeChange(True, "b", "*!*@bad"),
    ]


def test_unset_key_still_takes_parameter():
    changes = parse_mode_string("-k", ["secret"])
    assert changes == [ModeChange(False, "k", "secret")]


def test_flag_modes_take_no_parameter():
    changes = parse_mode_string("+nt-m", ["ignored"])
    assert [c.param for c in changes] == [None, None, None]


def test_apply_channel_modes_updates_channel_and_members():
    classes = ModeClasses.from_tokens()
    channel = Channel("#chan")
    alice = ChannelUser("#chan", "alice")
    members = {"alice": alice}
    changes = parse_mode_string("+ntokb", ["alice", "key", "*!*@spam"], classes)
    apply_channel_modes(channel, changes, classes, members.get)
    assert {"n", "t", "k"} <= channel.modes
    assert channel.mode_params == {"k": "key"}
    assert channel.list_modes["b"] == ["*!*@spam"]
    assert alice.modes == {"o"}

    changes = parse_mode_string("-ok-b", ["alice", "key", "*!*@spam"], classes)
    apply_channel_modes(channel, changes, classes, members.get)
    assert "k" not in channel.modes
    assert channel.mode_params == {}
    assert channel.list_modes["b"] == []
    assert alice.modes == set()


def test_mode_for_unknown_member_is_ignored():
    classes = ModeClasses.from_tokens()
    channel = Channel("#chan")
    apply_channel_modes(channel, parse_mode_string("+o", ["ghost"], classes), classes, {}.get)
    assert channel.modes == set()


def test_apply_user_modes():
    modes = {"i"}
    apply_user_modes(modes, parse_mode_string("+w-i", [], ModeClasses()))
    assert modes == {"w"}


def test_mode_change_str():
    assert str(ModeChange(True, "o", "alice")) == "+o alice"
    assert str(ModeChange(False, "t")) == "-t"
