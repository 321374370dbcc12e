import logging

from ircclient.irc.store import EntityStore


def _store_with_channel():
    store = EntityStore()
    store.create_local_user("me", "meuser", "host")
    chan = store.get_or_create_channel("#Chan")
    store.local_user.joined_channels.add(store.fold("#Chan"))
    store.add_member(chan, store.local_user)
    return store, chan


def test_rfc1459_casemapping_folds_brackets():
    store = EntityStore("rfc1459")
    user = store.get_or_create_user("Nick[a]")
    assert store.get_user("nick{A}") is user
    assert store.get_user("NICK{a}") is user
    assert len(store.users) == 1


def test_ascii_casemapping_keeps_brackets_distinct():
    store = EntityStore("ascii")
    store.get_or_create_user("Nick[a]")
    assert store.get_user("nick{a}") is None
    assert store.get_user("NICK[A]") is not None


def test_set_casemapping_rekeys_records():
    store = EntityStore("ascii")
    store.get_or_create_user("A[b]")
    chan = store.get_or_create_channel("#X[y]")
    store.add_member(chan, store.get_user("A[b]"))
    store.set_casemapping("rfc1459")
    assert store.get_user("a{b}") is not None
    assert store.get_channel("#x{Y}") is chan
    assert store.get_member("#x{y}", "a{B}") is not None


def test_unknown_casemapping_is_ignored():
    store = EntityStore("rfc1459")
    store.set_casemapping("klingon")
    assert store.casemapping == "rfc1459"


def test_no_duplicate_user_records():
    store, chan = _store_with_channel()
    first = store.get_or_create_user("Alice", "a", "h1")
    second = store.get_or_create_user("alice")
    assert first is second
    assert first.username == "a"


def test_rename_rekeys_memberships():
    store, chan = _store_with_channel()
    alice = store.get_or_create_user("alice")
    store.add_member(chan, alice, {"o"})
    renamed = store.rename_user("Alice", "Alicia")
    assert renamed is alice
    assert alice.nickname == "Alicia"
    assert store.get_user("alice") is None
    member = store.get_member("#chan", "alicia")
    assert member.nickname == "Alicia"
    assert member.modes == {"o"}


def test_case_only_rename_keeps_record():
    store, chan = _store_with_channel()
    bob = store.get_or_create_user("bob")
    store.add_member(chan, bob)
    store.rename_user("bob", "Bob")
    assert store.get_user("BOB") is bob
    assert bob.nickname == "Bob"
    assert len(chan.members) == 2


def test_remove_user_leaves_every_channel_at_once():
    store, chan = _store_with_channel()
    other = store.get_or_create_channel("#other")
    carol = store.get_or_create_user("carol")
    store.add_member(chan, carol)
    store.add_member(other, carol)
    left = store.remove_user("carol")
    assert {c.name for c in left} == {"#Chan", "#other"}
    assert store.get_user("carol") is None
    assert store.channels_of("carol") == []


def test_remove_channel_prunes_orphaned_users():
    store, chan = _store_with_channel()
    other = store.get_or_create_channel("#other")
    dave = store.get_or_create_user("dave")
    erin = store.get_or_create_user("erin")
    store.add_member(chan, dave)
    store.add_member(chan, erin)
    store.add_member(other, erin)
    store.remove_channel("#chan")
    assert store.get_user("dave") is None
    assert store.get_user("erin") is not None
    assert store.get_user("me") is store.local_user
    assert store.fold("#chan") not in store.local_user.joined_channels


def test_member_ordering_by_rank_then_nickname():
    store, chan = _store_with_channel()
    for nick, modes in (("zed", set()), ("carol", set()), ("Bob", {"v"}), ("amy", {"o"})):
        store.add_member(chan, store.get_or_create_user(nick), modes)
    store.get_member("#chan", "me").modes.add("v")
    order = [m.nickname for m in store.sorted_members(chan)]
    assert order == ["amy", "Bob", "me", "carol", "zed"]


def test_member_ordering_follows_server_prefix():
    store, chan = _store_with_channel()
    store.mode_classes.update_prefix("(qaohv)~&@%+")
    for nick, modes in (("h", {"h"}), ("q", {"q"}), ("o", {"o"})):
        store.add_member(chan, store.get_or_create_user(nick), modes)
    order = [m.nickname for m in store.sorted_members(chan)]
    assert order[:3] == ["q", "o", "h"]


def test_clear_resets_everything():
    store, _ = _store_with_channel()
    store.set_casemapping("rfc1459")
    store.clear()
    assert store.users == {} and store.channels == {}
    assert store.local_user is None
    assert store.casemapping == "ascii"


def test_default_fold_is_ascii_until_server_says_otherwise():
    store = EntityStore()
    first = store.get_or_create_user("Nick[a]")
    second = store.get_or_create_user("nick{a}")
    assert first is not second
    assert store.get_user("NICK[A]") is first
    store.set_casemapping("rfc1459")
    assert store.get_user("NICK{A}") is first


def test_rekey_collision_merges_and_logs(caplog):
    caplog.set_level(logging.WARNING)
    store = EntityStore()
    store.create_local_user("me")
    chan = store.get_or_create_channel("#c")
    first = store.get_or_create_user("Nick[a]", "one")
    second = store.get_or_create_user("nick{a}", None, "host2")
    store.add_member(chan, first, {"o"})
    store.add_member(chan, second, {"v"})
    store.set_casemapping("rfc1459")
    assert len(store.users) == 2
    kept = store.get_user("nick{a}")
    assert kept is first
    assert (kept.username, kept.hostname) == ("one", "host2")
    member = store.get_member("#c", "NICK[A]")
    assert member.nickname == "Nick[a]"
    assert member.modes == {"o", "v"}
    assert len(chan.members) == 1
    messages = [r.getMessage() for r in caplog.records]
    assert any("user nick{a} merged into Nick[a] under rfc1459" in m for m in messages)
    assert any("member nick{a} merged into Nick[a]" in m for m in messages)


def test_rekey_collision_keeps_local_user():
    store = EntityStore()
    store.get_or_create_user("Me[x]")
    local = store.create_local_user("me{x}")
    store.set_casemapping("rfc1459")
    assert store.get_user("ME[X]") is local
    assert len(store.users) == 1


def test_rekey_collision_merges_channels():
    store = EntityStore()
    upper = store.get_or_create_channel("#A[b]")
    lower = store.get_or_create_channel("#a{b}")
    store.add_member(upper, store.get_or_create_user("alice"))
    store.add_member(lower, store.get_or_create_user("bob"), {"o"})
    store.set_casemapping("rfc1459")
    assert list(store.channels.values()) == [upper]
    assert set(upper.members) == {"alice", "bob"}
    assert upper.members["bob"].channel_name == "#A[b]"
