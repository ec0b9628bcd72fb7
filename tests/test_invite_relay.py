from gamevui.session.invite import apply_invite, build_invite_url, parse_invite
from gamevui.session.relay import DEFAULT_RELAYS, build_relay_config
from gamevui.store.credentials import RelayCredentialStore
from gamevui.store.models import RelayCredential

TURN = RelayCredential(endpoint="turn:relay.example:3478", user="alice", credential="s3cret")


def test_relay_config_defaults_only():
    config = build_relay_config(None)
    assert [s.urls for s in config.ice_servers] == list(DEFAULT_RELAYS)
    assert all(s.username is None for s in config.ice_servers)


def test_partial_credential_is_ignored():
    partial = RelayCredential(endpoint="turn:relay.example:3478", user="alice")
    config = build_relay_config(partial)
    assert [s.urls for s in config.ice_servers] == list(DEFAULT_RELAYS)


def test_complete_credential_goes_first():
    first = build_relay_config(TURN).ice_servers[0]
    assert (first.urls, first.username, first.credential) == ("turn:relay.example:3478", "alice", "s3cret")


def test_invite_round_trip_with_credentials():
    url = build_invite_url("https://play.example/", room="4821", game="loto", credential=TURN)
    invite = parse_invite(url)
    assert invite.room == "4821"
    assert invite.game == "loto"
    assert invite.credential == TURN


def test_invite_without_credentials():
    invite = parse_invite(build_invite_url("https://play.example/", room="1234", game="card"))
    assert invite.room == "1234"
    assert invite.game == "card"
    assert invite.credential is None


def test_bare_codes():
    assert parse_invite(" 0420 ").room == "0420"
    assert parse_invite("12a4") is None
    assert parse_invite("") is None
    assert parse_invite("https://play.example/?game=loto") is None


def test_incomplete_link_credentials_are_dropped():
    invite = parse_invite("https://play.example/?room=1111&t_url=turn:x&t_u=bob")
    assert invite.room == "1111"
    assert invite.credential is None


def test_apply_invite_persists_credentials(tmp_path):
    store = RelayCredentialStore(tmp_path / "nested" / "relay.json")
    url = build_invite_url("https://play.example/", room="4821", game="loto", credential=TURN)

    assert apply_invite(url, store) == "4821"
    assert store.load() == TURN

    # a bare code leaves the saved credential alone
    assert apply_invite("5555", store) == "5555"
    assert store.load() == TURN


def test_credential_store_tolerates_missing_or_garbled_file(tmp_path):
    path = tmp_path / "relay.json"
    store = RelayCredentialStore(path)
    assert store.load() is None

    path.write_text("{not json", encoding="utf-8")
    assert store.load() is None

    store.save(TURN)
    store.clear()
    store.clear()
    assert store.load() is None
