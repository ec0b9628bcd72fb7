from fastapi.testclient import TestClient

from conftest import FakeRedis
from gamevui.main import create_app


def _register(ws):
    ws.send_json({"type": "register", "ice_servers": [{"urls": "stun:stun.l.google.com:19302"}]})
    return ws.receive_json()


def test_health_and_registration():
    with TestClient(create_app(redis_client=FakeRedis())) as client:
        assert client.get("/health").json()["peers"] == 0

        with client.websocket_connect("/ws/loto-1234") as host:
            assert _register(host) == {"type": "registered", "identity": "loto-1234"}
            assert client.get("/health").json()["peers"] == 1

            peers = client.get("/admin/peers").json()["peers"]
            assert [(p["identity"], p["relays"], p["connected_here"]) for p in peers] == [("loto-1234", 1, True)]


def test_identity_taken():
    with TestClient(create_app(redis_client=FakeRedis())) as client:
        with client.websocket_connect("/ws/loto-1234") as first:
            _register(first)
            with client.websocket_connect("/ws/loto-1234") as second:
                reply = _register(second)
                assert reply["type"] == "error"
                assert reply["code"] == "ID_TAKEN"


def test_first_frame_must_be_register():
    with TestClient(create_app(redis_client=FakeRedis())) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "connect", "to": "x", "link": "l"})
            assert ws.receive_json()["code"] == "ONLY_REGISTER"


def test_link_relays_frames_both_ways():
    with TestClient(create_app(redis_client=FakeRedis())) as client:
        with client.websocket_connect("/ws/loto-4821") as host, client.websocket_connect("/ws") as guest:
            _register(host)
            guest_id = _register(guest)["identity"]
            assert guest_id.startswith("anon-")

            guest.send_json({"type": "connect", "to": "loto-4821", "link": "L1"})
            assert host.receive_json() == {"type": "incoming", "peer": guest_id, "link": "L1"}
            assert guest.receive_json() == {"type": "opened", "link": "L1"}

            guest.send_json({"type": "frame", "link": "L1", "data": {"type": "join", "name": "An"}})
            assert host.receive_json() == {"type": "frame", "link": "L1", "data": {"type": "join", "name": "An"}}

            host.send_json({"type": "frame", "link": "L1", "data": {"type": "ping"}})
            assert guest.receive_json()["data"] == {"type": "ping"}

            host.send_json({"type": "close", "link": "L1"})
            assert guest.receive_json() == {"type": "closed", "link": "L1"}


def test_connect_to_unknown_peer():
    with TestClient(create_app(redis_client=FakeRedis())) as client:
        with client.websocket_connect("/ws") as guest:
            _register(guest)
            guest.send_json({"type": "connect", "to": "loto-0000", "link": "L9"})
            reply = guest.receive_json()
            assert reply["code"] == "PEER_UNAVAILABLE"
            assert reply["link"] == "L9"

            guest.send_json({"type": "bogus"})
            assert guest.receive_json()["code"] == "BAD_FRAME"


def test_disconnect_closes_links_and_frees_identity():
    redis = FakeRedis()
    with TestClient(create_app(redis_client=redis)) as client:
        with client.websocket_connect("/ws") as guest:
            _register(guest)
            with client.websocket_connect("/ws/loto-7777") as host:
                _register(host)
                guest.send_json({"type": "connect", "to": "loto-7777", "link": "L2"})
                host.receive_json()
                guest.receive_json()

            assert guest.receive_json() == {"type": "closed", "link": "L2"}

        assert client.get("/admin/peers").json()["peers"] == []
