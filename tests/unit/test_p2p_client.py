"""
Client session loop tests
=========================

Time-driven behaviour (registration retry, request issuance, keepalive)
driven through ``tick`` with a fake clock and socket.
"""

from punch_client.state import SessionState

SERVER = ("198.51.100.1", 5000)


def registered(client, ip="203.0.113.10", port=40001):
    client.handle_datagram(f"REGISTERED {client.session.my_id} {ip} {port}".encode(), SERVER)


class TestRegistration:
    def test_start_sends_register_immediately(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        assert client.session.state is SessionState.REGISTERING
        assert fake_socket.texts(SERVER) == ["REGISTER alice"]

    def test_resends_once_per_second(self, make_client, fake_socket, clock):
        client = make_client()
        client.begin_registration()
        for _ in range(4):
            clock.advance(0.5)
            client.tick()
            clock.advance(0.5)
            client.tick()
        assert fake_socket.texts(SERVER).count("REGISTER alice") == 5

    def test_gives_up_after_five_seconds_and_keeps_operating(self, make_client, fake_socket, clock):
        client = make_client(target_id="bob")
        client.begin_registration()
        for _ in range(5):
            clock.advance(1)
            client.tick()

        session = client.session
        assert not session.registration_confirmed
        assert session.state is SessionState.AWAITING_PEER
        assert fake_socket.texts(SERVER).count("REGISTER alice") == 5
        assert "REQUEST alice bob" in fake_socket.texts(SERVER)

    def test_poll_timeout_bounded_by_retry(self, make_client, clock):
        client = make_client()
        client.begin_registration()
        assert client.poll_timeout() == 1.0
        clock.advance(0.25)
        assert client.poll_timeout() == 0.75


class TestRequest:
    def test_single_request_after_confirmation(self, make_client, fake_socket, clock):
        client = make_client(target_id="bob")
        client.begin_registration()
        registered(client)
        client.tick()
        clock.advance(1)
        client.tick()

        assert client.session.state is SessionState.AWAITING_PEER
        assert fake_socket.texts(SERVER).count("REQUEST alice bob") == 1

    def test_no_target_stays_idle(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        registered(client)
        client.tick()
        assert client.session.state is SessionState.REGISTERED
        assert not any(t.startswith("REQUEST") for t in fake_socket.texts())

    def test_pushed_descriptor_starts_punching(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        registered(client)
        client.handle_datagram(b"PEER bob 198.51.100.20 50000", SERVER)
        fake_socket.clear()
        client.tick()

        assert client.session.state is SessionState.PUNCHING
        probes = [t for t in fake_socket.texts() if t.startswith("PUNCH alice")]
        assert len(probes) == 16

    def test_poll_timeout_steady_state(self, make_client):
        client = make_client()
        client.begin_registration()
        registered(client)
        client.tick()
        assert client.poll_timeout() == 0.2


class TestConnected:
    def test_messages_go_to_probe_source(self, make_client, fake_socket):
        client = make_client(target_id="bob")
        client.begin_registration()
        registered(client)
        client.tick()
        client.handle_datagram(b"PEER bob 198.51.100.20 50000", SERVER)
        client.handle_datagram(b"PUNCH bob seq=4", ("198.51.100.20", 50003))
        fake_socket.clear()

        assert client.send_text("hello") is True
        assert fake_socket.sent == [(b"Message alice: hello", ("198.51.100.20", 50003))]

    def test_connected_session_stops_punching(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        registered(client)
        client.handle_datagram(b"PEER bob 198.51.100.20 50000", SERVER)
        client.handle_datagram(b"PUNCH bob seq=4", ("198.51.100.20", 50000))
        fake_socket.clear()
        client.tick()
        assert not any(t.startswith("PUNCH") for t in fake_socket.texts())


class TestShutdown:
    def test_unregisters_when_confirmed(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        registered(client)
        client.shutdown()
        assert fake_socket.texts(SERVER)[-1] == "UNREGISTER alice"
        assert fake_socket.closed

    def test_no_unregister_when_never_confirmed(self, make_client, fake_socket):
        client = make_client()
        client.begin_registration()
        client.shutdown()
        assert "UNREGISTER alice" not in fake_socket.texts()
        assert fake_socket.closed
