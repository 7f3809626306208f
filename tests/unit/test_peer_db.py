"""
Peer directory tests
====================
"""

import pytest

from punch_rendezvous.peer_db import PeerDirectory


@pytest.fixture
def directory(clock):
    return PeerDirectory(capacity=128, ttl=120.0, clock=clock)


class TestRegister:
    def test_register_creates_record(self, directory, clock):
        record = directory.register("alice", ("203.0.113.1", 4000))
        assert record.address == ("203.0.113.1", 4000)
        assert record.last_activity == clock.now
        assert directory.get("alice") is record

    def test_reregister_updates_in_place(self, directory, clock):
        first = directory.register("alice", ("203.0.113.1", 4000))
        clock.advance(10)
        second = directory.register("alice", ("203.0.113.1", 4999))

        assert second is first
        assert len(directory) == 1
        assert directory.get("alice").address == ("203.0.113.1", 4999)
        assert directory.get("alice").last_activity == clock.now

    def test_capacity_rejects_new_id(self, directory):
        for i in range(128):
            assert directory.register(f"peer{i}", ("10.0.0.1", 1000 + i)) is not None

        assert directory.register("peer128", ("10.0.0.2", 9000)) is None
        assert "peer128" not in directory
        assert len(directory) == 128

    def test_full_directory_still_refreshes_known_id(self, directory):
        for i in range(128):
            directory.register(f"peer{i}", ("10.0.0.1", 1000 + i))

        record = directory.register("peer5", ("10.0.0.9", 5555))
        assert record is not None
        assert record.address == ("10.0.0.9", 5555)


class TestLookup:
    def test_lookup_by_id_is_exact(self, directory):
        directory.register("alice", ("10.0.0.1", 1))
        assert directory.get("ALICE") is None
        assert directory.get("alic") is None

    def test_find_by_address(self, directory):
        directory.register("alice", ("10.0.0.1", 1))
        directory.register("bob", ("10.0.0.2", 2))
        assert directory.find_by_address(("10.0.0.2", 2)).peer_id == "bob"
        assert directory.find_by_address(("10.0.0.2", 3)) is None

    def test_find_by_shared_address_returns_first_inserted(self, directory):
        directory.register("alice", ("10.0.0.1", 1))
        directory.register("bob", ("10.0.0.1", 1))
        assert directory.find_by_address(("10.0.0.1", 1)).peer_id == "alice"


class TestLifecycle:
    def test_touch_refreshes_only_timestamp(self, directory, clock):
        directory.register("alice", ("10.0.0.1", 1))
        clock.advance(50)
        assert directory.touch("alice") is True
        record = directory.get("alice")
        assert record.last_activity == clock.now
        assert record.address == ("10.0.0.1", 1)

    def test_touch_unknown(self, directory):
        assert directory.touch("ghost") is False
        assert len(directory) == 0

    def test_remove(self, directory):
        directory.register("alice", ("10.0.0.1", 1))
        assert directory.remove("alice") is True
        assert directory.remove("alice") is False
        assert directory.get("alice") is None

    def test_sweep_removes_exactly_expired(self, directory, clock):
        directory.register("old", ("10.0.0.1", 1))
        clock.advance(60)
        directory.register("kept", ("10.0.0.2", 2))
        directory.register("refreshed", ("10.0.0.3", 3))
        clock.advance(50)
        directory.touch("refreshed")
        clock.advance(11)  # old: 121s, kept: 61s, refreshed: 11s

        removed = directory.sweep()

        assert removed == ["old"]
        assert sorted(r.peer_id for r in directory.all()) == ["kept", "refreshed"]

    def test_sweep_boundary_is_strictly_greater(self, directory, clock):
        directory.register("alice", ("10.0.0.1", 1))
        assert directory.sweep(clock.now + 120.0) == []
        assert directory.sweep(clock.now + 120.5) == ["alice"]

    def test_keepalive_window_keeps_record_alive(self, directory, clock):
        directory.register("alice", ("10.0.0.1", 1))
        for _ in range(10):
            clock.advance(100)
            directory.touch("alice")
            directory.sweep()
        assert "alice" in directory
