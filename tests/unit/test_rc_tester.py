"""
Datagram tester helpers
=======================
"""

import pytest

from punch_tools.rc_tester import build_datagram, check_reply


class TestBuildDatagram:
    def test_raw(self):
        assert build_datagram({"send": "REGISTER alice"}) == b"REGISTER alice"

    def test_synth_long_id(self):
        data = build_datagram({"mode": "synth", "synth": {"pattern": "long_id", "count": 80}})
        assert data == b"REGISTER " + b"a" * 80

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            build_datagram({"mode": "json"})


class TestCheckReply:
    def test_prefix_and_regex(self):
        exp = {"prefix": "REGISTERED alice", "regex": r"\d+$"}
        assert check_reply(exp, "REGISTERED alice 127.0.0.1 5555") == []

    def test_equals_mismatch(self):
        failures = check_reply({"equals": "ERROR target_not_found bob"}, "PEER bob 1.2.3.4 5")
        assert len(failures) == 1

    def test_silent(self):
        assert check_reply({"silent": True}, None) == []
        assert check_reply({"silent": True}, "REGISTERED x 1.2.3.4 5") != []

    def test_timeout_when_reply_expected(self):
        assert check_reply({"prefix": "REGISTERED"}, None) != []
