"""
Settings tests
==============
"""

import json

import pytest

from punch_client.config import ClientSettings
from punch_common.settings import ConfigValidationError, locate_config
from punch_client.config import ConfigValidationError as ClientConfigError
from punch_rendezvous.config import ConfigValidationError as ServerConfigError
from punch_rendezvous.config import ServerSettings


class TestClientSettings:
    def test_defaults_follow_protocol(self):
        s = ClientSettings()
        assert s.registration_retry == 1.0
        assert s.registration_timeout == 5.0
        assert s.keepalive_interval == 5.0
        assert s.punch_burst_size == 16
        assert s.punch_rounds == 40
        assert s.poll_interval == 0.2
        s.validate()

    @pytest.mark.parametrize("peer_id", ["", "a b", "x" * 64, "a:b"])
    def test_invalid_peer_id(self, peer_id):
        with pytest.raises(ClientConfigError):
            ClientSettings(peer_id=peer_id).validate()

    def test_invalid_server_port(self):
        with pytest.raises(ClientConfigError):
            ClientSettings(server_port=0).validate()

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "peer_id": "bob",
            "server_port": 6000,
            "punch_rounds": 10,
            "color": "blue",
        }))
        s = ClientSettings.from_file(path)
        assert s.peer_id == "bob"
        assert s.server_port == 6000
        assert s.punch_rounds == 10
        assert s.extra == {"color": "blue"}
        assert s.config_file == path

    def test_missing_file_gives_defaults(self, tmp_path):
        s = ClientSettings.from_file(tmp_path / "absent.json")
        assert s.peer_id == "alice"

    def test_from_file_validates(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"punch_burst_size": 0}))
        with pytest.raises(ClientConfigError):
            ClientSettings.from_file(path)


class TestServerSettings:
    def test_defaults(self):
        s = ServerSettings()
        assert (s.port, s.capacity, s.ttl_seconds) == (5000, 128, 120.0)
        s.validate()

    @pytest.mark.parametrize("kwargs", [
        {"port": 70000},
        {"capacity": 0},
        {"ttl_seconds": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ServerConfigError):
            ServerSettings(**kwargs).validate()

    def test_from_file_and_to_dict(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 7000, "ttl_seconds": 30}))
        s = ServerSettings.from_file(path)
        assert s.to_dict()["port"] == 7000
        assert s.to_dict()["ttl_seconds"] == 30
        assert "config_file" not in s.to_dict()


class TestConfigLoading:
    def test_error_type_is_shared(self):
        assert ClientConfigError is ServerConfigError is ConfigValidationError

    def test_non_object_json_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigValidationError):
            ServerSettings.from_file(path)

    def test_locate_prefers_module_dir(self, tmp_path, monkeypatch):
        module_dir = tmp_path / "pkg"
        module_dir.mkdir()
        (module_dir / "config.json").write_text("{}")
        (tmp_path / "config.json").write_text("{}")
        monkeypatch.chdir(tmp_path)
        assert locate_config(module_dir) == module_dir / "config.json"

    def test_locate_falls_back_to_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "config.json").write_text("{}")
        monkeypatch.chdir(tmp_path)
        assert locate_config(tmp_path / "missing") == tmp_path / "config.json"

    def test_locate_nothing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert locate_config(tmp_path / "missing") is None
