"""Tests for configuration precedence."""

import json

import pytest

from paketdash.config import Config


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    for key in Config.ENV_MAPPINGS.values():
        monkeypatch.delenv(key, raising=False)
    for names in Config.ENV_FALLBACKS.values():
        for key in names:
            monkeypatch.delenv(key, raising=False)
    return tmp_path / "config.json"


class TestConfig:
    def test_defaults(self, config_path):
        cfg = Config(config_path)
        assert cfg.get("port") == 8090
        assert cfg.get("api_url") == "http://localhost:8000"
        assert cfg.get("batch_size") == 50
        assert cfg.get("not_a_key", "fallback") == "fallback"

    def test_file_overrides_defaults(self, config_path):
        config_path.write_text(json.dumps({"port": 9000, "bogus": 1}))
        cfg = Config(config_path)
        assert cfg.get("port") == 9000
        assert "bogus" not in cfg.get_all()

    def test_environment_overrides_file(self, config_path, monkeypatch):
        config_path.write_text(json.dumps({"api_url": "http://file:8000", "debounce_ms": 100}))
        monkeypatch.setenv("API_URL", "http://env:8000")
        monkeypatch.setenv("PAKETDASH_DEBOUNCE_MS", "250")

        cfg = Config(config_path)

        assert cfg.get("api_url") == "http://env:8000"
        assert cfg.get("debounce_ms") == 250

    def test_next_public_api_url_fallback(self, config_path, monkeypatch):
        monkeypatch.setenv("NEXT_PUBLIC_API_URL", "http://legacy:8000")
        assert Config(config_path).get("public_api_url") == "http://legacy:8000"

        monkeypatch.setenv("PUBLIC_API_URL", "http://current:8000")
        assert Config(config_path).get("public_api_url") == "http://current:8000"

    def test_bad_integer_in_environment_falls_back_to_default(self, config_path, monkeypatch):
        monkeypatch.setenv("PAKETDASH_PORT", "not-a-port")
        assert Config(config_path).get("port") == 8090

    def test_broken_config_file_is_ignored(self, config_path):
        config_path.write_text("{broken")
        assert Config(config_path).get("port") == 8090

    def test_set_and_unset(self, config_path):
        cfg = Config(config_path)
        cfg.set("public_api_url", "http://public:8000")
        assert json.loads(config_path.read_text()) == {"public_api_url": "http://public:8000"}
        assert cfg.get("public_api_url") == "http://public:8000"

        cfg.unset("public_api_url")
        assert cfg.get("public_api_url") == "http://localhost:8000"

    def test_set_unknown_key(self, config_path):
        with pytest.raises(KeyError):
            Config(config_path).set("colour", "red")
