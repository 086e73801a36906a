"""Tests for the configuration schema and loader."""

import json
import os

import pytest
from pydantic import ValidationError

from echoroom.config.schema import Config, ModerationConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("ECHOROOM_") or key == "MISTRAL_API_KEY":
            monkeypatch.delenv(key)


class TestDefaults:
    def test_moderation_defaults(self):
        m = ModerationConfig()
        assert m.tick_interval == 60
        assert m.inactivity_threshold == 180
        assert m.empty_room_grace == 60
        assert m.moderator_cooldown == 300
        assert m.tick_history_window == 10
        assert m.summon_history_window == 5
        assert m.strike_threshold == 3
        assert m.summon_marker == "@mod"
        assert m.oracle_turn_window == 5

    def test_provider_defaults(self):
        c = Config()
        assert c.provider.model == "mistral/mistral-medium-latest"
        assert c.provider.temperature == 0.7
        assert c.provider.timeout == 15
        assert c.provider.api_key is None


class TestEnvOverrides:
    def test_typed_overrides(self, monkeypatch):
        monkeypatch.setenv("ECHOROOM_MODERATION__TICK_INTERVAL", "5")
        monkeypatch.setenv("ECHOROOM_MODERATION__STRIKE_THRESHOLD", "2")
        monkeypatch.setenv("ECHOROOM_GATEWAY__PORT", "8080")
        monkeypatch.setenv("ECHOROOM_GATEWAY__CORS_ORIGINS", '["http://a.test", "http://b.test"]')
        monkeypatch.setenv("ECHOROOM_STORE__BACKEND", "memory")

        c = Config()
        assert c.moderation.tick_interval == 5.0
        assert c.moderation.strike_threshold == 2
        assert c.gateway.port == 8080
        assert c.gateway.cors_origins == ["http://a.test", "http://b.test"]
        assert c.store.backend == "memory"

    def test_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("ECHOROOM_GATEWAY__PORT", "not-a-port")
        with pytest.raises(ValidationError):
            Config()

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("ECHOROOM_STORE__BACKEND", "postgres")
        with pytest.raises(ValidationError):
            Config()

    def test_mistral_key(self, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "mk-123")
        assert Config().provider.api_key == "mk-123"

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("ECHOROOM_PROVIDER__API_KEY", "explicit")
        monkeypatch.setenv("MISTRAL_API_KEY", "mk-123")
        assert Config().provider.api_key == "explicit"


class TestLoadConfig:
    def test_file_then_env(self, tmp_path, monkeypatch):
        path = tmp_path / "echoroom.json"
        path.write_text(json.dumps({
            "moderation": {"inactivity_threshold": 120, "unknown_key": 1},
            "gateway": {"host": "127.0.0.1", "port": 7000},
        }))
        monkeypatch.setenv("ECHOROOM_GATEWAY__PORT", "7001")

        c = load_config(path)
        assert c.moderation.inactivity_threshold == 120.0
        assert c.gateway.port == 7001
        assert c.gateway.host == "127.0.0.1"

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.json") == Config()

    def test_malformed_file_uses_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_config(path).gateway.port == 5000

    def test_invalid_file_value_raises(self, tmp_path):
        path = tmp_path / "echoroom.json"
        path.write_text(json.dumps({"moderation": {"strike_threshold": 0}}))
        with pytest.raises(ValidationError):
            load_config(path)

    def test_no_path(self, monkeypatch):
        monkeypatch.setenv("ECHOROOM_MODERATION__SUMMON_MARKER", "@help")
        assert load_config(None).moderation.summon_marker == "@help"
