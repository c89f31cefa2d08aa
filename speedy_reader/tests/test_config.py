"""Tests for config loading, defaults and environment overrides."""

from pathlib import Path

import pytest

from speedy_reader.config import Config
from speedy_reader.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "RAINDROP_TOKEN", "SPEEDY_READER_DB_PATH",
                "SPEEDY_READER_CONFIG", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestLoad:
    def test_first_run_writes_defaults(self, tmp_path):
        path = tmp_path / "config.toml"

        config = Config.load(path)

        assert path.exists()
        assert config.claude_api_key is None
        assert config.refresh_interval_minutes == 30
        assert config.default_tags == ["rss"]
        assert config.has_summarizer is False
        assert config.has_bookmarks is False

    def test_reads_values(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'db_path = "/tmp/reader/feeds.db"\n'
            'claude_api_key = "sk-ant-123"\n'
            'raindrop_token = "rd-456"\n'
            "refresh_interval_minutes = 0\n"
            'default_tags = ["news", " ai "]\n'
        )

        config = Config.load(path)

        assert config.db_path == Path("/tmp/reader/feeds.db")
        assert config.has_summarizer is True
        assert config.raindrop_token == "rd-456"
        assert config.refresh_interval_minutes == 0
        assert config.default_tags == ["news", "ai"]

    def test_round_trip_through_save(self, tmp_path):
        path = tmp_path / "config.toml"
        original = Config(db_path=tmp_path / "x.db", raindrop_token='quote"d', default_tags=["a", "b"])

        original.save(path)
        loaded = Config.load(path)

        assert loaded.db_path == tmp_path / "x.db"
        assert loaded.raindrop_token == 'quote"d'
        assert loaded.default_tags == ["a", "b"]

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("this is = = not toml")

        with pytest.raises(ConfigError):
            Config.load(path)

    def test_wrong_type(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('refresh_interval_minutes = "often"\n')

        with pytest.raises(ConfigError, match="refresh_interval_minutes"):
            Config.load(path)


class TestEnvironment:
    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text('claude_api_key = "from-file"\n')
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        monkeypatch.setenv("SPEEDY_READER_DB_PATH", str(tmp_path / "env.db"))

        config = Config.load(path)

        assert config.claude_api_key == "from-env"
        assert config.db_path == tmp_path / "env.db"

    def test_config_path_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SPEEDY_READER_CONFIG", str(tmp_path / "custom.toml"))
        assert Config.config_path() == tmp_path / "custom.toml"

    def test_env_values_are_not_written_back(self, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        monkeypatch.setenv("RAINDROP_TOKEN", "secret")

        Config.load(path)

        assert "secret" not in path.read_text()
