"""Tests for config loading."""

from news_brief.config import AppConfig, load_config


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("NEWS_CACHE_TTL", raising=False)
        config, settings = load_config(str(tmp_path / "missing.yaml"))

        assert config == AppConfig()
        assert config.cache.ttl == 3600
        assert config.news.max_attempts == 3
        assert config.scoring.weights.title_match == 5.0
        assert settings.news_cache_ttl is None

    def test_yaml_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("NEWS_CACHE_TTL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "news:\n  language: de\n  window_days: 1\n"
            "scoring:\n  weights:\n    recency: 3.0\n"
            "batch:\n  size: 4\n",
            encoding="utf-8",
        )
        config, _ = load_config(str(path))

        assert config.news.language == "de"
        assert config.news.window_days == 1
        assert config.scoring.weights.recency == 3.0
        assert config.scoring.weights.title_match == 5.0
        assert config.batch.size == 4

    def test_cache_ttl_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NEWS_CACHE_TTL", "120")
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
        config, settings = load_config(str(tmp_path / "missing.yaml"))

        assert config.cache.ttl == 120
        assert settings.openrouter_api_key == "sk-test"
