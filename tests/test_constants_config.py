"""Tests for YAML and environment configuration of Constants."""

import logging

from constants import Constants, _load_yaml_config, apply_config, load_config


class TestLoadYamlConfig:
    """Locating and parsing the config file."""

    def test_explicit_path(self, tmp_path, monkeypatch):
        """An explicit path is read."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
        path = tmp_path / "custom.yml"
        path.write_text("path_resolution:\n  cache:\n    ttl: 42\n")

        assert _load_yaml_config(str(path)) == {"path_resolution": {"cache": {"ttl": 42}}}

    def test_env_path(self, tmp_path, monkeypatch):
        """The config path environment variable is honored."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "env.yml"
        path.write_text("path_resolution:\n  max_workers: 3\n")
        monkeypatch.setenv(Constants.ENV_CONFIG, str(path))

        assert _load_yaml_config()["path_resolution"]["max_workers"] == 3

    def test_default_location_in_working_directory(self, tmp_path, monkeypatch):
        """The default file name is looked up in the working directory."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
        (tmp_path / "upgrade-paths.yml").write_text("path_resolution: {}\n")

        assert _load_yaml_config() == {"path_resolution": {}}

    def test_invalid_yaml_returns_empty(self, tmp_path, monkeypatch, caplog):
        """Unparseable YAML yields an empty mapping."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.yml"
        path.write_text("path_resolution: [unclosed\n")

        with caplog.at_level(logging.WARNING):
            assert _load_yaml_config(str(path)) == {}
        assert "Failed to load config" in caplog.text

    def test_non_mapping_returns_empty(self, tmp_path, monkeypatch):
        """A YAML document that is not a mapping yields an empty mapping."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")

        assert _load_yaml_config(str(path)) == {}


class TestApplyConfig:
    """Overlaying values onto Constants."""

    def test_applies_cache_section(self, tmp_path, monkeypatch):
        """Cache settings from YAML update Constants."""
        monkeypatch.delenv(Constants.ENV_CACHE_TTL, raising=False)
        monkeypatch.delenv(Constants.ENV_CACHE_DIR, raising=False)
        apply_config({
            "path_resolution": {
                "cache": {"ttl": 60, "negative_ttl": 5, "max_entries": 50, "directory": str(tmp_path)},
                "max_workers": 2,
            }
        })

        assert Constants.PATH_CACHE_TTL_SEC == 60
        assert Constants.PATH_NEGATIVE_CACHE_TTL_SEC == 5
        assert Constants.PATH_CACHE_MAX_ENTRIES == 50
        assert Constants.PATH_CACHE_DIR == str(tmp_path)
        assert Constants.RESOLVE_MAX_WORKERS == 2

    def test_invalid_values_are_ignored(self, monkeypatch, caplog):
        """Values of the wrong type leave Constants untouched."""
        monkeypatch.delenv(Constants.ENV_CACHE_TTL, raising=False)
        before = Constants.PATH_CACHE_TTL_SEC

        with caplog.at_level(logging.WARNING):
            apply_config({"path_resolution": {"cache": {"ttl": "soon", "max_entries": -1}}})

        assert Constants.PATH_CACHE_TTL_SEC == before
        assert "Invalid path_resolution.cache.ttl" in caplog.text

    def test_environment_wins(self, tmp_path, monkeypatch):
        """Environment overrides take precedence over YAML."""
        monkeypatch.setenv(Constants.ENV_CACHE_TTL, "7")
        monkeypatch.setenv(Constants.ENV_CACHE_DIR, str(tmp_path / "envcache"))

        apply_config({"path_resolution": {"cache": {"ttl": 60, "directory": "/ignored"}}})

        assert Constants.PATH_CACHE_TTL_SEC == 7
        assert Constants.PATH_CACHE_DIR == str(tmp_path / "envcache")

    def test_non_mapping_section_is_ignored(self, monkeypatch):
        """A path_resolution section that is not a mapping is skipped."""
        monkeypatch.delenv(Constants.ENV_CACHE_TTL, raising=False)
        before = Constants.PATH_CACHE_TTL_SEC
        apply_config({"path_resolution": ["nope"]})
        assert Constants.PATH_CACHE_TTL_SEC == before

    def test_load_config_end_to_end(self, tmp_path, monkeypatch):
        """load_config reads the file and applies it."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(Constants.ENV_CACHE_TTL, raising=False)
        monkeypatch.delenv(Constants.ENV_CACHE_DIR, raising=False)
        path = tmp_path / "cfg.yaml"
        path.write_text("path_resolution:\n  cache:\n    ttl: 15\n")

        load_config(str(path))

        assert Constants.PATH_CACHE_TTL_SEC == 15
