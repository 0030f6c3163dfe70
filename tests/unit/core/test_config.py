"""
Unit Tests for Configuration Management.

Black box tests against the public interface of config.py.
Tests run against the real project files (YAML configs).
Failure scenarios use tmp_path to create controlled filesystems.
"""

import pytest

from hastily.core.config import (
    AppConfig,
    Settings,
    find_project_root,
    get_app_config,
    get_settings,
    load_yaml_config,
    validate_project_root,
)
from hastily.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    LoggingSchema,
)
from hastily.core.exceptions import ConfigurationError


def make_project(tmp_path, **files: str):
    """Create a project root with the given settings files."""
    (tmp_path / ".project_root").touch()
    settings_dir = tmp_path / "config" / "settings"
    settings_dir.mkdir(parents=True)
    for name, content in files.items():
        (settings_dir / f"{name}.yaml").write_text(content)
    return tmp_path


# =============================================================================
# find_project_root
# =============================================================================


class TestFindProjectRoot:
    """Tests for .project_root marker discovery."""

    def test_finds_root_from_project_directory(self):
        root = find_project_root()
        assert (root / ".project_root").exists()
        assert (root / "config" / "settings").is_dir()

    def test_finds_root_from_subdirectory(self, tmp_path, monkeypatch):
        make_project(tmp_path)
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert find_project_root() == tmp_path

    def test_raises_when_no_marker_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(RuntimeError, match="Project root not found"):
            find_project_root()


class TestValidateProjectRoot:
    def test_returns_path_when_marker_exists(self):
        assert (validate_project_root() / ".project_root").exists()

    def test_exits_when_marker_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit):
            validate_project_root()


# =============================================================================
# load_yaml_config
# =============================================================================


class TestLoadYamlConfig:
    """Tests for YAML file loading from config/settings/."""

    def test_loads_all_config_files(self):
        for filename in ("application.yaml", "logging.yaml", "concurrency.yaml"):
            data = load_yaml_config(filename)
            assert isinstance(data, dict), f"{filename} did not return a dict"
            assert data, f"{filename} returned empty dict"

    def test_raises_for_nonexistent_file(self):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_config("does_not_exist.yaml")

    def test_returns_empty_dict_for_empty_yaml(self, tmp_path, monkeypatch):
        monkeypatch.chdir(make_project(tmp_path, empty=""))
        assert load_yaml_config("empty.yaml") == {}


# =============================================================================
# AppConfig
# =============================================================================


class TestAppConfig:
    """Tests for schema-validated YAML settings."""

    def test_sections_are_typed(self):
        config = AppConfig()
        assert isinstance(config.application, ApplicationSchema)
        assert isinstance(config.logging, LoggingSchema)
        assert isinstance(config.concurrency, ConcurrencySchema)

    def test_shipped_values(self):
        config = AppConfig()
        assert config.application.name == "hastily"
        assert config.application.export.table_type == "basic"
        assert config.concurrency.fanout.max_concurrency >= 1
        assert config.concurrency.retry.attempts >= 1

    def test_get_app_config_is_cached(self):
        assert get_app_config() is get_app_config()

    def test_unknown_key_is_rejected(self, tmp_path, monkeypatch):
        root = make_project(
            tmp_path,
            application=(
                "name: x\nversion: '1'\ndescription: d\n"
                "api:\n  endpoint: http://backend.test\n  colour: red\n"
                "export: {}\n"
            ),
            logging=load_yaml_text("logging.yaml"),
            concurrency=load_yaml_text("concurrency.yaml"),
        )
        monkeypatch.chdir(root)

        with pytest.raises(ConfigurationError, match="application.yaml") as exc_info:
            AppConfig()

        assert exc_info.value.code == "CFG_INVALID"

    def test_null_item_timeout_means_unbounded(self, tmp_path, monkeypatch):
        root = make_project(
            tmp_path,
            application=load_yaml_text("application.yaml"),
            logging=load_yaml_text("logging.yaml"),
            concurrency=(
                "fanout:\n  max_concurrency: 2\n  item_timeout: null\n"
                "thread_pool:\n  max_workers: 1\n"
                "retry:\n  attempts: 1\n  min_wait: 0\n  max_wait: 0\n"
            ),
        )
        monkeypatch.chdir(root)

        config = AppConfig()

        assert config.concurrency.fanout.item_timeout is None
        assert config.concurrency.fanout.max_concurrency == 2


def load_yaml_text(filename: str) -> str:
    return (find_project_root() / "config" / "settings" / filename).read_text()


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Tests for secrets from the environment and config/.env."""

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("HASTILY_API_TOKEN", "from-env")
        assert Settings().api_token == "from-env"

    def test_token_defaults_to_empty(self, monkeypatch):
        monkeypatch.delenv("HASTILY_API_TOKEN", raising=False)
        assert Settings(_env_file=None).api_token == ""

    def test_get_settings_reads_env_file(self, tmp_path, monkeypatch):
        root = make_project(tmp_path)
        (root / "config" / ".env").write_text("HASTILY_API_TOKEN=from-file\n")
        monkeypatch.chdir(root)
        monkeypatch.delenv("HASTILY_API_TOKEN", raising=False)

        assert get_settings().api_token == "from-file"

    def test_get_settings_without_env_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(make_project(tmp_path))
        monkeypatch.delenv("HASTILY_API_TOKEN", raising=False)

        assert get_settings().api_token == ""
