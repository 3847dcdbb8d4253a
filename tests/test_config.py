"""Tests for cloudsaves.config and cloudsaves.errors."""

import json
from pathlib import Path

import pytest

from cloudsaves.config import (
    DEFAULT_AUTO_SAVE_INTERVAL,
    TOKEN_MASK,
    CloudSavesConfig,
    ConfigStore,
    get_config_path,
    get_data_dir,
)
from cloudsaves.errors import CloudSavesError, Err, Ok, UnwrapError, format_error


class TestCloudSavesConfig:
    """Tests for the CloudSavesConfig dataclass."""

    def test_defaults(self):
        config = CloudSavesConfig()
        assert config.branch == "main"
        assert config.is_authorized is False
        assert config.auto_save_enabled is False
        assert config.auto_save_interval == DEFAULT_AUTO_SAVE_INTERVAL
        assert config.last_save is None

    def test_from_dict_fills_defaults_and_ignores_unknown(self):
        config = CloudSavesConfig.from_dict({"repo_url": "https://x/y.git", "mystery": 1})
        assert config.repo_url == "https://x/y.git"
        assert config.branch == "main"

    def test_from_dict_accepts_legacy_keys(self):
        config = CloudSavesConfig.from_dict(
            {"autoSaveEnabled": True, "autoSaveInterval": 5, "autoSaveTargetTag": "save_1_eA"}
        )
        assert config.auto_save_enabled is True
        assert config.auto_save_interval == 5
        assert config.auto_save_target_tag == "save_1_eA"

    def test_empty_branch_defaults_to_main(self):
        assert CloudSavesConfig.from_dict({"branch": ""}).branch == "main"

    def test_public_dict_masks_token(self):
        assert CloudSavesConfig(github_token="ghp_secret").public_dict()["github_token"] == TOKEN_MASK
        assert CloudSavesConfig().public_dict()["github_token"] == ""

    def test_committer_name_fallbacks(self):
        assert CloudSavesConfig(display_name="Ann", username="ann1").committer_name == "Ann"
        assert CloudSavesConfig(username="ann1").committer_name == "ann1"
        assert CloudSavesConfig().committer_name == "Cloud Saves User"

    @pytest.mark.parametrize("value", [0, -5, None, "abc"])
    def test_effective_interval_falls_back(self, value):
        assert CloudSavesConfig(auto_save_interval=value).effective_interval == 30


class TestConfigStore:
    """Tests for ConfigStore load/save/update."""

    def test_missing_file_writes_defaults(self, tmp_path: Path):
        store = ConfigStore(tmp_path / "config.json")

        config = store.load()

        assert config == CloudSavesConfig()
        assert json.loads((tmp_path / "config.json").read_text())["branch"] == "main"

    def test_corrupt_file_is_replaced(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        config = ConfigStore(path).load()

        assert config == CloudSavesConfig()
        assert json.loads(path.read_text())["branch"] == "main"

    def test_non_object_root_is_replaced(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")

        assert ConfigStore(path).load() == CloudSavesConfig()

    def test_save_and_load(self, tmp_path: Path):
        store = ConfigStore(tmp_path / "config.json")
        store.save(CloudSavesConfig(repo_url="https://github.com/me/saves.git", github_token="t"))

        loaded = store.load()

        assert loaded.repo_url == "https://github.com/me/saves.git"
        assert loaded.github_token == "t"

    def test_env_token_overrides(self, tmp_path: Path, monkeypatch):
        store = ConfigStore(tmp_path / "config.json")
        store.save(CloudSavesConfig(github_token="stored"))
        monkeypatch.setenv("CLOUDSAVES_GITHUB_TOKEN", "from-env")

        assert store.load().github_token == "from-env"

    def test_update_merges_and_validates(self, tmp_path: Path):
        store = ConfigStore(tmp_path / "config.json")

        updated = store.update(
            branch="  dev ",
            auto_save_interval="15",
            auto_save_enabled="true",
            auto_save_target_tag=" save_1_eA ",
            unknown="ignored",
            display_name=None,
        )

        assert updated.branch == "dev"
        assert updated.auto_save_interval == 15.0
        assert updated.auto_save_enabled is True
        assert updated.auto_save_target_tag == "save_1_eA"
        assert store.load().branch == "dev"

    def test_blank_branch_becomes_main(self, tmp_path: Path):
        store = ConfigStore(tmp_path / "config.json")
        assert store.update(branch="   ").branch == "main"

    @pytest.mark.parametrize("interval", [0, -1, "abc", "nan", "inf"])
    def test_invalid_interval_rejected(self, tmp_path: Path, interval):
        store = ConfigStore(tmp_path / "config.json")
        store.update(auto_save_interval=10)

        with pytest.raises(ValueError):
            store.update(auto_save_interval=interval)

        assert store.load().auto_save_interval == 10


class TestPaths:
    def test_config_path_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLOUDSAVES_CONFIG", str(tmp_path / "c.json"))
        assert get_config_path() == tmp_path / "c.json"

    def test_data_dir_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLOUDSAVES_DATA_DIR", str(tmp_path / "d"))
        assert get_data_dir() == (tmp_path / "d").resolve()


class TestResult:
    """Tests for the Ok/Err wrappers."""

    def test_ok(self):
        result = Ok(5)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 5
        with pytest.raises(UnwrapError):
            result.unwrap_err()

    def test_err_unwrap_raises_with_error(self):
        error = CloudSavesError(code="X", message="boom", context={"path": "/a"})
        with pytest.raises(UnwrapError) as exc_info:
            Err(error).unwrap()
        assert exc_info.value.error is error

    def test_format_error(self):
        assert format_error(CloudSavesError("X", "boom")) == "boom"
        assert format_error(CloudSavesError("X", "boom", {"path": "/a"})) == "boom (path=/a)"
