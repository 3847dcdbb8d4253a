"""Tests for the cloudsaves command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cloudsaves.cli import console, main


@pytest.fixture
def cli(tmp_path: Path, monkeypatch):
    config_path = tmp_path / "cli" / "config.json"
    # Wide enough that the saves table never wraps
    monkeypatch.setattr(console, "width", 200)

    def invoke(data_dir: Path, *args: str, input: str | None = None):
        runner = CliRunner()
        return runner.invoke(
            main,
            ["--config", str(config_path), "--data-dir", str(data_dir), *args],
            input=input,
        )

    invoke.config_path = config_path
    return invoke


def test_version():
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert "version" in result.output


class TestConfigCommands:
    def test_set_then_show_masks_token(self, cli, tmp_path):
        assert cli(tmp_path, "config", "set", "github-token", "secret").exit_code == 0
        assert cli(tmp_path, "config", "set", "auto-save-interval", "15").exit_code == 0

        result = cli(tmp_path, "config", "show")

        assert result.exit_code == 0
        assert "secret" not in result.output
        assert "auto_save_interval: 15.0" in result.output
        stored = json.loads(cli.config_path.read_text())
        assert stored["github_token"] == "secret"

    def test_unknown_key_fails(self, cli, tmp_path):
        result = cli(tmp_path, "config", "set", "username", "mallory")

        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_invalid_value_fails(self, cli, tmp_path):
        result = cli(tmp_path, "config", "set", "auto_save_interval", "-1")

        assert result.exit_code == 1
        assert "Invalid auto-save interval" in result.output


class TestSaveCommands:
    def test_status_of_plain_directory(self, cli, tmp_path, git):
        plain = tmp_path / "plain"
        plain.mkdir()

        result = cli(plain, "status")

        assert result.exit_code == 0
        assert "not a git repository" in result.output

    def test_create_list_load(self, cli, data_dir, git):
        (data_dir / "world.txt").write_text("level 2\n")

        created = cli(data_dir, "create", "Level 2", "-d", "Boss beaten")
        assert created.exit_code == 0, created.output
        tag = git(data_dir, "tag", "--list", "save_*")
        assert tag in created.output

        listed = cli(data_dir, "list")
        assert listed.exit_code == 0, listed.output
        assert "Level 2" in listed.output
        assert "Boss beaten" in listed.output

        (data_dir / "world.txt").write_text("level 3\n")
        loaded = cli(data_dir, "load", tag)
        assert loaded.exit_code == 0, loaded.output
        assert "stashed" in loaded.output
        assert (data_dir / "world.txt").read_text() == "level 2\n"

    def test_empty_list(self, cli, data_dir):
        result = cli(data_dir, "list")

        assert result.exit_code == 0
        assert "No saves found" in result.output

    def test_load_unknown_tag_fails(self, cli, data_dir):
        result = cli(data_dir, "load", "save_1_bm9wZQ")

        assert result.exit_code == 1

    def test_delete_asks_for_confirmation(self, cli, data_dir, git):
        cli(data_dir, "create", "Doomed")
        tag = git(data_dir, "tag", "--list", "save_*")

        declined = cli(data_dir, "delete", tag, input="n\n")
        assert "Cancelled" in declined.output
        assert git(data_dir, "tag", "--list", "save_*") == tag

        deleted = cli(data_dir, "delete", tag, "--force")
        assert deleted.exit_code == 0, deleted.output
        assert git(data_dir, "tag", "--list", "save_*") == ""

    def test_overwrite_requires_authorization(self, cli, data_dir):
        result = cli(data_dir, "overwrite", "save_1_YQ")

        assert result.exit_code == 1
        assert "Not authorized" in result.output
