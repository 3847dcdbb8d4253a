"""Shared fixtures: an isolated home and a data repository with a bare origin."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from cloudsaves.config import ConfigStore


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep the developer's ~/.cloudsaves and git identity out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("CLOUDSAVES_CONFIG", "CLOUDSAVES_DATA_DIR", "CLOUDSAVES_GITHUB_TOKEN"):
        monkeypatch.delenv(var, raising=False)


def run_git(cwd: Path, *args: str) -> str:
    """Run git in cwd for test setup/inspection; returns stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def _init_origin_and_data(tmp_path: Path) -> tuple[Path, Path]:
    origin = tmp_path / "origin.git"
    data = tmp_path / "data"
    origin.mkdir()
    data.mkdir()

    run_git(origin, "init", "--bare")
    run_git(origin, "symbolic-ref", "HEAD", "refs/heads/main")

    run_git(data, "init")
    run_git(data, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(data, "config", "user.email", "test@test.com")
    run_git(data, "config", "user.name", "Test User")
    (data / "world.txt").write_text("initial world\n")
    run_git(data, "add", ".")
    run_git(data, "commit", "-m", "Initial commit")
    run_git(data, "remote", "add", "origin", str(origin))
    run_git(data, "push", "-u", "origin", "main")
    return origin, data


@pytest.fixture
def repos(tmp_path) -> tuple[Path, Path]:
    """(bare origin, data directory on main tracking origin/main)."""
    if shutil.which("git") is None:
        pytest.skip("Git not available")
    return _init_origin_and_data(tmp_path)


@pytest.fixture
def origin(repos) -> Path:
    return repos[0]


@pytest.fixture
def data_dir(repos) -> Path:
    return repos[1]


@pytest.fixture
def config_store(tmp_path) -> ConfigStore:
    return ConfigStore(tmp_path / "config" / "config.json")


@pytest.fixture
def git():
    """Helper running git in a directory: ``git(cwd, *args) -> stdout``."""
    if shutil.which("git") is None:
        pytest.skip("Git not available")
    return run_git
