"""Configuration management for Cloud Saves.

Storage Structure
-----------------
~/.cloudsaves/
└── config.json          # Repository URL, token, save pointers (secrets!)

<data dir>/              # The managed directory (default: ./data)
└── .git/                # Commits + annotated save_* tags

Configuration
-------------
**CloudSavesConfig** is the typed aggregate persisted as one JSON document.
    - repo_url, branch, github_token: remote repository access
    - username, display_name: identity used for commits and tags
    - is_authorized: set by the authorize flow only
    - last_save: most recent save created/overwritten by the user
    - current_save: save the data directory was last switched to
    - has_temp_stash: an interrupted-work stash is outstanding
    - auto_save_*: autonomous overwrite scheduler settings

Reads fill defaults for missing keys; a missing or corrupt file is replaced
by defaults. Writes are atomic (see ``cloudsaves.atomic``).
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from cloudsaves.atomic import atomic_write_json
from cloudsaves.errors import CloudSavesError, Result

logger = logging.getLogger(__name__)

# Standard paths
CLOUDSAVES_DIR = Path.home() / ".cloudsaves"
CONFIG_PATH = CLOUDSAVES_DIR / "config.json"
DEFAULT_DATA_DIR = Path.cwd() / "data"

DEFAULT_BRANCH = "main"
DEFAULT_AUTO_SAVE_INTERVAL = 30.0  # minutes

# Keys written by older releases
LEGACY_KEYS = {
    "autoSaveEnabled": "auto_save_enabled",
    "autoSaveInterval": "auto_save_interval",
    "autoSaveTargetTag": "auto_save_target_tag",
}

TOKEN_MASK = "******"


def get_config_path() -> Path:
    """Config path, honoring CLOUDSAVES_CONFIG."""
    if env_path := os.environ.get("CLOUDSAVES_CONFIG"):
        return Path(env_path).expanduser()
    return CONFIG_PATH


def get_data_dir() -> Path:
    """Managed data directory, honoring CLOUDSAVES_DATA_DIR."""
    if env_dir := os.environ.get("CLOUDSAVES_DATA_DIR"):
        return Path(env_dir).expanduser().resolve()
    return DEFAULT_DATA_DIR


@dataclass
class CloudSavesConfig:
    """Persisted Cloud Saves settings and pointers."""

    repo_url: str = ""
    branch: str = DEFAULT_BRANCH
    username: str | None = None
    github_token: str = ""
    display_name: str = ""
    is_authorized: bool = False
    last_save: dict[str, Any] | None = None
    current_save: dict[str, Any] | None = None
    has_temp_stash: bool = False
    auto_save_enabled: bool = False
    auto_save_interval: float = DEFAULT_AUTO_SAVE_INTERVAL
    auto_save_target_tag: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CloudSavesConfig:
        """Create config from a stored document, filling defaults."""
        normalized = dict(data)
        for legacy, key in LEGACY_KEYS.items():
            if legacy in normalized and key not in normalized:
                normalized[key] = normalized.pop(legacy)

        # Only apply known fields
        valid_fields = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in normalized.items() if k in valid_fields})
        if not config.branch:
            config.branch = DEFAULT_BRANCH
        if config.auto_save_interval is None:
            config.auto_save_interval = DEFAULT_AUTO_SAVE_INTERVAL
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def public_dict(self) -> dict[str, Any]:
        """Config safe to hand to clients - the token is masked."""
        data = self.to_dict()
        data["github_token"] = TOKEN_MASK if self.github_token else ""
        return data

    @property
    def committer_name(self) -> str:
        """Identity used for commits and tag annotations."""
        return self.display_name or self.username or "Cloud Saves User"

    @property
    def effective_interval(self) -> float:
        """Auto-save interval in minutes; non-positive means the default."""
        try:
            interval = float(self.auto_save_interval)
        except (TypeError, ValueError):
            return DEFAULT_AUTO_SAVE_INTERVAL
        return interval if interval > 0 else DEFAULT_AUTO_SAVE_INTERVAL


class ConfigStore:
    """Load/merge/persist operations for the config document."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else get_config_path()

    def load(self) -> CloudSavesConfig:
        """Load configuration, writing defaults if the file is unusable."""
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root is not an object")
            config = CloudSavesConfig.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to read config {self.path}, creating default: {e}")
            config = CloudSavesConfig()
            self.save(config).unwrap()

        # Environment overrides file config
        if env_token := os.environ.get("CLOUDSAVES_GITHUB_TOKEN"):
            config.github_token = env_token

        return config

    def save(self, config: CloudSavesConfig) -> Result[Path, CloudSavesError]:
        """Persist configuration atomically (0600 - holds the token)."""
        return atomic_write_json(self.path, config.to_dict())

    def update(self, **changes: Any) -> CloudSavesConfig:
        """Merge validated changes into the stored config and persist it.

        Unknown keys are ignored. Raises ValueError for invalid values.
        """
        config = self.load()
        valid_fields = {f.name for f in fields(CloudSavesConfig)}
        clean: dict[str, Any] = {}

        for key, value in changes.items():
            if key not in valid_fields or value is None:
                continue
            clean[key] = _validate(key, value)

        updated = replace(config, **clean)
        self.save(updated).unwrap()
        return updated


def _validate(key: str, value: Any) -> Any:
    """Coerce a single config value, raising ValueError when invalid."""
    if key == "auto_save_interval":
        try:
            interval = float(value)
        except (TypeError, ValueError):
            raise ValueError("Invalid auto-save interval: expected a number greater than 0")
        if not math.isfinite(interval) or interval <= 0:
            raise ValueError("Invalid auto-save interval: expected a number greater than 0")
        return interval

    if key in ("is_authorized", "auto_save_enabled", "has_temp_stash"):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    if key == "branch":
        return str(value).strip() or DEFAULT_BRANCH

    if key in ("auto_save_target_tag", "repo_url", "display_name", "github_token"):
        return str(value).strip()

    return value
