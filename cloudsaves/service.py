"""Cloud Saves service facade.

One ``CloudSavesService`` per process owns the session (lock + auto-save
timer), the git runner bound to the data directory, the checkpoint engine
and the scheduler. Both the CLI and the HTTP API call into it.

Every method returns an ``OperationResult``; input validation failures use
the ``invalid`` code, calls requiring authorization use ``unauthorized``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from cloudsaves import __version__
from cloudsaves.checkpoint import CheckpointEngine
from cloudsaves.config import (
    DEFAULT_BRANCH,
    LEGACY_KEYS,
    TOKEN_MASK,
    CloudSavesConfig,
    ConfigStore,
    get_data_dir,
)
from cloudsaves.git import GitRunner
from cloudsaves.github import fetch_github_login
from cloudsaves.repo import (
    configure_remote,
    ensure_target_branch,
    initialize_repo,
    reinitialize_repo,
)
from cloudsaves.results import INVALID, REMOTE_FAILED, UNAUTHORIZED, OperationResult
from cloudsaves.scheduler import AutoSaveScheduler
from cloudsaves.session import Session, exclusive

logger = logging.getLogger(__name__)

# Upstream of the Cloud Saves installation itself
UPDATE_REMOTE = "https://github.com/fuwei99/cloud-saves.git"
UPDATE_BRANCH = "main"

INSTALL_DIR = Path(__file__).resolve().parent.parent

# Keys clients may change through save_config
EDITABLE_KEYS = frozenset(
    {
        "repo_url",
        "github_token",
        "display_name",
        "branch",
        "is_authorized",
        "auto_save_enabled",
        "auto_save_interval",
        "auto_save_target_tag",
    }
)


def _require(**values: Any) -> OperationResult | None:
    """Invalid result naming the first missing value, else None."""
    for key, value in values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            return OperationResult.fail(f"Missing required value: {key}", code=INVALID)
    return None


class CloudSavesService:
    """Entry point for every Cloud Saves operation.

    Args:
        config_store: Config persistence (default: ~/.cloudsaves/config.json)
        data_dir: Managed data directory (default: ./data)
        install_dir: Directory checked by the self-update flow
        interval_unit: Seconds per auto-save interval unit
        github_lookup: Coroutine resolving a token to a GitHub login
    """

    def __init__(
        self,
        config_store: ConfigStore | None = None,
        data_dir: Path | None = None,
        install_dir: Path | None = None,
        interval_unit: float = 60.0,
        github_lookup: Callable[[str], Awaitable[str | None]] = fetch_github_login,
        update_remote: str = UPDATE_REMOTE,
    ):
        self.config_store = config_store or ConfigStore()
        self.data_dir = Path(data_dir) if data_dir else get_data_dir()
        self.install_dir = Path(install_dir) if install_dir else INSTALL_DIR
        self.update_remote = update_remote
        self._github_lookup = github_lookup

        self.session = Session()
        self.runner = GitRunner(self.data_dir, token_provider=self._token)
        self.engine = CheckpointEngine(self.runner, self.config_store, self.session)
        self.scheduler = AutoSaveScheduler(
            self.engine, self.config_store, self.session, interval_unit=interval_unit
        )

    def _token(self) -> str | None:
        return self.config_store.load().github_token or None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Install the auto-save timer if the config enables it."""
        logger.info(f"Cloud Saves {__version__} managing {self.data_dir}")
        self.scheduler.reschedule()

    async def shutdown(self) -> None:
        self.scheduler.stop()

    # -------------------------------------------------------------------------
    # Config / authorization
    # -------------------------------------------------------------------------

    def info(self) -> OperationResult:
        return OperationResult.ok(
            "Cloud Saves",
            id="cloud-saves",
            name="Cloud Saves",
            version=__version__,
            data_dir=str(self.data_dir),
        )

    def get_config(self) -> OperationResult:
        """Config with the token masked."""
        return OperationResult.ok("Config loaded", config=self.config_store.load().public_dict())

    async def save_config(self, **changes: Any) -> OperationResult:
        """Merge client-editable settings and reschedule auto-save.

        ``is_authorized`` can only be cleared here, and a masked token echoed
        back by a client leaves the stored token alone.
        """
        clean: dict[str, Any] = {}
        for key, value in changes.items():
            key = LEGACY_KEYS.get(key, key)
            if key not in EDITABLE_KEYS or value is None:
                continue
            clean[key] = value

        if clean.get("github_token") == TOKEN_MASK:
            del clean["github_token"]
        if "is_authorized" in clean:
            if clean["is_authorized"] in (True, "true", "1", 1):
                del clean["is_authorized"]
            else:
                clean["is_authorized"] = False

        try:
            config = self.config_store.update(**clean)
        except ValueError as e:
            return OperationResult.fail(str(e), code=INVALID)

        self.scheduler.reschedule()
        return OperationResult.ok("Config saved", config=config.public_dict())

    def _mark_unauthorized(self, config: CloudSavesConfig) -> None:
        config.is_authorized = False
        self.config_store.save(config).unwrap()
        self.scheduler.stop()

    @exclusive("authorize")
    async def authorize(self, branch: str | None = None) -> OperationResult:
        """Initialize the data repository against the configured remote."""
        config = self.config_store.load()
        if not config.repo_url or not config.github_token:
            return OperationResult.fail(
                "Repository URL and GitHub token are not configured; save the config first",
                code=INVALID,
            )

        target_branch = (branch or "").strip() or config.branch or DEFAULT_BRANCH
        config.is_authorized = False

        init = await initialize_repo(self.runner)
        if not init.success:
            self._mark_unauthorized(config)
            return init

        remote = await configure_remote(self.runner, config.repo_url)
        if not remote.success:
            self._mark_unauthorized(config)
            return remote

        logger.info("Checking remote access and fetching tags")
        fetch = await self.runner.run(["fetch", "origin", "--tags", "--prune-tags"])
        if not fetch.success:
            self._mark_unauthorized(config)
            return OperationResult.fail(
                "Cannot access the remote repository; check the URL, token permissions and branch",
                code=REMOTE_FAILED,
                details=fetch,
            )

        ensured = await ensure_target_branch(self.runner, target_branch, config.committer_name)
        if not ensured.success:
            self._mark_unauthorized(config)
            return ensured

        config.is_authorized = True
        config.branch = target_branch

        login = await self._github_lookup(config.github_token)
        if login:
            config.username = login

        self.config_store.save(config).unwrap()
        self.scheduler.reschedule()

        return OperationResult.ok("Authorized", config=config.public_dict())

    # -------------------------------------------------------------------------
    # Saves
    # -------------------------------------------------------------------------

    async def get_status(self) -> OperationResult:
        return await self.engine.get_status()

    async def list_saves(self) -> OperationResult:
        config = self.config_store.load()
        branch = config.branch if config.is_authorized else None
        return await self.engine.list_saves(branch)

    async def create_save(self, name: str, description: str | None = None) -> OperationResult:
        if invalid := _require(name=name):
            return invalid
        return await self.engine.create_save(name.strip(), description)

    async def load_save(self, tag: str) -> OperationResult:
        if invalid := _require(tag=tag):
            return invalid
        return await self.engine.load_save(tag)

    async def delete_save(self, tag: str) -> OperationResult:
        if invalid := _require(tag=tag):
            return invalid
        return await self.engine.delete_save(tag)

    async def rename_save(
        self,
        old_tag: str,
        new_name: str,
        description: str | None = None,
    ) -> OperationResult:
        if invalid := _require(old_tag=old_tag, new_name=new_name):
            return invalid
        return await self.engine.rename_save(old_tag, new_name.strip(), description)

    async def overwrite_save(self, tag: str) -> OperationResult:
        if invalid := _require(tag=tag):
            return invalid
        if not self.config_store.load().is_authorized:
            return OperationResult.fail("Not authorized", code=UNAUTHORIZED)
        return await self.engine.overwrite_save(tag)

    async def diff_saves(self, ref1: str, ref2: str) -> OperationResult:
        if invalid := _require(tag1=ref1, tag2=ref2):
            return invalid
        return await self.engine.diff_saves(ref1, ref2)

    async def apply_temp_stash(self) -> OperationResult:
        return await self.engine.apply_temp_stash()

    async def discard_temp_stash(self) -> OperationResult:
        return await self.engine.discard_temp_stash()

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    @exclusive("force_initialize")
    async def force_reinitialize(self) -> OperationResult:
        """Throw away the data directory's git history and start over.

        Authorization is cleared; run authorize again afterwards.
        """
        logger.warning(f"Force reinitializing repository in {self.data_dir}")
        config = self.config_store.load()
        result = await reinitialize_repo(self.runner, config.repo_url)

        config = self.config_store.load()
        config.is_authorized = False
        config.current_save = None
        config.has_temp_stash = False
        self.config_store.save(config).unwrap()
        self.scheduler.stop()
        return result

    @exclusive("check_update")
    async def check_for_update(self) -> OperationResult:
        """Pull the latest Cloud Saves release into the install directory."""
        cwd = self.install_dir
        logger.info(f"Checking for updates in {cwd}")

        inside = await self.runner.run(["rev-parse", "--is-inside-work-tree"], cwd=cwd)
        if not inside.success or inside.output != "true":
            return OperationResult.ok(
                "Cannot update automatically: not installed from a git checkout",
                status="not_git_repo",
            )

        remote = await self.runner.run(["remote", "get-url", "origin"], cwd=cwd)
        if not remote.success or remote.output != self.update_remote:
            return OperationResult.fail(
                f"Cannot update: origin ({remote.output or 'unset'}) is not {self.update_remote}",
                status="wrong_remote",
            )

        local = await self.runner.run(["rev-parse", "HEAD"], cwd=cwd)
        if not local.success:
            return OperationResult.fail("Could not read the local version", status="error", details=local)

        heads = await self.runner.run(
            ["ls-remote", "origin", f"refs/heads/{UPDATE_BRANCH}"], cwd=cwd
        )
        if not heads.success or not heads.output:
            return OperationResult.fail(
                f"Could not read the remote {UPDATE_BRANCH} version",
                code=REMOTE_FAILED,
                status="error",
                details=heads,
            )

        if local.output == heads.output.split()[0]:
            return OperationResult.ok("Already up to date", status="latest")

        pull = await self.runner.run(["pull", "origin", UPDATE_BRANCH], cwd=cwd)
        if not pull.success:
            if "Your local changes to the following files would be overwritten" in pull.stderr:
                return OperationResult.fail(
                    "Update failed: local modifications to the installation block the pull",
                    status="pull_failed_local_changes",
                    details=pull,
                )
            return OperationResult.fail(
                f"Update failed: {pull.stderr.strip() or pull.error or 'unknown error'}",
                status="pull_failed",
                details=pull,
            )

        return OperationResult.ok("Updated; restart to apply", status="updated")
