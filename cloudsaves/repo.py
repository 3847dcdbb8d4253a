"""Repository bootstrap for the managed data directory.

Idempotent setup steps used by the authorize and reinitialize flows:
- ``initialize_repo``: git init unless the data dir already is a work tree
- ``configure_remote``: point ``origin`` at the configured URL
- ``ensure_target_branch``: track the remote branch, or create it remotely

All functions report structured failures (``OperationResult``) carrying the
raw git output, never exceptions.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from cloudsaves.git import GitRunner, identity_args
from cloudsaves.results import GIT_FAILED, REMOTE_FAILED, OperationResult

logger = logging.getLogger(__name__)


async def is_initialized(runner: GitRunner) -> bool:
    """True when the data directory is the top level of a git work tree.

    A data directory nested inside some other repository does not count.
    """
    if not runner.data_dir.is_dir():
        return False
    result = await runner.run(["rev-parse", "--show-toplevel"])
    if not result.success or not result.output:
        return False
    try:
        return Path(result.output).resolve() == runner.data_dir.resolve()
    except OSError:
        return False


async def initialize_repo(runner: GitRunner) -> OperationResult:
    """Initialize the data directory as a git repository (idempotent)."""
    if await is_initialized(runner):
        return OperationResult.ok("Git repository already initialized in data directory")

    logger.info(f"Initializing git repository in {runner.data_dir}")
    try:
        runner.data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return OperationResult.fail(
            "Failed to create data directory",
            code=GIT_FAILED,
            details={"error": str(e)},
        )

    result = await runner.run(["init"])
    if not result.success:
        return OperationResult.fail(
            "Failed to initialize git repository",
            code=GIT_FAILED,
            details=result,
        )
    return OperationResult.ok("Git repository initialized", details=result)


async def configure_remote(runner: GitRunner, url: str) -> OperationResult:
    """Set ``origin`` to url, adding the remote if it does not exist."""
    remotes = await runner.run(["remote"])
    has_origin = remotes.success and "origin" in remotes.output.split()

    if has_origin:
        result = await runner.run(["remote", "set-url", "origin", url])
        if not result.success:
            return OperationResult.fail("Failed to update remote URL", details=result)
    else:
        result = await runner.run(["remote", "add", "origin", url])
        if not result.success:
            return OperationResult.fail("Failed to add remote repository", details=result)

    return OperationResult.ok("Remote repository configured")


async def ensure_target_branch(
    runner: GitRunner,
    branch: str,
    committer: str = "Cloud Saves User",
) -> OperationResult:
    """Check out branch, tracking or creating it on the remote.

    Remote branch exists: create a local tracking branch (absorbing
    "already exists") and check it out. Otherwise switch to or create the
    local branch and push it with --set-upstream. A repository with no
    commits gets an empty initial commit so there is something to push.
    """
    heads = await runner.run(["ls-remote", "--heads", "origin", branch])
    remote_exists = heads.success and f"refs/heads/{branch}" in heads.stdout

    if remote_exists:
        track = await runner.run(["branch", "--track", branch, f"origin/{branch}"])
        track_error = track.stderr.lower()
        if (
            not track.success
            and "already exists" not in track_error
            and "already set up to track" not in track_error
        ):
            logger.warning(f"Failed to set up tracking for {branch}: {track.stderr.strip()}")

        checkout = await runner.run(["checkout", branch])
        if not checkout.success:
            return OperationResult.fail(f"Failed to switch to branch {branch}", details=checkout)
        return OperationResult.ok(f"Tracking remote branch {branch}")

    local = await runner.run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
    if local.success:
        switch = await runner.run(["checkout", branch])
        if not switch.success:
            return OperationResult.fail(f"Failed to switch to local branch {branch}", details=switch)
    else:
        create = await runner.run(["checkout", "-b", branch])
        if not create.success:
            return OperationResult.fail(f"Failed to create local branch {branch}", details=create)

    head = await runner.run(["rev-parse", "--verify", "--quiet", "HEAD"])
    if not head.success:
        initial = await runner.run(
            [*identity_args(committer), "commit", "--allow-empty", "-m", "Initialize cloud saves"]
        )
        if not initial.success:
            return OperationResult.fail("Failed to create initial commit", details=initial)

    push = await runner.run(["push", "--set-upstream", "origin", branch])
    if not push.success:
        return OperationResult.fail(
            f"Could not create remote branch {branch}; create it manually or check permissions",
            code=REMOTE_FAILED,
            details=push,
        )
    return OperationResult.ok(f"Created remote branch {branch}")


async def reinitialize_repo(runner: GitRunner, repo_url: str = "") -> OperationResult:
    """Discard the data directory's git history and start fresh.

    Warning: removes ``<data dir>/.git``.
    """
    git_dir = runner.data_dir / ".git"
    if git_dir.exists():
        logger.warning(f"Removing git metadata at {git_dir}")
        try:
            shutil.rmtree(git_dir)
        except OSError as e:
            logger.error(f"Failed to remove {git_dir}: {e}")

    init = await initialize_repo(runner)
    if not init.success:
        return OperationResult.fail(
            f"Failed to initialize git repository: {init.message}",
            code=init.code or GIT_FAILED,
            details=init.details,
        )

    if not repo_url:
        return OperationResult.ok("Repository initialized")

    remote = await configure_remote(runner, repo_url)
    if not remote.success:
        return OperationResult.ok(
            "Repository initialized, but configuring the remote failed; check the repository URL",
            warning=True,
            details=remote.to_dict(),
        )
    return OperationResult.ok("Repository initialized and remote configured")
