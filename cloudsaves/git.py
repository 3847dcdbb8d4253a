"""Git command runner for Cloud Saves.

Every git invocation in the engine goes through ``GitRunner.run``:
- Runs ``git <args>`` as a subprocess without blocking the event loop
- Never raises; failures come back as a failed ``GitResult``
- Embeds the access token into the ``origin`` URL for network commands
  against the managed data directory, and always restores the original URL

The token is only substituted when operating on the managed data directory.
Commands run elsewhere (e.g. the update check against the install directory)
use the remote as configured. ``clone`` is the exception: its URL argument is
rewritten before dispatch regardless of directory.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Commands that talk to the remote and need credentials
REMOTE_COMMANDS = frozenset({"push", "pull", "fetch", "ls-remote"})

BINARY_DIFF_PLACEHOLDER = "[binary diff output omitted]"

PLACEHOLDER_EMAIL = "cloud-saves@localhost"

_TOKEN_IN_URL = re.compile(r"(x-access-token:)[^@\s]+@")


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class GitResult:
    """Outcome of one git command."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    @property
    def output(self) -> str:
        """Stripped stdout."""
        return self.stdout.strip()

    def to_dict(self) -> dict:
        """Serialize for result details (tokens redacted)."""
        data = {
            "success": self.success,
            "stdout": redact(self.stdout),
            "stderr": redact(self.stderr),
        }
        if self.error is not None:
            data["error"] = redact(self.error)
        return data


# =============================================================================
# URL Helpers
# =============================================================================


def redact(text: str) -> str:
    """Hide access tokens embedded in URLs."""
    return _TOKEN_IN_URL.sub(r"\1***@", text) if text else text


def needs_token(url: str) -> bool:
    """True for https URLs that carry no credentials yet."""
    if not url.startswith("https://"):
        return False
    host = url[len("https://"):].split("/", 1)[0]
    return "@" not in host


def with_token(url: str, token: str) -> str:
    """Embed an access token into an https URL."""
    return url.replace("https://", f"https://x-access-token:{token}@", 1)


def identity_args(name: str, email: str = PLACEHOLDER_EMAIL) -> list[str]:
    """``-c`` options that set the committer/tagger identity for one command."""
    return ["-c", f"user.name={name}", "-c", f"user.email={email}"]


# =============================================================================
# Runner
# =============================================================================


class GitRunner:
    """Executes git commands against the managed data directory."""

    def __init__(
        self,
        data_dir: Path,
        token_provider: Callable[[], str | None] | None = None,
        git_binary: str = "git",
    ):
        self.data_dir = Path(data_dir)
        self._token_provider = token_provider or (lambda: None)
        self.git_binary = git_binary

    def _is_data_dir(self, path: Path) -> bool:
        return path.resolve() == self.data_dir.resolve()

    async def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        input: str | None = None,
    ) -> GitResult:
        """Run ``git <args>`` and report the outcome.

        Args:
            args: Git arguments (without the 'git' prefix)
            cwd: Working directory (defaults to the data directory)
            input: Text piped to stdin

        Returns:
            GitResult; never raises
        """
        args = list(args)
        execute_in = Path(cwd) if cwd is not None else self.data_dir
        command = args[0] if args else ""
        original_url = ""
        url_swapped = False

        try:
            token = self._token_provider()

            if token and command in REMOTE_COMMANDS and self._is_data_dir(execute_in):
                original_url = await self._get_remote_url(execute_in)
                if original_url and needs_token(original_url):
                    logger.info(f"Temporarily setting token remote URL for: git {command}")
                    swap = await self._exec(
                        ["remote", "set-url", "origin", with_token(original_url, token)],
                        execute_in,
                    )
                    if not swap.success:
                        raise RuntimeError(f"Failed to set remote URL: {redact(swap.stderr)}")
                    url_swapped = True

            if token and command == "clone":
                args = [with_token(a, token) if needs_token(a) else a for a in args]

            logger.info(f"[{execute_in.name}] git {redact(' '.join(args))}")
            result = await self._exec(args, execute_in, input)

            if url_swapped:
                url_swapped = not await self._restore_url(execute_in, original_url)

            if not result.success:
                self._log_failure(args, execute_in, result)
            return result

        except Exception as e:
            error = GitResult(success=False, error=str(e))
            self._log_failure(args, execute_in, error)
            if url_swapped:
                logger.warning("Command failed, restoring original remote URL")
                url_swapped = not await self._restore_url(execute_in, original_url)
            return error

        finally:
            if url_swapped:
                logger.warning("Restoring original remote URL during final cleanup")
                await self._restore_url(execute_in, original_url)

    async def _get_remote_url(self, cwd: Path) -> str:
        result = await self._exec(["remote", "get-url", "origin"], cwd)
        if not result.success:
            logger.warning(f"[{cwd.name}] Could not read origin URL: {result.stderr.strip()}")
            return ""
        return result.output

    async def _restore_url(self, cwd: Path, url: str) -> bool:
        """Put the original origin URL back. Best-effort."""
        try:
            result = await self._exec(["remote", "set-url", "origin", url], cwd)
        except Exception as e:
            logger.error(f"Failed to restore remote URL: {e}")
            return False
        if not result.success:
            logger.error(f"Failed to restore remote URL: {result.stderr.strip()}")
        return result.success

    async def _exec(
        self,
        args: list[str],
        cwd: Path,
        input: str | None = None,
    ) -> GitResult:
        """Spawn git and collect its output.

        Spawn errors (missing binary or directory) propagate to ``run``.
        """
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        # Security: no shell, argument vector only
        process = await asyncio.create_subprocess_exec(
            self.git_binary,
            *args,
            cwd=str(cwd),
            env=env,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_data, stderr_data = await process.communicate(
            input.encode("utf-8") if input is not None else None
        )
        stdout = stdout_data.decode("utf-8", errors="replace")
        stderr = stderr_data.decode("utf-8", errors="replace")

        if process.returncode == 0:
            return GitResult(success=True, stdout=stdout, stderr=stderr)
        return GitResult(
            success=False,
            stdout=stdout,
            stderr=stderr,
            error=f"git {args[0] if args else ''} exited with status {process.returncode}",
        )

    def _log_failure(self, args: list[str], cwd: Path, result: GitResult) -> None:
        stdout = result.stdout
        if args[:2] == ["diff", "--binary"]:
            stdout = BINARY_DIFF_PLACEHOLDER
        logger.error(
            f"[{cwd.name}] git command failed: git {redact(' '.join(args))}\n"
            f"Error: {redact(result.error or '')}\n"
            f"Stdout: {redact(stdout)}\n"
            f"Stderr: {redact(result.stderr)}"
        )
