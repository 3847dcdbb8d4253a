"""Save lifecycle engine for Cloud Saves.

A save is an annotated tag ``save_<millis>_<encoded name>`` pointing at a
commit that holds the full content of the data directory. The tag message
is the description followed by a ``Last Updated: <ISO timestamp>`` line.

Operations (each one-shot, serialized by the session lock):
    create_save      stage + commit + tag + push
    list_saves       fetch tags, enumerate save_* newest first
    load_save        stash local changes, detached checkout of the save
    delete_save      drop the tag locally and remotely
    rename_save      retag in place, or mint a new identity
    overwrite_save   re-point a tag at the current content
    diff_saves       name-status comparison between two refs

Remote side effects that fail after a local change succeeded are reported
as success with a warning instead of being rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from cloudsaves.config import CloudSavesConfig, ConfigStore
from cloudsaves.git import GitResult, GitRunner, identity_args
from cloudsaves.naming import TAG_GLOB, build_tag, display_name, parse_tag
from cloudsaves.repo import is_initialized
from cloudsaves.results import NOT_FOUND, REMOTE_FAILED, OperationResult
from cloudsaves.session import Session, exclusive

logger = logging.getLogger(__name__)

# Git's well-known hash of the empty tree
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

LAST_UPDATED_PREFIX = "Last Updated:"
STASH_LABEL = "cloud-saves: temporary stash before loading save"

# NUL between fields, ASCII record separator after each tag (messages span lines)
_LIST_FORMAT = (
    "%(refname:short)%00%(*objectname)%00%(creatordate:iso-strict)%00%(taggername)"
    "%00%(subject)%00%(contents)%1e"
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class SaveEntry:
    """One save as shown in a listing."""

    name: str
    tag: str
    created_at: str
    updated_at: str
    description: str
    creator: str
    commit: str | None = None
    decodable: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "tag": self.tag,
            "commit": self.commit,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "description": self.description,
            "creator": self.creator,
            "decodable": self.decodable,
        }


_STATUS_KINDS = {
    "A": "added",
    "M": "modified",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
}


@dataclass(frozen=True)
class ChangedFile:
    """A file that differs between two refs."""

    status: str  # Raw git status: A, M, D, R100, C75, T...
    file_name: str
    old_file_name: str | None = None  # Source path for renames/copies

    @property
    def kind(self) -> str:
        """Human-readable status; unknown codes pass through."""
        return _STATUS_KINDS.get(self.status[:1], self.status)

    def to_dict(self) -> dict:
        data = {"status": self.status, "file_name": self.file_name, "kind": self.kind}
        if self.old_file_name is not None:
            data["old_file_name"] = self.old_file_name
        return data


# =============================================================================
# Helpers
# =============================================================================


def _iso_utc(dt: datetime) -> str:
    """Millisecond ISO-8601 in UTC with a Z suffix."""
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return _iso_utc(datetime.now(UTC))


def _normalize_timestamp(value: str) -> str | None:
    try:
        return _iso_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        return None


def default_description(name: str) -> str:
    return f"Checkpoint: {name}"


def build_tag_message(description: str, timestamp: str) -> str:
    """Tag annotation: description plus the Last Updated line."""
    return f"{description}\n{LAST_UPDATED_PREFIX} {timestamp}"


def parse_tag_record(record: str) -> SaveEntry | None:
    """Parse one ``_LIST_FORMAT`` record; None for foreign or malformed tags."""
    parts = record.split("\0")
    if len(parts) < 6:
        return None

    tag, commit, created_raw, tagger, subject = (p.strip() for p in parts[:5])
    body = "\0".join(parts[5:])

    parsed = parse_tag(tag)
    if parsed is None:
        return None

    created_at = _normalize_timestamp(created_raw) or created_raw
    updated_at = created_at
    description_lines = []
    for line in body.splitlines():
        if line.startswith(LAST_UPDATED_PREFIX):
            stamp = _normalize_timestamp(line[len(LAST_UPDATED_PREFIX):])
            if stamp:
                updated_at = stamp
            continue
        description_lines.append(line)

    description = "\n".join(description_lines).strip() or subject

    if not parsed.decoded:
        logger.warning(f"Could not decode save name from tag {tag}")

    return SaveEntry(
        name=parsed.name,
        tag=tag,
        created_at=created_at,
        updated_at=updated_at,
        description=description,
        creator=tagger or "Unknown",
        commit=commit or None,
        decodable=parsed.decoded,
    )


def parse_name_status(output: str) -> list[ChangedFile]:
    """Parse ``git diff --name-status -z`` output."""
    tokens = output.split("\0")
    while tokens and tokens[-1] == "":
        tokens.pop()

    changed: list[ChangedFile] = []
    i = 0
    while i < len(tokens):
        status = tokens[i].strip()
        if status[:1] in ("R", "C") and i + 2 < len(tokens):
            changed.append(ChangedFile(status, tokens[i + 2], old_file_name=tokens[i + 1]))
            i += 3
        elif i + 1 < len(tokens):
            changed.append(ChangedFile(status, tokens[i + 1]))
            i += 2
        else:
            break
    return changed


def _nothing_to_commit(result: GitResult) -> bool:
    return "nothing to commit" in result.stdout or "nothing to commit" in result.stderr


# =============================================================================
# Engine
# =============================================================================


class CheckpointEngine:
    """Maps user-level saves onto commits and annotated tags."""

    def __init__(self, runner: GitRunner, config_store: ConfigStore, session: Session):
        self.runner = runner
        self.config_store = config_store
        self.session = session

    # -------------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------------

    def _update_config(self, mutate: Callable[[CloudSavesConfig], bool | None]) -> None:
        """Re-read config, apply mutate, and persist unless it returns False."""
        config = self.config_store.load()
        if mutate(config) is False:
            return
        self.config_store.save(config).unwrap()

    async def _tag_exists(self, tag: str) -> GitResult | None:
        """The ``tag -l`` result when tag exists locally, else None."""
        result = await self.runner.run(["tag", "-l", tag])
        if result.success and result.output:
            return result
        return None

    async def _has_changes(self) -> bool:
        status = await self.runner.run(["status", "--porcelain"])
        return status.success and bool(status.output)

    async def _push_branch_if_current(self, branch: str) -> None:
        """Push branch when HEAD is on it. Failure is only a warning."""
        symbolic = await self.runner.run(["symbolic-ref", "--short", "-q", "HEAD"])
        current = symbolic.output if symbolic.success else ""
        if not current:
            logger.info("Detached HEAD, skipping branch push")
            return
        if current != branch:
            logger.info(f"Not on configured branch {branch} (on {current}), skipping branch push")
            return
        await self._push_branch(branch)

    async def _push_branch(self, branch: str) -> None:
        push = await self.runner.run(["push", "origin", branch])
        if not push.success:
            logger.warning(f"Failed to push branch {branch}: {push.stderr.strip()}")

    async def _delete_remote_tag(self, tag: str) -> GitResult:
        return await self.runner.run(["push", "origin", f":refs/tags/{tag}"])

    async def _push_tag(self, tag: str, force: bool = False) -> GitResult:
        args = ["push"]
        if force:
            args.append("--force")
        args += ["origin", f"refs/tags/{tag}"]
        return await self.runner.run(args)

    async def _find_temp_stash(self) -> tuple[bool, str | None]:
        """(listed ok, stash ref) of the newest interrupted-work entry."""
        listing = await self.runner.run(["stash", "list", "--format=%gd%x00%s"])
        if not listing.success:
            return False, None
        for line in listing.output.splitlines():
            ref, _, subject = line.partition("\0")
            if STASH_LABEL in subject:
                return True, ref
        return True, None

    # -------------------------------------------------------------------------
    # Create / list
    # -------------------------------------------------------------------------

    @exclusive("create_save")
    async def create_save(self, name: str, description: str | None = None) -> OperationResult:
        """Snapshot the data directory as a new save."""
        logger.info(f"Creating save: {name}")
        config = self.config_store.load()
        identity = identity_args(config.committer_name)
        tag = build_tag(name)

        add = await self.runner.run(["add", "-A"])
        if not add.success:
            return OperationResult.fail("Failed to stage changes", details=add)

        committed = await self._has_changes()
        if committed:
            commit = await self.runner.run([*identity, "commit", "-m", f"Checkpoint: {name}"])
            if not commit.success:
                if not _nothing_to_commit(commit):
                    return OperationResult.fail("Failed to commit changes", details=commit)
                logger.info("Nothing to commit")
                committed = False

        timestamp = now_iso()
        description = description or ""
        message = build_tag_message(description or default_description(name), timestamp)
        tag_result = await self.runner.run([*identity, "tag", "-a", tag, "-m", message])
        if not tag_result.success:
            return OperationResult.fail("Failed to create save tag", details=tag_result)

        if committed:
            await self._push_branch_if_current(config.branch)

        push = await self._push_tag(tag)
        if not push.success:
            await self.runner.run(["tag", "-d", tag])
            return OperationResult.fail(
                "Failed to push save tag to remote",
                code=REMOTE_FAILED,
                details=push,
            )

        last_save = {
            "name": name,
            "tag": tag,
            "timestamp": timestamp,
            "description": description,
        }

        def record(cfg: CloudSavesConfig) -> None:
            cfg.last_save = last_save

        self._update_config(record)

        return OperationResult.ok(
            "Save created",
            save={**last_save, "created_at": timestamp, "updated_at": timestamp},
        )

    @exclusive("list_saves")
    async def list_saves(self, branch: str | None = None) -> OperationResult:
        """List saves from the remote, newest first.

        With branch given, that branch is fetched first (failure only warns).
        """
        if branch:
            branch_fetch = await self.runner.run(["fetch", "origin", branch])
            if not branch_fetch.success:
                logger.warning(f"Failed to fetch branch {branch}: {branch_fetch.stderr.strip()}")

        fetch = await self.runner.run(["fetch", "--tags"])
        if not fetch.success:
            return OperationResult.fail(
                "Failed to fetch tags from remote",
                code=REMOTE_FAILED,
                details=fetch,
            )

        listing = await self.runner.run(
            ["tag", "-l", TAG_GLOB, "--sort=-creatordate", f"--format={_LIST_FORMAT}"]
        )
        if not listing.success:
            return OperationResult.fail("Failed to list save tags", details=listing)

        saves = []
        for record in listing.stdout.split("\x1e"):
            record = record.strip("\n")
            if not record.strip():
                continue
            entry = parse_tag_record(record)
            if entry is not None:
                saves.append(entry)

        return OperationResult.ok(f"Found {len(saves)} saves", saves=[s.to_dict() for s in saves])

    # -------------------------------------------------------------------------
    # Load / delete
    # -------------------------------------------------------------------------

    @exclusive("load_save")
    async def load_save(self, tag: str) -> OperationResult:
        """Switch the data directory to a save (detached HEAD)."""
        logger.info(f"Loading save: {tag}")
        if await self._tag_exists(tag) is None:
            return OperationResult.fail("Save not found", code=NOT_FOUND)

        stash_created = False
        if await self._has_changes():
            logger.info("Uncommitted changes found, stashing before load")
            identity = identity_args(self.config_store.load().committer_name)
            stash = await self.runner.run([*identity, "stash", "push", "-u", "-m", STASH_LABEL])
            stash_created = stash.success and "No local changes to save" not in stash.stdout
            if stash_created:
                logger.info("Temporary stash created")
            else:
                logger.warning("No temporary stash created")

        resolved = await self.runner.run(["rev-list", "-n", "1", tag])
        if not resolved.success:
            await self._restore_stash(stash_created)
            return OperationResult.fail("Failed to resolve save commit", details=resolved)

        checkout = await self.runner.run(["checkout", resolved.output])
        if not checkout.success:
            await self._restore_stash(stash_created)
            return OperationResult.fail("Failed to switch to save", details=checkout)

        loaded_at = now_iso()

        def record(cfg: CloudSavesConfig) -> None:
            cfg.current_save = {"tag": tag, "loaded_at": loaded_at}
            if stash_created:
                cfg.has_temp_stash = True

        self._update_config(record)

        return OperationResult.ok("Save loaded", stash_created=stash_created)

    async def _restore_stash(self, stash_created: bool) -> None:
        if not stash_created:
            return
        pop = await self.runner.run(["stash", "pop"])
        if not pop.success:
            logger.error(f"Failed to restore temporary stash: {pop.stderr.strip()}")

    @exclusive("delete_save")
    async def delete_save(self, tag: str) -> OperationResult:
        """Delete a save locally, then remotely."""
        logger.info(f"Deleting save: {tag}")
        if await self._tag_exists(tag) is None:
            return OperationResult.fail("Save not found", code=NOT_FOUND)

        local = await self.runner.run(["tag", "-d", tag])
        if not local.success:
            return OperationResult.fail("Failed to delete local save", details=local)

        def clear_current(cfg: CloudSavesConfig) -> bool:
            if cfg.current_save and cfg.current_save.get("tag") == tag:
                cfg.current_save = None
                return True
            return False

        self._update_config(clear_current)

        remote = await self._delete_remote_tag(tag)
        if not remote.success:
            logger.warning(f"Deleted {tag} locally but remote delete failed: {remote.stderr.strip()}")
            return OperationResult.ok(
                "Local save deleted, but deleting the remote save failed (network or permissions)",
                warning=True,
                details=remote,
            )

        return OperationResult.ok("Save deleted")

    # -------------------------------------------------------------------------
    # Rename / overwrite
    # -------------------------------------------------------------------------

    @exclusive("rename_save")
    async def rename_save(
        self,
        old_tag: str,
        new_name: str,
        description: str | None = None,
    ) -> OperationResult:
        """Rename a save or update its description.

        Same display name: the tag is re-annotated in place and force-pushed.
        New name: a fresh tag identity is minted on the same commit.
        """
        logger.info(f"Renaming save: {old_tag} -> {new_name}")
        config = self.config_store.load()
        identity = identity_args(config.committer_name)

        if await self._tag_exists(old_tag) is None:
            return OperationResult.fail("Save not found", code=NOT_FOUND)

        resolved = await self.runner.run(["rev-list", "-n", "1", old_tag])
        if not resolved.success:
            return OperationResult.fail("Failed to resolve save commit", details=resolved)
        commit = resolved.output

        message = build_tag_message(description or default_description(new_name), now_iso())

        if display_name(old_tag) == new_name:
            update = await self.runner.run(
                [*identity, "tag", "-a", "-f", old_tag, "-m", message, commit]
            )
            if not update.success:
                return OperationResult.fail("Failed to update local tag", details=update)

            push = await self._push_tag(old_tag, force=True)
            if not push.success:
                logger.warning(f"Force push of {old_tag} failed: {push.stderr.strip()}")
                return OperationResult.fail(
                    "Failed to force-push the updated tag; check permissions or network",
                    code=REMOTE_FAILED,
                    warning=True,
                    details=push,
                )
            return OperationResult.ok(
                "Save description updated",
                old_tag=old_tag,
                new_tag=old_tag,
                new_name=new_name,
            )

        new_tag = build_tag(new_name)
        created = await self.runner.run([*identity, "tag", "-a", new_tag, "-m", message, commit])
        if not created.success:
            return OperationResult.fail("Failed to create new save tag", details=created)

        push = await self._push_tag(new_tag)
        if not push.success:
            await self.runner.run(["tag", "-d", new_tag])
            return OperationResult.fail(
                "Failed to push new save tag to remote",
                code=REMOTE_FAILED,
                details=push,
            )

        local = await self.runner.run(["tag", "-d", old_tag])
        if not local.success:
            logger.warning(f"Failed to delete old local tag {old_tag}")
        remote = await self._delete_remote_tag(old_tag)
        if not remote.success:
            logger.warning(f"Failed to delete old remote tag {old_tag}: {remote.stderr.strip()}")

        def repoint(cfg: CloudSavesConfig) -> None:
            if cfg.current_save and cfg.current_save.get("tag") == old_tag:
                cfg.current_save = {**cfg.current_save, "tag": new_tag}
            if cfg.last_save and cfg.last_save.get("tag") == old_tag:
                cfg.last_save = {**cfg.last_save, "tag": new_tag, "name": new_name}
            if cfg.auto_save_target_tag == old_tag:
                cfg.auto_save_target_tag = new_tag

        self._update_config(repoint)

        return OperationResult.ok(
            "Save renamed",
            old_tag=old_tag,
            new_tag=new_tag,
            new_name=new_name,
        )

    @exclusive("overwrite_save")
    async def overwrite_save(self, tag: str) -> OperationResult:
        """Re-point a save at the current data directory content."""
        return await self._overwrite(tag, f"Overwrite save: {tag}", record_last_save=True)

    @exclusive("auto_save")
    async def auto_overwrite(self, tag: str) -> OperationResult:
        """Scheduler variant of overwrite; leaves last_save alone."""
        return await self._overwrite(tag, f"Auto Save Overwrite: {tag}", record_last_save=False)

    async def _overwrite(self, tag: str, commit_message: str, record_last_save: bool) -> OperationResult:
        logger.info(f"Overwriting save: {tag}")
        config = self.config_store.load()
        identity = identity_args(config.committer_name)

        if await self._tag_exists(tag) is None:
            # Saves made on another device may only exist on origin
            fetched = await self.runner.run(["fetch", "--no-tags", "origin", "tag", tag])
            if not fetched.success:
                logger.info(f"Tag {tag} not found locally or on origin, creating it")

        description = f"Overwrite of {tag}"
        contents = await self.runner.run(["tag", "-l", tag, "--format=%(contents)"])
        if contents.success and contents.output:
            description = contents.output.splitlines()[0]

        add = await self.runner.run(["add", "-A"])
        if not add.success:
            return OperationResult.fail("Failed to stage changes", details=add)

        committed = False
        if await self._has_changes():
            commit = await self.runner.run([*identity, "commit", "-m", commit_message])
            if commit.success:
                committed = True
            elif not _nothing_to_commit(commit):
                return OperationResult.fail("Failed to commit overwrite", details=commit)

        head = await self.runner.run(["rev-parse", "HEAD"])
        if not head.success:
            return OperationResult.fail("Failed to resolve HEAD commit", details=head)
        commit_hash = head.output

        if committed:
            await self._push_branch(config.branch)

        await self.runner.run(["tag", "-d", tag])
        remote_delete = await self._delete_remote_tag(tag)
        if not remote_delete.success and "remote ref does not exist" not in remote_delete.stderr:
            logger.warning(f"Problem deleting remote tag {tag}: {remote_delete.stderr.strip()}")

        timestamp = now_iso()
        message = build_tag_message(description, timestamp)
        retag = await self.runner.run([*identity, "tag", "-a", tag, "-m", message, commit_hash])
        if not retag.success:
            return OperationResult.fail(f"Failed to recreate tag {tag}", details=retag)

        push = await self._push_tag(tag)
        if not push.success:
            await self.runner.run(["tag", "-d", tag])
            return OperationResult.fail(
                f"Failed to push tag {tag} to remote",
                code=REMOTE_FAILED,
                details=push,
            )

        if record_last_save:

            def record(cfg: CloudSavesConfig) -> bool:
                if not cfg.last_save or cfg.last_save.get("tag") != tag:
                    return False
                cfg.last_save = {
                    "name": display_name(tag),
                    "tag": tag,
                    "timestamp": timestamp,
                    "description": description,
                }
                return True

            self._update_config(record)

        logger.info(f"Overwrote save {tag} -> {commit_hash[:7]}")
        return OperationResult.ok("Save overwritten", tag=tag, commit=commit_hash, updated_at=timestamp)

    # -------------------------------------------------------------------------
    # Diff
    # -------------------------------------------------------------------------

    @exclusive("get_save_diff")
    async def diff_saves(self, ref1: str, ref2: str) -> OperationResult:
        """Files changed between two refs.

        An unresolvable ``<ref>^`` / ``<ref>~1`` (parent of the first save)
        is compared as the empty tree.
        """
        logger.info(f"Diff: {ref1} <-> {ref2}")
        check1 = await self.runner.run(["rev-parse", "--verify", ref1])
        if not check1.success and ref1 != EMPTY_TREE:
            if ref1.endswith("^") or ref1.endswith("~1"):
                logger.info(f"Cannot resolve {ref1}, comparing against the empty tree")
                ref1 = EMPTY_TREE
            else:
                return OperationResult.fail(
                    f"Reference not found or invalid: {ref1}",
                    code=NOT_FOUND,
                    details=check1,
                )

        check2 = await self.runner.run(["rev-parse", "--verify", ref2])
        if not check2.success:
            return OperationResult.fail(
                f"Reference not found or invalid: {ref2}",
                code=NOT_FOUND,
                details=check2,
            )

        diff = await self.runner.run(["diff", "--name-status", "-z", ref1, ref2])
        if diff.success:
            files = parse_name_status(diff.stdout)
            return OperationResult.ok(
                f"{len(files)} files changed",
                changed_files=[f.to_dict() for f in files],
            )

        if ref1 != EMPTY_TREE:
            return OperationResult.fail("Failed to list changed files", details=diff)

        logger.info(f"Listing every file in {ref2} as added")
        tree = await self.runner.run(["ls-tree", "-r", "--name-only", "-z", ref2])
        if not tree.success:
            return OperationResult.fail("Failed to list files of the initial save", details=tree)
        files = [ChangedFile("A", name) for name in tree.stdout.split("\0") if name]
        return OperationResult.ok(
            f"{len(files)} files changed",
            changed_files=[f.to_dict() for f in files],
        )

    # -------------------------------------------------------------------------
    # Interrupted work
    # -------------------------------------------------------------------------

    async def check_temp_stash(self) -> dict:
        """Whether an interrupted-work stash is outstanding.

        Clears a stale ``has_temp_stash`` flag when no labelled stash exists.
        """
        config = self.config_store.load()
        if not config.has_temp_stash:
            return {"exists": False}

        listed, ref = await self._find_temp_stash()
        if not listed:
            return {"exists": False, "error": "Failed to check stash list"}

        if ref is None:
            logger.info("Temporary stash flag set but no stash found, clearing flag")

            def clear(cfg: CloudSavesConfig) -> None:
                cfg.has_temp_stash = False

            self._update_config(clear)
            return {"exists": False}

        return {"exists": True}

    @exclusive("apply_stash")
    async def apply_temp_stash(self) -> OperationResult:
        """Re-apply the interrupted-work stash onto the data directory."""
        return await self._consume_temp_stash("apply")

    @exclusive("discard_stash")
    async def discard_temp_stash(self) -> OperationResult:
        """Drop the interrupted-work stash."""
        return await self._consume_temp_stash("drop")

    async def _consume_temp_stash(self, action: str) -> OperationResult:
        config = self.config_store.load()
        if not config.has_temp_stash:
            return OperationResult.fail("No temporary stash found", code=NOT_FOUND)

        listed, ref = await self._find_temp_stash()
        if not listed:
            return OperationResult.fail("Failed to check stash list")
        if ref is None:

            def clear(cfg: CloudSavesConfig) -> None:
                cfg.has_temp_stash = False

            self._update_config(clear)
            return OperationResult.fail("No temporary stash found", code=NOT_FOUND)

        result = await self.runner.run(["stash", action, ref])
        if not result.success:
            verb = "apply" if action == "apply" else "discard"
            return OperationResult.fail(f"Failed to {verb} stash", details=result)

        def clear_flag(cfg: CloudSavesConfig) -> None:
            cfg.has_temp_stash = False

        self._update_config(clear_flag)

        if action == "apply":
            return OperationResult.ok("Temporary stash applied")
        return OperationResult.ok("Temporary stash discarded")

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def get_status(self) -> OperationResult:
        """Repository state for display: changes, branch, current save."""
        initialized = await is_initialized(self.runner)

        changes: list[str] = []
        current_branch = None
        if initialized:
            status = await self.runner.run(["status", "--porcelain"])
            if not status.success:
                return OperationResult.fail("Failed to read git status", details=status)
            changes = [line for line in status.stdout.splitlines() if line.strip()]

            branch = await self.runner.run(["branch", "--show-current"])
            if branch.success:
                current_branch = branch.output

        config = self.config_store.load()
        temp_stash = await self.check_temp_stash() if initialized else {"exists": False}

        return OperationResult.ok(
            "Status retrieved",
            status={
                "initialized": initialized,
                "changes": changes,
                "current_branch": current_branch,
                "current_save": config.current_save,
                "temp_stash": temp_stash,
            },
        )
