"""Cloud Saves CLI - git-backed checkpoints of a data directory."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cloudsaves import __version__
from cloudsaves.config import ConfigStore
from cloudsaves.errors import UnwrapError, format_error
from cloudsaves.results import OperationResult
from cloudsaves.service import EDITABLE_KEYS, CloudSavesService

console = Console()


def _service(ctx: click.Context) -> CloudSavesService:
    opts = ctx.obj
    return CloudSavesService(config_store=ConfigStore(opts["config"]), data_dir=opts["data_dir"])


def _run(ctx: click.Context, call) -> OperationResult:
    """Run call(service) on a fresh event loop."""
    service = _service(ctx)

    async def runner():
        try:
            return await call(service)
        finally:
            await service.shutdown()

    try:
        return asyncio.run(runner())
    except UnwrapError as e:
        console.print(f"[red]{format_error(e.error)}[/red]")
        sys.exit(1)


def _report(result: OperationResult) -> None:
    """Print the outcome; failures exit with status 1."""
    if not result.success:
        console.print(f"[red]{result.message}[/red]")
        sys.exit(1)
    if result.warning:
        console.print(f"[yellow]⚠[/yellow] {result.message}")
    else:
        console.print(f"[green]✓[/green] {result.message}")


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path), help="Managed data directory")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Config file")
@click.option("--verbose", "-v", is_flag=True, help="Log git commands")
@click.pass_context
def main(ctx, data_dir, config_path, verbose):
    """Cloud Saves: git-backed checkpoints of a data directory."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.obj = {"data_dir": data_dir, "config": config_path}


@main.command()
@click.option("--port", "-p", default=5556, help="Port to listen on")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.pass_context
def serve(ctx, port, host):
    """Run the JSON API server."""
    from cloudsaves.ui.server import run_server

    run_server(port=port, service=_service(ctx), host=host)


# =============================================================================
# Configuration
# =============================================================================


@main.group()
def config():
    """Manage configuration (~/.cloudsaves/config.json)."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show current configuration (token masked)."""
    cfg = _service(ctx).get_config().data["config"]
    for key, value in cfg.items():
        console.print(f"  {key}: {value if value not in (None, '') else '[dim](not set)[/dim]'}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Set a configuration value.

    Examples:
        cloudsaves config set repo_url https://github.com/me/saves.git
        cloudsaves config set auto-save-interval 15
    """
    key = key.replace("-", "_")
    if key not in EDITABLE_KEYS:
        console.print(f"[red]Unknown config key: {key}[/red]")
        console.print(f"[dim]Valid keys: {', '.join(sorted(EDITABLE_KEYS))}[/dim]")
        sys.exit(1)
    _report(_run(ctx, lambda s: s.save_config(**{key: value})))


@main.command()
@click.option("--branch", "-b", help="Branch to use (default: configured branch)")
@click.pass_context
def authorize(ctx, branch):
    """Connect the data directory to the configured repository."""
    _report(_run(ctx, lambda s: s.authorize(branch)))


# =============================================================================
# Saves
# =============================================================================


@main.command()
@click.pass_context
def status(ctx):
    """Show repository status."""
    result = _run(ctx, lambda s: s.get_status())
    if not result.success:
        _report(result)
    state = result.data["status"]

    if not state["initialized"]:
        console.print("[yellow]Data directory is not a git repository yet.[/yellow]")
        console.print("Run: cloudsaves authorize")
        return

    console.print(f"Branch: {state['current_branch'] or '[dim](detached)[/dim]'}")
    current = state["current_save"]
    console.print(f"Current save: {current['tag'] if current else '[dim]none[/dim]'}")
    console.print(f"Uncommitted changes: {len(state['changes'])}")
    for line in state["changes"][:20]:
        console.print(f"  [dim]{line}[/dim]")
    if state["temp_stash"].get("exists"):
        console.print("[yellow]Interrupted work is stashed.[/yellow] Use 'cloudsaves stash apply' or 'stash discard'.")


@main.command("list")
@click.pass_context
def list_cmd(ctx):
    """List saves, newest first."""
    result = _run(ctx, lambda s: s.list_saves())
    if not result.success:
        _report(result)

    saves = result.data["saves"]
    if not saves:
        console.print("[yellow]No saves found.[/yellow]")
        console.print("Create one with: cloudsaves create <name>")
        return

    table = Table(title="Saves")
    table.add_column("Name", style="cyan")
    table.add_column("Updated")
    table.add_column("Description")
    table.add_column("Creator", style="dim")
    table.add_column("Tag", style="dim")
    for save in saves:
        table.add_row(
            save["name"],
            save["updated_at"][:19].replace("T", " "),
            save["description"].splitlines()[0] if save["description"] else "",
            save["creator"],
            save["tag"],
        )
    console.print(table)


@main.command()
@click.argument("name")
@click.option("--description", "-d", help="Save description")
@click.pass_context
def create(ctx, name, description):
    """Create a save of the data directory."""
    result = _run(ctx, lambda s: s.create_save(name, description))
    _report(result)
    console.print(f"  Tag: {result.data['save']['tag']}")


@main.command()
@click.argument("tag")
@click.pass_context
def load(ctx, tag):
    """Switch the data directory to a save."""
    result = _run(ctx, lambda s: s.load_save(tag))
    _report(result)
    if result.data.get("stash_created"):
        console.print("[yellow]Uncommitted changes were stashed.[/yellow]")


@main.command()
@click.argument("tag")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx, tag, force):
    """Delete a save locally and remotely."""
    if not force and not click.confirm(f"Delete save {tag}?"):
        console.print("Cancelled.")
        return
    _report(_run(ctx, lambda s: s.delete_save(tag)))


@main.command()
@click.argument("tag")
@click.argument("new_name")
@click.option("--description", "-d", help="New description")
@click.pass_context
def rename(ctx, tag, new_name, description):
    """Rename a save or change its description."""
    result = _run(ctx, lambda s: s.rename_save(tag, new_name, description))
    _report(result)
    if result.data.get("new_tag") != tag:
        console.print(f"  New tag: {result.data['new_tag']}")


@main.command()
@click.argument("tag")
@click.pass_context
def overwrite(ctx, tag):
    """Overwrite a save with the current data directory."""
    _report(_run(ctx, lambda s: s.overwrite_save(tag)))


@main.command()
@click.argument("ref1")
@click.argument("ref2")
@click.pass_context
def diff(ctx, ref1, ref2):
    """List files changed between two saves or refs."""
    result = _run(ctx, lambda s: s.diff_saves(ref1, ref2))
    if not result.success:
        _report(result)

    files = result.data["changed_files"]
    if not files:
        console.print("[dim]No changes.[/dim]")
        return
    for item in files:
        if item.get("old_file_name"):
            console.print(f"  {item['status']:<5} {item['old_file_name']} -> {item['file_name']}")
        else:
            console.print(f"  {item['status']:<5} {item['file_name']}")


@main.group()
def stash():
    """Manage work stashed by 'load'."""
    pass


@stash.command("apply")
@click.pass_context
def stash_apply(ctx):
    """Re-apply the stashed work."""
    _report(_run(ctx, lambda s: s.apply_temp_stash()))


@stash.command("discard")
@click.pass_context
def stash_discard(ctx):
    """Drop the stashed work."""
    _report(_run(ctx, lambda s: s.discard_temp_stash()))


# =============================================================================
# Maintenance
# =============================================================================


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def reinit(ctx, yes):
    """Delete the data directory's git history and start over."""
    if not yes and not click.confirm("This removes all local git history. Continue?"):
        console.print("Cancelled.")
        return
    _report(_run(ctx, lambda s: s.force_reinitialize()))


@main.command()
@click.pass_context
def update(ctx):
    """Pull the latest Cloud Saves release."""
    result = _run(ctx, lambda s: s.check_for_update())
    _report(result)


if __name__ == "__main__":
    main()
