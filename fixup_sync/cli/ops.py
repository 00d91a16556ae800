"""
CLI ops commands — repository status and the pause lock.

Usage:
    python -m fixup_sync status [--json]
    python -m fixup_sync pause
    python -m fixup_sync resume
"""

from __future__ import annotations

import click

from .common import load_from_context, make_gateway


def _repo_status(gateway, repo) -> dict:
    """Collect what the gateway can tell about one repository."""
    from ..errors import GatewayError, NoSuchRevisionError

    info = {
        "path": str(repo.path),
        "is_repository": False,
        "branch": None,
        "head": None,
        "uncommitted_changes": None,
        "error": None,
    }
    try:
        if not gateway.is_repository(repo):
            return info
        info["is_repository"] = True
        info["branch"] = gateway.current_branch(repo) or None
        try:
            info["head"] = gateway.head_commit(repo)
        except NoSuchRevisionError:
            info["head"] = None
        info["uncommitted_changes"] = gateway.has_uncommitted_changes(repo)
    except GatewayError as e:
        info["error"] = str(e)
    return info


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show branch, head and pause state of both repositories."""
    config = load_from_context(ctx)
    gateway = make_gateway(config)
    source, mirror = config.source_ref(), config.mirror_ref()

    result = {
        "paused": gateway.has_paused(source, config.pause_lock_file),
        "pause_lock_file": str(source.path / config.pause_lock_file),
        "source": _repo_status(gateway, source),
        "mirror": _repo_status(gateway, mirror),
        "sync_interval": config.sync_interval,
        "fixup_interval": config.fixup_interval,
        "autosquash_enabled": config.autosquash_enabled,
    }

    if as_json:
        import json
        click.echo(json.dumps(result, indent=2))
        return

    click.echo()
    if result["paused"]:
        click.secho("⏸  Sync: PAUSED", fg="yellow", bold=True)
        click.echo(f"   Lock file: {result['pause_lock_file']}")
    else:
        click.secho("▶  Sync: ACTIVE", fg="green", bold=True)
    click.echo(f"   Intervals: sync every {config.sync_interval}, fixup every {config.fixup_interval}")
    click.echo()

    for label in ("source", "mirror"):
        info = result[label]
        click.secho(f"{label.capitalize()}: ", bold=True, nl=False)
        click.echo(info["path"])
        if not info["is_repository"]:
            click.secho("  ✗ not a git repository", fg="red")
            continue
        if info["error"]:
            click.secho(f"  ✗ {info['error']}", fg="red")
            continue
        click.echo(f"  Branch: {info['branch'] or '(detached)'}")
        click.echo(f"  HEAD:   {info['head'][:8] if info['head'] else '(no commits)'}")
        if info["uncommitted_changes"]:
            click.secho("  Uncommitted changes: yes", fg="yellow")
        else:
            click.echo("  Uncommitted changes: no")
    click.echo()

    source_branch = result["source"]["branch"]
    mirror_branch = result["mirror"]["branch"]
    if source_branch and mirror_branch and source_branch != mirror_branch:
        click.secho(
            f"⚠️  Branches differ: next sync switches mirror to '{source_branch}'",
            fg="yellow",
        )


@click.command("pause")
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause sync and fixup by creating the lock file in the source repository."""
    config = load_from_context(ctx)
    lock = config.source_repo / config.pause_lock_file

    if lock.exists():
        click.echo(f"Already paused ({lock})")
        return

    try:
        lock.touch()
    except OSError as e:
        raise click.ClickException(f"Could not create {lock}: {e}")
    click.secho(f"⏸  Paused — remove {lock} or run 'resume' to continue", fg="yellow")


@click.command("resume")
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Resume sync and fixup by removing the pause lock file."""
    config = load_from_context(ctx)
    lock = config.source_repo / config.pause_lock_file

    if not lock.exists():
        click.echo("Not paused")
        return

    try:
        lock.unlink()
    except OSError as e:
        raise click.ClickException(f"Could not remove {lock}: {e}")
    click.secho("▶  Resumed", fg="green")
