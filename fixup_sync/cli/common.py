"""
Shared CLI helpers — config loading and result printing.
"""

from __future__ import annotations

import click

from ..config.loader import SyncConfig, load_config
from ..engine.models import PASS_SYNC, CycleResult, CycleStatus
from ..errors import ConfigError
from ..git.cli_gateway import GitCliGateway
from ..logging_config import setup_logging


def load_from_context(ctx: click.Context) -> SyncConfig:
    """Load the config named by the global options; CLI flags win."""
    overrides = {}
    if ctx.obj.get("dry_run"):
        overrides["dry_run"] = True
    if ctx.obj.get("verbose"):
        overrides["verbose"] = True

    try:
        config = load_config(ctx.obj["config_path"], overrides=overrides)
    except ConfigError as e:
        raise click.ClickException(str(e))

    setup_logging(config.log_level, config.log_format)
    return config


def make_gateway(config: SyncConfig) -> GitCliGateway:
    return GitCliGateway(timeout=config.git_timeout)


def echo_result(result: CycleResult, verbose: bool = False, quiet_noop: bool = False) -> None:
    """Print one pass result for humans."""
    label = "Sync" if result.kind == PASS_SYNC else "Fixup"

    if result.status == CycleStatus.FAILED:
        click.secho(f"✗ {label} failed: {result.error}", fg="red")
        return

    if result.status == CycleStatus.PAUSED:
        click.secho(f"⏸  {label} paused (pause lock file present)", fg="yellow")
        return

    if result.status == CycleStatus.DRY_RUN:
        click.secho(f"[DRY RUN] {label} would perform:", fg="cyan")
        for line in result.planned:
            click.echo(f"  {line}")
        if result.change_set is not None and result.change_set.is_empty:
            click.echo("  (no file changes)")
        return

    if result.status == CycleStatus.NOOP:
        if not quiet_noop or verbose:
            if result.kind == PASS_SYNC:
                click.echo("No changes detected - sync skipped")
            else:
                click.echo("No changes to fixup")
        return

    if result.kind == PASS_SYNC and result.change_set is not None:
        changes = result.change_set
        click.secho(f"✓ Sync completed {changes.summary()}", fg="green", nl=False)
        if changes.resulting_commit:
            click.echo(f" Commit: {changes.resulting_commit[:8]}", nl=False)
        click.echo()
        if verbose:
            for path in changes.added:
                click.echo(f"  + {path}")
            for path in changes.modified:
                click.echo(f"  ~ {path}")
            for path in changes.deleted:
                click.echo(f"  - {path}")
        return

    outcome = result.fixup
    if outcome is not None:
        click.secho(f"✓ Fixup completed - {outcome.files_modified} files", fg="green", nl=False)
        if outcome.fixup_commit:
            click.echo(f" Fixup commit: {outcome.fixup_commit[:8]}", nl=False)
        if outcome.base_commit:
            click.echo(f" Base: {outcome.base_commit[:8]}", nl=False)
        click.echo()
        if verbose and outcome.squashed:
            click.echo("  Autosquash rebase: completed")
