"""
CLI pass commands — sync, fixup, and the combined run loop.

Usage:
    python -m fixup_sync sync [--continuous]
    python -m fixup_sync fixup [--continuous]
    python -m fixup_sync run
"""

from __future__ import annotations

import signal
from typing import Iterable

import click

from ..config.loader import SyncConfig
from ..engine.models import PASS_FIXUP, PASS_SYNC
from ..engine.passes import PassRunner
from ..scheduler import CycleScheduler
from .common import echo_result, load_from_context, make_gateway


def _run_single(config: SyncConfig, kind: str) -> None:
    runner = PassRunner(make_gateway(config), config)

    if config.verbose:
        click.echo(f"Source repository: {config.source_repo}")
        click.echo(f"Mirror repository: {config.mirror_repo}")
        if kind == PASS_FIXUP:
            click.echo(f"Autosquash enabled: {config.autosquash_enabled}")

    if kind == PASS_SYNC:
        result = runner.run_sync(dry_run=config.dry_run)
    else:
        result = runner.run_fixup(dry_run=config.dry_run)

    echo_result(result, verbose=config.verbose)
    if result.failed:
        raise SystemExit(1)


def _run_continuous(config: SyncConfig, kinds: Iterable[str]) -> None:
    kinds = list(kinds)
    runner = PassRunner(make_gateway(config), config)
    scheduler = CycleScheduler(
        runner,
        sync_interval=config.sync_interval_seconds,
        fixup_interval=config.fixup_interval_seconds,
        dry_run=config.dry_run,
        on_result=lambda r: echo_result(r, verbose=config.verbose, quiet_noop=True),
    )

    click.secho("Fixup Sync — continuous mode", bold=True)
    click.echo(f"  Source: {config.source_repo}")
    click.echo(f"  Mirror: {config.mirror_repo}")
    if PASS_SYNC in kinds:
        click.echo(f"  Sync interval:  {config.sync_interval}")
    if PASS_FIXUP in kinds:
        click.echo(f"  Fixup interval: {config.fixup_interval}")
    click.echo("  Branch: following the source repository")
    if config.dry_run:
        click.secho("  (dry run — nothing will be changed)", fg="cyan")
    click.echo("Press Ctrl+C to stop")

    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.request_stop())
    scheduler.run_forever(kinds)
    click.echo("Stopped.")


@click.command("sync")
@click.option("--continuous", is_flag=True, help="Run sync at the configured interval")
@click.pass_context
def sync(ctx: click.Context, continuous: bool) -> None:
    """Copy source changes into the mirror and commit them."""
    config = load_from_context(ctx)
    if continuous:
        _run_continuous(config, [PASS_SYNC])
    else:
        _run_single(config, PASS_SYNC)


@click.command("fixup")
@click.option("--continuous", is_flag=True, help="Run fixup at the configured interval")
@click.pass_context
def fixup(ctx: click.Context, continuous: bool) -> None:
    """Fold uncommitted mirror edits into a fixup commit."""
    config = load_from_context(ctx)
    if continuous:
        _run_continuous(config, [PASS_FIXUP])
    else:
        _run_single(config, PASS_FIXUP)


@click.command("run")
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run sync and fixup loops together until interrupted (first pass after one interval)."""
    config = load_from_context(ctx)
    _run_continuous(config, [PASS_SYNC, PASS_FIXUP])
