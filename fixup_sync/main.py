"""
Fixup Sync — CLI Entry Point

Usage:
    python -m fixup_sync sync [--continuous]
    python -m fixup_sync fixup [--continuous]
    python -m fixup_sync run
    python -m fixup_sync status [--json]
    python -m fixup_sync pause | resume
    python -m fixup_sync validate-config
    python -m fixup_sync generate-config [--output FILE]

Global options (--config, --dry-run, --verbose) go before the command.
"""

from __future__ import annotations

# Load .env FIRST, before anything reads the environment
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import click

from . import __version__
from .cli.config import generate_config, validate_config
from .cli.ops import pause, resume, status
from .cli.sync import fixup, run, sync
from .config.loader import DEFAULT_CONFIG_FILE
from .logging_config import setup_logging

# Initialize logging; commands reconfigure once the config is loaded
setup_logging()


@click.group()
@click.version_option(__version__, prog_name="fixup-sync")
@click.option(
    "--config",
    "config_path",
    envvar="FIXUP_SYNC_CONFIG",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Path to the YAML configuration file",
)
@click.option("--dry-run", is_flag=True, help="Report intended operations without changing anything")
@click.option("--verbose", "-v", is_flag=True, help="List individual files and steps")
@click.pass_context
def cli(ctx: click.Context, config_path: str, dry_run: bool, verbose: bool) -> None:
    """Fixup Sync — mirror source changes and fold mirror edits into fixup commits."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path)
    ctx.obj["dry_run"] = dry_run
    ctx.obj["verbose"] = verbose


cli.add_command(sync)
cli.add_command(fixup)
cli.add_command(run)
cli.add_command(status)
cli.add_command(pause)
cli.add_command(resume)
cli.add_command(validate_config)
cli.add_command(generate_config)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
