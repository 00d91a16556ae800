"""
CLI config commands — configuration checking and generation.

Usage:
    python -m fixup_sync validate-config [--json]
    python -m fixup_sync generate-config [--output FILE] [--force]
"""

from __future__ import annotations

from pathlib import Path

import click


@click.command("validate-config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def validate_config(ctx: click.Context, as_json: bool) -> None:
    """Load the configuration and check the repositories it points at."""
    from ..config.validator import ConfigValidator
    from .common import load_from_context, make_gateway

    config = load_from_context(ctx)
    validator = ConfigValidator(config, gateway=make_gateway(config))
    checks = validator.validate_all()
    failed = [c for c in checks if not c.ok]

    if as_json:
        import json
        click.echo(json.dumps({
            "valid": not failed,
            "config_file": str(ctx.obj["config_path"]),
            "checks": [c.to_dict() for c in checks],
        }, indent=2))
    else:
        click.echo(f"\n📋 Configuration: {ctx.obj['config_path']}\n")
        for check in checks:
            if check.ok:
                click.secho(f"  ✓ {check.name}", fg="green", nl=False)
            else:
                click.secho(f"  ✗ {check.name}", fg="red", nl=False)
            click.echo(f" — {check.message}")

        click.echo()
        click.echo(f"  Sync interval:  {config.sync_interval} ({config.sync_interval_seconds:g}s)")
        click.echo(f"  Fixup interval: {config.fixup_interval} ({config.fixup_interval_seconds:g}s)")
        click.echo(f"  Extensions:     {', '.join(config.include_extensions) or '(none)'}")
        if config.include_patterns:
            click.echo(f"  Include:        {', '.join(config.include_patterns)}")
        if config.exclude_patterns:
            click.echo(f"  Exclude:        {', '.join(config.exclude_patterns)}")
        click.echo()

        if failed:
            click.secho(f"❌ {len(failed)} check(s) failed", fg="red", bold=True)
        else:
            click.secho("✅ Configuration is valid", fg="green", bold=True)

    if failed:
        raise SystemExit(1)


@click.command("generate-config")
@click.option("--output", "-o", help="Output file (default: stdout)")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def generate_config(ctx: click.Context, output: str, force: bool) -> None:
    """Generate a commented YAML configuration template."""
    from ..config.loader import generate_config_template

    template = generate_config_template()

    if not output:
        click.echo(template, nl=False)
        return

    path = Path(output)
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")

    with open(path, "w", encoding="utf-8") as f:
        f.write(template)
    click.secho(f"✅ Template written to {path}", fg="green")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Set source_repo and mirror_repo")
    click.echo(f"  2. Run: fixup-sync --config {path} validate-config")
