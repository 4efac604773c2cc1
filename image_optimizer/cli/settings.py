"""
CLI settings commands — show and change optimizer settings.

Usage:
    python -m image_optimizer.main settings-show [--json]
    python -m image_optimizer.main settings-set KEY VALUE
"""

from __future__ import annotations

import json

import click

from ..config.settings_store import KNOWN_KEYS, SettingsError
from . import get_service


@click.command("settings-show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def settings_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective optimization settings."""
    service = get_service(ctx)
    config = service.settings.optimization_config().to_dict()

    if as_json:
        click.echo(json.dumps(config, indent=2))
        return

    click.echo(f"\n⚙️  Settings ({service.settings.path})\n")
    for key, value in config.items():
        click.echo(f"  {key:24} {value}")
    click.echo()


@click.command("settings-set")
@click.argument("key", type=click.Choice(sorted(KNOWN_KEYS)))
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Change one optimization setting."""
    service = get_service(ctx)
    try:
        service.settings.update({key: value})
    except SettingsError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        raise SystemExit(1)

    config = service.settings.optimization_config().to_dict()
    click.secho(f"✓ {key} = {config[key]}", fg="green")
