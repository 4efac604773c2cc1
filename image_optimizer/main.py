"""
Image Optimizer — CLI Entry Point

Usage:
    python -m image_optimizer.main optimize 42 [43 ...]
    python -m image_optimizer.main revert 42
    python -m image_optimizer.main status 42
    python -m image_optimizer.main bulk-optimize --pending
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
from datetime import datetime, timezone

import click

from .config.loader import load_settings
from .logging_config import setup_logging
from .models.result import Result
from .cli import get_service
from .cli.assets import add_asset, list_images, scan_library
from .cli.ops import history, purge, stats
from .cli.settings import settings_set, settings_show

setup_logging()


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def echo_result(result: Result, label: str = "") -> None:
    """Print a Result; failures go to stderr in red."""
    prefix = f"{label}: " if label else ""
    if result.is_success():
        click.secho(f"✓ {prefix}{result.message}", fg="green")
        for key, value in result.data.items():
            click.echo(f"    {key:18} {value}")
    else:
        click.secho(f"✗ {prefix}{result.message}", fg="red", err=True)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Image Optimizer — recompress media in place with reversible backups."""
    ctx.ensure_object(dict)
    root = get_project_root()
    ctx.obj["root"] = root
    ctx.obj["settings"] = load_settings(root)


@cli.command()
@click.argument("asset_ids", nargs=-1, type=int, required=True)
@click.option("--json", "as_json", is_flag=True, help="Output wire-format JSON")
@click.pass_context
def optimize(ctx: click.Context, asset_ids: tuple, as_json: bool) -> None:
    """Optimize one or more assets by id."""
    service = get_service(ctx)
    failures = 0
    wire = {}
    for asset_id in asset_ids:
        result = service.optimize(asset_id)
        wire[str(asset_id)] = result.to_wire()
        if result.is_failure():
            failures += 1
        if not as_json:
            echo_result(result, f"#{asset_id}")

    if as_json:
        click.echo(json.dumps(wire, indent=2))
    if failures:
        raise SystemExit(1)


@cli.command()
@click.argument("asset_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output wire-format JSON")
@click.pass_context
def revert(ctx: click.Context, asset_id: int, as_json: bool) -> None:
    """Restore an asset from its backup."""
    result = get_service(ctx).revert(asset_id)
    if as_json:
        click.echo(json.dumps(result.to_wire(), indent=2))
    else:
        echo_result(result, f"#{asset_id}")
    if result.is_failure():
        raise SystemExit(1)


@cli.command()
@click.argument("asset_id", type=int)
@click.pass_context
def status(ctx: click.Context, asset_id: int) -> None:
    """Show backup and ledger state for an asset."""
    service = get_service(ctx)
    asset = service.get_asset(asset_id)
    if asset is None:
        click.secho(f"Unknown asset #{asset_id}", fg="red", err=True)
        raise SystemExit(1)

    entry = service.ledger.get(asset_id)
    click.echo(f"Asset:        #{asset.id} {asset.title}")
    click.echo(f"File:         {asset.path}")
    click.echo(f"Size:         {asset.size_bytes():,} bytes")
    click.echo(f"Backup:       {'yes' if service.has_backup(asset_id) else 'no'}")

    if entry is None:
        click.echo("Ledger:       never optimized")
        return

    click.echo(f"Status:       {entry.status}")
    click.echo(f"Original:     {entry.original_size:,} bytes")
    click.echo(f"Current:      {entry.optimized_size:,} bytes ({entry.compression_ratio:.1f}% saved)")
    click.echo(f"Codec:        {entry.codec or '-'} ({entry.compression_level or '-'}, q={entry.quality})")
    click.echo(f"WebP:         {'yes' if entry.webp_available else 'no'}")

    try:
        from dateutil import parser as date_parser
        updated = date_parser.isoparse(entry.updated_at_iso)
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)
        minutes = int((datetime.now(timezone.utc) - updated).total_seconds() / 60)
        click.echo(f"Updated:      {entry.updated_at_iso} ({minutes // 60}h {minutes % 60}m ago)")
    except (ValueError, OverflowError):
        click.echo(f"Updated:      {entry.updated_at_iso}")


@cli.command("bulk-optimize")
@click.argument("asset_ids", nargs=-1, type=int)
@click.option("--pending", is_flag=True, help="Optimize every asset not yet optimized")
@click.pass_context
def bulk_optimize(ctx: click.Context, asset_ids: tuple, pending: bool) -> None:
    """Optimize several assets, one at a time."""
    service = get_service(ctx)
    ids = list(asset_ids)
    if pending:
        ids.extend(i for i in service.pending_ids() if i not in ids)
    if not ids:
        click.echo("Nothing to optimize.")
        return

    with click.progressbar(ids, label="Optimizing") as bar:
        results = service.bulk_optimize(bar)

    failed = {k: r for k, r in results.items() if r.is_failure()}
    click.secho(f"✓ {len(results) - len(failed)}/{len(results)} optimized", fg="green")
    for asset_id, result in failed.items():
        click.secho(f"  ✗ #{asset_id}: {result.message}", fg="red", err=True)
    if failed:
        raise SystemExit(1)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=5050, type=int, help="Port")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, debug: bool) -> None:
    """Run the local admin API."""
    from .admin.server import run_server

    run_server(host=host, port=port, debug=debug, project_root=ctx.obj["root"])


cli.add_command(add_asset)
cli.add_command(scan_library)
cli.add_command(list_images)
cli.add_command(stats)
cli.add_command(history)
cli.add_command(purge)
cli.add_command(settings_show)
cli.add_command(settings_set)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
