"""
CLI ops commands — statistics, history and ledger maintenance.

Usage:
    python -m image_optimizer.main stats [--json]
    python -m image_optimizer.main history [ASSET_ID] [--limit N]
    python -m image_optimizer.main purge (ASSET_ID | --all) [--with-backups] [--yes]
"""

from __future__ import annotations

import json
from typing import Optional

import click

from . import get_service


def _human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@click.command("stats")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show aggregate savings across optimized images."""
    data = get_service(ctx).statistics()

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo()
    click.secho("📊 Optimization Statistics", bold=True)
    click.echo(f"   Optimized images:   {data['total_optimized']}")
    click.echo(f"   Original size:      {_human_size(data['total_original_size'])}")
    click.echo(f"   Optimized size:     {_human_size(data['total_optimized_size'])}")
    click.secho(f"   Saved:              {_human_size(data['total_savings'])}", fg="green")
    click.echo(f"   Average reduction:  {data['average_compression']:.1f}%")
    click.echo(f"   WebP siblings:      {data['webp_count']}")
    click.echo()


@click.command("history")
@click.argument("asset_id", type=int, required=False)
@click.option("--limit", default=20, type=int, help="Number of events to show")
@click.pass_context
def history(ctx: click.Context, asset_id: Optional[int], limit: int) -> None:
    """Show recent optimizer events, for one asset or all of them."""
    service = get_service(ctx)

    if asset_id is not None:
        record = service.history(asset_id, limit=limit)
        if record is None:
            click.secho(f"No optimization history found for #{asset_id}", fg="yellow")
            raise SystemExit(1)
        entry = record["entry"]
        if entry:
            click.echo(
                f"#{asset_id}: {entry['status']}, "
                f"{entry['original_size']:,} → {entry['optimized_size']:,} bytes, "
                f"backup {'present' if record['has_backup'] else 'missing'}"
            )
        events = record["events"]
    else:
        events = service.audit.read(limit=limit) if service.audit else []

    if not events:
        click.echo("No events recorded.")
        return

    colors = {"info": None, "warning": "yellow", "error": "red"}
    for event in events:
        target = f"#{event['asset_id']}" if event.get("asset_id") is not None else "-"
        message = (event.get("details") or {}).get("message", "")
        click.secho(
            f"{event['ts_iso']}  {event['type']:20} {target:>6}  {message}",
            fg=colors.get(event.get("level", "info")),
        )


@click.command("purge")
@click.argument("asset_id", type=int, required=False)
@click.option("--all", "purge_all", is_flag=True, help="Purge every ledger entry")
@click.option("--with-backups", is_flag=True, help="Also delete backup files")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def purge(
    ctx: click.Context,
    asset_id: Optional[int],
    purge_all: bool,
    with_backups: bool,
    yes: bool,
) -> None:
    """Remove optimization records (and optionally backups)."""
    if asset_id is None and not purge_all:
        raise click.UsageError("Give an ASSET_ID or --all")
    if asset_id is not None and purge_all:
        raise click.UsageError("ASSET_ID and --all are mutually exclusive")

    target = "all assets" if purge_all else f"asset #{asset_id}"
    if with_backups and not yes:
        click.confirm(
            f"Delete backups for {target}? Reverting will no longer be possible",
            abort=True,
        )

    removed = get_service(ctx).purge(asset_id, delete_backups=with_backups)
    click.secho(f"✓ Purged {removed} ledger entries for {target}", fg="green")
