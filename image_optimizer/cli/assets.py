"""
CLI asset commands — register and list library images.

Usage:
    python -m image_optimizer.main add PATH [--title TITLE]
    python -m image_optimizer.main scan
    python -m image_optimizer.main images [--status optimized|unoptimized] [--page N]
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from . import get_service


@click.command("add")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--title", default=None, help="Asset title (defaults to the file name)")
@click.pass_context
def add_asset(ctx: click.Context, path: Path, title: Optional[str]) -> None:
    """Register an image file in the media library."""
    service = get_service(ctx)
    asset, result = service.register(path.resolve(), title=title)
    click.secho(f"✓ Registered #{asset.id}: {asset.filename}", fg="green")

    if result is None:
        return
    if result.is_success():
        click.secho(f"  ✓ Auto-optimized: {result.message}", fg="green")
    else:
        click.secho(f"  ✗ Auto-optimize failed: {result.message}", fg="red", err=True)
        raise SystemExit(1)


@click.command("scan")
@click.pass_context
def scan_library(ctx: click.Context) -> None:
    """Register every image found under the media root."""
    service = get_service(ctx)
    settings = ctx.find_root().obj["settings"]
    added = service.library.scan(backup_dir=settings.backup_dir)
    service.library.save()

    if not added:
        click.echo(f"No new images under {service.library.media_root}")
        return
    click.secho(f"✓ {len(added)} new images registered", fg="green")
    for asset in added:
        click.echo(f"  #{asset.id:<5} {asset.filename}")


@click.command("images")
@click.option("--status", type=click.Choice(["optimized", "unoptimized"]), default=None)
@click.option("--page", default=1, type=int, help="Page number")
@click.option("--per-page", default=20, type=int, help="Images per page")
@click.pass_context
def list_images(ctx: click.Context, status: Optional[str], page: int, per_page: int) -> None:
    """List library images with their optimization state."""
    listing = get_service(ctx).list_images(page=page, per_page=per_page, status=status)

    if not listing["images"]:
        click.echo("No images.")
        return

    click.echo(f"\n{'ID':>5}  {'STATE':11}  {'SIZE':>10}  {'SAVED':>7}  FILE")
    for image in listing["images"]:
        state = "optimized" if image["optimized"] else "original"
        saved = ""
        if image["optimization"] and image["optimized"]:
            saved = f"{image['optimization']['compression_ratio']:.1f}%"
        color = "green" if image["optimized"] else None
        click.secho(
            f"{image['id']:>5}  {state:11}  {image['size']:>10,}  {saved:>7}  {image['filename']}",
            fg=color,
        )
    click.echo(f"\nPage {listing['paged']}/{max(listing['pages'], 1)} ({listing['total']} images)")
