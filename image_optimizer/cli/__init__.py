"""Click subcommands registered on the main ``cli`` group."""

from __future__ import annotations

import click

from ..engine.service import OptimizationService, build_service


def get_service(ctx: click.Context) -> OptimizationService:
    """Build the service once per invocation and cache it on ``ctx.obj``."""
    obj = ctx.find_root().obj
    if "service" not in obj:
        obj["service"] = build_service(obj["settings"])
    return obj["service"]
