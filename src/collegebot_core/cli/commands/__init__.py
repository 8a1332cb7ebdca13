"""CLI command groups."""

import click

from collegebot_core.enrichment.registry import StoreRegistry


def get_stores(ctx: click.Context) -> StoreRegistry:
    """Store registry for the configured data directory, built once per run."""
    stores = ctx.obj.get("stores")
    if stores is None:
        stores = StoreRegistry.from_settings(ctx.obj["settings"])
        ctx.obj["stores"] = stores
    return stores
