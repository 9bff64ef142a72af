"""
Group command group: manage objectives, modules and teams.

GROUPING arguments accept an id or a title.
"""
import json
from typing import Any, Dict, Optional

import click

from roadboard.commands.common import dimension_argument, find_grouping, roadmap_option, with_core
from roadboard.core import RoadboardCore
from roadboard.models.kinds import GroupingDimension


@click.group()
def group():
    """Manage objectives, modules and teams."""
    pass


def _lookup(core: RoadboardCore, dimension: GroupingDimension, ref: str):
    grouping = find_grouping(core, dimension, ref)
    if grouping is None:
        raise click.ClickException(f"{dimension.label} '{ref}' not found.")
    return grouping


@group.command(name="list")
@roadmap_option
@dimension_argument
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def list_groupings(roadmap_id: Optional[str], dimension: str, json_output: bool):
    """List the groupings of DIMENSION in display order."""
    dim = GroupingDimension(dimension)

    async def action(core: RoadboardCore):
        return core.store.groupings(dim)

    groupings = with_core(roadmap_id, action)
    if json_output:
        click.echo(json.dumps([g.model_dump(mode="json") for g in groupings], indent=2))
        return
    if not groupings:
        click.echo(f"No {dim.value}s.")
        return
    for i, grouping in enumerate(groupings, 1):
        click.echo(f"  {i}. {grouping.title} {grouping.color} ({grouping.id})")


@group.command(name="add")
@roadmap_option
@dimension_argument
@click.argument("title")
@click.option("--color", default=None, help="Display color (defaults to config default_color).")
@click.option("-d", "--description", default=None, help="Description (modules and teams only).")
def add(roadmap_id: Optional[str], dimension: str, title: str, color: Optional[str], description: Optional[str]):
    """Add a grouping titled TITLE at the end of DIMENSION."""
    dim = GroupingDimension(dimension)
    if description and dim == GroupingDimension.OBJECTIVE:
        raise click.UsageError("Objectives have no description.")

    async def action(core: RoadboardCore):
        return await core.create_grouping(dim, title, color=color, description=description)

    created = with_core(roadmap_id, action)
    if created is None:
        raise click.ClickException(f"{dim.label} '{title}' was not created.")
    click.echo(f"{dim.label} '{created.title}' created ({created.id}).")


@group.command(name="edit")
@roadmap_option
@dimension_argument
@click.argument("grouping")
@click.option("-t", "--title", default=None, help="New title.")
@click.option("--color", default=None, help="New color.")
@click.option("-d", "--description", default=None, help="New description (modules and teams only).")
@click.option("--order", "order_index", type=int, default=None, help="New display position.")
def edit(
    roadmap_id: Optional[str],
    dimension: str,
    grouping: str,
    title: Optional[str],
    color: Optional[str],
    description: Optional[str],
    order_index: Optional[int],
):
    """Edit GROUPING in DIMENSION. Only the given fields are changed."""
    dim = GroupingDimension(dimension)
    fields: Dict[str, Any] = {
        key: value
        for key, value in (("title", title), ("color", color), ("description", description), ("order_index", order_index))
        if value is not None
    }
    if not fields:
        raise click.ClickException(
            "No update parameters provided. Specify at least one of: --title, --color, --description, --order."
        )

    async def action(core: RoadboardCore):
        target = _lookup(core, dim, grouping)
        return await core.update_grouping(dim, target.id, fields)

    updated = with_core(roadmap_id, action)
    if updated is None:
        raise click.ClickException(f"{dim.label} '{grouping}' was not updated.")
    click.echo(f"{dim.label} '{updated.title}' updated.")


@group.command(name="delete")
@roadmap_option
@dimension_argument
@click.argument("grouping")
@click.confirmation_option(prompt="Are you sure? Its items become unassigned.")
def delete(roadmap_id: Optional[str], dimension: str, grouping: str):
    """Delete GROUPING from DIMENSION; its items become unassigned."""
    dim = GroupingDimension(dimension)

    async def action(core: RoadboardCore):
        target = _lookup(core, dim, grouping)
        return target.title if await core.delete_grouping(dim, target.id) else None

    title = with_core(roadmap_id, action)
    if title is None:
        raise click.ClickException(f"{dim.label} '{grouping}' was not deleted.")
    click.echo(f"{dim.label} '{title}' deleted.")
