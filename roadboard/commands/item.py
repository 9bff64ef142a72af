"""
Item command group: add, show, edit and delete roadmap items.

Grouping options accept an id or a title; an empty value unassigns.
"""
import json
from typing import Any, Dict, Optional, Tuple

import click

from roadboard.commands.common import resolve_grouping_ref, roadmap_option, with_core
from roadboard.core import RoadboardCore
from roadboard.models.base import ItemCategory, RoadmapStatus
from roadboard.models.kinds import GroupingDimension
from roadboard.models.roadmap import Item


@click.group()
def item():
    """Manage roadmap items."""
    pass


def grouping_options(func):
    for dimension in reversed(list(GroupingDimension)):
        func = click.option(
            f"--{dimension.value}",
            dimension.foreign_key,
            default=None,
            help=f"{dimension.label} id or title.",
        )(func)
    return func


def _grouping_fields(core: RoadboardCore, refs: Dict[str, Optional[str]]) -> Dict[str, Any]:
    fields = {}
    for dimension in GroupingDimension:
        ref = refs.get(dimension.foreign_key)
        if ref is not None:
            fields[dimension.foreign_key] = resolve_grouping_ref(core, dimension, ref)
    return fields


def _display_item(entry: Item, core: RoadboardCore) -> None:
    """Display item details in human-readable format."""
    click.echo(f"Title: {entry.title}")
    click.echo(f"Description: {entry.description or ''}")
    click.echo(f"Status: {entry.status.value}")
    click.echo(f"Category: {entry.category.value}")
    for dimension in GroupingDimension:
        grouping_id = getattr(entry, dimension.foreign_key)
        grouping = core.store.get_grouping(dimension, grouping_id) if grouping_id else None
        click.echo(f"{dimension.label}: {grouping.title if grouping else '-'}")
    click.echo(f"Tags: {', '.join(entry.tags) or '-'}")
    click.echo(f"Id: {entry.id}")


@item.command(name="show")
@roadmap_option
@click.argument("item_id")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def show(roadmap_id: Optional[str], item_id: str, json_output: bool):
    """Show details for an item."""

    async def action(core: RoadboardCore):
        entry = core.store.get_item(item_id)
        if entry is None:
            raise click.ClickException(f"Item '{item_id}' not found.")
        if json_output:
            click.echo(json.dumps(entry.model_dump(mode="json"), indent=2))
        else:
            _display_item(entry, core)

    with_core(roadmap_id, action)


@item.command(name="add")
@roadmap_option
@click.argument("title")
@click.option("-d", "--description", default=None, help="Item description.")
@click.option(
    "-s", "--status",
    type=click.Choice([s.value for s in RoadmapStatus]),
    default=RoadmapStatus.LATER.value,
    show_default=True,
)
@click.option(
    "-c", "--category",
    type=click.Choice([c.value for c in ItemCategory]),
    default=ItemCategory.BUSINESS.value,
    show_default=True,
)
@grouping_options
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable).")
@click.option("--new-objective", default=None, help="Create this objective and put the item in it.")
def add(
    roadmap_id: Optional[str],
    title: str,
    description: Optional[str],
    status: str,
    category: str,
    tags: Tuple[str, ...],
    new_objective: Optional[str],
    **refs: Optional[str],
):
    """Add an item titled TITLE."""
    if new_objective and refs.get("objective_id"):
        raise click.UsageError("Use either --objective or --new-objective, not both.")

    async def action(core: RoadboardCore):
        fields = {
            "title": title,
            "description": description,
            "status": status,
            "category": category,
            "tags": list(tags),
            **_grouping_fields(core, refs),
        }
        return await core.create_item(fields, new_objective_title=new_objective)

    created = with_core(roadmap_id, action)
    if created is None:
        raise click.ClickException(f"Item '{title}' was not created.")
    click.echo(f"Item '{created.title}' created ({created.id}).")


@item.command(name="edit")
@roadmap_option
@click.argument("item_id")
@click.option("-t", "--title", default=None, help="New title.")
@click.option("-d", "--description", default=None, help="New description.")
@click.option("-s", "--status", type=click.Choice([s.value for s in RoadmapStatus]), default=None)
@click.option("-c", "--category", type=click.Choice([c.value for c in ItemCategory]), default=None)
@grouping_options
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable).")
def edit(
    roadmap_id: Optional[str],
    item_id: str,
    title: Optional[str],
    description: Optional[str],
    status: Optional[str],
    category: Optional[str],
    tags: Tuple[str, ...],
    **refs: Optional[str],
):
    """Edit ITEM_ID. Only the given fields are changed."""
    patch: Dict[str, Any] = {
        key: value
        for key, value in (("title", title), ("description", description), ("status", status), ("category", category))
        if value is not None
    }
    if tags:
        patch["tags"] = list(tags)
    if not patch and all(ref is None for ref in refs.values()):
        raise click.ClickException(
            "No update parameters provided. "
            "Specify at least one of: --title, --description, --status, --category, "
            "--objective, --module, --team, --tag."
        )

    async def action(core: RoadboardCore):
        fields = {**patch, **_grouping_fields(core, refs)}
        task = core.update_item(item_id, fields)
        if task is None:
            return None
        return await task

    result = with_core(roadmap_id, action)
    if result is None:
        click.echo(f"Item '{item_id}' left unchanged.")
    elif result:
        click.echo(f"Item '{item_id}' updated.")
    else:
        raise click.ClickException(f"Item '{item_id}' could not be updated.")


@item.command(name="delete")
@roadmap_option
@click.argument("item_id")
@click.confirmation_option(prompt="Are you sure you want to delete this item?")
def delete(roadmap_id: Optional[str], item_id: str):
    """Delete ITEM_ID."""

    async def action(core: RoadboardCore):
        return await core.delete_item(item_id)

    if not with_core(roadmap_id, action):
        raise click.ClickException(f"Item '{item_id}' was not deleted.")
    click.echo(f"Item '{item_id}' deleted.")
