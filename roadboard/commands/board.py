"""
Board command group: render the board and move items between columns.
"""
import json
from typing import Optional

import click

from roadboard.commands.common import format_item, roadmap_option, with_core
from roadboard.core import RoadboardCore
from roadboard.managers.projection import BoardProjection
from roadboard.models.base import RoadmapStatus
from roadboard.models.kinds import GroupingDimension

STATUS_LABELS = {
    RoadmapStatus.NOW: "Now",
    RoadmapStatus.NEXT: "Next",
    RoadmapStatus.LATER: "Later",
}


@click.group()
def board():
    """Show the roadmap board and move items."""
    pass


def _display_board(title: str, projection: BoardProjection) -> None:
    """Display the board in human-readable format."""
    click.echo(f"Roadmap: {title}")
    click.echo(f"Grouped by: {projection.dimension.value}")
    if not projection.groups:
        click.echo(f"\nNo {projection.dimension.value}s and no items.")
        return

    for group in projection.groups:
        click.echo(f"\n== {group.grouping.title} ({group.count}) ==")
        for status, items in group.columns.items():
            click.echo(f"  {STATUS_LABELS[status]}:")
            if not items:
                click.echo("    (empty)")
            for entry in items:
                click.echo(f"    - {format_item(entry)}")


@board.command(name="show")
@roadmap_option
@click.option(
    "-b", "--by",
    "dimension",
    type=click.Choice([d.value for d in GroupingDimension]),
    default=GroupingDimension.OBJECTIVE.value,
    show_default=True,
    help="Grouping dimension of the board rows.",
)
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def show(roadmap_id: Optional[str], dimension: str, json_output: bool):
    """Show the board grouped by objective, module or team."""

    async def action(core: RoadboardCore):
        return core.roadmap.title, core.projection(dimension)

    title, projection = with_core(roadmap_id, action)
    if json_output:
        click.echo(json.dumps({"roadmap": title, **projection.to_dict()}, indent=2))
    else:
        _display_board(title, projection)


@board.command(name="move")
@roadmap_option
@click.argument("item_id")
@click.argument("status", type=click.Choice([s.value for s in RoadmapStatus]))
def move(roadmap_id: Optional[str], item_id: str, status: str):
    """Move ITEM_ID to the STATUS column."""

    async def action(core: RoadboardCore):
        task = core.move_item(item_id, status)
        if task is None:
            return None
        return await task

    result = with_core(roadmap_id, action)
    if result is None:
        click.echo(f"Item '{item_id}' left unchanged.")
    elif result:
        click.echo(f"Item '{item_id}' moved to {status}.")
    else:
        raise click.ClickException(f"Item '{item_id}' could not be moved.")
