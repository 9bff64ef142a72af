"""
Import command: bulk-create items from a semicolon-separated CSV file.
"""
import json
from pathlib import Path
from typing import Optional

import click

from roadboard.commands.common import roadmap_option, with_core
from roadboard.core import RoadboardCore
from roadboard.exceptions import ValidationError
from roadboard.managers.csv_importer import ImportPreview, read_import_file


def _display_preview(preview: ImportPreview) -> None:
    click.echo(f"{len(preview.records)} rows, {preview.issue_count} issues")
    for record in preview.records:
        click.echo(f"  {record.row}. {record.title} [{record.status.value}/{record.category.value}]")
        for issue in record.issues:
            click.echo(f"     ! {issue}")


@click.command(name="import")
@roadmap_option
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--headers/--no-headers",
    default=None,
    help="Whether the first row is a header (defaults to config csv_has_headers).",
)
@click.option("--dry-run", is_flag=True, help="Only show the parsed rows and their issues.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def import_csv(roadmap_id: Optional[str], file: Path, headers: Optional[bool], dry_run: bool, json_output: bool):
    """Import items from FILE.

    Columns: title;description;status;category;objective;module;team;tags.
    Rows with issues are still imported, with defaults for the bad cells.
    """
    try:
        content = read_import_file(file)
    except ValidationError as e:
        raise click.ClickException(str(e))

    async def action(core: RoadboardCore):
        preview = core.parse_import(content, has_headers=headers)
        summary = None if dry_run else await core.commit_import(preview)
        return preview, summary

    preview, summary = with_core(roadmap_id, action)

    if json_output:
        output = preview.model_dump(mode="json")
        output["issue_count"] = preview.issue_count
        if summary is not None:
            output["created"] = [entry.id for entry in summary.created]
            output["failed"] = summary.failed
        click.echo(json.dumps(output, indent=2))
        return

    _display_preview(preview)
    if summary is None:
        click.echo("Dry run, nothing imported.")
        return
    click.echo(f"Imported {len(summary.created)} items.")
    if summary.failed:
        raise click.ClickException(f"Rows not imported: {', '.join(str(row) for row in summary.failed)}")
