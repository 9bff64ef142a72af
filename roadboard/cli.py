"""
CLI for Roadboard using .roadboard/ folder-based storage.

Uses RoadboardCore and managers exclusively.
"""
from pathlib import Path
from typing import Optional

import click

from roadboard import __version__
from roadboard.commands.board import board
from roadboard.commands.config import config
from roadboard.commands.group import group
from roadboard.commands.importer import import_csv
from roadboard.commands.init import init
from roadboard.commands.item import item
from roadboard.constants import DEFAULT_ROADBOARD_DIR, get_config_manager
from roadboard.exceptions import StorageError
from roadboard.logger import setup_logger
from roadboard.managers.storage_manager import StorageManager


@click.group()
@click.version_option(__version__, prog_name="roadboard")
@click.option(
    "--dir",
    "roadboard_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_ROADBOARD_DIR,
    envvar="ROADBOARD_DIR",
    show_default=True,
    help="Directory holding config.json and the local store.",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, roadboard_dir: Path, log_level: Optional[str]):
    """A Now/Next/Later roadmap board on the command line."""
    ctx.ensure_object(dict)
    try:
        storage = StorageManager(roadboard_dir)
        settings = storage.load_config()
    except StorageError as e:
        raise click.ClickException(str(e))

    ctx.obj["storage"] = storage
    get_config_manager(reset=True, roadboard_dir=roadboard_dir)
    setup_logger(log_level=log_level or settings.log_level, log_file=settings.log_file)


cli.add_command(init)
cli.add_command(board)
cli.add_command(item)
cli.add_command(group)
cli.add_command(import_csv)
cli.add_command(config)


if __name__ == '__main__':
    cli()
