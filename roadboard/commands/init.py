"""
Init command: create a roadmap and make it the default one.
"""
import click

from roadboard.commands.common import get_storage, open_remote, run
from roadboard.exceptions import StorageError
from roadboard.models.kinds import EntityKind


@click.command()
@click.option("-t", "--title", required=True, help="Roadmap title.")
@click.option("-d", "--description", default="", help="Roadmap description.")
@click.option("-o", "--owner", default="", help="Owner of the roadmap.")
@click.option(
    "--force",
    is_flag=True,
    help="Replace the default roadmap without asking.",
)
def init(title: str, description: str, owner: str, force: bool):
    """Initializes a new roadmap."""
    storage = get_storage()
    settings = storage.load_config()
    if settings.default_roadmap and not force:
        click.confirm(
            f"A default roadmap is already set in {storage.config_path.resolve()}. Replace it?",
            abort=True,
        )

    async def create():
        async with open_remote(storage) as remote:
            return await remote.create(
                EntityKind.ROADMAP,
                {"title": title, "description": description, "owner": owner},
            )

    roadmap = run(create)
    settings.default_roadmap = roadmap.id
    try:
        storage.save_config(settings)
    except StorageError as e:
        raise click.ClickException(str(e))
    click.echo(f"Roadmap '{roadmap.title}' initialized ({roadmap.id}).")
