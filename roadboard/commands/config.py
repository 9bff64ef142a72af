"""
Config command group for the Roadboard CLI.

Commands for viewing and editing .roadboard/config.json.
"""
import json

import click
from pydantic import ValidationError as PydanticValidationError

from roadboard.commands.common import get_storage
from roadboard.constants import get_config_manager
from roadboard.exceptions import StorageError
from roadboard.models.files import ConfigFile

# Values that clear an optional setting
NULL_VALUES = ("", "none", "null")


@click.group()
def config():
    """View and edit configuration.

    Configuration is stored in .roadboard/config.json.
    """
    pass


def _check_key(key: str) -> None:
    if key not in ConfigFile.model_fields:
        raise click.ClickException(
            f"Unknown config key '{key}'. Valid keys: {', '.join(ConfigFile.model_fields)}"
        )


@config.command(name="show")
def show_config():
    """Show current configuration."""
    storage = get_storage()
    try:
        settings = storage.load_config()
    except StorageError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@config.command(name="get")
@click.argument("key")
def get_config(key: str):
    """Get a configuration value."""
    _check_key(key)
    try:
        settings = get_storage().load_config()
    except StorageError as e:
        raise click.ClickException(str(e))
    value = getattr(settings, key)
    if value is None:
        click.echo("")
    elif isinstance(value, bool):
        click.echo(str(value).lower())
    else:
        click.echo(value)


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_config(key: str, value: str):
    """Set a configuration value.

    Use "none" to clear an optional value.
    """
    _check_key(key)
    storage = get_storage()
    try:
        current = storage.load_config().model_dump()
        field = ConfigFile.model_fields[key]
        clearable = field.default is None
        new_value = None if clearable and value.lower() in NULL_VALUES else value
        settings = ConfigFile.model_validate({**current, key: new_value})
        storage.save_config(settings)
    except PydanticValidationError as e:
        raise click.ClickException(f"Invalid value for {key}: {e.errors()[0]['msg']}")
    except StorageError as e:
        raise click.ClickException(str(e))

    get_config_manager().reload()
    click.echo(f"{key} = {getattr(settings, key)}")
