"""Click command groups for the Roadboard CLI."""
