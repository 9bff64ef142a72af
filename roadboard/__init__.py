"""Roadboard: a Now / Next / Later roadmap board."""

__version__ = "0.1.0"
