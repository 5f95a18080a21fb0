"""clipdeck: project integrity and cascade management for a desktop video editor."""

__version__ = "0.1.0"
