"""Interactive fuzzy search of shell history."""

__version__ = "0.4.0"
