"""dupetrace - find duplicated dependency versions and explain where they come from."""

__version__ = "1.0.0"
