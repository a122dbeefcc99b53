"""frate — a local, user-level tool installation manager."""

__version__ = "0.3.0"
