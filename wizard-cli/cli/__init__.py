"""Command line front-end for the installer wizard."""

from wizard import __version__

__all__ = ["__version__"]
