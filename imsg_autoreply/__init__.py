"""imsg-autoreply: auto-reply daemon for the macOS Messages app."""

__version__ = "0.3.0"
