"""incantations: sync backend for the offline-capable voice task manager."""

__version__ = "1.0.0"
