"""Runtime security and environment monitoring for the room reservation service."""

__version__ = "0.1.0"
