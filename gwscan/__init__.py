"""Gateway discovery on the local network."""

__version__ = "1.0.0"
