"""flowsync - folder synchronization agent for the Flowen service."""

__version__ = "0.1.0"
