"""Platform-specific DMD release bundle generator."""

__version__ = "0.3.0"
