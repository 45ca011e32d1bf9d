"""adminvault - Administrative accounts backend."""

__version__ = "0.1.0"
