"""Terminal client for searching and reading Wikipedia."""

__version__ = "0.1.0"
