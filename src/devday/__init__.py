"""devday: end-of-day recap of AI-assisted coding sessions."""

__version__ = "0.1.0"
