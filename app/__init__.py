"""Alfred Travel: UK transport legs and commute composition."""

__version__ = "0.1.0"
