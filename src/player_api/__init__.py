"""Player API: view, team and permission management with webhook delivery."""

__all__ = ["__version__"]

__version__ = "3.0.0"
