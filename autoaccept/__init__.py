"""Screen watcher that detects the match-found dialog, clicks accept, and serves a control page."""

__version__ = "0.1.0"
__all__ = ["__version__"]