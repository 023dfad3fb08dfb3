"""Trigger Render deploys and wait for them to finish."""

__version__ = "0.3.0"

__all__ = ["__version__"]
