"""Render a screenshot of any URL from a path-encoded request."""

__version__ = "0.1.0"
