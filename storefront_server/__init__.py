"""Storefront basket and checkout server."""

__version__ = "0.1.0"
