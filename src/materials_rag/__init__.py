"""Retrieval core for the raw-materials chat assistant."""

__version__ = "0.3.0"
