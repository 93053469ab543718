"""Geofenced attendance verification and HR backend client."""

__version__ = "0.1.0"
