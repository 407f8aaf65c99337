"""Metadata and user-data sources, networkd unit rendering and address substitution for cloud instances."""

__version__ = "0.1.0"