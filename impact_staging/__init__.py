"""Flatten clinical-genomics records into tab-delimited staging files."""

__version__ = "0.1.0"
