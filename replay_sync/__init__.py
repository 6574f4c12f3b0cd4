"""Synchronize a local directory of replay files with remote replay streams."""

__version__ = "0.1.0"
