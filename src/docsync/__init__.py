"""Inline document comments kept in sync with GitHub pull request reviews."""

__version__ = "0.1.0"
