"""Buildgate: skip redundant builds when watched sources are unchanged."""

__version__ = "0.1.0"
