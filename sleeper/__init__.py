"""Sleeper System: shared fate dice pools for tabletop campaigns."""

__version__ = "0.4.0"
