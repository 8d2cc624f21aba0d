"""Outlook contact import generator for student rosters."""

__version__ = "0.1.0"
