"""Logging setup and error log."""
