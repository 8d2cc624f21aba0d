"""Spreadsheet input."""
