"""Outlook CSV export."""
