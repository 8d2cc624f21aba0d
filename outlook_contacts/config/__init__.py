"""Configuration and persisted preferences."""
