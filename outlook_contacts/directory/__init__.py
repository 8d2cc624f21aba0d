"""Directory snapshot input."""
