"""Core interfaces (protocols)."""
