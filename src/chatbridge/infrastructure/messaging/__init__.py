"""Message bus implementations."""
