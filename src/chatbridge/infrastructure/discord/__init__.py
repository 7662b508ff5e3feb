"""Discord gateway adapter."""
