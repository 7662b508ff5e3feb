"""Network transports."""
