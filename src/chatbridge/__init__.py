"""Chat platform protocol bridge."""

__version__ = "0.1.0"
