"""Core layer: domain models and protocols."""
