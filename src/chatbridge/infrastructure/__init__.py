"""Infrastructure layer: transports, platform adapters, config and messaging."""
