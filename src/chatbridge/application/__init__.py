"""Application layer: host runtime, encoder base and bridge wiring."""
