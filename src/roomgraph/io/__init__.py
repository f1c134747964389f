"""JSON persistence for plans."""
