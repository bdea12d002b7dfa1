"""Per-simulation activity events."""
