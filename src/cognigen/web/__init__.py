"""HTTP API for cognigen."""
